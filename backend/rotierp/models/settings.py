from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Setting(db.Model):
    """Company-wide key/value setting; values are stored as text."""
    __tablename__ = "settings"
    __table_args__ = (
        db.UniqueConstraint("key", name="uq_settings_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False)
    value = db.Column(db.Text, nullable=False, default="")
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class Permission(db.Model):
    """A grantable action; rows are seeded from permissions.PERMISSION_DEFINITIONS."""
    __tablename__ = "permissions"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_permissions_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(128), nullable=False)
    description = db.Column(db.Text, nullable=True)
    module = db.Column(db.String(32), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "module": self.module,
        }


class RolePermission(db.Model):
    """Grant of one permission to one role."""
    __tablename__ = "role_permissions"
    __table_args__ = (
        db.UniqueConstraint("role", "permission_id", name="uq_role_permissions_role_permission"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    role = db.Column(db.String(32), nullable=False, index=True)
    permission_id = db.Column(db.Integer, db.ForeignKey("permissions.id"), nullable=False, index=True)
    granted_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    permission = db.relationship("Permission")


BACKUP_TYPES = ("MANUAL", "AUTOMATIC")
BACKUP_STATUSES = ("SUCCESS", "FAILED")


class Backup(db.Model):
    """
    Record of one database snapshot written under BACKUP_DIR.

    A FAILED row keeps the error so the settings screen can show why.
    """
    __tablename__ = "backups"
    __table_args__ = (
        db.UniqueConstraint("file_name", name="uq_backups_file_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    file_name = db.Column(db.String(255), nullable=False)
    size_bytes = db.Column(db.Integer, nullable=False, default=0)
    type = db.Column(db.String(16), nullable=False, default="MANUAL")
    status = db.Column(db.String(16), nullable=False, default="SUCCESS")
    error = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "size": self.size_bytes,
            "type": self.type,
            "status": self.status,
            "error": self.error,
            "createdAt": to_utc_z(self.created_at),
        }
