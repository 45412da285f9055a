from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from ..time_utils import to_iso_date, to_utc_z, utcnow

FRANCHISE_STATUSES = ("ACTIVE", "INACTIVE", "SUSPENDED")


class Franchise(db.Model):
    """
    Franchise outlet owning one or more counters.

    ``manager_user_id`` points at the FRANCHISE_MANAGER whose data scope
    covers this franchise's counters and orders.
    """
    __tablename__ = "franchises"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_franchises_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    code = db.Column(db.String(32), nullable=False)

    owner_name = db.Column(db.String(128), nullable=False)
    owner_email = db.Column(db.String(255), nullable=True)
    owner_phone = db.Column(db.String(32), nullable=True)

    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(64), nullable=True)
    state = db.Column(db.String(64), nullable=True)
    pincode = db.Column(db.String(16), nullable=True)
    gst_number = db.Column(db.String(32), nullable=True)
    license_number = db.Column(db.String(64), nullable=True)

    # Percentage in basis points (5.5% -> 550)
    royalty_rate_bps = db.Column(db.Integer, nullable=False, default=0)
    status = db.Column(db.String(16), nullable=False, default="ACTIVE")
    opening_date = db.Column(db.Date, nullable=True)

    manager_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    manager = db.relationship("User", foreign_keys=[manager_user_id])
    counters = db.relationship("Counter", back_populates="franchise", lazy=True, order_by="Counter.id")

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "code": self.code}

    def to_dict(self, include_counters: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "ownerName": self.owner_name,
            "ownerEmail": self.owner_email,
            "ownerPhone": self.owner_phone,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "pincode": self.pincode,
            "gstNumber": self.gst_number,
            "licenseNumber": self.license_number,
            "royaltyRate": cents_to_amount(self.royalty_rate_bps),
            "status": self.status,
            "openingDate": to_iso_date(self.opening_date),
            "managerId": self.manager_user_id,
            "manager": self.manager.to_summary() if self.manager else None,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_counters:
            data["counters"] = [c.to_dict() for c in self.counters]
        return data
