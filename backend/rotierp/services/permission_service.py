"""
Permission catalog storage and per-role grants.

Seeding is idempotent. Default grants are only written for roles that have
no grants yet, so re-running bootstrap never undoes an administrator's edits.
"""

from __future__ import annotations

from flask import current_app

from ..errors import PermissionDeniedError, ValidationError
from ..extensions import db
from ..models import Permission, RolePermission
from ..permissions import DEFAULT_ROLE_PERMISSIONS, PERMISSION_DEFINITIONS
from ..roles import ROLE_NAMES, parse_role, role_rank
from ..validation import FieldErrors, coerce_int


def initialize_permissions() -> int:
    """Create Permission rows for every catalog code that is missing. Returns the number created."""
    existing = {code for (code,) in db.session.query(Permission.code).all()}
    created_count = 0

    for code, name, description, module in PERMISSION_DEFINITIONS:
        if code in existing:
            continue
        db.session.add(Permission(code=code, name=name, description=description, module=module))
        created_count += 1

    db.session.commit()
    return created_count


def assign_default_role_permissions() -> int:
    """Grant DEFAULT_ROLE_PERMISSIONS to roles that have no grants. Returns the number of grants created."""
    by_code = {p.code: p for p in db.session.query(Permission).all()}
    granted_roles = {role for (role,) in db.session.query(RolePermission.role).distinct().all()}
    created_count = 0

    for role, codes in DEFAULT_ROLE_PERMISSIONS.items():
        if role in granted_roles:
            continue
        for code in codes:
            permission = by_code.get(code)
            if permission is None:
                continue
            db.session.add(RolePermission(role=role, permission_id=permission.id))
            created_count += 1

    db.session.commit()
    return created_count


def list_permissions() -> tuple[list[Permission], dict[str, list[Permission]]]:
    """The whole catalog ordered by module then name, and each role's granted permissions."""
    permissions = (
        db.session.query(Permission)
        .order_by(Permission.module.asc(), Permission.name.asc())
        .all()
    )
    by_role: dict[str, list[Permission]] = {role: [] for role in ROLE_NAMES}
    grants = (
        db.session.query(RolePermission)
        .join(Permission, RolePermission.permission_id == Permission.id)
        .order_by(Permission.module.asc(), Permission.name.asc())
        .all()
    )
    for grant in grants:
        by_role.setdefault(grant.role, []).append(grant.permission)
    return permissions, by_role


def set_role_permissions(role_value: str, permission_ids, *, actor) -> list[Permission]:
    """
    Replace every grant of a role with the given permission ids.

    Raises:
        ValidationError: unknown role, ids that are not a list of integers, or
            ids with no matching permission (nothing is changed)
        PermissionDeniedError: the role ranks above the actor's own
    """
    role = parse_role(role_value)
    if role is None:
        raise ValidationError(
            f"Invalid role: {role_value}",
            details=[{"field": "role", "message": f"role must be one of: {', '.join(ROLE_NAMES)}"}],
        )
    if int(role) > role_rank(actor.role):
        raise PermissionDeniedError(
            "Cannot change permissions of a role above your own",
            required=f"Minimum role: {role.name}",
            current=actor.role,
        )

    if not isinstance(permission_ids, list):
        raise ValidationError(
            "permissionIds must be a list",
            details=[{"field": "permissionIds", "message": "permissionIds must be a list of ids"}],
        )

    errors = FieldErrors()
    wanted: list[int] = []
    for idx, raw in enumerate(permission_ids):
        try:
            permission_id = coerce_int(raw, "permissionId")
        except ValidationError as exc:
            errors.add(f"permissionIds[{idx}]", exc.message)
            continue
        if permission_id not in wanted:
            wanted.append(permission_id)
    errors.raise_if_any()

    permissions = db.session.query(Permission).filter(Permission.id.in_(wanted)).all() if wanted else []
    found = {p.id for p in permissions}
    missing = [pid for pid in wanted if pid not in found]
    if missing:
        raise ValidationError(
            "Unknown permission",
            details=[{"field": "permissionIds", "message": f"Permission {pid} not found"} for pid in missing],
        )

    db.session.query(RolePermission).filter(RolePermission.role == role.name).delete(synchronize_session=False)
    for permission_id in wanted:
        db.session.add(RolePermission(role=role.name, permission_id=permission_id))
    db.session.commit()

    current_app.logger.info("Permissions for %s replaced by %s: %d granted", role.name, actor.email, len(wanted))
    return sorted(permissions, key=lambda p: (p.module, p.name))
