# Overview: Service-layer operations for user administration.

from __future__ import annotations

from sqlalchemy import func, or_

from ..errors import NotFoundError, OperationNotAllowedError, PermissionDeniedError
from ..extensions import db
from ..models import User
from ..models.auth import USER_STATUSES
from ..roles import ROLE_NAMES, Role, parse_role, role_rank
from ..validation import FieldErrors
from .auth_service import hash_password


def list_users_query(*, role: str | None = None, status: str | None = None, search: str | None = None):
    query = db.session.query(User)
    if role:
        query = query.filter(User.role == role.strip().upper())
    if status:
        query = query.filter(User.status == status.strip().upper())
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            User.first_name.ilike(like),
            User.last_name.ilike(like),
            User.email.ilike(like),
        ))
    return query.order_by(User.created_at.desc(), User.id.desc())


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", "User with the specified ID does not exist")
    return user


def update_user(user_id: int, payload: dict, *, actor: User) -> User:
    """
    Apply an admin edit. Accepts firstName, lastName, phone, role, status and
    password. Nobody may grant a role above their own.
    """
    user = get_user(user_id)
    errors = FieldErrors()
    allowed = {"firstName", "lastName", "phone", "role", "status", "password"}
    for key in payload:
        if key not in allowed:
            errors.add(key, f"Field not allowed: {key}")

    for key, attr in (("firstName", "first_name"), ("lastName", "last_name")):
        if key in payload:
            value = payload[key]
            if not isinstance(value, str) or not value.strip():
                errors.add(key, f"{key} cannot be blank")
            else:
                setattr(user, attr, value.strip())

    if "phone" in payload:
        phone = payload["phone"]
        if phone is not None and not isinstance(phone, str):
            errors.add("phone", "phone must be a string")
        else:
            user.phone = phone.strip() if phone else None

    if "role" in payload:
        role = parse_role(payload["role"])
        if role is None:
            errors.add("role", f"role must be one of: {', '.join(ROLE_NAMES)}")
        else:
            check_assignable_role(role, actor)
            user.role = role.name

    if "status" in payload:
        status = str(payload["status"] or "").strip().upper()
        if status not in USER_STATUSES:
            errors.add("status", f"status must be one of: {', '.join(USER_STATUSES)}")
        else:
            user.status = status

    if errors:
        db.session.rollback()
        errors.raise_if_any("Please provide valid user details")

    if "password" in payload:
        user.password_hash = hash_password(payload["password"])

    db.session.commit()
    return user


def deactivate_user(user_id: int) -> User:
    """Soft delete: status becomes INACTIVE. Super admins cannot be removed."""
    user = get_user(user_id)
    if parse_role(user.role) == Role.SUPER_ADMIN:
        raise OperationNotAllowedError("Cannot delete super admin user")
    user.status = "INACTIVE"
    db.session.commit()
    return user


def user_stats() -> dict:
    total = db.session.query(func.count(User.id)).scalar() or 0
    active = db.session.query(func.count(User.id)).filter(User.status == "ACTIVE").scalar() or 0
    roles = dict(db.session.query(User.role, func.count(User.id)).group_by(User.role).all())
    recent = db.session.query(User).order_by(User.created_at.desc(), User.id.desc()).limit(5).all()
    return {
        "totalUsers": total,
        "activeUsers": active,
        "inactiveUsers": total - active,
        "roleDistribution": roles,
        "recentUsers": [u.to_summary() | {"role": u.role} for u in recent],
    }


def check_assignable_role(role: Role, actor: User) -> None:
    if int(role) > role_rank(actor.role):
        raise PermissionDeniedError(
            "Cannot assign a role above your own",
            required=f"Minimum role: {role.name}",
            current=actor.role,
        )
