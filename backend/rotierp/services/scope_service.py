# Overview: Franchise data scope. Franchise managers only see counters of franchises they manage.

from __future__ import annotations

from ..extensions import db
from ..models import Counter, Franchise
from ..roles import Role, parse_role


def managed_franchise_ids(user) -> list[int] | None:
    """None means unrestricted; a list (possibly empty) is the allowed set."""
    if parse_role(user.role) != Role.FRANCHISE_MANAGER:
        return None
    rows = db.session.query(Franchise.id).filter(Franchise.manager_user_id == user.id).all()
    return [r[0] for r in rows]


def scoped_counter_ids(user) -> list[int] | None:
    franchise_ids = managed_franchise_ids(user)
    if franchise_ids is None:
        return None
    if not franchise_ids:
        return []
    rows = db.session.query(Counter.id).filter(Counter.franchise_id.in_(franchise_ids)).all()
    return [r[0] for r in rows]


def can_access_counter(user, counter_id: int) -> bool:
    allowed = scoped_counter_ids(user)
    return allowed is None or counter_id in allowed
