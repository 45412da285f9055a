# Overview: Service-layer operations for franchises and their order statistics.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Counter, Franchise, Order, User
from ..money import cents_to_amount
from ..roles import Role, parse_role
from ..time_utils import local_to_utc, localnow
from . import scope_service
from .reporting_service import average_amount, build_chart_data


def _scoped(query, user):
    franchise_ids = scope_service.managed_franchise_ids(user) if user is not None else None
    if franchise_ids is not None:
        query = query.filter(Franchise.id.in_(franchise_ids or [-1]))
    return query


def list_franchises_query(*, user=None, status: str | None = None, search: str | None = None):
    query = db.session.query(Franchise).options(
        joinedload(Franchise.manager),
        selectinload(Franchise.counters),
    )
    query = _scoped(query, user)
    if status:
        query = query.filter(Franchise.status == status.strip().upper())
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Franchise.name.ilike(like),
            Franchise.code.ilike(like),
            Franchise.owner_name.ilike(like),
            Franchise.city.ilike(like),
        ))
    return query.order_by(Franchise.created_at.desc(), Franchise.id.desc())


def get_franchise(franchise_id: int, *, user=None) -> Franchise:
    franchise = _scoped(db.session.query(Franchise), user).filter(Franchise.id == franchise_id).first()
    if franchise is None:
        raise NotFoundError("Franchise", "Franchise not found or access denied")
    return franchise


def _check_manager(manager_user_id) -> None:
    if manager_user_id is None:
        return
    manager = db.session.get(User, manager_user_id)
    if manager is None or parse_role(manager.role) != Role.FRANCHISE_MANAGER:
        raise ValidationError(
            "Manager must be a user with FRANCHISE_MANAGER role",
            error="Invalid manager",
            details=[{"field": "managedBy", "message": "must reference a FRANCHISE_MANAGER user"}],
        )


def _commit() -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Franchise with this code already exists", error="Duplicate code")


def create_franchise(*, patch: dict, created_by_user_id: int | None) -> Franchise:
    _check_manager(patch.get("manager_user_id"))
    if db.session.query(Franchise.id).filter_by(code=patch["code"]).first():
        raise ConflictError("Franchise with this code already exists", error="Duplicate code")
    franchise = Franchise(status="ACTIVE", created_by_user_id=created_by_user_id, **patch)
    db.session.add(franchise)
    _commit()
    return franchise


def update_franchise(franchise_id: int, *, patch: dict) -> Franchise:
    franchise = get_franchise(franchise_id)
    if "manager_user_id" in patch:
        _check_manager(patch["manager_user_id"])
    if "code" in patch and patch["code"] != franchise.code:
        if db.session.query(Franchise.id).filter_by(code=patch["code"]).first():
            raise ConflictError("Franchise with this code already exists", error="Duplicate code")
    for key, value in patch.items():
        setattr(franchise, key, value)
    _commit()
    return franchise


def franchise_stats(franchise_id: int, *, user=None, months: int = 6) -> dict:
    """Order totals across the franchise's counters and a monthly trend."""
    franchise = get_franchise(franchise_id, user=user)

    counter_ids = db.session.query(Counter.id).filter(Counter.franchise_id == franchise.id)
    orders = db.session.query(Order).filter(Order.counter_id.in_(counter_ids))

    total_orders = orders.count()
    sales_cents = int(
        orders.filter(Order.status != "CANCELLED")
        .with_entities(func.coalesce(func.sum(Order.final_amount_cents), 0))
        .scalar() or 0
    )

    now = localnow()
    month_index = now.year * 12 + (now.month - 1) - (months - 1)
    trend_start = local_to_utc(datetime(month_index // 12, month_index % 12 + 1, 1))
    trend_rows = (
        orders.filter(Order.status != "CANCELLED", Order.created_at >= trend_start)
        .with_entities(Order.created_at, Order.final_amount_cents)
        .all()
    )

    return {
        "franchise": franchise.to_summary(),
        "counters": db.session.query(Counter).filter(Counter.franchise_id == franchise.id).count(),
        "totalSales": cents_to_amount(sales_cents),
        "totalOrders": total_orders,
        "averageOrderValue": average_amount(sales_cents, total_orders),
        "monthlyTrends": build_chart_data(trend_rows, "month"),
    }
