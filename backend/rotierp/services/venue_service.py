# Overview: Service-layer operations for hotels and hostels (bulk packet customers).

from __future__ import annotations

from datetime import date, datetime, timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import User, Venue, VenueOrder, VenueOrderItem
from ..models.venues import VENUE_KINDS
from ..time_utils import local_to_utc

ENTITY_NAMES = {"HOTEL": "Hotel", "HOSTEL": "Hostel"}


def _check_kind(kind: str) -> str:
    if kind not in VENUE_KINDS:
        raise ValueError(f"Unknown venue kind: {kind}")
    return ENTITY_NAMES[kind]


def list_venues_query(kind: str, *, search: str | None = None, status: str | None = None):
    _check_kind(kind)
    query = db.session.query(Venue).options(
        joinedload(Venue.creator),
        joinedload(Venue.manager),
    ).filter(Venue.kind == kind)
    if status:
        query = query.filter(Venue.status == status.strip().upper())
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(
            Venue.name.ilike(like),
            Venue.code.ilike(like),
            Venue.manager_name.ilike(like),
            Venue.city.ilike(like),
        ))
    return query.order_by(Venue.created_at.desc(), Venue.id.desc())


def get_venue(kind: str, venue_id: int) -> Venue:
    entity = _check_kind(kind)
    venue = db.session.query(Venue).filter(Venue.kind == kind, Venue.id == venue_id).first()
    if venue is None:
        raise NotFoundError(entity, f"{entity} with the specified ID does not exist")
    return venue


def _check_manager(user_id) -> None:
    if user_id is not None and db.session.get(User, user_id) is None:
        raise ValidationError(
            "Manager user not found",
            error="Invalid manager",
            details=[{"field": "managedBy", "message": "must reference an existing user"}],
        )


def _commit(entity: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"{entity} with this code already exists", error="Duplicate code")


def create_venue(kind: str, *, patch: dict, created_by_user_id: int | None) -> Venue:
    entity = _check_kind(kind)
    _check_manager(patch.get("managed_by_user_id"))
    if db.session.query(Venue.id).filter_by(kind=kind, code=patch["code"]).first():
        raise ConflictError(f"{entity} with this code already exists", error="Duplicate code")
    venue = Venue(kind=kind, status="ACTIVE", created_by_user_id=created_by_user_id, **patch)
    db.session.add(venue)
    _commit(entity)
    return venue


def update_venue(kind: str, venue_id: int, *, patch: dict) -> Venue:
    entity = _check_kind(kind)
    venue = get_venue(kind, venue_id)
    if "managed_by_user_id" in patch:
        _check_manager(patch["managed_by_user_id"])
    if "code" in patch and patch["code"] != venue.code:
        if db.session.query(Venue.id).filter_by(kind=kind, code=patch["code"]).first():
            raise ConflictError(f"{entity} with this code already exists", error="Duplicate code")
    for key, value in patch.items():
        setattr(venue, key, value)
    _commit(entity)
    return venue


def delete_venue(kind: str, venue_id: int) -> None:
    """Hard delete; the venue's orders go with it."""
    venue = get_venue(kind, venue_id)
    db.session.delete(venue)
    db.session.commit()


def recent_orders(venue: Venue, limit: int = 10) -> list[VenueOrder]:
    return (
        venue.orders.options(selectinload(VenueOrder.items))
        .order_by(VenueOrder.order_date.desc(), VenueOrder.id.desc())
        .limit(limit)
        .all()
    )


def create_venue_order(kind: str, venue_id: int, *, pairs: list[tuple[int, int]], notes: str | None = None,
                       created_by_user_id: int | None = None) -> VenueOrder:
    venue = get_venue(kind, venue_id)
    order = VenueOrder(
        venue_id=venue.id,
        total_packets=sum(q for _, q in pairs),
        total_rotis=sum(size * q for size, q in pairs),
        notes=notes,
        created_by_user_id=created_by_user_id,
    )
    order.items = [
        VenueOrderItem(packet_size=size, quantity=q, total_rotis=size * q)
        for size, q in pairs
    ]
    db.session.add(order)
    db.session.commit()
    return order


def list_venue_orders_query(kind: str, venue_id: int, *, on_date: date | None = None):
    venue = get_venue(kind, venue_id)
    query = db.session.query(VenueOrder).options(selectinload(VenueOrder.items)).filter(
        VenueOrder.venue_id == venue.id,
    )
    if on_date is not None:
        start = local_to_utc(datetime.combine(on_date, datetime.min.time()))
        end = local_to_utc(datetime.combine(on_date + timedelta(days=1), datetime.min.time()))
        query = query.filter(VenueOrder.order_date >= start, VenueOrder.order_date < end)
    return query.order_by(VenueOrder.order_date.desc(), VenueOrder.id.desc())
