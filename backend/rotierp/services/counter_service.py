# Overview: Service-layer operations for counters and the per-day counter inventory ledger.

"""
Counter inventory ledger.

One CounterInventory row per (counter, business day, packet size). Every
change is a single SQL statement so concurrent requests serialize in the
database instead of in Python:

- delivery: UPDATE ... SET total = total + n, remaining = remaining + n;
  when no row matched, INSERT. A lost insert race surfaces as an
  IntegrityError on the unique key and the whole delivery is retried.
- sale: UPDATE ... SET sold = sold + n, remaining = remaining - n
  WHERE remaining_packets >= n. Zero matched rows means the stock is short
  (or the row does not exist); the whole batch is rolled back.

The business day is the server-local calendar date.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Counter, CounterInventory, CounterOrder, CounterOrderItem, Franchise, Order
from ..time_utils import local_today, utcnow
from .concurrency import lock_for_update, run_with_retry
from . import scope_service


# =============================================================================
# Counters
# =============================================================================


def list_counters(*, user=None, franchise_id: int | None = None, is_active: bool | None = None) -> list[dict]:
    query = db.session.query(Counter).options(joinedload(Counter.franchise))

    if user is not None:
        franchise_ids = scope_service.managed_franchise_ids(user)
        if franchise_ids is not None:
            query = query.filter(Counter.franchise_id.in_(franchise_ids or [-1]))

    if franchise_id is not None:
        query = query.filter(Counter.franchise_id == franchise_id)
    if is_active is not None:
        query = query.filter(Counter.is_active.is_(is_active))

    counters = query.order_by(Counter.name.asc(), Counter.id.asc()).all()

    order_counts = dict(
        db.session.query(Order.counter_id, func.count(Order.id))
        .filter(Order.counter_id.in_([c.id for c in counters] or [-1]))
        .group_by(Order.counter_id)
        .all()
    )

    rows = []
    for counter in counters:
        data = counter.to_dict()
        data["orderCount"] = order_counts.get(counter.id, 0)
        rows.append(data)
    return rows


def get_counter(counter_id: int, *, user=None) -> Counter:
    counter = db.session.get(Counter, counter_id)
    if counter is None:
        raise NotFoundError("Counter")
    if user is not None and not scope_service.can_access_counter(user, counter.id):
        raise NotFoundError("Counter")
    return counter


def _check_franchise(franchise_id) -> None:
    if franchise_id is not None and db.session.get(Franchise, franchise_id) is None:
        raise NotFoundError("Franchise")


def create_counter(*, patch: dict) -> Counter:
    _check_franchise(patch.get("franchise_id"))
    counter = Counter(**patch)
    db.session.add(counter)
    db.session.commit()
    return counter


def update_counter(counter_id: int, *, patch: dict) -> Counter:
    counter = get_counter(counter_id)
    if "franchise_id" in patch:
        _check_franchise(patch["franchise_id"])
    for key, value in patch.items():
        setattr(counter, key, value)
    db.session.commit()
    return counter


def _active_counter(counter_id: int, *, lock: bool = False) -> Counter:
    query = db.session.query(Counter).filter(Counter.id == counter_id)
    if lock:
        query = lock_for_update(query)
    counter = query.first()
    if counter is None or not counter.is_active:
        raise NotFoundError("Counter", "Counter not found or inactive")
    return counter


# =============================================================================
# Inventory ledger
# =============================================================================


def merge_packet_lines(pairs: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Sum quantities for repeated packet sizes, keeping first-seen order."""
    merged: dict[int, int] = {}
    for packet_size, quantity in pairs:
        merged[packet_size] = merged.get(packet_size, 0) + quantity
    return list(merged.items())


def _row_key(counter_id: int, day: date, packet_size: int):
    return (
        CounterInventory.counter_id == counter_id,
        CounterInventory.date == day,
        CounterInventory.packet_size == packet_size,
    )


def _apply_delivery(counter_id: int, day: date, packet_size: int, quantity: int) -> None:
    rotis = packet_size * quantity
    stmt = (
        update(CounterInventory)
        .where(*_row_key(counter_id, day, packet_size))
        .values(
            total_packets=CounterInventory.total_packets + quantity,
            total_rotis=CounterInventory.total_rotis + rotis,
            remaining_packets=CounterInventory.remaining_packets + quantity,
            remaining_rotis=CounterInventory.remaining_rotis + rotis,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount:
        return

    db.session.add(CounterInventory(
        counter_id=counter_id,
        date=day,
        packet_size=packet_size,
        total_packets=quantity,
        total_rotis=rotis,
        sold_packets=0,
        sold_rotis=0,
        remaining_packets=quantity,
        remaining_rotis=rotis,
    ))
    # Surfaces a concurrent insert of the same key as IntegrityError
    db.session.flush()


def _apply_sale(counter_id: int, day: date, packet_size: int, sold: int) -> bool:
    rotis = packet_size * sold
    stmt = (
        update(CounterInventory)
        .where(*_row_key(counter_id, day, packet_size))
        .where(CounterInventory.remaining_packets >= sold)
        .values(
            sold_packets=CounterInventory.sold_packets + sold,
            sold_rotis=CounterInventory.sold_rotis + rotis,
            remaining_packets=CounterInventory.remaining_packets - sold,
            remaining_rotis=CounterInventory.remaining_rotis - rotis,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return bool(db.session.execute(stmt).rowcount)


def get_day_inventory(counter_id: int, day: date | None = None) -> list[CounterInventory]:
    day = day or local_today()
    return (
        db.session.query(CounterInventory)
        .filter(CounterInventory.counter_id == counter_id, CounterInventory.date == day)
        .order_by(CounterInventory.packet_size.asc())
        .all()
    )


def summarize_inventory(rows: list[CounterInventory]) -> dict:
    return {
        "totalPackets": sum(r.total_packets for r in rows),
        "totalRotis": sum(r.total_rotis for r in rows),
        "soldPackets": sum(r.sold_packets for r in rows),
        "soldRotis": sum(r.sold_rotis for r in rows),
        "remainingPackets": sum(r.remaining_packets for r in rows),
        "remainingRotis": sum(r.remaining_rotis for r in rows),
    }


def record_delivery(
    *,
    counter_id: int,
    pairs: list[tuple[int, int]],
    created_by_user_id: int | None = None,
    notes: str | None = None,
    day: date | None = None,
) -> CounterOrder:
    """
    Record a delivery document and add its packets to the day's ledger.

    The document and every ledger increment commit together or not at all.
    """
    if not pairs:
        raise ValidationError("items must be a non-empty list")
    day = day or local_today()

    def _op() -> int:
        _active_counter(counter_id, lock=True)

        counter_order = CounterOrder(
            counter_id=counter_id,
            order_date=day,
            total_packets=sum(q for _, q in pairs),
            total_rotis=sum(size * q for size, q in pairs),
            notes=notes,
            created_by_user_id=created_by_user_id,
        )
        counter_order.items = [
            CounterOrderItem(packet_size=size, quantity=q, total_rotis=size * q)
            for size, q in pairs
        ]
        db.session.add(counter_order)
        db.session.flush()

        for packet_size, quantity in merge_packet_lines(pairs):
            _apply_delivery(counter_id, day, packet_size, quantity)

        db.session.commit()
        return counter_order.id

    counter_order_id = run_with_retry(_op, retry_on=(IntegrityError,))
    counter_order = db.session.get(CounterOrder, counter_order_id)
    current_app.logger.info(
        "Delivered %s packets (%s rotis) to counter %s for %s",
        counter_order.total_packets, counter_order.total_rotis, counter_id, day.isoformat(),
    )
    return counter_order


def record_sale(
    *,
    counter_id: int,
    pairs: list[tuple[int, int]],
    day: date | None = None,
) -> list[CounterInventory]:
    """
    Decrement the day's ledger for each packet size sold.

    All-or-nothing: if any packet size lacks stock (or has no row for the
    day) nothing is written and InsufficientStockError lists every shortage.
    """
    if not pairs:
        raise ValidationError("items must be a non-empty list")
    day = day or local_today()
    merged = merge_packet_lines(pairs)

    def _op() -> None:
        _active_counter(counter_id)

        shortages = []
        for packet_size, sold in merged:
            if _apply_sale(counter_id, day, packet_size, sold):
                continue
            remaining = (
                db.session.query(CounterInventory.remaining_packets)
                .filter(*_row_key(counter_id, day, packet_size))
                .scalar()
            )
            shortages.append({
                "packetSize": packet_size,
                "requestedPackets": sold,
                "remainingPackets": remaining or 0,
            })

        if shortages:
            db.session.rollback()
            current_app.logger.warning(
                "Rejected sale at counter %s: insufficient stock %s", counter_id, shortages,
            )
            first = shortages[0]
            raise InsufficientStockError(
                f"Insufficient stock for {first['packetSize']}-roti packets: "
                f"requested {first['requestedPackets']}, remaining {first['remainingPackets']}",
                details=shortages,
            )

        db.session.commit()

    run_with_retry(_op)
    return get_day_inventory(counter_id, day)
