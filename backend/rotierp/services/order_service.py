# Overview: Service-layer operations for counter orders; totals, numbering and status updates.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import joinedload, selectinload

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Counter, Customer, Order, OrderItem, Product
from ..models.sales import ORDER_STATUSES, PAYMENT_STATUSES
from ..money import apply_rate_bps
from ..time_utils import local_to_utc
from ..validation import check_amount_limit
from .concurrency import run_with_retry
from .document_service import next_document_number
from . import scope_service

# Older clients send PREPARING for the in-preparation step
STATUS_ALIASES = {"PREPARING": "IN_PREPARATION"}


@dataclass(frozen=True)
class OrderTotals:
    total_amount_cents: int
    discount_cents: int
    tax_cents: int
    final_amount_cents: int


def compute_order_totals(lines: list[dict], *, discount_cents: int, tax_rate_bps: int) -> OrderTotals:
    """
    total = sum(quantity * unit price)
    tax   = round_half_up((total - discount) * rate)
    final = total - discount + tax
    """
    total = check_amount_limit(sum(line["quantity"] * line["unit_price_cents"] for line in lines))
    if discount_cents > total:
        raise ValidationError(
            "Discount cannot exceed the order total",
            details=[{"field": "discount", "message": "discount cannot exceed the order total"}],
        )
    taxable = total - discount_cents
    tax = apply_rate_bps(taxable, tax_rate_bps)
    return OrderTotals(
        total_amount_cents=total,
        discount_cents=discount_cents,
        tax_cents=tax,
        final_amount_cents=check_amount_limit(taxable + tax),
    )


def normalize_status(value) -> str:
    if not isinstance(value, str):
        raise ValidationError(
            "Invalid status",
            details=[{"field": "status", "message": f"status must be one of: {', '.join(ORDER_STATUSES)}"}],
        )
    status = value.strip().upper()
    status = STATUS_ALIASES.get(status, status)
    if status not in ORDER_STATUSES:
        raise ValidationError(
            "Invalid status",
            details=[{"field": "status", "message": f"status must be one of: {', '.join(ORDER_STATUSES)}"}],
        )
    return status


def _load_order(order_id: int) -> Order | None:
    return (
        db.session.query(Order)
        .options(
            selectinload(Order.items).joinedload(OrderItem.product),
            joinedload(Order.counter).joinedload(Counter.franchise),
            joinedload(Order.customer),
        )
        .filter(Order.id == order_id)
        .first()
    )


def _resolve_products(lines: list[dict]) -> dict[int, Product]:
    product_ids = {line["product_id"] for line in lines}
    products = db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    by_id = {p.id: p for p in products}

    details = []
    for idx, line in enumerate(lines):
        product = by_id.get(line["product_id"])
        if product is None or not product.is_active:
            details.append({
                "field": f"items[{idx}].productId",
                "message": f"Product {line['product_id']} not found or inactive",
            })
    if details:
        raise ValidationError(details[0]["message"], error="Invalid product", details=details)
    return by_id


def create_order(
    *,
    counter_id: int,
    lines: list[dict],
    created_by_user_id: int | None,
    customer_id: int | None = None,
    discount_cents: int = 0,
    payment_method: str | None = None,
    notes: str | None = None,
) -> Order:
    """
    Create an order with its items in one transaction.

    Raises NotFoundError for a missing/inactive counter or missing customer,
    ValidationError for unknown/inactive products or an oversized discount.
    """
    tax_rate_bps = current_app.config.get("ORDER_TAX_RATE_BPS", 500)

    def _op() -> int:
        counter = db.session.get(Counter, counter_id)
        if counter is None or not counter.is_active:
            raise NotFoundError("Counter", "Counter not found or inactive")
        if customer_id is not None and db.session.get(Customer, customer_id) is None:
            raise NotFoundError("Customer")

        _resolve_products(lines)
        totals = compute_order_totals(lines, discount_cents=discount_cents, tax_rate_bps=tax_rate_bps)

        order_number = next_document_number(document_type="ORDER", prefix="ORD")
        order = Order(
            order_number=order_number,
            counter_id=counter_id,
            customer_id=customer_id,
            status="PENDING",
            payment_status="PENDING",
            payment_method=payment_method,
            total_amount_cents=totals.total_amount_cents,
            discount_cents=totals.discount_cents,
            tax_cents=totals.tax_cents,
            final_amount_cents=totals.final_amount_cents,
            notes=notes,
            created_by_user_id=created_by_user_id,
        )
        order.items = [
            OrderItem(
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price_cents=line["unit_price_cents"],
                total_price_cents=line["quantity"] * line["unit_price_cents"],
                notes=line.get("notes"),
            )
            for line in lines
        ]
        db.session.add(order)
        db.session.commit()
        return order.id

    try:
        order_id = run_with_retry(_op, retry_on=(IntegrityError,))
    except IntegrityError:
        raise ConflictError("Could not allocate a unique order number", error="Order number conflict")

    order = _load_order(order_id)
    current_app.logger.info(
        "Order %s created at counter %s (final=%s cents)",
        order.order_number, counter_id, order.final_amount_cents,
    )
    return order


def get_order(order_id: int, *, user=None) -> Order:
    order = _load_order(order_id)
    if order is None:
        raise NotFoundError("Order")
    if user is not None and not scope_service.can_access_counter(user, order.counter_id):
        raise NotFoundError("Order")
    return order


def update_order(order_id: int, *, status: str | None = None, notes: str | None = None,
                 payment_status: str | None = None) -> Order:
    def _op():
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order")
        if status is not None:
            order.status = normalize_status(status)
        if notes is not None:
            order.notes = notes
        if payment_status is not None:
            value = str(payment_status).strip().upper()
            if value not in PAYMENT_STATUSES:
                raise ValidationError(
                    "Invalid payment status",
                    details=[{"field": "paymentStatus", "message": f"paymentStatus must be one of: {', '.join(PAYMENT_STATUSES)}"}],
                )
            order.payment_status = value
        db.session.commit()

    run_with_retry(_op)
    return _load_order(order_id)


def list_orders_query(
    *,
    user=None,
    counter_id: int | None = None,
    status: str | None = None,
    on_date: date | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
):
    """
    Build the filtered order query, newest first.

    ``on_date`` is a server-local calendar day; ``start``/``end`` are
    UTC-naive bounds, end exclusive.
    """
    query = db.session.query(Order).options(
        selectinload(Order.items).joinedload(OrderItem.product),
        joinedload(Order.counter).joinedload(Counter.franchise),
        joinedload(Order.customer),
    )

    if user is not None:
        allowed = scope_service.scoped_counter_ids(user)
        if allowed is not None:
            query = query.filter(Order.counter_id.in_(allowed or [-1]))

    if counter_id is not None:
        query = query.filter(Order.counter_id == counter_id)
    if status:
        query = query.filter(Order.status == normalize_status(status))
    if on_date is not None:
        day_start = local_to_utc(datetime.combine(on_date, datetime.min.time()))
        day_end = local_to_utc(datetime.combine(on_date + timedelta(days=1), datetime.min.time()))
        query = query.filter(Order.created_at >= day_start, Order.created_at < day_end)
    if start is not None:
        query = query.filter(Order.created_at >= start)
    if end is not None:
        query = query.filter(Order.created_at < end)

    return query.order_by(Order.created_at.desc(), Order.id.desc())
