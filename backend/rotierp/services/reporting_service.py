# Overview: Service-layer operations for reporting; period resolution, sales summaries, chart buckets, P&L.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from ..errors import ValidationError
from ..extensions import db
from ..models import (
    Counter,
    CounterInventory,
    Expense,
    Franchise,
    Order,
    OrderItem,
    POSTransaction,
    Product,
    RawMaterial,
)
from ..money import cents_to_amount
from ..time_utils import (
    is_date_only,
    local_to_utc,
    local_today,
    localnow,
    parse_iso_date,
    parse_iso_datetime,
    to_utc_z,
    utc_to_local,
    utcnow,
)
from . import scope_service

SALES_PERIODS = ("today", "yesterday", "this-week", "this-month", "last-month", "custom")
PNL_PERIODS = ("current-month", "last-month", "current-quarter", "current-year", "custom")
GROUP_BY_CHOICES = ("day", "week", "month")


@dataclass(frozen=True)
class ReportWindow:
    """Half-open [start, end) interval in server-local time; None is unbounded."""
    label: str
    start_local: datetime | None
    end_local: datetime | None

    @property
    def start_utc(self) -> datetime | None:
        return local_to_utc(self.start_local) if self.start_local else None

    @property
    def end_utc(self) -> datetime | None:
        return local_to_utc(self.end_local) if self.end_local else None

    def date_bounds(self) -> tuple[date | None, date | None]:
        """Bounds for Date columns: [start_date, end_date)."""
        start = self.start_local.date() if self.start_local else None
        end = None
        if self.end_local is not None:
            end = self.end_local.date()
            if self.end_local.time() != time.min:
                end = end + timedelta(days=1)
        return start, end

    def to_dict(self) -> dict:
        return {
            "period": self.label,
            "startDate": to_utc_z(self.start_utc),
            "endDate": to_utc_z(self.end_utc),
        }


def _midnight(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _month_start(year: int, month: int) -> datetime:
    # month may be 0 or 13 when stepping across a year boundary
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return datetime(year, month, 1)


def _parse_bound(value: str | None, field: str, *, is_end: bool) -> datetime | None:
    if value is None or not value.strip():
        return None
    try:
        if is_date_only(value):
            d = parse_iso_date(value)
            # Date-only end bounds include the whole day
            return _midnight(d + timedelta(days=1)) if is_end else _midnight(d)
        return utc_to_local(parse_iso_datetime(value))
    except ValueError:
        raise ValidationError(
            f"{field} must be an ISO-8601 date",
            details=[{"field": field, "message": "must be an ISO-8601 date or datetime"}],
        )


def resolve_period(
    period: str | None,
    start_date: str | None = None,
    end_date: str | None = None,
    *,
    allowed: Iterable[str] = SALES_PERIODS,
    now: datetime | None = None,
) -> ReportWindow:
    """
    Resolve a period selector to a local-calendar window.

    Weeks start on Sunday. ``custom`` uses startDate/endDate; either side may
    be omitted for an open bound.
    """
    allowed = tuple(allowed)
    if period not in allowed:
        raise ValidationError(
            "Invalid period",
            details=[{"field": "period", "message": f"period must be one of: {', '.join(allowed)}"}],
        )

    now = now or localnow()
    today = _midnight(now.date())

    if period == "today":
        return ReportWindow(period, today, today + timedelta(days=1))
    if period == "yesterday":
        return ReportWindow(period, today - timedelta(days=1), today)
    if period == "this-week":
        # Python weekday(): Monday=0 ... Sunday=6
        week_start = today - timedelta(days=(now.weekday() + 1) % 7)
        return ReportWindow(period, week_start, week_start + timedelta(days=7))
    if period in ("this-month", "current-month"):
        return ReportWindow(period, _month_start(now.year, now.month), _month_start(now.year, now.month + 1))
    if period == "last-month":
        return ReportWindow(period, _month_start(now.year, now.month - 1), _month_start(now.year, now.month))
    if period == "current-quarter":
        first_month = ((now.month - 1) // 3) * 3 + 1
        return ReportWindow(period, _month_start(now.year, first_month), _month_start(now.year, first_month + 3))
    if period == "current-year":
        return ReportWindow(period, datetime(now.year, 1, 1), datetime(now.year + 1, 1, 1))

    start = _parse_bound(start_date, "startDate", is_end=False)
    end = _parse_bound(end_date, "endDate", is_end=True)
    if start and end and start >= end:
        raise ValidationError(
            "startDate must be before endDate",
            details=[{"field": "startDate", "message": "must be before endDate"}],
        )
    return ReportWindow(f"{start_date or ''} to {end_date or ''}".strip(), start, end)


def resolve_range(start_date: str | None, end_date: str | None, *, default_days: int = 30,
                  now: datetime | None = None) -> ReportWindow:
    """Explicit startDate/endDate, defaulting to the trailing ``default_days``."""
    now = now or localnow()
    start = _parse_bound(start_date, "startDate", is_end=False)
    end = _parse_bound(end_date, "endDate", is_end=True)
    if end is None:
        end = now
    if start is None:
        start = end - timedelta(days=default_days)
    if start >= end:
        raise ValidationError(
            "startDate must be before endDate",
            details=[{"field": "startDate", "message": "must be before endDate"}],
        )
    return ReportWindow("custom", start, end)


def average_amount(total_cents: int, count: int) -> float:
    """Average as a decimal amount; 0 for an empty set."""
    if not count:
        return 0
    return round(total_cents / count / 100, 2)


# =============================================================================
# Chart buckets
# =============================================================================


def bucket_key(created_at_utc: datetime, group_by: str) -> str:
    """Local-calendar bucket: ISO date, Sunday week start, or YYYY-MM."""
    local = utc_to_local(created_at_utc)
    if group_by == "week":
        week_start = local.date() - timedelta(days=(local.weekday() + 1) % 7)
        return week_start.isoformat()
    if group_by == "month":
        return f"{local.year:04d}-{local.month:02d}"
    return local.date().isoformat()


def build_chart_data(points: Iterable[tuple[datetime, int]], group_by: str = "day") -> list[dict]:
    """Bucket (created_at, amount_cents) points; buckets sorted ascending by key."""
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationError(
            "Invalid groupBy",
            details=[{"field": "groupBy", "message": f"groupBy must be one of: {', '.join(GROUP_BY_CHOICES)}"}],
        )
    buckets: dict[str, list[int]] = {}
    for created_at, amount_cents in points:
        key = bucket_key(created_at, group_by)
        bucket = buckets.setdefault(key, [0, 0])
        bucket[0] += amount_cents
        bucket[1] += 1

    return [
        {
            "date": key,
            "totalSales": cents_to_amount(total),
            "totalOrders": count,
            "averageOrderValue": average_amount(total, count),
        }
        for key, (total, count) in sorted(buckets.items())
    ]


# =============================================================================
# Query helpers
# =============================================================================


def _orders_in_window(window: ReportWindow):
    query = db.session.query(Order).filter(Order.status != "CANCELLED")
    if window.start_utc is not None:
        query = query.filter(Order.created_at >= window.start_utc)
    if window.end_utc is not None:
        query = query.filter(Order.created_at < window.end_utc)
    return query


def _pos_in_window(window: ReportWindow):
    query = db.session.query(POSTransaction)
    if window.start_utc is not None:
        query = query.filter(POSTransaction.transaction_date >= window.start_utc)
    if window.end_utc is not None:
        query = query.filter(POSTransaction.transaction_date < window.end_utc)
    return query


def _sum_and_count(query, column) -> tuple[int, int]:
    total, count = query.with_entities(
        func.coalesce(func.sum(column), 0),
        func.count(),
    ).one()
    return int(total or 0), int(count or 0)


# =============================================================================
# Period summary (sales/reports)
# =============================================================================


def sales_period_summary(window: ReportWindow) -> dict:
    """
    Orders (excluding CANCELLED) and POS totals for a window.

    Revenue is the pre-discount, pre-tax totalAmount of each source.
    """
    orders_total, orders_count = _sum_and_count(_orders_in_window(window), Order.total_amount_cents)
    pos_total, pos_count = _sum_and_count(_pos_in_window(window), POSTransaction.total_amount_cents)
    combined_total = orders_total + pos_total
    combined_count = orders_count + pos_count

    return {
        **window.to_dict(),
        "orders": {
            "totalOrders": orders_count,
            "totalRevenue": cents_to_amount(orders_total),
            "averageOrderValue": average_amount(orders_total, orders_count),
        },
        "pos": {
            "totalTransactions": pos_count,
            "totalRevenue": cents_to_amount(pos_total),
            "averageTransactionValue": average_amount(pos_total, pos_count),
        },
        "combined": {
            "totalRevenue": cents_to_amount(combined_total),
            "totalCount": combined_count,
            "averageOrderValue": average_amount(combined_total, combined_count),
        },
        "totalRevenue": cents_to_amount(combined_total),
        "generatedAt": to_utc_z(utcnow()),
    }


# =============================================================================
# Sales report (reports/sales)
# =============================================================================


def sales_report(
    *,
    window: ReportWindow,
    group_by: str = "day",
    counter_id: int | None = None,
    franchise_id: int | None = None,
    user=None,
) -> dict:
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationError(
            "Invalid groupBy",
            details=[{"field": "groupBy", "message": f"groupBy must be one of: {', '.join(GROUP_BY_CHOICES)}"}],
        )

    orders_q = _orders_in_window(window)
    pos_q = _pos_in_window(window)

    allowed = scope_service.scoped_counter_ids(user) if user is not None else None
    if allowed is not None:
        orders_q = orders_q.filter(Order.counter_id.in_(allowed or [-1]))
        pos_q = pos_q.filter(POSTransaction.counter_id.in_(allowed or [-1]))
    if franchise_id is not None:
        franchise_counters = db.session.query(Counter.id).filter(Counter.franchise_id == franchise_id)
        orders_q = orders_q.filter(Order.counter_id.in_(franchise_counters))
        pos_q = pos_q.filter(POSTransaction.counter_id.in_(franchise_counters))
    if counter_id is not None:
        orders_q = orders_q.filter(Order.counter_id == counter_id)
        pos_q = pos_q.filter(POSTransaction.counter_id == counter_id)

    totals = orders_q.with_entities(
        func.coalesce(func.sum(Order.final_amount_cents), 0),
        func.coalesce(func.sum(Order.total_amount_cents), 0),
        func.coalesce(func.sum(Order.discount_cents), 0),
        func.coalesce(func.sum(Order.tax_cents), 0),
        func.count(Order.id),
    ).one()
    final_cents, _gross_cents, discount_cents, tax_cents, orders_count = (int(v or 0) for v in totals)
    pos_cents, pos_count = _sum_and_count(pos_q, POSTransaction.total_amount_cents)

    orders = (
        orders_q.options(joinedload(Order.counter).joinedload(Counter.franchise))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    transactions = pos_q.order_by(POSTransaction.transaction_date.desc(), POSTransaction.id.desc()).all()

    combined_cents = final_cents + pos_cents
    combined_count = orders_count + pos_count

    return {
        "summary": {
            "totalSales": cents_to_amount(final_cents),
            "totalOrders": orders_count,
            "averageOrderValue": average_amount(final_cents, orders_count),
            "totalDiscount": cents_to_amount(discount_cents),
            "totalTax": cents_to_amount(tax_cents),
        },
        "ordersRevenue": cents_to_amount(final_cents),
        "ordersCount": orders_count,
        "posRevenue": cents_to_amount(pos_cents),
        "posCount": pos_count,
        "combined": {
            "totalRevenue": cents_to_amount(combined_cents),
            "totalCount": combined_count,
            "averageOrderValue": average_amount(combined_cents, combined_count),
        },
        "chartData": build_chart_data(((o.created_at, o.final_amount_cents) for o in orders), group_by),
        "orders": [o.to_dict(include_details=False) | {"counter": o.counter.to_summary()} for o in orders],
        "posTransactions": [
            {
                "id": t.id,
                "transactionNumber": t.transaction_number,
                "totalAmount": cents_to_amount(t.total_amount_cents),
                "transactionDate": to_utc_z(t.transaction_date),
                "paymentMethod": t.payment_method,
                "customerName": t.customer_name,
            }
            for t in transactions
        ],
    }


# =============================================================================
# Dashboard
# =============================================================================


def _window_totals(orders_base, since_utc: datetime) -> tuple[int, int]:
    in_range = orders_base.filter(Order.created_at >= since_utc)
    count = in_range.with_entities(func.count(Order.id)).scalar() or 0
    sales = (
        in_range.filter(Order.status != "CANCELLED")
        .with_entities(func.coalesce(func.sum(Order.final_amount_cents), 0))
        .scalar()
    )
    return int(count), int(sales or 0)


def dashboard(*, user=None) -> dict:
    now = localnow()
    start_of_day = local_to_utc(_midnight(now.date()))
    start_of_month = local_to_utc(datetime(now.year, now.month, 1))
    start_of_year = local_to_utc(datetime(now.year, 1, 1))
    thirty_days_ago = utcnow() - timedelta(days=30)

    orders_base = db.session.query(Order)
    franchises_base = db.session.query(Franchise)
    allowed = scope_service.scoped_counter_ids(user) if user is not None else None
    if allowed is not None:
        orders_base = orders_base.filter(Order.counter_id.in_(allowed or [-1]))
        franchises_base = franchises_base.filter(Franchise.manager_user_id == user.id)

    def _block(since):
        count, sales = _window_totals(orders_base, since)
        return {
            "orders": count,
            "sales": cents_to_amount(sales),
            "averageOrderValue": average_amount(sales, count),
        }

    recent_orders = (
        orders_base.options(joinedload(Order.counter).joinedload(Counter.franchise), joinedload(Order.customer))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(10)
        .all()
    )
    recent_pos = (
        db.session.query(POSTransaction)
        .filter(POSTransaction.created_at >= thirty_days_ago)
        .order_by(POSTransaction.created_at.desc(), POSTransaction.id.desc())
        .limit(10)
        .all()
    )

    top_rows = (
        db.session.query(
            OrderItem.product_id,
            func.sum(OrderItem.quantity).label("quantity"),
            func.sum(OrderItem.total_price_cents).label("revenue"),
        )
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.created_at >= thirty_days_ago, Order.status != "CANCELLED")
    )
    if allowed is not None:
        top_rows = top_rows.filter(Order.counter_id.in_(allowed or [-1]))
    top_rows = (
        top_rows.group_by(OrderItem.product_id)
        .order_by(func.sum(OrderItem.quantity).desc(), OrderItem.product_id.asc())
        .limit(5)
        .all()
    )
    products = {
        p.id: p
        for p in db.session.query(Product).filter(Product.id.in_([r.product_id for r in top_rows] or [-1])).all()
    }
    top_products = []
    for row in top_rows:
        product = products.get(row.product_id)
        top_products.append({
            "productId": row.product_id,
            "name": product.name if product else None,
            "sku": product.sku if product else None,
            "unit": product.unit if product else None,
            "unitPrice": cents_to_amount(product.unit_price_cents) if product else None,
            "totalQuantity": int(row.quantity or 0),
            "totalRevenue": cents_to_amount(int(row.revenue or 0)),
        })

    return {
        "overview": {
            "totalFranchises": franchises_base.count(),
            "activeFranchises": franchises_base.filter(Franchise.status == "ACTIVE").count(),
            "totalProducts": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
            "totalRawMaterials": db.session.query(RawMaterial).filter(RawMaterial.is_active.is_(True)).count(),
        },
        "today": _block(start_of_day),
        "monthly": _block(start_of_month),
        "yearly": _block(start_of_year),
        "recentOrders": [o.to_dict(include_details=False) | {
            "counter": o.counter.to_summary() if o.counter else None,
            "customer": o.customer.to_summary() if o.customer else None,
        } for o in recent_orders],
        "recentPOSTransactions": [
            {
                "id": t.id,
                "transactionNumber": t.transaction_number,
                "totalAmount": cents_to_amount(t.total_amount_cents),
                "paymentMethod": t.payment_method,
                "createdAt": to_utc_z(t.created_at),
            }
            for t in recent_pos
        ],
        "alerts": {
            "lowStockRawMaterials": [m.to_dict() for m in low_stock_raw_materials()],
        },
        "topProducts": top_products,
    }


# =============================================================================
# Inventory
# =============================================================================


def low_stock_raw_materials(limit: int = 10) -> list[RawMaterial]:
    return (
        db.session.query(RawMaterial)
        .filter(RawMaterial.is_active.is_(True), RawMaterial.current_stock <= RawMaterial.min_stock)
        .order_by(RawMaterial.current_stock.asc(), RawMaterial.name.asc())
        .limit(limit)
        .all()
    )


def inventory_report(*, day: date | None = None, counter_id: int | None = None, user=None) -> dict:
    """Counter packet ledger for a day grouped by counter, plus raw material stock."""
    day = day or local_today()

    query = (
        db.session.query(CounterInventory)
        .options(joinedload(CounterInventory.counter).joinedload(Counter.franchise))
        .filter(CounterInventory.date == day)
    )
    allowed = scope_service.scoped_counter_ids(user) if user is not None else None
    if allowed is not None:
        query = query.filter(CounterInventory.counter_id.in_(allowed or [-1]))
    if counter_id is not None:
        query = query.filter(CounterInventory.counter_id == counter_id)
    rows = query.order_by(CounterInventory.counter_id.asc(), CounterInventory.packet_size.asc()).all()

    by_counter: dict[int, dict] = {}
    for row in rows:
        entry = by_counter.setdefault(row.counter_id, {
            "counter": row.counter.to_summary(),
            "items": [],
            "totals": {"totalPackets": 0, "soldPackets": 0, "remainingPackets": 0,
                       "totalRotis": 0, "soldRotis": 0, "remainingRotis": 0},
        })
        entry["items"].append(row.to_dict())
        totals = entry["totals"]
        totals["totalPackets"] += row.total_packets
        totals["soldPackets"] += row.sold_packets
        totals["remainingPackets"] += row.remaining_packets
        totals["totalRotis"] += row.total_rotis
        totals["soldRotis"] += row.sold_rotis
        totals["remainingRotis"] += row.remaining_rotis

    counters = list(by_counter.values())
    overall = {key: sum(c["totals"][key] for c in counters) for key in (
        "totalPackets", "soldPackets", "remainingPackets", "totalRotis", "soldRotis", "remainingRotis",
    )}

    materials = db.session.query(RawMaterial).filter(RawMaterial.is_active.is_(True)).all()
    return {
        "date": day.isoformat(),
        "counters": counters,
        "totals": overall,
        "rawMaterials": {
            "totalItems": len(materials),
            "lowStockItems": sum(1 for m in materials if m.is_low_stock),
            "outOfStockItems": sum(1 for m in materials if m.current_stock == 0),
            "totalValue": cents_to_amount(sum(m.current_stock * m.cost_price_cents for m in materials)),
        },
        "alerts": {
            "lowStockRawMaterials": [m.to_dict() for m in low_stock_raw_materials()],
        },
    }


# =============================================================================
# Profit and loss
# =============================================================================


def profit_and_loss(window: ReportWindow) -> dict:
    """
    Revenue (orders excluding CANCELLED plus POS, by totalAmount) minus
    APPROVED expenses dated within the window.
    """
    sales_cents, _ = _sum_and_count(_orders_in_window(window), Order.total_amount_cents)
    pos_cents, _ = _sum_and_count(_pos_in_window(window), POSTransaction.total_amount_cents)
    revenue_cents = sales_cents + pos_cents

    start_date, end_date = window.date_bounds()
    expenses_q = db.session.query(Expense.category, func.coalesce(func.sum(Expense.amount_cents), 0)).filter(
        Expense.status == "APPROVED",
    )
    if start_date is not None:
        expenses_q = expenses_q.filter(Expense.expense_date >= start_date)
    if end_date is not None:
        expenses_q = expenses_q.filter(Expense.expense_date < end_date)
    by_category = {category: int(total or 0) for category, total in expenses_q.group_by(Expense.category).all()}
    expenses_cents = sum(by_category.values())

    net_cents = revenue_cents - expenses_cents
    margin = round(net_cents / revenue_cents * 100, 2) if revenue_cents else 0

    return {
        **window.to_dict(),
        "revenue": {
            "sales": cents_to_amount(sales_cents),
            "pos": cents_to_amount(pos_cents),
            "otherIncome": 0,
            "total": cents_to_amount(revenue_cents),
        },
        "expenses": {
            "byCategory": {k: cents_to_amount(v) for k, v in sorted(by_category.items())},
            "total": cents_to_amount(expenses_cents),
        },
        "grossProfit": cents_to_amount(revenue_cents),
        "netProfit": cents_to_amount(net_cents),
        "profitMargin": margin,
        "generatedAt": to_utc_z(utcnow()),
    }
