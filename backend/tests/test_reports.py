"""
Reporting tests: period resolution, chart buckets, the sales period summary,
the sales report, the dashboard, the inventory report and profit & loss.
"""

from datetime import date, datetime

import pytest

from rotierp.errors import ValidationError
from rotierp.extensions import db
from rotierp.models import Expense, Order, POSTransaction, RawMaterial
from rotierp.services.reporting_service import (
    PNL_PERIODS,
    average_amount,
    bucket_key,
    build_chart_data,
    resolve_period,
    resolve_range,
)
from rotierp.time_utils import local_to_utc, local_today

_seq = iter(range(1, 10_000))


def _order(counter, *, total, final=None, status="DELIVERED", at=None, discount=0, tax=0):
    """Insert an order directly; ``at`` is a server-local datetime."""
    order = Order(
        order_number=f"T-{next(_seq):06d}",
        counter_id=counter.id,
        status=status,
        total_amount_cents=total,
        discount_cents=discount,
        tax_cents=tax,
        final_amount_cents=final if final is not None else total,
    )
    if at is not None:
        order.created_at = local_to_utc(at)
    db.session.add(order)
    db.session.commit()
    return order


def _pos(total, *, at=None, counter=None):
    txn = POSTransaction(
        transaction_number=f"TP-{next(_seq):06d}",
        counter_id=counter.id if counter else None,
        cashier_name="Ravi",
        payment_method="CASH",
        total_amount_cents=total,
    )
    if at is not None:
        txn.transaction_date = local_to_utc(at)
        txn.created_at = local_to_utc(at)
    db.session.add(txn)
    db.session.commit()
    return txn


class TestResolvePeriod:

    NOW = datetime(2024, 1, 10, 15, 30)  # a Wednesday

    def test_today_and_yesterday(self):
        today = resolve_period("today", now=self.NOW)
        assert (today.start_local, today.end_local) == (datetime(2024, 1, 10), datetime(2024, 1, 11))
        yesterday = resolve_period("yesterday", now=self.NOW)
        assert (yesterday.start_local, yesterday.end_local) == (datetime(2024, 1, 9), datetime(2024, 1, 10))

    def test_week_starts_on_sunday(self):
        week = resolve_period("this-week", now=self.NOW)
        assert week.start_local == datetime(2024, 1, 7)
        assert week.end_local == datetime(2024, 1, 14)

    def test_sunday_is_its_own_week_start(self):
        week = resolve_period("this-week", now=datetime(2024, 1, 14, 9, 0))
        assert week.start_local == datetime(2024, 1, 14)

    def test_last_month_crosses_year(self):
        window = resolve_period("last-month", now=self.NOW)
        assert (window.start_local, window.end_local) == (datetime(2023, 12, 1), datetime(2024, 1, 1))

    def test_pnl_periods(self):
        quarter = resolve_period("current-quarter", allowed=PNL_PERIODS, now=datetime(2024, 11, 2))
        assert (quarter.start_local, quarter.end_local) == (datetime(2024, 10, 1), datetime(2025, 1, 1))
        year = resolve_period("current-year", allowed=PNL_PERIODS, now=self.NOW)
        assert (year.start_local, year.end_local) == (datetime(2024, 1, 1), datetime(2025, 1, 1))

    def test_custom_date_only_end_is_inclusive(self):
        window = resolve_period("custom", "2024-01-01", "2024-01-31")
        assert window.start_local == datetime(2024, 1, 1)
        assert window.end_local == datetime(2024, 2, 1)
        assert window.date_bounds() == (date(2024, 1, 1), date(2024, 2, 1))

    def test_custom_open_bounds(self):
        window = resolve_period("custom")
        assert window.start_utc is None and window.end_utc is None

    def test_custom_datetime_bound_is_utc(self):
        window = resolve_period("custom", "2024-01-01T10:00:00Z", None)
        assert window.start_utc == datetime(2024, 1, 1, 10, 0)

    @pytest.mark.parametrize("period", ["fortnight", "", None])
    def test_invalid_period(self, period):
        with pytest.raises(ValidationError):
            resolve_period(period, now=self.NOW)

    def test_sales_period_not_allowed_for_pnl(self):
        with pytest.raises(ValidationError):
            resolve_period("today", allowed=PNL_PERIODS)

    def test_start_must_precede_end(self):
        with pytest.raises(ValidationError):
            resolve_period("custom", "2024-02-01", "2024-01-01")

    def test_unparseable_bound(self):
        with pytest.raises(ValidationError) as exc:
            resolve_period("custom", "yesterday-ish", None)
        assert exc.value.details[0]["field"] == "startDate"

    def test_resolve_range_defaults_to_thirty_days(self):
        window = resolve_range(None, None, now=self.NOW)
        assert window.end_local == self.NOW
        assert (window.end_local - window.start_local).days == 30


class TestChartBuckets:

    def test_average_of_nothing_is_zero(self):
        assert average_amount(0, 0) == 0
        assert average_amount(1000, 3) == 3.33

    def test_week_and_month_keys(self):
        monday_noon = local_to_utc(datetime(2024, 3, 4, 12, 0))
        sunday_noon = local_to_utc(datetime(2024, 3, 10, 12, 0))
        assert bucket_key(monday_noon, "day") == "2024-03-04"
        assert bucket_key(monday_noon, "week") == "2024-03-03"
        assert bucket_key(sunday_noon, "week") == "2024-03-10"
        assert bucket_key(monday_noon, "month") == "2024-03"

    def test_buckets_sorted_and_summed(self):
        points = [
            (local_to_utc(datetime(2024, 3, 5, 12)), 500),
            (local_to_utc(datetime(2024, 3, 4, 9)), 1000),
            (local_to_utc(datetime(2024, 3, 4, 18)), 2000),
        ]
        buckets = build_chart_data(points, "day")
        assert [b["date"] for b in buckets] == ["2024-03-04", "2024-03-05"]
        assert buckets[0] == {"date": "2024-03-04", "totalSales": 30.0, "totalOrders": 2, "averageOrderValue": 15.0}

    def test_invalid_group_by(self):
        with pytest.raises(ValidationError):
            build_chart_data([], "hour")


class TestSalesPeriodSummary:

    def test_today_with_no_data_is_zero(self, client, operator_headers):
        resp = client.get("/api/sales/reports?period=today", headers=operator_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["period"] == "today"
        assert body["orders"] == {"totalOrders": 0, "totalRevenue": 0, "averageOrderValue": 0}
        assert body["pos"]["averageTransactionValue"] == 0
        assert body["totalRevenue"] == 0

    def test_cancelled_excluded_and_pos_counted(self, client, operator_headers, counter):
        _order(counter, total=4800, final=5040)
        _order(counter, total=2000, final=2100)
        _order(counter, total=9900, status="CANCELLED")
        _pos(1600)

        body = client.get("/api/sales/reports", headers=operator_headers).get_json()
        assert body["orders"]["totalOrders"] == 2
        assert body["orders"]["totalRevenue"] == 68.0
        assert body["orders"]["averageOrderValue"] == 34.0
        assert body["pos"] == {"totalTransactions": 1, "totalRevenue": 16.0, "averageTransactionValue": 16.0}
        assert body["combined"]["totalCount"] == 3
        assert body["totalRevenue"] == 84.0

    def test_outside_window_ignored(self, client, operator_headers, counter):
        _order(counter, total=1000, at=datetime(2020, 5, 1, 12))
        body = client.get("/api/sales/reports?period=today", headers=operator_headers).get_json()
        assert body["orders"]["totalOrders"] == 0

    def test_custom_window(self, client, operator_headers, counter):
        _order(counter, total=1000, at=datetime(2020, 5, 1, 12))
        _order(counter, total=3000, at=datetime(2020, 5, 31, 23, 0))
        _order(counter, total=7000, at=datetime(2020, 6, 1, 0, 30))
        resp = client.get(
            "/api/sales/reports?period=custom&startDate=2020-05-01&endDate=2020-05-31", headers=operator_headers,
        )
        assert resp.get_json()["orders"]["totalRevenue"] == 40.0

    def test_repeatable(self, client, operator_headers, counter):
        _order(counter, total=1234)
        first = client.get("/api/sales/reports", headers=operator_headers).get_json()
        second = client.get("/api/sales/reports", headers=operator_headers).get_json()
        first.pop("generatedAt")
        second.pop("generatedAt")
        assert first == second

    def test_invalid_period(self, client, operator_headers):
        resp = client.get("/api/sales/reports?period=decade", headers=operator_headers)
        assert resp.status_code == 400


class TestSalesReport:

    def test_uses_final_amount_and_buckets(self, client, manager_headers, counter):
        _order(counter, total=1000, final=1050, tax=50, at=datetime(2024, 3, 4, 10))
        _order(counter, total=2000, final=1890, discount=200, tax=90, at=datetime(2024, 3, 4, 16))
        _order(counter, total=500, final=525, tax=25, at=datetime(2024, 3, 6, 11))
        _order(counter, total=8000, status="CANCELLED", at=datetime(2024, 3, 6, 12))
        _pos(700, at=datetime(2024, 3, 5, 12))

        resp = client.get("/api/reports/sales?startDate=2024-03-01&endDate=2024-03-31", headers=manager_headers)
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["summary"]["totalSales"] == 34.65
        assert data["summary"]["totalOrders"] == 3
        assert data["summary"]["totalDiscount"] == 2.0
        assert data["summary"]["totalTax"] == 1.65
        assert data["posRevenue"] == 7.0
        assert data["combined"]["totalRevenue"] == 41.65
        assert [b["date"] for b in data["chartData"]] == ["2024-03-04", "2024-03-06"]
        assert data["chartData"][0]["totalSales"] == 29.4
        assert len(data["orders"]) == 3

        weekly = client.get(
            "/api/reports/sales?startDate=2024-03-01&endDate=2024-03-31&groupBy=week", headers=manager_headers,
        ).get_json()["data"]
        assert [b["date"] for b in weekly["chartData"]] == ["2024-03-03"]

    def test_franchise_manager_scope(self, client, franchise_manager_headers, counter, other_counter):
        _order(counter, total=1000)
        _order(other_counter, total=5000)
        data = client.get("/api/reports/sales", headers=franchise_manager_headers).get_json()["data"]
        assert data["summary"]["totalOrders"] == 1
        assert data["summary"]["totalSales"] == 10.0

    def test_counter_filter(self, client, manager_headers, counter, other_counter):
        _order(counter, total=1000)
        _order(other_counter, total=5000)
        resp = client.get(f"/api/reports/sales?counterId={other_counter.id}", headers=manager_headers)
        assert resp.get_json()["data"]["summary"]["totalSales"] == 50.0
        assert resp.get_json()["filters"]["counterId"] == other_counter.id

    def test_invalid_group_by(self, client, manager_headers):
        resp = client.get("/api/reports/sales?groupBy=hour", headers=manager_headers)
        assert resp.status_code == 400


class TestDashboard:

    def test_dashboard_blocks(self, client, manager_headers, counter, product):
        client.post(
            "/api/orders",
            json={"counterId": counter.id, "items": [{"productId": product.id, "quantity": 6, "unitPrice": 8}]},
            headers=manager_headers,
        )
        db.session.add(RawMaterial(name="Atta", sku="RM-ATTA", current_stock=2, min_stock=10, cost_price_cents=3000))
        db.session.commit()

        resp = client.get("/api/reports/dashboard", headers=manager_headers)
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["overview"]["totalFranchises"] == 1
        assert data["overview"]["totalProducts"] == 1
        assert data["today"] == {"orders": 1, "sales": 50.4, "averageOrderValue": 50.4}
        assert data["monthly"]["sales"] == 50.4
        assert data["recentOrders"][0]["counter"]["id"] == counter.id
        assert data["topProducts"][0]["productId"] == product.id
        assert data["topProducts"][0]["totalQuantity"] == 6
        assert data["alerts"]["lowStockRawMaterials"][0]["sku"] == "RM-ATTA"


class TestInventoryReport:

    def test_grouped_by_counter(self, client, manager_headers, operator_headers, counter, other_counter):
        client.post(f"/api/counters/{counter.id}/orders", json={"items": [{"packetSize": 5, "quantity": 4}]},
                    headers=operator_headers)
        client.post(f"/api/counters/{other_counter.id}/orders", json={"items": [{"packetSize": 10, "quantity": 1}]},
                    headers=operator_headers)
        db.session.add(RawMaterial(name="Oil", sku="RM-OIL", current_stock=0, min_stock=5, cost_price_cents=100))
        db.session.commit()

        resp = client.get("/api/reports/inventory", headers=manager_headers)
        data = resp.get_json()["data"]
        assert data["date"] == local_today().isoformat()
        assert len(data["counters"]) == 2
        assert data["totals"]["totalRotis"] == 30
        assert data["rawMaterials"]["outOfStockItems"] == 1

        resp = client.get(f"/api/reports/inventory?counterId={counter.id}", headers=manager_headers)
        assert resp.get_json()["data"]["totals"]["totalPackets"] == 4


class TestProfitAndLoss:

    def test_only_approved_expenses_in_window(self, client, manager_headers, counter):
        today = local_today()
        _order(counter, total=10000, final=10500)
        _order(counter, total=5000, status="CANCELLED")
        _pos(2000)
        for title, amount, status, category in (
            ("Flour", 3000, "APPROVED", "RAW_MATERIALS"),
            ("Power", 1000, "APPROVED", "UTILITIES"),
            ("Party", 9999, "PENDING", "MISC"),
            ("Rejected", 5000, "REJECTED", "MISC"),
        ):
            db.session.add(Expense(
                title=title, amount_cents=amount, status=status, category=category,
                expense_date=today, payment_method="CASH",
            ))
        db.session.add(Expense(
            title="Old rent", amount_cents=7000, status="APPROVED", category="RENT",
            expense_date=date(2020, 1, 1), payment_method="BANK",
        ))
        db.session.commit()

        resp = client.get("/api/finance/profit-loss", headers=manager_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["period"] == "current-month"
        assert body["revenue"] == {"sales": 100.0, "pos": 20.0, "otherIncome": 0, "total": 120.0}
        assert body["expenses"]["byCategory"] == {"RAW_MATERIALS": 30.0, "UTILITIES": 10.0}
        assert body["expenses"]["total"] == 40.0
        assert body["netProfit"] == 80.0
        assert body["profitMargin"] == 66.67

    def test_no_revenue_margin_is_zero(self, client, manager_headers):
        body = client.get("/api/finance/profit-loss?period=current-year", headers=manager_headers).get_json()
        assert body["profitMargin"] == 0
        assert body["netProfit"] == 0

    def test_sales_period_rejected(self, client, manager_headers):
        resp = client.get("/api/finance/profit-loss?period=today", headers=manager_headers)
        assert resp.status_code == 400
