"""
Counter inventory ledger tests.

Verifies:
- Deliveries create or top up the (counter, day, packet size) row
- Sales decrement remaining stock and never drive it negative
- A short sale rejects the whole batch and leaves every row unchanged
"""

from datetime import timedelta

import pytest

from rotierp.errors import InsufficientStockError
from rotierp.extensions import db
from rotierp.models import CounterInventory, CounterOrder
from rotierp.services import counter_service
from rotierp.time_utils import local_today


def _deliver(client, headers, counter_id, items, **extra):
    return client.post(f"/api/counters/{counter_id}/orders", json={"items": items, **extra}, headers=headers)


def _sell(client, headers, counter_id, items):
    return client.post(f"/api/counters/{counter_id}/sales", json={"items": items}, headers=headers)


def _row(counter_id, packet_size, day=None):
    return (
        db.session.query(CounterInventory)
        .filter_by(counter_id=counter_id, date=day or local_today(), packet_size=packet_size)
        .one()
    )


class TestDelivery:

    def test_delivery_creates_row(self, client, operator_headers, counter):
        resp = _deliver(client, operator_headers, counter.id, [{"packetSize": 5, "quantity": 10}])
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["order"]["totalPackets"] == 10
        assert body["order"]["totalRotis"] == 50
        assert body["order"]["date"] == local_today().isoformat()
        assert body["inventory"][0]["packetSize"] == 5
        assert body["inventory"][0]["remainingPackets"] == 10
        assert body["inventory"][0]["remainingRotis"] == 50

    def test_second_delivery_tops_up(self, client, operator_headers, counter):
        _deliver(client, operator_headers, counter.id, [{"packetSize": 5, "quantity": 10}])
        _deliver(client, operator_headers, counter.id, [{"packetSize": 5, "quantity": 4}, {"packetSize": 10, "quantity": 2}])

        row = _row(counter.id, 5)
        assert (row.total_packets, row.total_rotis, row.remaining_packets) == (14, 70, 14)
        assert _row(counter.id, 10).total_rotis == 20
        assert db.session.query(CounterInventory).count() == 2
        assert db.session.query(CounterOrder).count() == 2

    def test_repeated_sizes_in_one_delivery_merge(self, client, operator_headers, counter):
        resp = _deliver(
            client, operator_headers, counter.id,
            [{"packetSize": 5, "quantity": 3}, {"packetSize": 5, "quantity": 2}],
        )
        assert resp.status_code == 201
        assert len(resp.get_json()["order"]["items"]) == 2
        assert _row(counter.id, 5).total_packets == 5

    def test_delivery_for_explicit_date(self, client, operator_headers, counter):
        yesterday = local_today() - timedelta(days=1)
        resp = _deliver(
            client, operator_headers, counter.id, [{"packetSize": 5, "quantity": 1}], date=yesterday.isoformat(),
        )
        assert resp.status_code == 201
        assert _row(counter.id, 5, yesterday).total_packets == 1

    @pytest.mark.parametrize("items", [[], [{"packetSize": 0, "quantity": 1}], [{"packetSize": 5}], "x"])
    def test_invalid_items(self, client, operator_headers, counter, items):
        resp = _deliver(client, operator_headers, counter.id, items)
        assert resp.status_code == 400
        assert db.session.query(CounterOrder).count() == 0

    def test_inactive_counter(self, client, operator_headers, counter):
        counter.is_active = False
        db.session.commit()
        resp = _deliver(client, operator_headers, counter.id, [{"packetSize": 5, "quantity": 1}])
        assert resp.status_code == 404
        assert db.session.query(CounterOrder).count() == 0

    @pytest.mark.parametrize("item,field", [
        ({"packetSize": 10**19, "quantity": 1}, "items[0].packetSize"),
        ({"packetSize": 5, "quantity": 10**20}, "items[0].quantity"),
        ({"packetSize": 1_000_001, "quantity": 1}, "items[0].packetSize"),
    ])
    def test_oversized_values_rejected(self, client, operator_headers, counter, item, field):
        resp = _deliver(client, operator_headers, counter.id, [item])
        assert resp.status_code == 400
        assert field in {d["field"] for d in resp.get_json()["details"]}
        assert db.session.query(CounterOrder).count() == 0
        assert db.session.query(CounterInventory).count() == 0


class TestSales:

    @pytest.fixture
    def stocked(self, client, operator_headers, counter):
        _deliver(
            client, operator_headers, counter.id,
            [{"packetSize": 5, "quantity": 10}, {"packetSize": 10, "quantity": 2}],
        )
        return counter

    def test_sale_decrements(self, client, operator_headers, stocked):
        resp = _sell(client, operator_headers, stocked.id, [{"packetSize": 5, "soldPackets": 3}])
        assert resp.status_code == 200
        body = resp.get_json()
        five = next(r for r in body["inventory"] if r["packetSize"] == 5)
        assert five["soldPackets"] == 3
        assert five["soldRotis"] == 15
        assert five["remainingPackets"] == 7
        assert five["remainingRotis"] == 35
        assert body["totals"]["remainingPackets"] == 9
        assert body["totals"]["remainingRotis"] == 55

    def test_oversell_rejected_and_row_unchanged(self, client, operator_headers, stocked):
        _sell(client, operator_headers, stocked.id, [{"packetSize": 5, "soldPackets": 3}])

        resp = _sell(client, operator_headers, stocked.id, [{"packetSize": 5, "soldPackets": 8}])
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["error"] == "Insufficient stock"
        assert body["details"][0] == {"packetSize": 5, "requestedPackets": 8, "remainingPackets": 7}

        row = _row(stocked.id, 5)
        assert (row.sold_packets, row.remaining_packets, row.remaining_rotis) == (3, 7, 35)

    def test_batch_is_all_or_nothing(self, client, operator_headers, stocked):
        resp = _sell(
            client, operator_headers, stocked.id,
            [{"packetSize": 5, "soldPackets": 1}, {"packetSize": 10, "soldPackets": 5}],
        )
        assert resp.status_code == 400
        assert _row(stocked.id, 5).remaining_packets == 10
        assert _row(stocked.id, 10).remaining_packets == 2

    def test_selling_unknown_size_is_short(self, client, operator_headers, stocked):
        resp = _sell(client, operator_headers, stocked.id, [{"packetSize": 20, "soldPackets": 1}])
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["remainingPackets"] == 0

    def test_non_object_body_rejected(self, client, operator_headers, stocked):
        resp = client.post(f"/api/counters/{stocked.id}/sales", json=[1], headers=operator_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid JSON payload"
        assert _row(stocked.id, 5).remaining_packets == 10

    def test_huge_sold_packets_rejected(self, client, operator_headers, stocked):
        resp = _sell(client, operator_headers, stocked.id, [{"packetSize": 5, "soldPackets": 10**20}])
        assert resp.status_code == 400
        assert _row(stocked.id, 5).remaining_packets == 10

    def test_exact_sell_out(self, client, operator_headers, stocked):
        resp = _sell(client, operator_headers, stocked.id, [{"packetSize": 10, "soldPackets": 2}])
        assert resp.status_code == 200
        assert _row(stocked.id, 10).remaining_packets == 0

    def test_service_raises_typed_error(self, app, stocked):
        with pytest.raises(InsufficientStockError):
            counter_service.record_sale(counter_id=stocked.id, pairs=[(5, 11)])

    def test_ledger_invariants_hold(self, client, operator_headers, stocked):
        _sell(client, operator_headers, stocked.id, [{"packetSize": 5, "soldPackets": 4}])
        _deliver(client, operator_headers, stocked.id, [{"packetSize": 5, "quantity": 1}])
        for row in db.session.query(CounterInventory).all():
            assert row.total_packets == row.sold_packets + row.remaining_packets
            assert row.total_rotis == row.total_packets * row.packet_size
            assert row.remaining_rotis == row.remaining_packets * row.packet_size
            assert row.remaining_packets >= 0


class TestInventoryRead:

    def test_day_inventory(self, client, operator_headers, counter):
        _deliver(client, operator_headers, counter.id, [{"packetSize": 10, "quantity": 3}, {"packetSize": 5, "quantity": 2}])
        resp = client.get(f"/api/counters/{counter.id}/inventory", headers=operator_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["counter"]["id"] == counter.id
        assert [r["packetSize"] for r in body["inventory"]] == [5, 10]
        assert body["totals"]["totalPackets"] == 5
        assert body["totals"]["totalRotis"] == 40

    def test_empty_day(self, client, operator_headers, counter):
        resp = client.get(f"/api/counters/{counter.id}/inventory?date=2020-01-01", headers=operator_headers)
        assert resp.get_json()["inventory"] == []
        assert resp.get_json()["totals"]["totalPackets"] == 0


class TestCounterAdmin:

    def test_admin_creates_counter(self, client, admin_headers, franchise):
        resp = client.post(
            "/api/counters",
            json={"name": "Mall Kiosk", "location": "City Mall", "franchiseId": franchise.id},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.get_json()["counter"]["franchise"]["id"] == franchise.id

    def test_unknown_franchise(self, client, admin_headers):
        resp = client.post("/api/counters", json={"name": "Ghost", "franchiseId": 99}, headers=admin_headers)
        assert resp.status_code == 404

    def test_franchise_manager_lists_own_counters(self, client, franchise_manager_headers, counter, other_counter):
        resp = client.get("/api/counters", headers=franchise_manager_headers)
        assert resp.status_code == 200
        assert [c["id"] for c in resp.get_json()["data"]] == [counter.id]

    def test_manager_lists_all_counters(self, client, manager_headers, counter, other_counter):
        resp = client.get("/api/counters?isActive=true", headers=manager_headers)
        assert len(resp.get_json()["data"]) == 2
