"""
Catalog tests: products (create, update, soft delete), product stock and raw material stock.
"""

import pytest

from rotierp.extensions import db
from rotierp.models import InventoryItem, Product, RawMaterial


class TestProducts:

    def test_create_product(self, client, manager_headers):
        resp = client.post(
            "/api/manufacturing/products",
            json={"name": "Missi Roti", "sku": "ROTI-MISSI", "unitPrice": "12.00", "costPrice": 7},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["unitPrice"] == 12.0
        assert product["costPrice"] == 7.0
        assert product["category"] == "ROTI"
        assert product["isActive"] is True

    def test_duplicate_sku(self, client, manager_headers, product):
        resp = client.post(
            "/api/manufacturing/products",
            json={"name": "Another", "sku": product.sku, "unitPrice": 1},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Duplicate SKU"
        assert db.session.query(Product).count() == 1

    @pytest.mark.parametrize("price", [-1, "1.999", "free"])
    def test_invalid_price(self, client, manager_headers, price):
        resp = client.post(
            "/api/manufacturing/products",
            json={"name": "Bad", "sku": "BAD-1", "unitPrice": price},
            headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == "unitPrice"

    def test_operator_reads_catalog(self, client, operator_headers, product):
        resp = client.get("/api/manufacturing/products?search=butter", headers=operator_headers)
        assert resp.status_code == 200
        assert [p["sku"] for p in resp.get_json()["products"]] == ["ROTI-BUTTER"]

        resp = client.get(f"/api/manufacturing/products/{product.id}", headers=operator_headers)
        assert resp.get_json()["product"]["name"] == "Butter Roti"

    def test_is_active_filter(self, client, manager_headers, product):
        db.session.add(Product(name="Retired", sku="OLD-1", unit_price_cents=100, is_active=False))
        db.session.commit()
        body = client.get("/api/manufacturing/products?isActive=false", headers=manager_headers).get_json()
        assert [p["sku"] for p in body["products"]] == ["OLD-1"]
        body = client.get("/api/manufacturing/products", headers=manager_headers).get_json()
        assert body["pagination"]["total"] == 2

    def test_update_product(self, client, manager_headers, product):
        resp = client.put(
            f"/api/manufacturing/products/{product.id}", json={"unitPrice": 9.5}, headers=manager_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["product"]["unitPrice"] == 9.5

    def test_is_active_accepts_only_booleans(self, client, manager_headers, product):
        url = f"/api/manufacturing/products/{product.id}"
        resp = client.put(url, json={"isActive": "no"}, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == "isActive"
        assert db.session.get(Product, product.id).is_active is True

        resp = client.put(url, json={"isActive": "false"}, headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["product"]["isActive"] is False

    def test_update_to_taken_sku(self, client, manager_headers, product):
        db.session.add(Product(name="Plain", sku="ROTI-PLAIN", unit_price_cents=500))
        db.session.commit()
        resp = client.put(
            f"/api/manufacturing/products/{product.id}", json={"sku": "ROTI-PLAIN"}, headers=manager_headers,
        )
        assert resp.status_code == 400
        assert db.session.get(Product, product.id).sku == "ROTI-BUTTER"

    def test_get_missing_product(self, client, operator_headers):
        resp = client.get("/api/manufacturing/products/404", headers=operator_headers)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Product not found"

    def test_delete_unreferenced_product(self, client, manager_headers, product):
        resp = client.delete(f"/api/manufacturing/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["deactivated"] is False
        assert db.session.get(Product, product.id) is None

    def test_delete_referenced_product_deactivates(self, client, manager_headers, counter, product):
        client.post(
            "/api/orders",
            json={"counterId": counter.id, "items": [{"productId": product.id, "quantity": 1, "unitPrice": 8}]},
            headers=manager_headers,
        )
        resp = client.delete(f"/api/manufacturing/products/{product.id}", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.get_json()["deactivated"] is True
        assert db.session.get(Product, product.id).is_active is False

    def test_pos_reference_also_deactivates(self, client, manager_headers, product):
        client.post(
            "/api/sales/pos",
            json={"items": [{"productId": product.id, "quantity": 1, "price": 8}], "paymentMethod": "CASH", "cashierName": "Ravi"},
            headers=manager_headers,
        )
        resp = client.delete(f"/api/manufacturing/products/{product.id}", headers=manager_headers)
        assert resp.get_json()["deactivated"] is True


class TestRawMaterials:

    def test_create_raw_material(self, client, manager_headers):
        resp = client.post(
            "/api/manufacturing/raw-materials",
            json={"name": "Wheat Flour", "sku": "RM-ATTA", "costPrice": 32.5, "minStock": 50, "currentStock": 120},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        material = resp.get_json()["rawMaterial"]
        assert material["unit"] == "KG"
        assert material["isLowStock"] is False

    def test_duplicate_sku(self, client, manager_headers):
        payload = {"name": "Oil", "sku": "RM-OIL"}
        client.post("/api/manufacturing/raw-materials", json=payload, headers=manager_headers)
        resp = client.post("/api/manufacturing/raw-materials", json=payload, headers=manager_headers)
        assert resp.status_code == 400

    def test_low_stock_filter(self, client, operator_headers):
        db.session.add_all([
            RawMaterial(name="Wheat Flour", sku="RM-ATTA", current_stock=120, min_stock=50),
            RawMaterial(name="Ghee", sku="RM-GHEE", current_stock=4, min_stock=5),
            RawMaterial(name="Salt", sku="RM-SALT", current_stock=5, min_stock=5),
        ])
        db.session.commit()

        body = client.get("/api/manufacturing/raw-materials?lowStock=true", headers=operator_headers).get_json()
        assert [m["sku"] for m in body["rawMaterials"]] == ["RM-GHEE", "RM-SALT"]
        assert all(m["isLowStock"] for m in body["rawMaterials"])

        body = client.get("/api/manufacturing/raw-materials", headers=operator_headers).get_json()
        assert body["pagination"]["total"] == 3

    def test_operator_cannot_create(self, client, operator_headers):
        resp = client.post(
            "/api/manufacturing/raw-materials", json={"name": "Oil", "sku": "RM-OIL"}, headers=operator_headers,
        )
        assert resp.status_code == 403


class TestInventory:

    @pytest.fixture
    def stocked(self, client, manager_headers, product):
        resp = client.post(
            "/api/manufacturing/products",
            json={"name": "Missi Roti", "sku": "ROTI-MISSI", "unitPrice": 12},
            headers=manager_headers,
        )
        missi = resp.get_json()["product"]
        resp = client.put(
            f"/api/manufacturing/inventory/products/{missi['id']}",
            json={"currentStock": 30, "reservedStock": 5, "reorderPoint": 10},
            headers=manager_headers,
        )
        assert resp.status_code == 200
        db.session.add_all([
            RawMaterial(name="Wheat Flour", sku="RM-ATTA", current_stock=120, min_stock=50, cost_price_cents=3250),
            RawMaterial(name="Ghee", sku="RM-GHEE", current_stock=4, min_stock=5, cost_price_cents=50000),
        ])
        db.session.commit()
        return missi

    def test_new_product_gets_empty_stock_row(self, client, manager_headers, stocked):
        item = db.session.query(InventoryItem).filter_by(product_id=stocked["id"]).one()
        assert (item.current_stock, item.reserved_stock, item.available_stock) == (30, 5, 25)
        assert item.is_low_stock is False

    def test_overview_merges_products_and_raw_materials(self, client, operator_headers, stocked):
        resp = client.get("/api/manufacturing/inventory", headers=operator_headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Inventory retrieved successfully"
        assert [row["sku"] for row in body["data"]] == ["ROTI-BUTTER", "ROTI-MISSI", "RM-GHEE", "RM-ATTA"]
        assert body["stats"] == {
            "totalItems": 4,
            "lowStockItems": 2,
            "outOfStockItems": 1,
            "totalValue": 6260.0,
        }
        butter = body["data"][0]
        # Products without a stock row read as empty with the default reorder point
        assert (butter["currentStock"], butter["reorderPoint"], butter["isLowStock"]) == (0, 10, True)

    def test_type_and_low_stock_filters(self, client, operator_headers, stocked):
        body = client.get("/api/manufacturing/inventory?type=products", headers=operator_headers).get_json()
        assert {row["type"] for row in body["data"]} == {"PRODUCT"}
        assert body["stats"]["totalItems"] == 2

        body = client.get(
            "/api/manufacturing/inventory?type=raw-materials&lowStock=true", headers=operator_headers,
        ).get_json()
        assert [row["sku"] for row in body["data"]] == ["RM-GHEE"]
        assert body["stats"]["totalValue"] == 2000.0

        assert client.get("/api/manufacturing/inventory?type=spices", headers=operator_headers).status_code == 400

    @pytest.mark.parametrize("payload,field", [
        ({"reservedStock": 31}, "reservedStock"),
        ({"currentStock": 4}, "reservedStock"),
        ({"currentStock": -1}, "currentStock"),
        ({"reorderPoint": "ten"}, "reorderPoint"),
    ])
    def test_invalid_stock_update(self, client, manager_headers, stocked, payload, field):
        resp = client.put(
            f"/api/manufacturing/inventory/products/{stocked['id']}", json=payload, headers=manager_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["field"] == field
        item = db.session.query(InventoryItem).filter_by(product_id=stocked["id"]).one()
        assert (item.current_stock, item.reserved_stock, item.reorder_point) == (30, 5, 10)

    def test_stock_row_created_on_first_update(self, client, manager_headers, product):
        resp = client.put(
            f"/api/manufacturing/inventory/products/{product.id}", json={"currentStock": 3}, headers=manager_headers,
        )
        assert resp.status_code == 200
        inventory = resp.get_json()["inventory"]
        assert inventory["availableStock"] == 3
        assert inventory["isLowStock"] is True

    def test_operator_cannot_set_stock(self, client, operator_headers, stocked):
        resp = client.put(
            f"/api/manufacturing/inventory/products/{stocked['id']}", json={"currentStock": 1}, headers=operator_headers,
        )
        assert resp.status_code == 403

    def test_deleting_unused_product_drops_stock_row(self, client, manager_headers, stocked):
        resp = client.delete(f"/api/manufacturing/products/{stocked['id']}", headers=manager_headers)
        assert resp.get_json()["deactivated"] is False
        assert db.session.query(InventoryItem).filter_by(product_id=stocked["id"]).count() == 0
