# Overview: Flask API routes for the product catalog, stock levels and raw materials.

"""
Manufacturing routes.

SECURITY: All routes require authentication.
- Read operations: COUNTER_OPERATOR+ (the order screens need the catalog)
- Write operations: MANAGER+
"""

from flask import Blueprint, request, jsonify

from ..decorators import require_auth, require_min_role
from ..models import InventoryItem, Product, RawMaterial
from ..services import products_service
from ..services.pagination import paginate, parse_page_args
from ..validation import ModelValidationPolicy, json_object_body, parse_bool_arg, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "sku": "sku",
        "category": "category",
        "description": "description",
        "unitPrice": "unit_price_cents",
        "costPrice": "cost_price_cents",
        "unit": "unit",
        "isActive": "is_active",
    },
    required_on_create={"name", "sku", "unitPrice"},
)

RAW_MATERIAL_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "sku": "sku",
        "unit": "unit",
        "costPrice": "cost_price_cents",
        "supplier": "supplier",
        "minStock": "min_stock",
        "maxStock": "max_stock",
        "currentStock": "current_stock",
    },
    required_on_create={"name", "sku"},
)

STOCK_POLICY = ModelValidationPolicy(
    fields={
        "currentStock": "current_stock",
        "reservedStock": "reserved_stock",
        "reorderPoint": "reorder_point",
    },
)

manufacturing_bp = Blueprint("manufacturing", __name__, url_prefix="/api/manufacturing")


@manufacturing_bp.get("/products")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def list_products_route():
    """
    Query params:
    - search: matches name or SKU
    - category: exact category
    - isActive: true/false
    - page, limit
    """
    page, limit = parse_page_args(request.args)
    query = products_service.list_products_query(
        search=request.args.get("search"),
        category=request.args.get("category"),
        is_active=parse_bool_arg(request.args.get("isActive")),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({"products": [p.to_dict() for p in rows], "pagination": pagination})


@manufacturing_bp.post("/products")
@require_auth
@require_min_role("MANAGER")
def create_product_route():
    payload = json_object_body()
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    product = products_service.create_product(patch=patch)
    return jsonify({"message": "Product created successfully", "product": product.to_dict()}), 201


@manufacturing_bp.get("/products/<int:product_id>")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def get_product_route(product_id: int):
    return jsonify({"product": products_service.get_product(product_id).to_dict()})


@manufacturing_bp.put("/products/<int:product_id>")
@require_auth
@require_min_role("MANAGER")
def update_product_route(product_id: int):
    payload = json_object_body()
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    product = products_service.update_product(product_id, patch=patch)
    return jsonify({"message": "Product updated successfully", "product": product.to_dict()})


@manufacturing_bp.delete("/products/<int:product_id>")
@require_auth
@require_min_role("MANAGER")
def delete_product_route(product_id: int):
    """Products with order or POS history are deactivated instead of deleted."""
    outcome = products_service.delete_product(product_id)
    if outcome == "deactivated":
        return jsonify({
            "message": "Product has existing orders and was deactivated instead of deleted",
            "deactivated": True,
        })
    return jsonify({"message": "Product deleted successfully", "deactivated": False})


@manufacturing_bp.get("/raw-materials")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def list_raw_materials_route():
    """Query params: search, lowStock (true/false), page, limit."""
    page, limit = parse_page_args(request.args)
    query = products_service.list_raw_materials_query(
        search=request.args.get("search"),
        low_stock=parse_bool_arg(request.args.get("lowStock")),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({"rawMaterials": [m.to_dict() for m in rows], "pagination": pagination})


@manufacturing_bp.post("/raw-materials")
@require_auth
@require_min_role("MANAGER")
def create_raw_material_route():
    payload = json_object_body()
    patch = validate_payload(model=RawMaterial, payload=payload, policy=RAW_MATERIAL_POLICY, partial=False)
    material = products_service.create_raw_material(patch=patch)
    return jsonify({"message": "Raw material created successfully", "rawMaterial": material.to_dict()}), 201


@manufacturing_bp.get("/inventory")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def inventory_route():
    """
    Query params:
    - type: products, raw-materials or all (default)
    - lowStock: true to keep only items at or below their reorder point
    """
    rows, stats = products_service.inventory_overview(
        item_type=request.args.get("type"),
        low_stock=parse_bool_arg(request.args.get("lowStock")),
    )
    return jsonify({"message": "Inventory retrieved successfully", "data": rows, "stats": stats})


@manufacturing_bp.put("/inventory/products/<int:product_id>")
@require_auth
@require_min_role("MANAGER")
def update_product_stock_route(product_id: int):
    """Accepts currentStock, reservedStock and reorderPoint."""
    payload = json_object_body()
    patch = validate_payload(model=InventoryItem, payload=payload, policy=STOCK_POLICY, partial=True)
    item = products_service.update_product_stock(product_id, patch=patch)
    return jsonify({"message": "Stock updated successfully", "inventory": item.to_dict()})
