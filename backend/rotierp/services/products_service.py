# Overview: Service-layer operations for the product catalog, product stock and raw material stock.

"""
Products and raw materials.

Products referenced by order lines or POS lines are never hard-deleted;
they are deactivated so historical documents keep resolving.
"""
from __future__ import annotations

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, OrderItem, POSTransactionItem, Product, RawMaterial
from ..money import cents_to_amount
from ..time_utils import to_utc_z


def apply_patch(obj, patch: dict) -> None:
    for k, v in patch.items():
        setattr(obj, k, v)


def _commit_unique(message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(message, error="Duplicate SKU")


def list_products_query(*, search: str | None = None, category: str | None = None,
                        is_active: bool | None = None):
    query = db.session.query(Product)
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
    if category:
        query = query.filter(Product.category == category.strip())
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    return query.order_by(Product.name.asc(), Product.id.asc())


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product")
    return product


def create_product(*, patch: dict) -> Product:
    """Create a product with an empty stock row; duplicate SKU raises ConflictError."""
    if db.session.query(Product.id).filter_by(sku=patch["sku"]).first():
        raise ConflictError("Product with this SKU already exists", error="Duplicate SKU")
    product = Product(**patch)
    db.session.add(product)
    db.session.add(InventoryItem(product=product))
    _commit_unique("Product with this SKU already exists")
    return product


def update_product(product_id: int, *, patch: dict) -> Product:
    product = get_product(product_id)
    if "sku" in patch and patch["sku"] != product.sku:
        if db.session.query(Product.id).filter_by(sku=patch["sku"]).first():
            raise ConflictError("Product with this SKU already exists", error="Duplicate SKU")
    apply_patch(product, patch)
    _commit_unique("Product with this SKU already exists")
    return product


def product_is_referenced(product_id: int) -> bool:
    for model in (OrderItem, POSTransactionItem):
        if db.session.query(model.id).filter(model.product_id == product_id).first():
            return True
    return False


def delete_product(product_id: int) -> str:
    """
    Delete a product.

    Returns "deactivated" when order or POS lines reference it (soft delete)
    and "deleted" otherwise.
    """
    product = get_product(product_id)
    if product_is_referenced(product_id):
        product.is_active = False
        db.session.commit()
        return "deactivated"
    db.session.query(InventoryItem).filter_by(product_id=product_id).delete(synchronize_session=False)
    db.session.delete(product)
    db.session.commit()
    return "deleted"


# =============================================================================
# Raw materials
# =============================================================================


def list_raw_materials_query(*, search: str | None = None, low_stock: bool | None = None):
    query = db.session.query(RawMaterial).filter(RawMaterial.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(or_(RawMaterial.name.ilike(like), RawMaterial.sku.ilike(like)))
    if low_stock:
        query = query.filter(RawMaterial.current_stock <= RawMaterial.min_stock)
    return query.order_by(RawMaterial.name.asc(), RawMaterial.id.asc())


def create_raw_material(*, patch: dict) -> RawMaterial:
    if db.session.query(RawMaterial.id).filter_by(sku=patch["sku"]).first():
        raise ConflictError("Raw material with this SKU already exists", error="Duplicate SKU")
    material = RawMaterial(**patch)
    db.session.add(material)
    _commit_unique("Raw material with this SKU already exists")
    return material


# =============================================================================
# Stock overview
# =============================================================================

INVENTORY_TYPES = ("all", "products", "raw-materials")


def get_inventory_item(product_id: int) -> InventoryItem:
    """The product's stock row, created empty on first use."""
    product = get_product(product_id)
    item = db.session.query(InventoryItem).filter_by(product_id=product.id).first()
    if item is None:
        item = InventoryItem(product_id=product.id, current_stock=0, reserved_stock=0, reorder_point=10)
        db.session.add(item)
        db.session.flush()
    return item


def update_product_stock(product_id: int, *, patch: dict) -> InventoryItem:
    """Set current, reserved and reorder levels; reserved stock can never exceed current stock."""
    item = get_inventory_item(product_id)
    names = {"current_stock": "currentStock", "reserved_stock": "reservedStock", "reorder_point": "reorderPoint"}
    for key, value in patch.items():
        if value < 0:
            raise ValidationError(f"{names[key]} cannot be negative", details=[{"field": names[key], "message": "must be >= 0"}])
    current = patch.get("current_stock", item.current_stock)
    if patch.get("reserved_stock", item.reserved_stock) > current:
        raise ValidationError(
            "reservedStock cannot exceed currentStock",
            details=[{"field": "reservedStock", "message": "cannot exceed currentStock"}],
        )
    apply_patch(item, patch)
    db.session.commit()
    return item


def _product_row(product: Product, item: InventoryItem | None) -> tuple[dict, int]:
    current = item.current_stock if item else 0
    reserved = item.reserved_stock if item else 0
    reorder = item.reorder_point if item else 10
    available = current - reserved
    return {
        "type": "PRODUCT",
        "productId": product.id,
        "rawMaterialId": None,
        "name": product.name,
        "sku": product.sku,
        "unit": product.unit,
        "currentStock": current,
        "reservedStock": reserved,
        "availableStock": available,
        "reorderPoint": reorder,
        "unitValue": cents_to_amount(product.unit_price_cents),
        "isLowStock": available <= reorder,
        "lastUpdated": to_utc_z(item.last_updated) if item else None,
    }, current * product.unit_price_cents


def _raw_material_row(material: RawMaterial) -> tuple[dict, int]:
    return {
        "type": "RAW_MATERIAL",
        "productId": None,
        "rawMaterialId": material.id,
        "name": material.name,
        "sku": material.sku,
        "unit": material.unit,
        "currentStock": material.current_stock,
        "reservedStock": 0,
        "availableStock": material.current_stock,
        "reorderPoint": material.min_stock,
        "unitValue": cents_to_amount(material.cost_price_cents),
        "isLowStock": material.is_low_stock,
        "lastUpdated": to_utc_z(material.updated_at),
    }, material.current_stock * material.cost_price_cents


def inventory_overview(*, item_type: str | None = None, low_stock: bool | None = None) -> tuple[list[dict], dict]:
    """
    Finished-goods and raw material stock in one list.

    item_type is "products", "raw-materials" or "all" (default). With
    low_stock=True only rows at or below their reorder point are returned.
    Stats are computed over the returned rows; totalValue prices products at
    unit price and raw materials at cost price.
    """
    item_type = (item_type or "all").strip().lower()
    if item_type not in INVENTORY_TYPES:
        raise ValidationError(
            f"type must be one of: {', '.join(INVENTORY_TYPES)}",
            details=[{"field": "type", "message": f"must be one of: {', '.join(INVENTORY_TYPES)}"}],
        )

    entries: list[tuple[dict, int]] = []
    if item_type in ("all", "products"):
        pairs = (
            db.session.query(Product, InventoryItem)
            .outerjoin(InventoryItem, InventoryItem.product_id == Product.id)
            .filter(Product.is_active.is_(True))
            .order_by(Product.name.asc(), Product.id.asc())
            .all()
        )
        entries.extend(_product_row(product, item) for product, item in pairs)
    if item_type in ("all", "raw-materials"):
        materials = (
            db.session.query(RawMaterial)
            .filter(RawMaterial.is_active.is_(True))
            .order_by(RawMaterial.name.asc(), RawMaterial.id.asc())
            .all()
        )
        entries.extend(_raw_material_row(m) for m in materials)

    if low_stock:
        entries = [(row, value) for row, value in entries if row["isLowStock"]]
    rows = [row for row, _ in entries]

    stats = {
        "totalItems": len(rows),
        "lowStockItems": sum(1 for r in rows if r["isLowStock"]),
        "outOfStockItems": sum(1 for r in rows if r["availableStock"] <= 0),
        "totalValue": cents_to_amount(sum(value for _, value in entries)),
    }
    return rows, stats
