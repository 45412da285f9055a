from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from ..time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Sellable roti product.

    Products referenced by orders or POS transactions are deactivated rather
    than deleted so historical lines keep their product.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_products_sku"),
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    category = db.Column(db.String(64), nullable=False, default="ROTI")
    description = db.Column(db.Text, nullable=True)

    # Money as integer cents
    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_price_cents = db.Column(db.Integer, nullable=True)
    unit = db.Column(db.String(32), nullable=False, default="PIECE")

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "sku": self.sku, "unit": self.unit}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "description": self.description,
            "unitPrice": cents_to_amount(self.unit_price_cents),
            "costPrice": cents_to_amount(self.cost_price_cents),
            "unit": self.unit,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }


class RawMaterial(db.Model):
    """Flour, oil and packaging stock used by the factory."""
    __tablename__ = "raw_materials"
    __table_args__ = (
        db.UniqueConstraint("sku", name="uq_raw_materials_sku"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    unit = db.Column(db.String(32), nullable=False, default="KG")
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    supplier = db.Column(db.String(128), nullable=True)
    min_stock = db.Column(db.Integer, nullable=False, default=0)
    max_stock = db.Column(db.Integer, nullable=True)
    current_stock = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "unit": self.unit,
            "costPrice": cents_to_amount(self.cost_price_cents),
            "supplier": self.supplier,
            "minStock": self.min_stock,
            "maxStock": self.max_stock,
            "currentStock": self.current_stock,
            "isActive": self.is_active,
            "isLowStock": self.is_low_stock,
            "createdAt": to_utc_z(self.created_at),
        }


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    phone = db.Column(db.String(32), nullable=True, index=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "createdAt": to_utc_z(self.created_at),
        }


class InventoryItem(db.Model):
    """
    Finished-goods stock for one product at the factory.

    available_stock = current_stock - reserved_stock; the item is low when
    available stock has fallen to the reorder point.
    """
    __tablename__ = "inventory_items"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_items_product"),
        db.CheckConstraint("current_stock >= 0", name="ck_inventory_items_current_nonneg"),
        db.CheckConstraint("reserved_stock >= 0", name="ck_inventory_items_reserved_nonneg"),
        db.CheckConstraint("reserved_stock <= current_stock", name="ck_inventory_items_reserved_le_current"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    current_stock = db.Column(db.Integer, nullable=False, default=0)
    reserved_stock = db.Column(db.Integer, nullable=False, default=0)
    reorder_point = db.Column(db.Integer, nullable=False, default=10)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product")

    @property
    def available_stock(self) -> int:
        return self.current_stock - self.reserved_stock

    @property
    def is_low_stock(self) -> bool:
        return self.available_stock <= self.reorder_point

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "currentStock": self.current_stock,
            "reservedStock": self.reserved_stock,
            "availableStock": self.available_stock,
            "reorderPoint": self.reorder_point,
            "isLowStock": self.is_low_stock,
            "lastUpdated": to_utc_z(self.last_updated),
        }
