from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from ..time_utils import to_utc_z, utcnow

ORDER_STATUSES = ("PENDING", "CONFIRMED", "IN_PREPARATION", "READY", "DELIVERED", "CANCELLED")
PAYMENT_STATUSES = ("PENDING", "PAID", "PARTIAL", "REFUNDED")
POS_PAYMENT_METHODS = ("CASH", "CARD", "UPI")


class Order(db.Model):
    """
    Counter order document.

    Money fields are integer cents:
      final_amount_cents = total_amount_cents - discount_cents + tax_cents

    Optimistic locking via version_id guards concurrent status updates.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        db.Index("ix_orders_counter_created", "counter_id", "created_at"),
        db.Index("ix_orders_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)

    counter_id = db.Column(db.Integer, db.ForeignKey("counters.id"), nullable=False)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    status = db.Column(db.String(20), nullable=False, default="PENDING")
    payment_status = db.Column(db.String(16), nullable=False, default="PENDING")
    payment_method = db.Column(db.String(32), nullable=True)

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    final_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    counter = db.relationship("Counter")
    customer = db.relationship("Customer")
    created_by = db.relationship("User")
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def to_dict(self, include_details: bool = True) -> dict:
        data = {
            "id": self.id,
            "orderNumber": self.order_number,
            "counterId": self.counter_id,
            "customerId": self.customer_id,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "paymentMethod": self.payment_method,
            "totalAmount": cents_to_amount(self.total_amount_cents),
            "discount": cents_to_amount(self.discount_cents),
            "tax": cents_to_amount(self.tax_cents),
            "finalAmount": cents_to_amount(self.final_amount_cents),
            "notes": self.notes,
            "createdBy": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_details:
            data["items"] = [item.to_dict() for item in self.items]
            data["counter"] = self.counter.to_summary() if self.counter else None
            data["customer"] = self.customer.to_summary() if self.customer else None
        return data


class OrderItem(db.Model):
    __tablename__ = "order_items"
    __table_args__ = (
        db.Index("ix_order_items_product", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "quantity": self.quantity,
            "unitPrice": cents_to_amount(self.unit_price_cents),
            "totalPrice": cents_to_amount(self.total_price_cents),
            "notes": self.notes,
        }


class POSTransaction(db.Model):
    """Walk-up sale rung up at a counter; has no cancellation state."""
    __tablename__ = "pos_transactions"
    __table_args__ = (
        db.UniqueConstraint("transaction_number", name="uq_pos_transactions_number"),
        db.Index("ix_pos_transactions_date", "transaction_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_number = db.Column(db.String(32), nullable=False)
    counter_id = db.Column(db.Integer, db.ForeignKey("counters.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(128), nullable=True)
    cashier_name = db.Column(db.String(128), nullable=True)
    payment_method = db.Column(db.String(16), nullable=False, default="CASH")
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    items = db.relationship(
        "POSTransactionItem",
        backref="transaction",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="POSTransactionItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transactionNumber": self.transaction_number,
            "counterId": self.counter_id,
            "customerName": self.customer_name,
            "cashierName": self.cashier_name,
            "paymentMethod": self.payment_method,
            "totalAmount": cents_to_amount(self.total_amount_cents),
            "transactionDate": to_utc_z(self.transaction_date),
            "createdAt": to_utc_z(self.created_at),
            "items": [item.to_dict() for item in self.items],
        }


class POSTransactionItem(db.Model):
    __tablename__ = "pos_transaction_items"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("pos_transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "quantity": self.quantity,
            "price": cents_to_amount(self.unit_price_cents),
            "total": cents_to_amount(self.total_price_cents),
        }
