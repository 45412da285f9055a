from __future__ import annotations

from ..extensions import db
from ..money import cents_to_amount
from ..time_utils import to_iso_date, to_utc_z, utcnow

ACCOUNT_TYPES = ("ASSET", "LIABILITY", "EQUITY", "REVENUE", "EXPENSE")
EXPENSE_STATUSES = ("PENDING", "APPROVED", "REJECTED")
EXPENSE_PAYMENT_METHODS = ("CASH", "BANK", "CARD", "UPI")
TAX_TYPES = ("GST", "INCOME_TAX", "TDS", "PROFESSIONAL_TAX")
TAX_RECORD_STATUSES = ("PENDING", "FILED", "PAID")


class Account(db.Model):
    __tablename__ = "accounts"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "balance": cents_to_amount(self.balance_cents),
            "description": self.description,
            "isActive": self.is_active,
            "createdAt": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """Operating expense; only APPROVED expenses count in profit and loss."""
    __tablename__ = "expenses"
    __table_args__ = (
        db.Index("ix_expenses_status_date", "status", "expense_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)
    expense_date = db.Column(db.Date, nullable=False)
    payment_method = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "amount": cents_to_amount(self.amount_cents),
            "category": self.category,
            "description": self.description,
            "date": to_iso_date(self.expense_date),
            "paymentMethod": self.payment_method,
            "status": self.status,
            "createdBy": self.created_by_user_id,
            "createdAt": to_utc_z(self.created_at),
        }


class TaxRecord(db.Model):
    __tablename__ = "tax_records"
    __table_args__ = ({"sqlite_autoincrement": True},)

    id = db.Column(db.Integer, primary_key=True)
    tax_type = db.Column(db.String(32), nullable=False)
    period = db.Column(db.String(32), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    due_date = db.Column(db.Date, nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="PENDING")
    filed_date = db.Column(db.Date, nullable=True)
    paid_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "taxType": self.tax_type,
            "period": self.period,
            "amount": cents_to_amount(self.amount_cents),
            "dueDate": to_iso_date(self.due_date),
            "description": self.description,
            "status": self.status,
            "filedDate": to_iso_date(self.filed_date),
            "paidDate": to_iso_date(self.paid_date),
            "createdAt": to_utc_z(self.created_at),
        }
