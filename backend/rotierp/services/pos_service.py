# Overview: Service-layer operations for walk-up POS transactions.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Counter, POSTransaction, POSTransactionItem, Product
from ..models.sales import POS_PAYMENT_METHODS
from ..validation import check_amount_limit
from .concurrency import run_with_retry
from .document_service import next_document_number


def create_transaction(
    *,
    lines: list[dict],
    payment_method: str,
    cashier_name: str,
    customer_name: str | None = None,
    counter_id: int | None = None,
    created_by_user_id: int | None = None,
) -> POSTransaction:
    method = (payment_method or "").strip().upper()
    if method not in POS_PAYMENT_METHODS:
        raise ValidationError(
            "Invalid payment method",
            details=[{"field": "paymentMethod", "message": f"paymentMethod must be one of: {', '.join(POS_PAYMENT_METHODS)}"}],
        )
    if not (cashier_name or "").strip():
        raise ValidationError(
            "cashierName is required",
            details=[{"field": "cashierName", "message": "cashierName is required"}],
        )

    total_cents = check_amount_limit(sum(line["quantity"] * line["unit_price_cents"] for line in lines))

    def _op() -> int:
        if counter_id is not None:
            counter = db.session.get(Counter, counter_id)
            if counter is None or not counter.is_active:
                raise NotFoundError("Counter", "Counter not found or inactive")

        product_ids = {line["product_id"] for line in lines}
        active_ids = {
            row[0]
            for row in db.session.query(Product.id)
            .filter(Product.id.in_(product_ids), Product.is_active.is_(True))
            .all()
        }
        details = [
            {"field": f"items[{idx}].productId", "message": f"Product {line['product_id']} not found or inactive"}
            for idx, line in enumerate(lines)
            if line["product_id"] not in active_ids
        ]
        if details:
            raise ValidationError(details[0]["message"], error="Invalid product", details=details)

        number = next_document_number(document_type="POS", prefix="POS")
        transaction = POSTransaction(
            transaction_number=number,
            counter_id=counter_id,
            customer_name=(customer_name or "").strip() or None,
            cashier_name=cashier_name.strip(),
            payment_method=method,
            total_amount_cents=total_cents,
            created_by_user_id=created_by_user_id,
        )
        transaction.items = [
            POSTransactionItem(
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price_cents=line["unit_price_cents"],
                total_price_cents=line["quantity"] * line["unit_price_cents"],
            )
            for line in lines
        ]
        db.session.add(transaction)
        db.session.commit()
        return transaction.id

    try:
        transaction_id = run_with_retry(_op, retry_on=(IntegrityError,))
    except IntegrityError:
        raise ConflictError("Could not allocate a unique transaction number")

    transaction = db.session.get(POSTransaction, transaction_id)
    current_app.logger.info(
        "POS transaction %s recorded (%s cents, %s)",
        transaction.transaction_number, transaction.total_amount_cents, method,
    )
    return transaction


def list_transactions_query(*, start: datetime | None = None, end: datetime | None = None,
                            counter_id: int | None = None):
    query = db.session.query(POSTransaction).options(
        selectinload(POSTransaction.items).joinedload(POSTransactionItem.product),
    )
    if start is not None:
        query = query.filter(POSTransaction.transaction_date >= start)
    if end is not None:
        query = query.filter(POSTransaction.transaction_date < end)
    if counter_id is not None:
        query = query.filter(POSTransaction.counter_id == counter_id)
    return query.order_by(POSTransaction.transaction_date.desc(), POSTransaction.id.desc())
