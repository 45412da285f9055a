# Overview: Service-layer operations for finance; chart of accounts, expenses and tax records.

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Account, Expense, TaxRecord
from ..models.finance import EXPENSE_STATUSES, TAX_RECORD_STATUSES
from ..money import cents_to_amount
from ..time_utils import local_today


def list_accounts() -> tuple[list[Account], dict]:
    """Active accounts by name plus the balance total per account type."""
    accounts = (
        db.session.query(Account)
        .filter(Account.is_active.is_(True))
        .order_by(Account.name.asc(), Account.id.asc())
        .all()
    )
    totals = dict(
        db.session.query(Account.type, func.coalesce(func.sum(Account.balance_cents), 0))
        .filter(Account.is_active.is_(True))
        .group_by(Account.type)
        .all()
    )
    summary_keys = {
        "ASSET": "assets",
        "LIABILITY": "liabilities",
        "EQUITY": "equity",
        "REVENUE": "revenue",
        "EXPENSE": "expenses",
    }
    summary = {key: cents_to_amount(int(totals.get(t, 0) or 0)) for t, key in summary_keys.items()}
    return accounts, summary


def create_account(*, patch: dict) -> Account:
    account = Account(**patch)
    db.session.add(account)
    db.session.commit()
    return account


# =============================================================================
# Expenses
# =============================================================================


def list_expenses_query(*, status: str | None = None, start: date | None = None, end: date | None = None,
                        category: str | None = None):
    """Filters on the expense date; ``end`` is inclusive."""
    query = db.session.query(Expense)
    if status:
        status = status.strip().upper()
        if status not in EXPENSE_STATUSES:
            raise ValidationError(
                "Invalid status",
                details=[{"field": "status", "message": f"status must be one of: {', '.join(EXPENSE_STATUSES)}"}],
            )
        query = query.filter(Expense.status == status)
    if category:
        query = query.filter(Expense.category == category)
    if start is not None:
        query = query.filter(Expense.expense_date >= start)
    if end is not None:
        query = query.filter(Expense.expense_date <= end)
    return query.order_by(Expense.expense_date.desc(), Expense.id.desc())


def create_expense(*, patch: dict, created_by_user_id: int | None) -> Expense:
    patch.setdefault("expense_date", local_today())
    expense = Expense(status="PENDING", created_by_user_id=created_by_user_id, **patch)
    db.session.add(expense)
    db.session.commit()
    return expense


def update_expense(expense_id: int, *, patch: dict) -> Expense:
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError("Expense")
    for key, value in patch.items():
        setattr(expense, key, value)
    db.session.commit()
    return expense


# =============================================================================
# Tax records
# =============================================================================


def list_tax_records_query(*, status: str | None = None, tax_type: str | None = None):
    query = db.session.query(TaxRecord)
    if status:
        status = status.strip().upper()
        if status not in TAX_RECORD_STATUSES:
            raise ValidationError(
                "Invalid status",
                details=[{"field": "status", "message": f"status must be one of: {', '.join(TAX_RECORD_STATUSES)}"}],
            )
        query = query.filter(TaxRecord.status == status)
    if tax_type:
        query = query.filter(TaxRecord.tax_type == tax_type.strip().upper())
    return query.order_by(TaxRecord.due_date.desc(), TaxRecord.id.desc())


def create_tax_record(*, patch: dict) -> TaxRecord:
    record = TaxRecord(status="PENDING", **patch)
    db.session.add(record)
    db.session.commit()
    return record


def update_tax_record(record_id: int, *, patch: dict) -> TaxRecord:
    record = db.session.get(TaxRecord, record_id)
    if record is None:
        raise NotFoundError("Tax record")
    for key, value in patch.items():
        setattr(record, key, value)
    # Filing or paying without an explicit date stamps today
    if patch.get("status") == "FILED" and record.filed_date is None:
        record.filed_date = local_today()
    if patch.get("status") == "PAID" and record.paid_date is None:
        record.paid_date = local_today()
    db.session.commit()
    return record
