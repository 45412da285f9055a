# Overview: Flask API routes for finance operations; parses input and returns JSON responses.

"""
Finance routes: accounts, expenses, tax records and profit & loss.

SECURITY: All routes require authentication with MANAGER or above.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..models import Account, Expense, TaxRecord
from ..models.finance import (
    ACCOUNT_TYPES,
    EXPENSE_PAYMENT_METHODS,
    EXPENSE_STATUSES,
    TAX_RECORD_STATUSES,
    TAX_TYPES,
)
from ..services import finance_service, reporting_service
from ..services.pagination import paginate, parse_page_args
from ..validation import ModelValidationPolicy, json_object_body, parse_date_arg, validate_payload

ACCOUNT_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "type": "type",
        "balance": "balance_cents",
        "description": "description",
    },
    required_on_create={"name", "type"},
    choices={"type": ACCOUNT_TYPES},
)

EXPENSE_POLICY = ModelValidationPolicy(
    fields={
        "title": "title",
        "amount": "amount_cents",
        "category": "category",
        "description": "description",
        "date": "expense_date",
        "paymentMethod": "payment_method",
    },
    required_on_create={"title", "amount", "category", "paymentMethod"},
    choices={"paymentMethod": EXPENSE_PAYMENT_METHODS},
)

EXPENSE_UPDATE_POLICY = ModelValidationPolicy(
    fields={**EXPENSE_POLICY.fields, "status": "status"},
    choices={**EXPENSE_POLICY.choices, "status": EXPENSE_STATUSES},
)

TAX_RECORD_POLICY = ModelValidationPolicy(
    fields={
        "taxType": "tax_type",
        "period": "period",
        "amount": "amount_cents",
        "dueDate": "due_date",
        "description": "description",
    },
    required_on_create={"taxType", "period", "amount", "dueDate"},
    choices={"taxType": TAX_TYPES},
)

TAX_RECORD_UPDATE_POLICY = ModelValidationPolicy(
    fields={"status": "status", "filedDate": "filed_date", "paidDate": "paid_date", "description": "description"},
    choices={"status": TAX_RECORD_STATUSES},
)

finance_bp = Blueprint("finance", __name__, url_prefix="/api/finance")


@finance_bp.get("/accounts")
@require_auth
@require_min_role("MANAGER")
def list_accounts_route():
    accounts, summary = finance_service.list_accounts()
    return jsonify({"accounts": [a.to_dict() for a in accounts], "summary": summary})


@finance_bp.post("/accounts")
@require_auth
@require_min_role("MANAGER")
def create_account_route():
    payload = json_object_body()
    patch = validate_payload(model=Account, payload=payload, policy=ACCOUNT_POLICY, partial=False)
    account = finance_service.create_account(patch=patch)
    return jsonify({"message": "Account created successfully", "account": account.to_dict()}), 201


@finance_bp.get("/expenses")
@require_auth
@require_min_role("MANAGER")
def list_expenses_route():
    """Query params: status, category, startDate, endDate (inclusive dates), page, limit."""
    page, limit = parse_page_args(request.args)
    query = finance_service.list_expenses_query(
        status=request.args.get("status"),
        category=request.args.get("category"),
        start=parse_date_arg(request.args.get("startDate"), "startDate"),
        end=parse_date_arg(request.args.get("endDate"), "endDate"),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({"expenses": [e.to_dict() for e in rows], "pagination": pagination})


@finance_bp.post("/expenses")
@require_auth
@require_min_role("MANAGER")
def create_expense_route():
    """New expenses start PENDING; only APPROVED ones count in profit & loss."""
    payload = json_object_body()
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    expense = finance_service.create_expense(patch=patch, created_by_user_id=g.current_user.id)
    return jsonify({"message": "Expense created successfully", "expense": expense.to_dict()}), 201


@finance_bp.put("/expenses/<int:expense_id>")
@require_auth
@require_min_role("MANAGER")
def update_expense_route(expense_id: int):
    payload = json_object_body()
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_UPDATE_POLICY, partial=True)
    expense = finance_service.update_expense(expense_id, patch=patch)
    return jsonify({"message": "Expense updated successfully", "expense": expense.to_dict()})


@finance_bp.get("/profit-loss")
@require_auth
@require_min_role("MANAGER")
def profit_loss_route():
    """
    Query params:
    - period: current-month (default) | last-month | current-quarter | current-year | custom
    - startDate, endDate: for custom
    """
    window = reporting_service.resolve_period(
        request.args.get("period") or "current-month",
        request.args.get("startDate"),
        request.args.get("endDate"),
        allowed=reporting_service.PNL_PERIODS,
    )
    return jsonify(reporting_service.profit_and_loss(window))


@finance_bp.get("/tax-records")
@require_auth
@require_min_role("MANAGER")
def list_tax_records_route():
    page, limit = parse_page_args(request.args)
    query = finance_service.list_tax_records_query(
        status=request.args.get("status"),
        tax_type=request.args.get("taxType"),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({"taxRecords": [r.to_dict() for r in rows], "pagination": pagination})


@finance_bp.post("/tax-records")
@require_auth
@require_min_role("MANAGER")
def create_tax_record_route():
    payload = json_object_body()
    patch = validate_payload(model=TaxRecord, payload=payload, policy=TAX_RECORD_POLICY, partial=False)
    record = finance_service.create_tax_record(patch=patch)
    return jsonify({"message": "Tax record created successfully", "taxRecord": record.to_dict()}), 201


@finance_bp.put("/tax-records/<int:record_id>")
@require_auth
@require_min_role("MANAGER")
def update_tax_record_route(record_id: int):
    payload = json_object_body()
    patch = validate_payload(model=TaxRecord, payload=payload, policy=TAX_RECORD_UPDATE_POLICY, partial=True)
    record = finance_service.update_tax_record(record_id, patch=patch)
    return jsonify({"message": "Tax record updated successfully", "taxRecord": record.to_dict()})
