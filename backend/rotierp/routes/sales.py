# Overview: Flask API routes for POS transactions and the sales period summary.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..errors import ValidationError
from ..services import pos_service, reporting_service
from ..services.pagination import paginate, parse_page_args
from ..validation import coerce_int, json_object_body, parse_int_arg, validate_line_items
from .orders import list_orders_page


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("/orders")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def list_sales_orders_route():
    """Order listing under the sales module; same filters as /api/orders."""
    orders, pagination = list_orders_page(request.args, g.current_user, default_limit=10)
    return jsonify({"orders": orders, "pagination": pagination})


@sales_bp.get("/pos")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def list_pos_route():
    """
    Query params:
    - startDate, endDate: ISO date or datetime (optional; date-only endDate is inclusive)
    - counterId: int (optional)
    - page, limit
    """
    page, limit = parse_page_args(request.args)
    window = reporting_service.resolve_period(
        "custom", request.args.get("startDate"), request.args.get("endDate"), allowed=("custom",),
    )
    query = pos_service.list_transactions_query(
        start=window.start_utc,
        end=window.end_utc,
        counter_id=parse_int_arg(request.args.get("counterId"), "counterId"),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({"transactions": [t.to_dict() for t in rows], "pagination": pagination})


@sales_bp.post("/pos")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def create_pos_route():
    """
    Ring up a walk-up sale.

    Request body:
    {
        "items": [{"productId": 1, "quantity": 2, "price": 8.00}],
        "paymentMethod": "CASH" | "CARD" | "UPI",
        "cashierName": "...",
        "customerName": "...",  // optional
        "counterId": 1          // optional
    }
    """
    data = json_object_body()
    lines = validate_line_items(data, price_key="price")

    for key in ("paymentMethod", "cashierName", "customerName"):
        if data.get(key) is not None and not isinstance(data.get(key), str):
            raise ValidationError(f"{key} must be a string", details=[{"field": key, "message": "must be a string"}])
    counter_id = data.get("counterId")
    if counter_id is not None:
        counter_id = coerce_int(counter_id, "counterId")

    transaction = pos_service.create_transaction(
        lines=lines,
        payment_method=data.get("paymentMethod") or "",
        cashier_name=data.get("cashierName") or "",
        customer_name=data.get("customerName"),
        counter_id=counter_id,
        created_by_user_id=g.current_user.id,
    )
    return jsonify({"message": "POS transaction created successfully", "transaction": transaction.to_dict()}), 201


@sales_bp.get("/reports")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def sales_reports_route():
    """
    Orders and POS totals for a period.

    Query params: period (today | yesterday | this-week | this-month |
    last-month | custom; default today), startDate, endDate (custom only).
    """
    window = reporting_service.resolve_period(
        request.args.get("period") or "today",
        request.args.get("startDate"),
        request.args.get("endDate"),
    )
    return jsonify(reporting_service.sales_period_summary(window))
