# Overview: Flask API routes for counter orders; parses input and returns JSON responses.

"""
Counter order routes.

SECURITY: All routes require authentication (COUNTER_OPERATOR and above).
Franchise managers only see orders placed at counters of franchises they
manage.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..errors import ValidationError
from ..services import order_service
from ..services.pagination import paginate, parse_page_args
from ..services.reporting_service import resolve_period
from ..validation import (
    json_object_body,
    coerce_amount_cents,
    coerce_int,
    parse_date_arg,
    parse_int_arg,
    validate_line_items,
    FieldErrors,
)


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def list_orders_page(args, user, *, default_limit: int):
    """
    Shared list handler for /api/orders and /api/sales/orders.

    Query params: counterId, status, date (local day), startDate, endDate,
    page, limit.
    """
    page, limit = parse_page_args(args, default_limit=default_limit)
    window = resolve_period("custom", args.get("startDate"), args.get("endDate"), allowed=("custom",))
    query = order_service.list_orders_query(
        user=user,
        counter_id=parse_int_arg(args.get("counterId"), "counterId"),
        status=args.get("status") or None,
        on_date=parse_date_arg(args.get("date"), "date"),
        start=window.start_utc,
        end=window.end_utc,
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return [o.to_dict() for o in rows], pagination


@orders_bp.get("")
@orders_bp.get("/")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def list_orders_route():
    orders, pagination = list_orders_page(request.args, g.current_user, default_limit=20)
    return jsonify({
        "message": "Orders retrieved successfully",
        "data": orders,
        "pagination": pagination,
    })


@orders_bp.post("")
@orders_bp.post("/")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def create_order_route():
    """
    Create an order.

    Request body:
    {
        "counterId": 1,
        "items": [{"productId": 1, "quantity": 3, "unitPrice": 8.00}],
        "customerId": 2,        // optional
        "discount": 0,          // optional
        "paymentMethod": "...", // optional
        "notes": "..."          // optional
    }
    """
    data = json_object_body()
    errors = FieldErrors()

    counter_id = customer_id = None
    discount_cents = 0

    if data.get("counterId") is None:
        errors.add("counterId", "counterId is required")
    else:
        try:
            counter_id = coerce_int(data["counterId"], "counterId")
        except ValidationError as e:
            errors.add("counterId", e.message)

    if data.get("customerId") is not None:
        try:
            customer_id = coerce_int(data["customerId"], "customerId")
        except ValidationError as e:
            errors.add("customerId", e.message)

    if data.get("discount") is not None:
        try:
            discount_cents = coerce_amount_cents(data["discount"], "discount")
        except ValidationError as e:
            errors.add("discount", e.message)

    try:
        lines = validate_line_items(data, price_key="unitPrice")
    except ValidationError as e:
        errors.details.extend(e.details or [{"field": "items", "message": e.message}])
        lines = []

    payment_method = data.get("paymentMethod")
    if payment_method is not None and not isinstance(payment_method, str):
        errors.add("paymentMethod", "paymentMethod must be a string")
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        errors.add("notes", "notes must be a string")

    errors.raise_if_any()

    order = order_service.create_order(
        counter_id=counter_id,
        lines=lines,
        created_by_user_id=g.current_user.id,
        customer_id=customer_id,
        discount_cents=discount_cents,
        payment_method=payment_method.strip().upper() if payment_method else None,
        notes=notes.strip() if notes else None,
    )
    return jsonify({"message": "Order created successfully", "order": order.to_dict()}), 201


@orders_bp.get("/<int:order_id>")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def get_order_route(order_id: int):
    order = order_service.get_order(order_id, user=g.current_user)
    return jsonify({"order": order.to_dict()})


@orders_bp.put("/<int:order_id>")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def update_order_route(order_id: int):
    """Update status (PREPARING is accepted for IN_PREPARATION), notes or paymentStatus."""
    data = json_object_body()
    unknown = [k for k in data if k not in ("status", "notes", "paymentStatus")]
    if unknown:
        raise ValidationError(
            "Field not allowed",
            details=[{"field": k, "message": f"Field not allowed: {k}"} for k in unknown],
        )
    if not data:
        raise ValidationError(
            "Nothing to update",
            details=[{"field": "status", "message": "status, notes or paymentStatus is required"}],
        )
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string", details=[{"field": "notes", "message": "must be a string"}])

    order_service.get_order(order_id, user=g.current_user)
    order = order_service.update_order(
        order_id,
        status=data.get("status"),
        notes=notes,
        payment_status=data.get("paymentStatus"),
    )
    return jsonify({"message": "Order status updated successfully", "order": order.to_dict()})
