# Overview: Flask API routes for counters, packet deliveries and packet sales.

"""
Counter routes.

SECURITY: All routes require authentication.
- Listing and reading counters: FRANCHISE_MANAGER+ (franchise managers are
  scoped to the counters of franchises they manage)
- Creating and updating counters: ADMIN+
- Deliveries, sales and the day's inventory: COUNTER_OPERATOR+
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..errors import NotFoundError, ValidationError
from ..models import Counter
from ..services import counter_service, scope_service
from ..validation import (
    json_object_body,
    ModelValidationPolicy,
    parse_bool_arg,
    parse_date_arg,
    parse_int_arg,
    validate_packet_items,
    validate_payload,
)

COUNTER_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "location": "location",
        "franchiseId": "franchise_id",
        "managerName": "manager_name",
        "managerPhone": "manager_phone",
        "isActive": "is_active",
    },
    required_on_create={"name"},
)

counters_bp = Blueprint("counters", __name__, url_prefix="/api/counters")


def _check_scope(counter_id: int) -> None:
    if not scope_service.can_access_counter(g.current_user, counter_id):
        raise NotFoundError("Counter")


def _notes(data: dict):
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string", details=[{"field": "notes", "message": "must be a string"}])
    return notes.strip() if notes and notes.strip() else None


@counters_bp.get("")
@counters_bp.get("/")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def list_counters_route():
    """
    Query params:
    - franchiseId: int (optional)
    - isActive: true/false (optional)
    """
    counters = counter_service.list_counters(
        user=g.current_user,
        franchise_id=parse_int_arg(request.args.get("franchiseId"), "franchiseId"),
        is_active=parse_bool_arg(request.args.get("isActive")),
    )
    return jsonify({"message": "Counters retrieved successfully", "data": counters})


@counters_bp.post("")
@counters_bp.post("/")
@require_auth
@require_min_role("ADMIN")
def create_counter_route():
    payload = json_object_body()
    patch = validate_payload(model=Counter, payload=payload, policy=COUNTER_POLICY, partial=False)
    counter = counter_service.create_counter(patch=patch)
    return jsonify({"message": "Counter created successfully", "counter": counter.to_dict()}), 201


@counters_bp.get("/<int:counter_id>")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def get_counter_route(counter_id: int):
    counter = counter_service.get_counter(counter_id, user=g.current_user)
    return jsonify({"counter": counter.to_dict()})


@counters_bp.put("/<int:counter_id>")
@require_auth
@require_min_role("ADMIN")
def update_counter_route(counter_id: int):
    payload = json_object_body()
    patch = validate_payload(model=Counter, payload=payload, policy=COUNTER_POLICY, partial=True)
    counter = counter_service.update_counter(counter_id, patch=patch)
    return jsonify({"message": "Counter updated successfully", "counter": counter.to_dict()})


@counters_bp.post("/<int:counter_id>/orders")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def deliver_packets_route(counter_id: int):
    """
    Record a packet delivery to a counter.

    Request body:
    {
        "items": [{"packetSize": 5, "quantity": 10}],
        "notes": "...",        // optional
        "date": "YYYY-MM-DD"   // optional, defaults to today
    }
    """
    data = json_object_body()
    pairs = validate_packet_items(data, quantity_key="quantity")
    notes = _notes(data)
    raw_date = data.get("date")
    if raw_date is not None and not isinstance(raw_date, str):
        raise ValidationError("date must be a date (YYYY-MM-DD)")
    day = parse_date_arg(raw_date, "date")

    _check_scope(counter_id)
    counter_order = counter_service.record_delivery(
        counter_id=counter_id,
        pairs=pairs,
        created_by_user_id=g.current_user.id,
        notes=notes,
        day=day,
    )
    inventory = counter_service.get_day_inventory(counter_id, counter_order.order_date)
    return jsonify({
        "message": "Counter order created successfully",
        "order": counter_order.to_dict(),
        "inventory": [row.to_dict() for row in inventory],
    }), 201


@counters_bp.post("/<int:counter_id>/sales")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def sell_packets_route(counter_id: int):
    """
    Record packets sold at a counter today.

    Request body:
    {
        "items": [{"packetSize": 5, "soldPackets": 3}]
    }

    All-or-nothing: any shortage rejects the whole request with 400.
    """
    data = json_object_body()
    pairs = validate_packet_items(data, quantity_key="soldPackets")

    _check_scope(counter_id)
    rows = counter_service.record_sale(counter_id=counter_id, pairs=pairs)
    return jsonify({
        "message": "Sales recorded successfully",
        "inventory": [row.to_dict() for row in rows],
        "totals": counter_service.summarize_inventory(rows),
    })


@counters_bp.get("/<int:counter_id>/inventory")
@require_auth
@require_min_role("COUNTER_OPERATOR")
def counter_inventory_route(counter_id: int):
    """Query params: date (YYYY-MM-DD, optional, defaults to today)."""
    counter = counter_service.get_counter(counter_id, user=g.current_user)
    day = parse_date_arg(request.args.get("date"), "date")
    rows = counter_service.get_day_inventory(counter.id, day)
    return jsonify({
        "counter": counter.to_dict(),
        "inventory": [row.to_dict() for row in rows],
        "totals": counter_service.summarize_inventory(rows),
    })
