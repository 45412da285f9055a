# Overview: Flask API routes for hotels and hostels; one blueprint per venue kind.

"""
Hotel and hostel routes.

Both kinds expose the same surface, so the blueprints are built by
``make_venue_blueprint``:

- GET    /            MANAGER+   list (search, status, page, limit)
- POST   /            ADMIN+     create
- GET    /<id>        MANAGER+   venue with its 10 most recent orders
- PUT    /<id>        ADMIN+     update
- DELETE /<id>        ADMIN+     delete (orders go with it)
- POST   /<id>/orders COUNTER_OPERATOR+ packet order
- GET    /<id>/orders COUNTER_OPERATOR+ orders (date, page, limit)
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..errors import ValidationError
from ..models import Venue
from ..models.venues import VENUE_STATUSES
from ..services import venue_service
from ..services.pagination import paginate, parse_page_args
from ..validation import ModelValidationPolicy, json_object_body, parse_date_arg, validate_packet_items, validate_payload

VENUE_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "code": "code",
        "managerName": "manager_name",
        "managerPhone": "manager_phone",
        "address": "address",
        "city": "city",
        "state": "state",
        "pincode": "pincode",
        "gstNumber": "gst_number",
        "licenseNumber": "license_number",
        "status": "status",
        "openingDate": "opening_date",
        "managedBy": "managed_by_user_id",
    },
    required_on_create={"name", "code", "managerName", "managerPhone", "address", "city", "state", "pincode"},
    choices={"status": VENUE_STATUSES},
)


def make_venue_blueprint(kind: str, *, name: str, url_prefix: str, singular: str, plural: str) -> Blueprint:
    """Build the CRUD + orders blueprint for one venue kind (HOTEL or HOSTEL)."""
    bp = Blueprint(name, __name__, url_prefix=url_prefix)
    entity = venue_service.ENTITY_NAMES[kind]

    @bp.get("")
    @bp.get("/")
    @require_auth
    @require_min_role("MANAGER")
    def list_venues_route():
        page, limit = parse_page_args(request.args)
        query = venue_service.list_venues_query(
            kind,
            search=request.args.get("search"),
            status=request.args.get("status"),
        )
        rows, pagination = paginate(query, page=page, limit=limit)
        return jsonify({plural: [v.to_dict() for v in rows], "pagination": pagination})

    @bp.post("")
    @bp.post("/")
    @require_auth
    @require_min_role("ADMIN")
    def create_venue_route():
        payload = json_object_body()
        patch = validate_payload(model=Venue, payload=payload, policy=VENUE_POLICY, partial=False)
        patch.pop("status", None)
        venue = venue_service.create_venue(kind, patch=patch, created_by_user_id=g.current_user.id)
        return jsonify({"message": f"{entity} created successfully", singular: venue.to_dict()}), 201

    @bp.get("/<int:venue_id>")
    @require_auth
    @require_min_role("MANAGER")
    def get_venue_route(venue_id: int):
        venue = venue_service.get_venue(kind, venue_id)
        data = venue.to_dict()
        data["orders"] = [o.to_dict() for o in venue_service.recent_orders(venue)]
        return jsonify({"message": f"{entity} retrieved successfully", singular: data})

    @bp.put("/<int:venue_id>")
    @require_auth
    @require_min_role("ADMIN")
    def update_venue_route(venue_id: int):
        payload = json_object_body()
        patch = validate_payload(model=Venue, payload=payload, policy=VENUE_POLICY, partial=True)
        venue = venue_service.update_venue(kind, venue_id, patch=patch)
        return jsonify({"message": f"{entity} updated successfully", singular: venue.to_dict()})

    @bp.delete("/<int:venue_id>")
    @require_auth
    @require_min_role("ADMIN")
    def delete_venue_route(venue_id: int):
        venue_service.delete_venue(kind, venue_id)
        return jsonify({"message": f"{entity} deleted successfully"})

    @bp.post("/<int:venue_id>/orders")
    @require_auth
    @require_min_role("COUNTER_OPERATOR")
    def create_venue_order_route(venue_id: int):
        """Request body: {"items": [{"packetSize": 10, "quantity": 4}], "notes": "..."}"""
        data = json_object_body()
        pairs = validate_packet_items(data, quantity_key="quantity")
        notes = data.get("notes")
        if notes is not None and not isinstance(notes, str):
            raise ValidationError("notes must be a string", details=[{"field": "notes", "message": "must be a string"}])
        order = venue_service.create_venue_order(
            kind, venue_id,
            pairs=pairs,
            notes=notes.strip() if notes and notes.strip() else None,
            created_by_user_id=g.current_user.id,
        )
        return jsonify({"message": f"{entity} order created successfully", "order": order.to_dict()}), 201

    @bp.get("/<int:venue_id>/orders")
    @require_auth
    @require_min_role("COUNTER_OPERATOR")
    def list_venue_orders_route(venue_id: int):
        page, limit = parse_page_args(request.args)
        query = venue_service.list_venue_orders_query(
            kind, venue_id, on_date=parse_date_arg(request.args.get("date"), "date"),
        )
        rows, pagination = paginate(query, page=page, limit=limit)
        return jsonify({"orders": [o.to_dict() for o in rows], "pagination": pagination})

    return bp


hotels_bp = make_venue_blueprint("HOTEL", name="hotels", url_prefix="/api/hotels", singular="hotel", plural="hotels")
hostels_bp = make_venue_blueprint("HOSTEL", name="hostels", url_prefix="/api/hostels", singular="hostel", plural="hostels")
