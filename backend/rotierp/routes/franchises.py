# Overview: Flask API routes for franchise operations; parses input and returns JSON responses.

"""
Franchise routes.

SECURITY: All routes require authentication.
- Reads: FRANCHISE_MANAGER+ (franchise managers only see franchises they manage)
- Create/update: ADMIN+
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..models import Franchise
from ..models.franchises import FRANCHISE_STATUSES
from ..services import franchise_service
from ..services.pagination import paginate, parse_page_args
from ..validation import ModelValidationPolicy, json_object_body, validate_payload

FRANCHISE_POLICY = ModelValidationPolicy(
    fields={
        "name": "name",
        "code": "code",
        "ownerName": "owner_name",
        "ownerEmail": "owner_email",
        "ownerPhone": "owner_phone",
        "address": "address",
        "city": "city",
        "state": "state",
        "pincode": "pincode",
        "gstNumber": "gst_number",
        "licenseNumber": "license_number",
        "royaltyRate": "royalty_rate_bps",
        "status": "status",
        "openingDate": "opening_date",
        "managedBy": "manager_user_id",
    },
    required_on_create={"name", "code", "ownerName"},
    choices={"status": FRANCHISE_STATUSES},
)

franchises_bp = Blueprint("franchises", __name__, url_prefix="/api/franchises")


@franchises_bp.get("")
@franchises_bp.get("/")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def list_franchises_route():
    """Query params: status, search (name, code, owner, city), page, limit."""
    page, limit = parse_page_args(request.args)
    query = franchise_service.list_franchises_query(
        user=g.current_user,
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({
        "message": "Franchises retrieved successfully",
        "data": [f.to_dict(include_counters=True) for f in rows],
        "pagination": pagination,
    })


@franchises_bp.post("")
@franchises_bp.post("/")
@require_auth
@require_min_role("ADMIN")
def create_franchise_route():
    """royaltyRate is a percentage with up to two decimals (5.5 means 5.5%)."""
    payload = json_object_body()
    patch = validate_payload(model=Franchise, payload=payload, policy=FRANCHISE_POLICY, partial=False)
    patch.pop("status", None)
    franchise = franchise_service.create_franchise(patch=patch, created_by_user_id=g.current_user.id)
    return jsonify({"message": "Franchise created successfully", "franchise": franchise.to_dict()}), 201


@franchises_bp.get("/<int:franchise_id>")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def get_franchise_route(franchise_id: int):
    franchise = franchise_service.get_franchise(franchise_id, user=g.current_user)
    return jsonify({
        "message": "Franchise retrieved successfully",
        "franchise": franchise.to_dict(include_counters=True),
    })


@franchises_bp.put("/<int:franchise_id>")
@require_auth
@require_min_role("ADMIN")
def update_franchise_route(franchise_id: int):
    payload = json_object_body()
    patch = validate_payload(model=Franchise, payload=payload, policy=FRANCHISE_POLICY, partial=True)
    franchise = franchise_service.update_franchise(franchise_id, patch=patch)
    return jsonify({"message": "Franchise updated successfully", "franchise": franchise.to_dict()})


@franchises_bp.get("/<int:franchise_id>/stats")
@require_auth
@require_min_role("FRANCHISE_MANAGER")
def franchise_stats_route(franchise_id: int):
    stats = franchise_service.franchise_stats(franchise_id, user=g.current_user)
    return jsonify({"message": "Franchise statistics retrieved successfully", "stats": stats})
