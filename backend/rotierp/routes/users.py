# Overview: Flask API routes for user administration.

"""
User administration routes.

SECURITY: ADMIN+ only. Deleting a user deactivates it; super admins cannot
be deleted.
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_min_role
from ..services import user_service
from ..services.pagination import paginate, parse_page_args
from ..validation import json_object_body


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@users_bp.get("/")
@require_auth
@require_min_role("ADMIN")
def list_users_route():
    """Query params: role, status, search (name or email), page, limit."""
    page, limit = parse_page_args(request.args)
    query = user_service.list_users_query(
        role=request.args.get("role"),
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    rows, pagination = paginate(query, page=page, limit=limit)
    return jsonify({
        "message": "Users retrieved successfully",
        "data": [u.to_dict() for u in rows],
        "pagination": pagination,
    })


@users_bp.get("/stats/overview")
@require_auth
@require_min_role("ADMIN")
def user_stats_route():
    return jsonify({"message": "User statistics retrieved successfully", "stats": user_service.user_stats()})


@users_bp.get("/<int:user_id>")
@require_auth
@require_min_role("ADMIN")
def get_user_route(user_id: int):
    return jsonify({"message": "User retrieved successfully", "user": user_service.get_user(user_id).to_dict()})


@users_bp.put("/<int:user_id>")
@require_auth
@require_min_role("ADMIN")
def update_user_route(user_id: int):
    """Accepts firstName, lastName, phone, role, status and password."""
    payload = json_object_body()
    user = user_service.update_user(user_id, payload, actor=g.current_user)
    return jsonify({"message": "User updated successfully", "user": user.to_dict()})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_min_role("ADMIN")
def delete_user_route(user_id: int):
    user_service.deactivate_user(user_id)
    return jsonify({"message": "User deactivated successfully"})
