"""
Settings routes.

SECURITY: ADMIN+ only. Role permissions can only be edited for roles at or
below the caller's own.
"""

from __future__ import annotations

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, require_min_role
from ..services import backup_service, permission_service, settings_service
from ..validation import json_object_body


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("/general")
@require_auth
@require_min_role("ADMIN")
def get_general_settings_route():
    return jsonify({"settings": settings_service.get_general_settings()})


@settings_bp.put("/general")
@require_auth
@require_min_role("ADMIN")
def update_general_settings_route():
    payload = json_object_body()
    settings_service.update_general_settings(payload)
    return jsonify({
        "message": "Settings updated successfully",
        "settings": settings_service.get_general_settings(),
    })


@settings_bp.get("/permissions")
@require_auth
@require_min_role("ADMIN")
def list_permissions_route():
    permissions, by_role = permission_service.list_permissions()
    return jsonify({
        "permissions": [p.to_dict() for p in permissions],
        "rolePermissions": {role: [p.to_dict() for p in granted] for role, granted in by_role.items()},
    })


@settings_bp.put("/permissions/<role>")
@require_auth
@require_min_role("ADMIN")
def update_role_permissions_route(role: str):
    """
    Replace a role's grants.

    Request body:
    {
        "permissionIds": [1, 4, 7]
    }
    """
    data = json_object_body()
    permissions = permission_service.set_role_permissions(role, data.get("permissionIds"), actor=g.current_user)
    return jsonify({
        "message": "Permissions updated successfully",
        "role": role.strip().upper(),
        "permissions": [p.to_dict() for p in permissions],
    })


@settings_bp.get("/backup")
@require_auth
@require_min_role("ADMIN")
def list_backups_route():
    backups, stats = backup_service.list_backups()
    return jsonify({"backups": [b.to_dict() for b in backups], "stats": stats})


@settings_bp.post("/backup")
@require_auth
@require_min_role("ADMIN")
def create_backup_route():
    """Request body (optional): {"type": "MANUAL" | "AUTOMATIC"}"""
    data = json_object_body()
    backup = backup_service.create_backup(backup_type=data.get("type"), created_by_user_id=g.current_user.id)
    if backup.status != "SUCCESS":
        return jsonify({"error": "Backup failed", "message": backup.error, "backup": backup.to_dict()}), 500
    return jsonify({"message": "Backup created successfully", "backup": backup.to_dict()}), 201


@settings_bp.delete("/backup/<int:backup_id>")
@require_auth
@require_min_role("ADMIN")
def delete_backup_route(backup_id: int):
    backup_service.delete_backup(backup_id)
    return jsonify({"message": "Backup deleted successfully"})
