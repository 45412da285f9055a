# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/rotierp/routes/auth.py
"""
Authentication API routes.

Access tokens are short-lived bearer JWTs; refresh tokens are signed with a
separate secret and only accepted by /refresh. Logout is a stateless
acknowledgement: the client discards both tokens.
"""

from flask import Blueprint, jsonify, g

from ..decorators import require_auth, require_min_role
from ..errors import ValidationError
from ..roles import Role, parse_role
from ..services import auth_service, token_service, user_service
from ..validation import FieldErrors, json_object_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate with email and password.

    Returns the user and a fresh access/refresh token pair.
    """
    data = json_object_body()
    email = data.get("email")
    password = data.get("password")

    errors = FieldErrors()
    if not isinstance(email, str) or not email.strip():
        errors.add("email", "email is required")
    if not isinstance(password, str) or not password:
        errors.add("password", "password is required")
    errors.raise_if_any()

    user = auth_service.authenticate(email, password)
    tokens = token_service.issue_token_pair(user)

    return jsonify({
        "message": "Login successful",
        "user": user.to_dict(),
        **tokens,
    }), 200


@auth_bp.post("/refresh")
def refresh_route():
    data = json_object_body()
    refresh_token = data.get("refreshToken")
    if not isinstance(refresh_token, str) or not refresh_token:
        raise ValidationError(
            "Refresh token is required",
            details=[{"field": "refreshToken", "message": "refreshToken is required"}],
        )

    user = auth_service.refresh_session(refresh_token)
    tokens = token_service.issue_token_pair(user)
    return jsonify({
        "message": "Token refreshed successfully",
        "user": user.to_dict(),
        **tokens,
    }), 200


@auth_bp.post("/register")
@require_auth
@require_min_role("ADMIN")
def register_route():
    """
    Create a staff account (ADMIN+).

    Self-registration is not offered; nobody may create a user with a role
    above their own.
    """
    data = json_object_body()

    role_name = data.get("role") or Role.COUNTER_OPERATOR.name
    role = parse_role(role_name)
    if role is not None:
        user_service.check_assignable_role(role, g.current_user)

    user = auth_service.create_user(
        email=data.get("email") or "",
        password=data.get("password") or "",
        first_name=data.get("firstName") or "",
        last_name=data.get("lastName") or "",
        role=role_name,
        phone=data.get("phone"),
    )
    return jsonify({"message": "User created successfully", "user": user.to_dict()}), 201


@auth_bp.post("/logout")
@require_auth
def logout_route():
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/profile")
@require_auth
def profile_route():
    return jsonify({"user": g.current_user.to_dict()}), 200
