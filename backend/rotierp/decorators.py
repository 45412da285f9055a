# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import AuthError
from .extensions import db
from .models import User
from .roles import parse_role, role_at_least
from .services import token_service


def _denied(message: str):
    return jsonify({"error": "Access denied", "message": message}), 401


def require_auth(f):
    """
    Require a valid access token.

    Sets g.current_user to the token's user. Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User no longer exists or is not ACTIVE
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return _denied("No token provided")

        token = auth_header.split(" ", 1)[1].strip()

        try:
            claims = token_service.decode_token(token, token_type="access")
        except AuthError as e:
            current_app.logger.warning("Rejected token on %s: %s", request.path, e.message)
            return _denied(e.message)

        user = db.session.get(User, claims["user_id"])
        if not user:
            return _denied("User not found")
        if user.status != "ACTIVE":
            return _denied("User account is not active")

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def require_min_role(min_role: str):
    """
    Require the authenticated user's role to rank at or above ``min_role``.

    Must be stacked under @require_auth.
    """
    required = parse_role(min_role)
    if required is None:
        raise ValueError(f"Unknown role: {min_role}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(g, "current_user"):
                return _denied("Authentication required")

            current = g.current_user.role
            if not role_at_least(current, required):
                return jsonify({
                    "error": "Access denied",
                    "message": "Insufficient permissions",
                    "required": f"Minimum role: {required.name}",
                    "current": current,
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
