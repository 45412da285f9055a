# Overview: Signed access and refresh tokens (HS256 JWT) for stateless API sessions.

from __future__ import annotations

import time
import uuid
from typing import Any

import jwt
from flask import current_app

from ..errors import AuthError

ALGORITHM = "HS256"


def _secret_for(token_type: str) -> str:
    if token_type == "refresh":
        return current_app.config["JWT_REFRESH_SECRET"]
    return current_app.config["JWT_SECRET"]


def sign_token(user, *, token_type: str = "access", ttl_seconds: int | None = None) -> str:
    """
    Sign a JWT for a user.

    Access tokens carry the role so clients can gate UI without a round
    trip; authorization still reloads the user on every request.
    """
    if ttl_seconds is None:
        if token_type == "refresh":
            ttl_seconds = current_app.config["JWT_REFRESH_TOKEN_EXPIRES"]
        else:
            ttl_seconds = current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]

    now = int(time.time())
    payload = {
        "sub": str(user.id),
        "iat": now,
        "exp": now + ttl_seconds,
        "type": token_type,
        "jti": str(uuid.uuid4()),
    }
    if token_type == "access":
        payload["email"] = user.email
        payload["role"] = user.role
    return jwt.encode(payload, _secret_for(token_type), algorithm=ALGORITHM)


def issue_token_pair(user) -> dict:
    return {
        "accessToken": sign_token(user, token_type="access"),
        "refreshToken": sign_token(user, token_type="refresh"),
    }


def decode_token(token: str, *, token_type: str = "access") -> dict[str, Any]:
    """
    Verify signature, expiry and token type.

    Raises AuthError("Token expired") or AuthError("Invalid token").
    """
    try:
        payload = jwt.decode(token, _secret_for(token_type), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")

    if payload.get("type") != token_type or "sub" not in payload:
        raise AuthError("Invalid token")
    try:
        payload["user_id"] = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthError("Invalid token")
    return payload
