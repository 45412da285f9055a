# Overview: Service-layer operations for auth; password hashing, user creation and login strategies.

"""
Authentication service.

Passwords are hashed with bcrypt (rounds from BCRYPT_ROUNDS). Which
credential check runs at login is decided by configuration through an
AuthStrategy; no business code branches on the deployment environment.

SECURITY NOTES:
- Minimum 8 characters required for new passwords
- Must contain uppercase, lowercase, digit, and special char
- Tokens are issued separately (see token_service.py)
- Inactive and suspended users cannot log in
"""

from __future__ import annotations

import re

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AuthError, ConflictError, ValidationError
from ..extensions import db
from ..models import User
from ..roles import ROLE_NAMES, Role, parse_role
from ..time_utils import utcnow
from . import token_service

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""

    def __init__(self, message: str):
        super().__init__(message, details=[{"field": "password", "message": message}])


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def _bcrypt_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def hash_password(password: str) -> str:
    """Hash a new password with bcrypt after checking its strength."""
    validate_password_strength(password)
    return _bcrypt_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. Malformed hashes verify as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def create_user(
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: str = Role.COUNTER_OPERATOR.name,
    phone: str | None = None,
    status: str = "ACTIVE",
) -> User:
    """
    Create a user with a bcrypt password hash.

    Raises ValidationError for bad input (including weak passwords) and
    ConflictError when the email is taken.
    """
    email = normalize_email(email)
    details = []
    if not EMAIL_RE.match(email):
        details.append({"field": "email", "message": "A valid email is required"})
    if not (first_name or "").strip():
        details.append({"field": "firstName", "message": "firstName is required"})
    if not (last_name or "").strip():
        details.append({"field": "lastName", "message": "lastName is required"})
    parsed_role = parse_role(role)
    if parsed_role is None:
        details.append({"field": "role", "message": f"role must be one of: {', '.join(ROLE_NAMES)}"})
    if details:
        raise ValidationError("Please provide valid user details", details=details)

    if db.session.query(User.id).filter_by(email=email).first():
        raise ConflictError("User with this email already exists", error="User already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        role=parsed_role.name,
        status=status,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("User with this email already exists", error="User already exists")
    return user


class AuthStrategy:
    """Checks credentials and returns the authenticated User or raises AuthError."""

    name = "base"

    def authenticate(self, email: str, password: str) -> User:
        raise NotImplementedError


class DatabaseAuthStrategy(AuthStrategy):
    """Verifies the password against the stored bcrypt hash."""

    name = "database"

    def authenticate(self, email: str, password: str) -> User:
        user = db.session.query(User).filter_by(email=normalize_email(email)).first()
        if not user or not verify_password(password, user.password_hash):
            raise AuthError("Invalid email or password", error="Invalid credentials")
        return user


class FixtureAuthStrategy(AuthStrategy):
    """
    Demo accounts from configuration.

    A matching fixture login is materialised as a real users row so the
    issued tokens resolve through the same lookup as any other account.
    """

    name = "fixture"

    def __init__(self, users: dict, password: str):
        self.users = {normalize_email(k): v for k, v in users.items()}
        self.password = password

    def authenticate(self, email: str, password: str) -> User:
        email = normalize_email(email)
        fixture = self.users.get(email)
        if fixture is None or password != self.password:
            raise AuthError("Invalid email or password", error="Invalid credentials")

        user = db.session.query(User).filter_by(email=email).first()
        if user is None:
            first_name, last_name, role = fixture
            user = User(
                email=email,
                password_hash=_bcrypt_hash(password),
                first_name=first_name,
                last_name=last_name,
                role=role,
                status="ACTIVE",
            )
            db.session.add(user)
            db.session.flush()
        return user


def get_auth_strategy() -> AuthStrategy:
    name = current_app.config.get("AUTH_STRATEGY", "database")
    if name == "fixture":
        return FixtureAuthStrategy(
            current_app.config.get("FIXTURE_USERS", {}),
            current_app.config.get("FIXTURE_PASSWORD", ""),
        )
    if name == "database":
        return DatabaseAuthStrategy()
    raise RuntimeError(f"Unknown AUTH_STRATEGY: {name}")


def authenticate(email: str, password: str) -> User:
    """
    Run the configured strategy, reject non-active accounts and stamp
    last_login_at. Raises AuthError on any failure.
    """
    strategy = get_auth_strategy()
    try:
        user = strategy.authenticate(email, password)
    except AuthError:
        current_app.logger.info("Login failed for %s (strategy=%s)", normalize_email(email), strategy.name)
        raise

    if user.status != "ACTIVE":
        current_app.logger.info("Login refused for inactive user %s", user.email)
        raise AuthError(
            "Your account has been deactivated. Please contact administrator.",
            error="Account inactive",
        )

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def refresh_session(refresh_token: str) -> User:
    """Resolve a refresh token to an active user; raises AuthError otherwise."""
    try:
        claims = token_service.decode_token(refresh_token, token_type="refresh")
    except AuthError:
        raise AuthError("Refresh token is invalid or expired", error="Invalid token")

    user = db.session.get(User, claims["user_id"])
    if not user or user.status != "ACTIVE":
        raise AuthError("User not found or inactive", error="Invalid token")
    return user
