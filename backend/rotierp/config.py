from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name)
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/rotierp.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///rotierp.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Access and refresh tokens are signed with separate HS256 secrets of at least 32 bytes
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-jwt-access-secret-change-me-in-production")
    JWT_REFRESH_SECRET = os.environ.get("JWT_REFRESH_SECRET", "dev-jwt-refresh-secret-change-me-in-production")
    JWT_ACCESS_TOKEN_EXPIRES = _env_int("JWT_EXPIRES_IN", 7 * 24 * 60 * 60)
    JWT_REFRESH_TOKEN_EXPIRES = _env_int("JWT_REFRESH_EXPIRES_IN", 30 * 24 * 60 * 60)

    # "database" verifies bcrypt hashes; "fixture" accepts the demo accounts below
    AUTH_STRATEGY = os.environ.get("AUTH_STRATEGY", "database")
    FIXTURE_PASSWORD = os.environ.get("FIXTURE_PASSWORD", "admin123")
    FIXTURE_USERS = {
        "superadmin@rotifactory.com": ("Super", "Admin", "SUPER_ADMIN"),
        "admin@rotifactory.com": ("Factory", "Admin", "ADMIN"),
        "manager@rotifactory.com": ("Store", "Manager", "MANAGER"),
        "franchise@rotifactory.com": ("Franchise", "Manager", "FRANCHISE_MANAGER"),
        "counter@rotifactory.com": ("Counter", "Operator", "COUNTER_OPERATOR"),
    }

    BCRYPT_ROUNDS = _env_int("BCRYPT_ROUNDS", 12)

    # Flat tax applied to (subtotal - discount) on counter orders, in basis points
    ORDER_TAX_RATE_BPS = _env_int("ORDER_TAX_RATE_BPS", 500)

    CORS_ALLOWED_ORIGINS = _env_list(
        "CORS_ALLOWED_ORIGINS",
        (
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:5174",
            "http://localhost:4173",
        ),
    )

    # Directory for database snapshots; defaults to <instance path>/backups
    BACKUP_DIR = os.environ.get("BACKUP_DIR")

    # Include exception text in 500 responses (never enable in production)
    EXPOSE_ERROR_DETAILS = os.environ.get("EXPOSE_ERROR_DETAILS", "false").lower() == "true"
