from __future__ import annotations

import re

from ..errors import ValidationError
from ..extensions import db
from ..models import Setting
from ..validation import FieldErrors

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

BACKUP_FREQUENCIES = ("DAILY", "WEEKLY", "MONTHLY")

# Known company-wide keys and the kind of value each holds
GENERAL_SETTINGS = {
    "companyName": "text",
    "companyAddress": "text",
    "companyPhone": "text",
    "companyEmail": "email",
    "currency": "text",
    "timezone": "text",
    "dateFormat": "text",
    "language": "text",
    "emailNotifications": "bool",
    "smsNotifications": "bool",
    "autoBackup": "bool",
    "backupFrequency": "frequency",
}


def get_general_settings() -> dict[str, str]:
    """All stored settings as a key -> value mapping (values are text)."""
    return {s.key: s.value for s in db.session.query(Setting).order_by(Setting.key.asc()).all()}


def _normalize(key: str, value, errors: FieldErrors) -> str | None:
    kind = GENERAL_SETTINGS[key]
    if kind == "bool":
        if not isinstance(value, bool):
            errors.add(key, f"{key} must be a boolean")
            return None
        return "true" if value else "false"
    if not isinstance(value, str):
        errors.add(key, f"{key} must be a string")
        return None
    value = value.strip()
    if kind == "email" and value and not EMAIL_RE.match(value):
        errors.add(key, f"{key} must be a valid email")
        return None
    if kind == "frequency":
        value = value.upper()
        if value not in BACKUP_FREQUENCIES:
            errors.add(key, f"{key} must be one of: {', '.join(BACKUP_FREQUENCIES)}")
            return None
    return value


def update_general_settings(payload: dict) -> dict[str, str]:
    """
    Upsert the given keys. Unknown keys and bad values are rejected as a
    whole; nothing is written unless every key validates.
    """
    if not isinstance(payload, dict) or not payload:
        raise ValidationError("No settings provided")

    errors = FieldErrors()
    updates: dict[str, str] = {}
    for key, value in payload.items():
        if key not in GENERAL_SETTINGS:
            errors.add(key, f"Unknown setting: {key}")
            continue
        normalized = _normalize(key, value, errors)
        if normalized is not None:
            updates[key] = normalized
    errors.raise_if_any("Please provide valid settings")

    existing = {s.key: s for s in db.session.query(Setting).filter(Setting.key.in_(updates)).all()}
    for key, value in updates.items():
        setting = existing.get(key)
        if setting is None:
            db.session.add(Setting(key=key, value=value))
        else:
            setting.value = value
    db.session.commit()
    return updates
