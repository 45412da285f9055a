from __future__ import annotations
from datetime import date, datetime

from dataclasses import dataclass, field
from typing import Any

from flask import request
from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .money import MAX_AMOUNT_CENTS, parse_amount_cents
from .time_utils import parse_iso_date, parse_iso_datetime

# Largest value a 64-bit INTEGER column holds
MAX_DB_INTEGER = 2**63 - 1

# Upper bound for per-line quantities and packet sizes
MAX_LINE_QUANTITY = 1_000_000


class FieldErrors:
    """Collects per-field problems so a request reports all of them at once."""

    def __init__(self):
        self.details: list[dict] = []

    def add(self, field_name: str, message: str) -> None:
        self.details.append({"field": field_name, "message": message})

    def __bool__(self) -> bool:
        return bool(self.details)

    def raise_if_any(self, message: str = "Please provide valid input") -> None:
        if self.details:
            raise ValidationError(message, details=self.details)


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - fields: client field name -> model column key (security boundary)
    - required_on_create: client fields required for POST
    - choices: client field -> allowed values (upper-cased before checking)
    """
    fields: dict[str, str]
    required_on_create: set[str] = field(default_factory=set)
    choices: dict[str, tuple[str, ...]] = field(default_factory=dict)


def json_object_body() -> dict:
    """
    The request body as a JSON object.

    A missing or unparseable body reads as empty so required-field checks
    report it; any other JSON value (list, string, number) is rejected.
    """
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError(
            "Request body must be a JSON object",
            error="Invalid JSON payload",
            details=[{"field": "body", "message": "must be a JSON object"}],
        )
    return body


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _is_minor_unit(col) -> bool:
    return col.key.endswith("_cents") or col.key.endswith("_bps")


def _parse_int(value: Any, name: str) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    # Integral floats from JSON clients (e.g. 2.0) are accepted
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    raise ValidationError(f"{name} must be an integer")


def coerce_int(value: Any, name: str) -> int:
    """Strict integer coercion: rejects bools, floats, scientific notation and values no column can hold."""
    number = _parse_int(value, name)
    if not -MAX_DB_INTEGER <= number <= MAX_DB_INTEGER:
        raise ValidationError(f"{name} is out of range")
    return number


def coerce_amount_cents(value: Any, name: str) -> int:
    try:
        return parse_amount_cents(value)
    except ValueError as exc:
        raise ValidationError(f"{name} {exc}")


def _coerce_value(col, value: Any, name: str):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        # *_cents / *_bps columns take decimal amounts from clients
        if _is_minor_unit(col):
            return coerce_amount_cents(value, name)
        return coerce_int(value, name)

    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{name} must be a number")
        try:
            return float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false"):
            return value.strip().lower() == "true"
        raise ValidationError(f"{name} must be true or false")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{name} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{name} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
            if d is None:
                raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
            return d
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors = FieldErrors()

    if not partial:
        for name in sorted(policy.required_on_create):
            if payload.get(name) is None or payload.get(name) == "":
                errors.add(name, f"{name} is required")

    cols = _columns_by_key(model)
    patch: dict = {}

    for name, raw in payload.items():
        # Reject unknown / non-writable fields
        if name not in policy.fields:
            errors.add(name, f"Field not allowed: {name}")
            continue
        col = cols[policy.fields[name]]

        # NULL handling
        if raw is None:
            if not col.nullable and (partial or name not in policy.required_on_create):
                errors.add(name, f"{name} cannot be null")
            elif col.nullable:
                patch[col.key] = None
            continue

        try:
            val = _coerce_value(col, raw, name)
        except ValidationError as exc:
            errors.add(name, exc.message)
            continue

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                if name not in policy.required_on_create or partial:
                    errors.add(name, f"{name} cannot be blank")
                continue

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.add(name, f"{name} exceeds max length {col.type.length}")
                continue

        allowed = policy.choices.get(name)
        if allowed is not None and isinstance(val, str):
            val = val.upper()
            if val not in allowed:
                errors.add(name, f"{name} must be one of: {', '.join(allowed)}")
                continue

        patch[col.key] = val

    errors.raise_if_any()
    return patch


def parse_bool_arg(value: str | None) -> bool | None:
    """Query-string boolean: "true"/"false" or None when absent."""
    if value is None or value == "":
        return None
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ValidationError(f"Invalid boolean value: {value}")


def parse_int_arg(value: str | None, name: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(value, name)


def parse_date_arg(value: str | None, name: str) -> date | None:
    if value is None or value == "":
        return None
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")


def require_items(payload: dict, key: str = "items") -> list:
    items = payload.get(key)
    if not isinstance(items, list) or not items:
        raise ValidationError(
            f"{key} must be a non-empty list",
            details=[{"field": key, "message": f"{key} must be a non-empty list"}],
        )
    return items


def validate_line_items(payload: dict, *, price_key: str) -> list[dict]:
    """
    Validate product line items: [{productId, quantity, <price_key>}].

    Returns [{"product_id", "quantity", "unit_price_cents", "notes"}].
    """
    items = require_items(payload)
    errors = FieldErrors()
    lines: list[dict] = []

    for idx, item in enumerate(items):
        prefix = f"items[{idx}]"
        if not isinstance(item, dict):
            errors.add(prefix, "must be an object")
            continue
        line = {}
        for name, target, parser in (
            ("productId", "product_id", coerce_int),
            ("quantity", "quantity", coerce_int),
            (price_key, "unit_price_cents", coerce_amount_cents),
        ):
            raw = item.get(name)
            if raw is None:
                errors.add(f"{prefix}.{name}", f"{name} is required")
                continue
            try:
                line[target] = parser(raw, name)
            except ValidationError as exc:
                errors.add(f"{prefix}.{name}", exc.message)
        if "quantity" in line and line["quantity"] < 1:
            errors.add(f"{prefix}.quantity", "quantity must be at least 1")
        elif "quantity" in line and line["quantity"] > MAX_LINE_QUANTITY:
            errors.add(f"{prefix}.quantity", f"quantity cannot exceed {MAX_LINE_QUANTITY:,}")
        notes = item.get("notes")
        if notes is not None and not isinstance(notes, str):
            errors.add(f"{prefix}.notes", "notes must be a string")
        line["notes"] = notes.strip() if isinstance(notes, str) and notes.strip() else None
        lines.append(line)

    errors.raise_if_any()
    return lines


def validate_packet_items(payload: dict, *, quantity_key: str) -> list[tuple[int, int]]:
    """
    Validate packet lines: [{packetSize, <quantity_key>}] with both >= 1.

    Returns (packet_size, quantity) pairs in request order.
    """
    items = require_items(payload)
    errors = FieldErrors()
    pairs: list[tuple[int, int]] = []

    for idx, item in enumerate(items):
        prefix = f"items[{idx}]"
        if not isinstance(item, dict):
            errors.add(prefix, "must be an object")
            continue
        values = []
        for name in ("packetSize", quantity_key):
            raw = item.get(name)
            if raw is None:
                errors.add(f"{prefix}.{name}", f"{name} is required")
                continue
            try:
                value = coerce_int(raw, name)
            except ValidationError as exc:
                errors.add(f"{prefix}.{name}", exc.message)
                continue
            if value < 1:
                errors.add(f"{prefix}.{name}", f"{name} must be at least 1")
                continue
            if value > MAX_LINE_QUANTITY:
                errors.add(f"{prefix}.{name}", f"{name} cannot exceed {MAX_LINE_QUANTITY:,}")
                continue
            values.append(value)
        if len(values) == 2:
            pairs.append((values[0], values[1]))

    errors.raise_if_any()
    return pairs


def check_amount_limit(cents: int, *, field_name: str = "items") -> int:
    """Reject computed document totals that exceed the largest storable amount."""
    if cents > MAX_AMOUNT_CENTS:
        message = f"total cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}"
        raise ValidationError("Total amount is too large", details=[{"field": field_name, "message": message}])
    return cents
