# Overview: Ordered role hierarchy. A role grants everything granted to the
# roles ranked below it.

from __future__ import annotations

from enum import IntEnum


class Role(IntEnum):
    COUNTER_OPERATOR = 1
    FRANCHISE_MANAGER = 2
    MANAGER = 3
    ADMIN = 4
    SUPER_ADMIN = 5


ROLE_NAMES = tuple(role.name for role in Role)


def parse_role(value) -> Role | None:
    """Return the Role for a name (case-insensitive) or None when unknown."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role[value.strip().upper()]
    except KeyError:
        return None


def role_rank(value) -> int:
    """Numeric rank; unknown roles rank below every real role."""
    role = parse_role(value)
    return int(role) if role is not None else 0


def role_at_least(actual, required) -> bool:
    required_role = parse_role(required)
    if required_role is None:
        raise ValueError(f"Unknown role: {required}")
    return role_rank(actual) >= int(required_role)
