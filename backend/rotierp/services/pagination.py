# Overview: Page/limit handling shared by list endpoints.

from __future__ import annotations

from ..errors import ValidationError
from ..validation import coerce_int

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def parse_page_args(args, *, default_limit: int = DEFAULT_LIMIT) -> tuple[int, int]:
    """Read ``page`` and ``limit`` from query args; limit is capped at MAX_LIMIT."""
    page = args.get("page")
    limit = args.get("limit")
    page = coerce_int(page, "page") if page not in (None, "") else 1
    limit = coerce_int(limit, "limit") if limit not in (None, "") else default_limit
    if page < 1:
        raise ValidationError("page must be >= 1", details=[{"field": "page", "message": "must be >= 1"}])
    if limit < 1 or limit > MAX_LIMIT:
        raise ValidationError(
            f"limit must be between 1 and {MAX_LIMIT}",
            details=[{"field": "limit", "message": f"must be between 1 and {MAX_LIMIT}"}],
        )
    return page, limit


def paginate(query, *, page: int, limit: int) -> tuple[list, dict]:
    """Apply offset/limit to a query and return (rows, pagination dict)."""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit if total > 0 else 0
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": pages,
    }
