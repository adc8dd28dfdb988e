"""
Query-string helpers shared by the listing endpoints.

Sorting is restricted to an explicit allowlist per listing: API field ->
model attribute.
"""
from __future__ import annotations

from typing import Mapping, Optional, Tuple

from services.aggregation import ASC, DESC
from utils.errors import ValidationError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 5
MAX_LIMIT = 100
# OFFSET is bound as a signed 64-bit integer by the SQL backends
MAX_OFFSET = 2 ** 62

_DIRECTIONS = {
    "1": ASC,
    "asc": ASC,
    "ascending": ASC,
    "-1": DESC,
    "desc": DESC,
    "descending": DESC,
}


def _positive_int(raw: Optional[str], name: str, default: int) -> int:
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    return value if value >= 1 else default


def parse_pagination(args: Mapping[str, str]) -> Tuple[int, int]:
    """page/limit from query args; non-positive values fall back to the defaults."""
    page = _positive_int(args.get("page"), "page", DEFAULT_PAGE)
    limit = min(_positive_int(args.get("limit"), "limit", DEFAULT_LIMIT), MAX_LIMIT)
    if (page - 1) * limit >= MAX_OFFSET:
        raise ValidationError("page is out of range")
    return page, limit


def parse_sort(args: Mapping[str, str], allowed: Mapping[str, str], default: str = "createdAt") -> Tuple[str, int]:
    """
    Validate sortBy/sortType against ``allowed`` and return
    (model attribute, direction).
    """
    sort_by = (args.get("sortBy") or default).strip()
    column = allowed.get(sort_by)
    if not column:
        raise ValidationError(
            f"Unsupported sort field: {sort_by}",
            errors={"sortBy": sorted(allowed)},
        )
    raw_type = (args.get("sortType") or "1").strip().lower()
    direction = _DIRECTIONS.get(raw_type)
    if direction is None:
        raise ValidationError("sortType must be one of 1, -1, asc, desc")
    return column, direction
