"""
api/params.py -- Lenient path and query parameter parsing shared by routers.

Path ids and pagination values are declared as plain strings on the routes
and parsed here, so a bad id yields our own InvalidInput rather than
FastAPI's generic validation error, and bad pagination values fall back to
defaults instead of failing the request.
"""

import re
from typing import Optional

from fastapi import Query

from core.errors import InvalidInput

DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0

# LIMIT and OFFSET are 64-bit on both SQLite and PostgreSQL.
_MAX_PAGE_VALUE = 2**63 - 1

# Decimal digits with an optional leading minus; int() alone would accept "1_000".
# The digit cap keeps int() clear of its string-conversion limit.
_INTEGER = re.compile(r"-?[0-9]{1,4000}")


def parse_id(raw: str) -> int:
    """Parse a numeric path id. Raises InvalidInput("Invalid ID format") otherwise."""
    if not _INTEGER.fullmatch(raw):
        raise InvalidInput("Invalid ID format")
    return int(raw)


def _lenient_int(raw: Optional[str], default: int) -> int:
    if raw is None or not _INTEGER.fullmatch(raw.strip()):
        return default
    value = int(raw)
    return value if abs(value) <= _MAX_PAGE_VALUE else default


class Page:
    """Offset pagination taken from ?limit=&offset=.

    Non-numeric values, and values too large for the database, silently
    become the defaults. A limit of zero or less also becomes the default,
    and a negative offset becomes zero.

    Use as a FastAPI dependency:
        def route(page: Page = Depends()): ...
    """

    def __init__(self, limit: Optional[str] = Query(None), offset: Optional[str] = Query(None)) -> None:
        self.limit = _lenient_int(limit, DEFAULT_LIMIT)
        if self.limit <= 0:
            self.limit = DEFAULT_LIMIT
        self.offset = max(_lenient_int(offset, DEFAULT_OFFSET), 0)
