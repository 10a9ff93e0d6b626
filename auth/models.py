"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and routes do
the work; catalog/models.py follows the same approach for drugs.

Layer rule: no imports from api/, catalog/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    hashed_password is the bcrypt digest; the plaintext is never stored.
    id is None before the record is written to the database.
    """

    full_name: str
    email: str
    phone_no: str
    address: str
    city: str
    state: str
    hashed_password: str
    role: str = "user"  # "admin" | "user"
    id: int | None = None


@dataclass(frozen=True)
class Claims:
    """Identity decoded from a bearer token. Lives for one request only."""

    id: int
    role: str
    exp: int
