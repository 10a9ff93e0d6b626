"""
catalog/models.py -- Domain dataclass for the drug catalog.

Pure data container with zero logic. Uniqueness checks and partial updates
live in catalog/store.py.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Drug:
    """A catalog entry.

    name is unique ignoring case. price is not constrained to be positive.
    id is None before the record is written to the database.
    """

    name: str
    description: str
    price: float
    stock: int
    id: int | None = None
