"""
catalog/store.py -- SQLAlchemy Core persistence layer for the drug catalog.

Uses SQLAlchemy Core (not ORM) so the Drug dataclass in catalog/models.py
remains the authoritative domain representation. Swapping SQLite for
PostgreSQL is a connection string change.

Pattern: Repository + Data Mapper. DrugStore is the repository;
_row_to_drug is the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL. update_drug()
only accepts column names from UPDATABLE_FIELDS.

Name uniqueness ignores case. name_taken() is the pre-check handlers use to
return a friendly error; the unique index on lower(name) is what holds when
two requests race.

Usage:
    with db.connect() as conn:
        store = DrugStore(conn)
        drug_id = store.create_drug(Drug(name="Aspirin", description="...", price=4.5, stock=10))
        store.update_drug(drug_id, price=5.0)
        page = store.list_drugs(limit=50, offset=0)
"""

from __future__ import annotations

from sqlalchemy import Column, Float, Index, Integer, String, Table, Text, func
from sqlalchemy.engine import Connection

from catalog.models import Drug
from core.db import metadata, valid_row_id

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_drugs = Table(
    "drugs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("price", Float, nullable=False),
    Column("stock", Integer, nullable=False),
)

Index("uq_drugs_name_lower", func.lower(_drugs.c.name), unique=True)

UPDATABLE_FIELDS: frozenset[str] = frozenset({"name", "description", "price", "stock"})


class DrugStore:
    """Repository for Drug rows bound to one request-scoped connection."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def name_taken(self, name: str, exclude_id: int | None = None) -> bool:
        """Return True if another drug already uses this name, ignoring case.

        exclude_id lets a rename to a different casing of the drug's own name
        go through.
        """
        stmt = _drugs.select().where(func.lower(_drugs.c.name) == name.lower())
        if exclude_id is not None:
            stmt = stmt.where(_drugs.c.id != exclude_id)
        return self.conn.execute(stmt.limit(1)).first() is not None

    def create_drug(self, drug: Drug) -> int:
        """Insert a drug and return its ID.

        Raises sqlalchemy.exc.IntegrityError if the name is already in use.
        """
        result = self.conn.execute(
            _drugs.insert().values(
                name=drug.name,
                description=drug.description,
                price=drug.price,
                stock=drug.stock,
            )
        )
        self.conn.commit()
        return result.inserted_primary_key[0]

    def get_drug(self, drug_id: int) -> Drug | None:
        if not valid_row_id(drug_id):
            return None
        row = self.conn.execute(_drugs.select().where(_drugs.c.id == drug_id)).fetchone()
        return _row_to_drug(row) if row is not None else None

    def list_drugs(self, limit: int, offset: int) -> list[Drug]:
        """Return one page of drugs ordered by name ascending."""
        rows = self.conn.execute(
            _drugs.select().order_by(_drugs.c.name, _drugs.c.id).limit(limit).offset(offset)
        ).fetchall()
        return [_row_to_drug(r) for r in rows]

    def update_drug(self, drug_id: int, **fields) -> bool:
        """Set exactly the given columns. Unmentioned columns keep their values.

        Returns True if a row was updated, False if drug_id was not found.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown drug fields: {sorted(unknown)!r}")
        if not fields:
            raise ValueError("update_drug() needs at least one field")
        if not valid_row_id(drug_id):
            return False
        result = self.conn.execute(_drugs.update().where(_drugs.c.id == drug_id).values(**fields))
        self.conn.commit()
        return result.rowcount > 0

    def delete_drug(self, drug_id: int) -> bool:
        """Hard delete. Returns True if a row was removed."""
        if not valid_row_id(drug_id):
            return False
        result = self.conn.execute(_drugs.delete().where(_drugs.c.id == drug_id))
        self.conn.commit()
        return result.rowcount > 0


def _row_to_drug(row) -> Drug:
    return Drug(
        id=row.id,
        name=row.name,
        description=row.description,
        price=row.price,
        stock=row.stock,
    )
