"""
auth/store.py -- SQLAlchemy Core persistence layer for users.

Pattern: Repository + Data Mapper (same as catalog/store.py).
UserStore is the repository; _row_to_user is the mapper. Route and dependency
code never touches SQL directly.

A UserStore wraps one Connection checked out for the current request (see
core.db.get_connection). Every write commits immediately; there are no
multi-statement transactions.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Column names in update_user() come from UPDATABLE_FIELDS, never from raw
  request keys. Unknown keys raise ValueError.

  Email uniqueness is case-insensitive. email_taken() is the friendly
  pre-check; the unique index on lower(email) is what actually holds under
  concurrent registrations. A lost race surfaces as IntegrityError.
"""

from __future__ import annotations

from sqlalchemy import Column, Index, Integer, String, Table, func
from sqlalchemy.engine import Connection

from auth.models import User
from core.db import metadata, valid_row_id

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("full_name", String(255), nullable=False),
    Column("email", String(255), nullable=False),
    Column("phone_no", String(255), nullable=False),
    Column("password", String(255), nullable=False),  # bcrypt digest
    Column("address", String(255), nullable=False),
    Column("city", String(255), nullable=False),
    Column("state", String(255), nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
)

Index("uq_users_email_lower", func.lower(_users.c.email), unique=True)

# Domain attribute -> column. Anything outside this map cannot be written by
# update_user(). id is deliberately absent.
UPDATABLE_FIELDS: dict[str, str] = {
    "full_name": "full_name",
    "email": "email",
    "phone_no": "phone_no",
    "hashed_password": "password",
    "address": "address",
    "city": "city",
    "state": "state",
    "role": "role",
}


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User rows.

    Usage:
        with db.connect() as conn:
            store = UserStore(conn)
            user_id = store.create_user(User(...))
            user = store.get_by_email("alice@example.com")
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        """Return True if another user already has this email (case-insensitive)."""
        stmt = _users.select().where(func.lower(_users.c.email) == email.lower())
        if exclude_id is not None:
            stmt = stmt.where(_users.c.id != exclude_id)
        return self.conn.execute(stmt.limit(1)).first() is not None

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        result = self.conn.execute(
            _users.insert().values(
                full_name=user.full_name,
                email=user.email,
                phone_no=user.phone_no,
                password=user.hashed_password,
                address=user.address,
                city=user.city,
                state=user.state,
                role=user.role,
            )
        )
        self.conn.commit()
        return result.inserted_primary_key[0]

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email. Returns None if not found."""
        row = self.conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        if not valid_row_id(user_id):
            return None
        row = self.conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_users(self, limit: int, offset: int) -> list[User]:
        """Return one page of users in insertion order. Admin-only operation."""
        rows = self.conn.execute(_users.select().order_by(_users.c.id).limit(limit).offset(offset)).fetchall()
        return [_row_to_user(r) for r in rows]

    def update_user(self, user_id: int, **fields) -> bool:
        """Write exactly the given fields; everything else is left untouched.

        Keys are domain attribute names from UPDATABLE_FIELDS (so a new
        password arrives as hashed_password). Returns True if a row was
        updated, False if user_id was not found.
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        if not fields:
            raise ValueError("update_user() needs at least one field")
        if not valid_row_id(user_id):
            return False
        values = {UPDATABLE_FIELDS[k]: v for k, v in fields.items()}
        result = self.conn.execute(_users.update().where(_users.c.id == user_id).values(**values))
        self.conn.commit()
        return result.rowcount > 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a user record. Returns True if deleted, False if not found.

        Tokens already issued to the user stay valid until they expire.
        """
        if not valid_row_id(user_id):
            return False
        result = self.conn.execute(_users.delete().where(_users.c.id == user_id))
        self.conn.commit()
        return result.rowcount > 0


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        full_name=row.full_name,
        email=row.email,
        phone_no=row.phone_no,
        hashed_password=row.password,
        address=row.address,
        city=row.city,
        state=row.state,
        role=row.role,
    )
