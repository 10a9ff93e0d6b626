"""
api/routes/users.py -- User administration and self-service routes.

Routes (registration order matters: /users/update must precede /users/{id}):
  GET    /users?limit=&offset=   -- list accounts (admin)
  PUT    /users/update           -- edit own account (any authenticated user)
  PUT    /users/{user_id}        -- edit any account, including role (admin)
  DELETE /users/{user_id}        -- delete account, returns the removed row (admin)

Both PUT routes are partial updates. The editable fields are fixed by the
request models: self-edit can never touch id or role, admin-edit can change
role but never id. A new password is hashed before it reaches the store.

Deleting or demoting a user does not revoke tokens already issued to them.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError

from api.models import UserAdminUpdate, UserEnvelope, UserListEnvelope, UserOut, UserSelfUpdate
from api.params import Page, parse_id
from auth.dependencies import authenticate, get_user_store, require_admin
from auth.models import Claims, User
from auth.store import UserStore
from auth.tokens import hash_password
from core.errors import Conflict, InvalidInput, NotFound

logger = logging.getLogger("pharmabolt.api")

router = APIRouter()


def _not_found(user_id: int) -> NotFound:
    return NotFound(f"No user with id {user_id} was found")


def _apply_changes(user_store: UserStore, user_id: int, changes: dict) -> User:
    """Validate and write a partial update, then return the fresh row."""
    if not changes:
        raise InvalidInput("No fields to update.")

    email = changes.get("email")
    if email is not None and user_store.email_taken(email, exclude_id=user_id):
        raise Conflict(f"User with email {email} already exists.")

    if "password" in changes:
        changes["hashed_password"] = hash_password(changes.pop("password"))

    try:
        updated = user_store.update_user(user_id, **changes)
    except IntegrityError as exc:
        raise Conflict(f"User with email {email} already exists.") from exc
    user = user_store.get_by_id(user_id) if updated else None
    if user is None:
        raise _not_found(user_id)
    return user


@router.get("/users", response_model=UserListEnvelope, dependencies=[Depends(require_admin)])
def list_users(page: Page = Depends(), user_store: UserStore = Depends(get_user_store)) -> UserListEnvelope:
    users = user_store.list_users(limit=page.limit, offset=page.offset)
    return UserListEnvelope(data=[UserOut.from_user(u) for u in users])


@router.put("/users/update", response_model=UserEnvelope)
def update_self(
    body: UserSelfUpdate,
    identity: Claims = Depends(authenticate),
    user_store: UserStore = Depends(get_user_store),
) -> UserEnvelope:
    """Edit the caller's own account, identified by the token's id claim."""
    user = _apply_changes(user_store, identity.id, body.changes())
    return UserEnvelope(data=UserOut.from_user(user))


@router.put("/users/{user_id}", response_model=UserEnvelope)
def update_user(
    user_id: str,
    body: UserAdminUpdate,
    admin: Claims = Depends(require_admin),
    user_store: UserStore = Depends(get_user_store),
) -> UserEnvelope:
    uid = parse_id(user_id)
    if user_store.get_by_id(uid) is None:
        raise _not_found(uid)
    changes = body.changes()
    user = _apply_changes(user_store, uid, changes)
    if "role" in changes:
        logger.info("Admin id=%d set role=%s on user id=%d", admin.id, user.role, uid)
    return UserEnvelope(data=UserOut.from_user(user))


@router.delete("/users/{user_id}", response_model=UserEnvelope, dependencies=[Depends(require_admin)])
def delete_user(user_id: str, user_store: UserStore = Depends(get_user_store)) -> UserEnvelope:
    uid = parse_id(user_id)
    user = user_store.get_by_id(uid)
    if user is None:
        raise _not_found(uid)
    user_store.delete_user(uid)
    return UserEnvelope(data=UserOut.from_user(user))
