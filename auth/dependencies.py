"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

authenticate() reads the Authorization: Bearer <token> header, verifies the
token, and attaches the decoded Claims to request.state.identity. It never
queries the database: role and existence come from the token alone.

authorize(role) builds a dependency that runs authenticate() first, then
compares the caller's role to the required one by exact string equality.
Because it depends on authenticate(), an anonymous request to a role-gated
route always fails with 401 before the role check could produce 403.

Layer rule: no imports from api/ or catalog/.
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, Request
from sqlalchemy.engine import Connection

from auth.models import Claims
from auth.store import UserStore
from auth.tokens import InvalidToken, TokenService
from core.db import get_connection
from core.errors import Forbidden, Unauthenticated

_MISSING = "Authentication token missing"
_INVALID = "Invalid authentication token"
_DENIED = "Access denied: insufficient permissions"


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


def get_user_store(conn: Connection = Depends(get_connection)) -> UserStore:
    return UserStore(conn)


def authenticate(request: Request, tokens: TokenService = Depends(get_token_service)) -> Claims:
    """Require a valid bearer token. Raises Unauthenticated (401) otherwise.

    Use as a FastAPI dependency:
        @router.put("/users/update")
        def route(identity: Claims = Depends(authenticate)): ...
    """
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.strip().partition(" ")
    token = token.strip()
    if not token:
        raise Unauthenticated(_MISSING)
    if scheme.lower() != "bearer":
        raise Unauthenticated(_INVALID)
    try:
        claims = tokens.verify(token)
    except InvalidToken:
        raise Unauthenticated(_INVALID) from None
    request.state.identity = claims
    return claims


def authorize(required_role: str) -> Callable[..., Claims]:
    """Return a dependency that admits only identities holding required_role.

    Use as a FastAPI dependency:
        @router.post("/drugs", dependencies=[Depends(authorize("admin"))])
    """

    def guard(identity: Claims = Depends(authenticate)) -> Claims:
        if identity.role != required_role:
            raise Forbidden(_DENIED)
        return identity

    return guard


require_admin = authorize("admin")
