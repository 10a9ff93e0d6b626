"""
auth/tokens.py -- JWT issuance/verification, password hashing, and login.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry the user id, role, issued-at and
       expiry claims. TokenService.verify() raises InvalidToken on any failure;
       auth/dependencies.py turns that into a 401. There is no revocation list:
       a token stays valid until exp even if the account is changed or
       deleted in the meantime.

  Passwords: bcrypt used directly with a cost factor of 10. The _DUMMY_HASH
       constant enables timing equalization in authenticate_user() so
       response time does not reveal whether an email is registered.

  Secret: TokenService receives the key as a constructor argument. The API
       lifespan builds one instance from core.config.get_settings() and stores
       it on app.state; tests build their own with an injected clock.

Layer rule: no imports from api/ or catalog/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import Claims

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("pharmabolt.auth")

_ALGORITHM = "HS256"
_BCRYPT_ROUNDS = 10


class InvalidToken(Exception):
    """Signature mismatch, malformed payload, or expired token."""


# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt truncates input beyond 72 bytes. The request schemas cap passwords
    at 255 characters, so very long passphrases only differ in their prefix.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt digest.
        return False


# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("pharmabolt_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issues and verifies signed, time-limited identity tokens.

    Args:
        secret_key:     HMAC key, fixed for the life of the process.
        expire_seconds: Token lifetime from issuance (default one hour).
        clock:          Returns the current aware datetime. Only tests
                        override this.
    """

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int = 3600,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self._clock = clock

    def issue(self, user_id: int, role: str) -> str:
        """Encode a signed JWT for this identity."""
        now = self._clock()
        payload = {
            "id": user_id,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.expire_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> Claims:
        """Decode and verify a JWT. Raises InvalidToken on any failure.

        Expiry is checked against the injected clock.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"require_exp": True, "verify_exp": False},
            )
        except JWTError as exc:
            raise InvalidToken(str(exc)) from exc
        user_id = payload.get("id")
        role = payload.get("role")
        if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(role, str):
            raise InvalidToken("Token payload is missing id or role")
        exp = payload["exp"]
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise InvalidToken("Expiration Time claim (exp) must be an integer")
        if exp < self._clock().timestamp():
            raise InvalidToken("Signature has expired")
        return Claims(id=user_id, role=role, exp=exp)


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, email: str, password: str) -> User | None:
    """Check an email/password pair with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash

    Returns the User on success, None on any failure. Callers must not tell
    the two failure cases apart.
    """
    user = store.get_by_email(email)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
