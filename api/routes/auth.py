"""
api/routes/auth.py -- Registration and login endpoints.

Routes:
  POST /api/auth/register   -- create an account; 201 {error: null, data: [user]}
  POST /api/auth/login      -- email/password login; 200 {token}

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_by_email() + verify_password().
  Unknown email and wrong password raise the same InvalidCredentials error so
  the response never reveals whether an account exists.
  Cache-Control: no-store on login responses.
  A role in the register body is honored only while
  REGISTRATION_ROLE_ENABLED is true (the default). See DESIGN.md.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.models import LoginRequest, LoginResponse, RegisterRequest, UserListEnvelope, UserOut
from auth.dependencies import get_token_service, get_user_store
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenService, authenticate_user, hash_password
from core.config import Settings, get_settings
from core.errors import Conflict, Internal, InvalidCredentials

logger = logging.getLogger("pharmabolt.auth")

# Auth policy: both endpoints are public.
router = APIRouter()

_USER_EXISTS = "User already exists. Please login."


@router.post("/auth/register", response_model=UserListEnvelope, status_code=201)
def register(
    body: RegisterRequest,
    user_store: UserStore = Depends(get_user_store),
    settings: Settings = Depends(get_settings),
) -> UserListEnvelope:
    """Create a new account with a bcrypt-hashed password.

    The email check ignores case. The unique index on lower(email) catches
    the race where two registrations for the same address pass the check at
    the same time.
    """
    if user_store.email_taken(body.email):
        raise Conflict(_USER_EXISTS)

    role = "user"
    if body.role is not None and settings.registration_role_enabled:
        role = body.role.value

    new_user = User(
        full_name=body.full_name,
        email=body.email,
        phone_no=body.phone_no,
        hashed_password=hash_password(body.password),
        address=body.address,
        city=body.city,
        state=body.state,
        role=role,
    )
    try:
        user_id = user_store.create_user(new_user)
    except IntegrityError as exc:
        raise Conflict(_USER_EXISTS) from exc

    created = user_store.get_by_id(user_id)
    if created is None:
        raise Internal("User not found after write.")
    logger.info("Registered user id=%d role=%s", user_id, role)
    return UserListEnvelope(data=[UserOut.from_user(created)])


@router.post("/auth/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    user_store: UserStore = Depends(get_user_store),
    tokens: TokenService = Depends(get_token_service),
) -> JSONResponse:
    """Exchange email and password for a bearer token valid for one hour."""
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.info("Failed login attempt")
        raise InvalidCredentials()

    token = tokens.issue(user.id, user.role)
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp
