"""
API request and response models for the Pharmabolt REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
catalog/models.py, which own the internal domain representation. Route
handlers map between the two.

Request models forbid unknown keys, so an update body can only name columns
the resource allows. Validation failures are collected in full and turned
into a 400 by the handler in api/main.py.
"""

from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_validator,
    model_validator,
    validate_email,
)
from pydantic_core import PydanticCustomError

from auth.models import User
from catalog.models import Drug


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# Free-text fields are trimmed before their length is checked. Passwords are
# never trimmed: the bytes the client sends at registration are the bytes
# it must send at login.
_Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=255)]
_Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=5)]
_Password = Annotated[str, Field(min_length=8, max_length=255)]
_Email = Annotated[EmailStr, BeforeValidator(_strip)]

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    admin = "admin"
    user = "user"


# ---------------------------------------------------------------------------
# Partial-update base
# ---------------------------------------------------------------------------


class _PartialUpdate(BaseModel):
    """Every field optional; a field sent as null is rejected.

    Handlers read model_dump(exclude_unset=True) so only keys the client
    actually sent reach the store.
    """

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def reject_nulls(self) -> "_PartialUpdate":
        nulls = sorted(name for name in self.model_fields_set if getattr(self, name) is None)
        if nulls:
            raise ValueError(f"null is not allowed for: {', '.join(nulls)}")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, mode="json")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/auth/register."""

    model_config = ConfigDict(extra="forbid")

    full_name: _Text
    email: _Email
    phone_no: _Text
    password: _Password
    address: _Text
    city: _Text
    state: _Text
    role: Optional[RoleEnum] = None


class LoginRequest(BaseModel):
    """Request body for POST /api/auth/login. No shape checks beyond presence.

    The email is normalized the same way registration stores it, so an
    address typed with an uppercase domain still finds its account. A string
    that is not an address is looked up as sent and simply matches nothing.
    """

    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip()
        try:
            return validate_email(value)[1]
        except PydanticCustomError:
            return value


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserSelfUpdate(_PartialUpdate):
    """Request body for PUT /api/users/update. id and role are not editable here."""

    full_name: Optional[_Text] = None
    email: Optional[_Email] = None
    phone_no: Optional[_Text] = None
    password: Optional[_Password] = None
    address: Optional[_Text] = None
    city: Optional[_Text] = None
    state: Optional[_Text] = None


class UserAdminUpdate(UserSelfUpdate):
    """Request body for PUT /api/users/{id}. Admins may also change role."""

    role: Optional[RoleEnum] = None


class UserOut(BaseModel):
    """Public view of a user. The password hash is never serialized."""

    model_config = ConfigDict(frozen=True)

    id: int
    full_name: str
    email: str
    phone_no: str
    address: str
    city: str
    state: str
    role: str

    @classmethod
    def from_user(cls, user: User) -> "UserOut":
        return cls(
            id=user.id,
            full_name=user.full_name,
            email=user.email,
            phone_no=user.phone_no,
            address=user.address,
            city=user.city,
            state=user.state,
            role=user.role,
        )


class UserEnvelope(BaseModel):
    error: None = None
    data: UserOut


class UserListEnvelope(BaseModel):
    error: None = None
    data: list[UserOut]


# ---------------------------------------------------------------------------
# Drugs
# ---------------------------------------------------------------------------


class DrugCreate(BaseModel):
    """Request body for POST /api/drugs."""

    model_config = ConfigDict(extra="forbid")

    name: _Text
    description: _Description
    price: float
    stock: int


class DrugUpdate(_PartialUpdate):
    """Request body for PUT /api/drugs/{id}. Any subset of DrugCreate's fields."""

    name: Optional[_Text] = None
    description: Optional[_Description] = None
    price: Optional[float] = None
    stock: Optional[int] = None


class DrugOut(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    description: str
    price: float
    stock: int

    @classmethod
    def from_drug(cls, drug: Drug) -> "DrugOut":
        return cls(
            id=drug.id,
            name=drug.name,
            description=drug.description,
            price=drug.price,
            stock=drug.stock,
        )


class DrugEnvelope(BaseModel):
    error: None = None
    data: DrugOut


class DrugListEnvelope(BaseModel):
    error: None = None
    data: list[DrugOut]


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Client-visible error payload. Never carries a traceback."""

    model_config = ConfigDict(frozen=True)

    message: str
    details: Any = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class ValidationErrorResponse(BaseModel):
    """400 body for a request that failed schema validation."""

    model_config = ConfigDict(frozen=True)

    errors: list[str]


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
