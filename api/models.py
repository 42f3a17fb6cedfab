"""
API request and response models for locallogin REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from auth.passwords import MAX_PASSWORD_BYTES
from auth.service import username_problem
from auth.store import MAX_USERNAME_LENGTH

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class Credentials(BaseModel):
    """Username/password pair shared by register and login.

    Usernames are taken verbatim (case-sensitive, no stripping), matching how
    the store compares them, and must fit the users.username column. The
    password byte cap mirrors bcrypt's input
    limit so hashing never rejects a validated body.
    """

    username: str = Field(min_length=1, max_length=MAX_USERNAME_LENGTH)
    password: str = Field(min_length=1)

    @field_validator("username")
    @classmethod
    def username_is_storable(cls, value: str) -> str:
        problem = username_problem(value)
        if problem:
            raise ValueError(problem)
        return value

    @field_validator("password")
    @classmethod
    def password_within_bcrypt_limit(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return value


class RegisterRequest(Credentials):
    """Request body for POST /api/v1/auth/register."""


class LoginRequest(Credentials):
    """Request body for POST /api/v1/auth/login."""


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never included."""

    id: int
    username: str
    created_at: str = ""


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=lambda: {"app": "ok"})


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    error: ErrorDetail
