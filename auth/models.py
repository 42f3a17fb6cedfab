"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these only own the shape.

AuthResult is a tagged union of three frozen dataclasses. Callers branch with
isinstance() (or match/case) instead of inspecting a None return, so "wrong
password", "unknown user" and "store down" can never be confused.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from auth.exceptions import StoreUnavailableError


@dataclass
class User:
    """A registered account.

    password_hash is the bcrypt output and is never empty once the row exists.
    It is only ever compared through PasswordHasher.verify(), never with ==.
    """

    username: str
    password_hash: str
    id: int | None = None
    created_at: str | None = None


class FailureReason(str, Enum):
    """Why a credential check was rejected. Both are shown to users identically."""

    INCORRECT_USERNAME = "incorrect_username"
    INCORRECT_PASSWORD = "incorrect_password"


@dataclass(frozen=True)
class AuthSuccess:
    user: User


@dataclass(frozen=True)
class AuthFailure:
    reason: FailureReason


@dataclass(frozen=True)
class AuthError:
    """The credential store could not answer. The login attempt is not retried."""

    cause: StoreUnavailableError


AuthResult = Union[AuthSuccess, AuthFailure, AuthError]
