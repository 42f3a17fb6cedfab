"""
auth/service.py -- Authenticator, registration, and session identity codec.

All three take their collaborators (UserStore, PasswordHasher) as arguments.
Nothing here holds a module-level store or hasher; the app lifespan builds
both and routes pass them in from app.state.

Username enumeration via timing:
  authenticate_user() returns INCORRECT_USERNAME without running bcrypt when
  the username is unknown, so an unknown-user response is measurably faster
  than a wrong-password one. Pass equalize_timing=True (wired to the
  LOGIN_TIMING_EQUALIZATION setting) to run a dummy verify on that branch.
  The returned reason is the same either way.

Session codec:
  serialize_user() stores only the user id in the session. deserialize_user()
  resolves it on each request; a token that no longer maps to a row yields
  None (anonymous), not an error.
"""

from __future__ import annotations

import logging
from typing import Any

from auth.exceptions import StoreUnavailableError
from auth.models import AuthError, AuthFailure, AuthResult, AuthSuccess, FailureReason, User
from auth.passwords import PasswordHasher
from auth.store import MAX_USERNAME_LENGTH, UserStore

logger = logging.getLogger("locallogin.auth")


# ---------------------------------------------------------------------------
# Username rules
# ---------------------------------------------------------------------------


def username_problem(username: str) -> str | None:
    """Return why username cannot be stored, or None if it can.

    Checked before the store sees the value so an over-long or NUL-bearing
    name is a client error, not a driver error.
    """
    if not username:
        return "Username must not be empty."
    if len(username) > MAX_USERNAME_LENGTH:
        return f"Username must be at most {MAX_USERNAME_LENGTH} characters."
    if "\x00" in username:
        return "Username must not contain NUL characters."
    return None


# ---------------------------------------------------------------------------
# Authenticator
# ---------------------------------------------------------------------------


def authenticate_user(
    store: UserStore,
    hasher: PasswordHasher,
    username: str,
    password: str,
    *,
    equalize_timing: bool = False,
) -> AuthResult:
    """Check a username/password pair against the credential store.

    Read-only. Never raises for a store outage: the StoreUnavailableError is
    returned inside AuthError so the caller decides how to surface it.

    A username no account could have (see username_problem) is rejected as
    INCORRECT_USERNAME without a store lookup.
    """
    try:
        user = None if username_problem(username) else store.get_by_username(username)
    except StoreUnavailableError as exc:
        return AuthError(cause=exc)

    if user is None:
        if equalize_timing:
            hasher.verify_dummy(password)
        logger.info("Login rejected for %r: %s", username, FailureReason.INCORRECT_USERNAME.value)
        return AuthFailure(reason=FailureReason.INCORRECT_USERNAME)

    if not hasher.verify(password, user.password_hash):
        logger.info("Login rejected for %r: %s", username, FailureReason.INCORRECT_PASSWORD.value)
        return AuthFailure(reason=FailureReason.INCORRECT_PASSWORD)

    if hasher.needs_rehash(user.password_hash):
        logger.info("Stored hash for %r uses a bcrypt cost other than %d", username, hasher.rounds)
    return AuthSuccess(user=user)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def register_user(store: UserStore, hasher: PasswordHasher, username: str, password: str) -> int:
    """Hash password and insert a new user. Returns the new user id.

    Raises:
        ValueError: username cannot be stored, or password is empty or
            longer than bcrypt accepts.
        DuplicateUsernameError: username is taken (UNIQUE constraint).
        StoreUnavailableError: the store could not be reached.
    """
    problem = username_problem(username)
    if problem:
        raise ValueError(problem)
    password_hash = hasher.hash(password)
    user_id = store.create_user(username, password_hash)
    logger.info("Registered user %r (id=%s)", username, user_id)
    return user_id


# ---------------------------------------------------------------------------
# Session identity codec
# ---------------------------------------------------------------------------


def serialize_user(user: User) -> int:
    """Return the value kept in the session for an authenticated user: its id."""
    if user.id is None:
        raise ValueError("Cannot serialize a user that has not been stored.")
    return user.id


def deserialize_user(store: UserStore, token: Any) -> User | None:
    """Resolve a session token back to a User.

    Returns None when the token is missing, not an integer id, or no longer
    matches a row. StoreUnavailableError propagates.
    """
    if isinstance(token, int) and not isinstance(token, bool):
        user_id = token
    elif isinstance(token, str) and token.isascii() and token.isdigit():
        user_id = int(token)
    else:
        return None
    return store.get_by_id(user_id)
