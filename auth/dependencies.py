"""
auth/dependencies.py -- Session glue and FastAPI Depends() helpers.

The session itself (signed cookie, expiry) belongs to Starlette's
SessionMiddleware, mounted in api/main.py. This module only decides what goes
into request.session and what comes out of it:

  authenticate_request() -- authenticate_user() wired to app.state.
  login_session()        -- Anonymous -> Authenticated. Stores serialize_user().
  try_get_current_user() -- resume. Resolves the token with deserialize_user();
                            a stale token clears the session (back to Anonymous).
  logout_session()       -- Authenticated -> Anonymous.

get_current_user() wraps try_get_current_user() and raises HTTP 401 if the
request is anonymous.

Layer rule: no imports from api/ or web/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from auth.models import AuthResult, User
from auth.service import authenticate_user, deserialize_user, serialize_user
from auth.store import UserStore

logger = logging.getLogger("locallogin.auth")

SESSION_USER_KEY = "user_id"


def authenticate_request(request: Request, username: str, password: str) -> AuthResult:
    """Run authenticate_user() with the collaborators held on app.state."""
    state = request.app.state
    return authenticate_user(
        state.user_store,
        state.hasher,
        username,
        password,
        equalize_timing=getattr(state, "login_timing_equalization", False),
    )


def login_session(request: Request, user: User) -> None:
    """Bind user to the current session.

    Clears whatever the session held before so no data from an earlier
    anonymous or authenticated identity carries over.
    """
    request.session.clear()
    request.session[SESSION_USER_KEY] = serialize_user(user)


def logout_session(request: Request) -> None:
    """Drop the session contents. SessionMiddleware then expires the cookie."""
    request.session.clear()


def try_get_current_user(request: Request) -> User | None:
    """Return the User bound to this request's session, or None if anonymous.

    StoreUnavailableError propagates -- a store outage is not the same thing
    as being logged out.
    """
    token = request.session.get(SESSION_USER_KEY)
    if token is None:
        return None
    user_store: UserStore = request.app.state.user_store
    user = deserialize_user(user_store, token)
    if user is None:
        logger.info("Session referenced unknown user id %r; treating as anonymous", token)
        request.session.clear()
    return user


def get_current_user(request: Request) -> User:
    """Require an authenticated session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = try_get_current_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user
