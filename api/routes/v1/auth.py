"""
api/routes/v1/auth.py -- Account and session REST endpoints.

Routes:
  POST /api/v1/auth/register  -- create an account; 201, 409 on duplicate username
  POST /api/v1/auth/login     -- password login; binds the session cookie
  POST /api/v1/auth/logout    -- clears the session; 200
  GET  /api/v1/auth/me        -- current user info (requires a session)

Security:
  Login returns the same "bad_credentials" error for an unknown username and
  a wrong password. The reason is logged server-side only.
  Cache-Control: no-store on login responses.
  AuthError results are re-raised so the StoreUnavailableError handler in
  api/main.py answers 503.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, MessageResponse, RegisterRequest, UserResponse
from auth.dependencies import authenticate_request, get_current_user, login_session, logout_session
from auth.exceptions import DuplicateUsernameError
from auth.models import AuthError, AuthSuccess, User
from auth.service import register_user

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public -- login endpoint must be unauthenticated
# - POST /api/v1/auth/logout:   public -- clearing a session needs no prior auth
# - GET  /api/v1/auth/me:       requires a session (get_current_user)
router = APIRouter()


@router.post("/auth/register", response_model=UserResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> UserResponse:
    """Create an account. Does not log the new user in."""
    state = request.app.state
    try:
        user_id = register_user(state.user_store, state.hasher, body.username, body.password)
    except DuplicateUsernameError as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": "duplicate_username", "message": "A user with that username already exists."},
        ) from exc

    created = state.user_store.get_by_id(user_id)
    return _user_to_response(created)


@router.post("/auth/login", response_model=UserResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; bind the user to the session."""
    result = authenticate_request(request, body.username, body.password)
    if isinstance(result, AuthError):
        raise result.cause
    if not isinstance(result, AuthSuccess):
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    login_session(request, result.user)
    resp = JSONResponse(status_code=200, content=_user_to_response(result.user).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> MessageResponse:
    """End the session."""
    logout_session(request)
    return MessageResponse(message="Logged out.")


@router.get("/auth/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return identity information for the user bound to the session."""
    return _user_to_response(current_user)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _user_to_response(user: User | None) -> UserResponse:
    if user is None or user.id is None:
        raise HTTPException(
            status_code=500,
            detail={"code": "internal_error", "message": "User not found after write."},
        )
    return UserResponse(id=user.id, username=user.username, created_at=user.created_at or "")
