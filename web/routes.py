"""
web/routes.py -- Jinja2 template routes for the locallogin web UI.

These routes serve server-rendered HTML forms. They share app.state with the
API routes (same UserStore and PasswordHasher) but answer with pages and
redirects instead of JSON.

Routes:
  GET  /         -- index: welcome + log-out link, or the log-in form
  GET  /sign-up  -- sign-up form
  POST /sign-up  -- create account, redirect /
  POST /log-in   -- password login, redirect / either way
  GET  /log-out  -- clear the session, redirect /

Login failures redirect to / without saying whether the username or the
password was wrong. Form fields default to "" so a missing or empty field is
handled here (form re-render or failed login) rather than by the JSON 422
handler. Store outages render error.html with 503.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Form, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import authenticate_request, login_session, logout_session, try_get_current_user
from auth.exceptions import DuplicateUsernameError, StoreUnavailableError
from auth.models import AuthError, AuthSuccess
from auth.service import register_user

logger = logging.getLogger("locallogin.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()


def _render_sign_up(request: Request, error_msg: str, status_code: int) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "sign-up-form.html",
        {"error_msg": error_msg},
        status_code=status_code,
    )


def _render_unavailable(request: Request, exc: StoreUnavailableError) -> HTMLResponse:
    logger.error("Credential store unavailable on %s %s: %s", request.method, request.url.path, exc)
    return templates.TemplateResponse(
        request,
        "error.html",
        {"error_msg": "The service is temporarily unavailable. Please try again later."},
        status_code=503,
    )


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


@router.get("/", response_class=HTMLResponse)
def index(request: Request) -> HTMLResponse:
    """Render the index page for the current (possibly anonymous) user."""
    try:
        user = try_get_current_user(request)
    except StoreUnavailableError as exc:
        return _render_unavailable(request, exc)
    return templates.TemplateResponse(request, "index.html", {"user": user})


@router.get("/sign-up", response_class=HTMLResponse)
def sign_up_form(request: Request) -> HTMLResponse:
    return templates.TemplateResponse(request, "sign-up-form.html", {"error_msg": None})


# ---------------------------------------------------------------------------
# Form handlers
# ---------------------------------------------------------------------------


@router.post("/sign-up", response_class=HTMLResponse)
def sign_up(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> HTMLResponse:
    """Register a new account, then send the user to the index page."""
    state = request.app.state
    try:
        register_user(state.user_store, state.hasher, username, password)
    except ValueError as exc:
        return _render_sign_up(request, str(exc), 400)
    except DuplicateUsernameError:
        return _render_sign_up(request, "That username is already taken.", 409)
    except StoreUnavailableError as exc:
        return _render_unavailable(request, exc)

    return RedirectResponse("/", status_code=302)


@router.post("/log-in")
def log_in(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
) -> Response:
    """Handle the log-in form. Success and failure both land on /."""
    result = authenticate_request(request, username, password)
    if isinstance(result, AuthError):
        return _render_unavailable(request, result.cause)
    if isinstance(result, AuthSuccess):
        login_session(request, result.user)

    resp = RedirectResponse("/", status_code=302)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/log-out")
def log_out(request: Request) -> RedirectResponse:
    """Clear the session and return to the index page."""
    logout_session(request)
    return RedirectResponse("/", status_code=302)
