"""Sign-in, sign-up and sign-out pages."""

import logging

from fastapi import APIRouter, Form, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError

from src.core import auth_client
from src.core.db_client import AuthError, DatabaseError
from src.core.errors import classify_backend_error
from src.domain.create_models import ProfileCreate, SignUpRequest
from src.interface.web_session import (
    clear_session_cookie,
    generate_csrf_token,
    read_session,
    set_csrf_cookie,
    set_session_cookie,
    templates,
    validate_csrf_token,
)
from src.services import profile_service


logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def _render_form(request: Request, name: str, context: dict | None = None) -> Response:
    """Render an auth form with a fresh CSRF token."""
    csrf_token = generate_csrf_token()
    response = templates.TemplateResponse(request, name=name, context={**(context or {}), "csrf_token": csrf_token})
    set_csrf_cookie(response, csrf_token)
    return response


def _check_csrf(request: Request, csrf_token: str | None) -> None:
    if not validate_csrf_token(request, csrf_token):
        logger.warning("auth_form_invalid_csrf", extra={"path": request.url.path})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid CSRF token",
        )


def _signed_in_redirect(session: auth_client.AuthSession) -> Response:
    response = RedirectResponse(url="/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, session)
    response.delete_cookie(key="csrf_token", httponly=True, samesite="strict")
    return response


@router.get("/")
async def index(request: Request) -> Response:
    """Send signed-in users to the dashboard and everyone else to the login page."""
    target = "/dashboard" if read_session(request) else "/login"
    return RedirectResponse(url=target, status_code=status.HTTP_303_SEE_OTHER)


@router.get("/login")
async def get_login(request: Request) -> Response:
    """Render the login form with CSRF token."""
    return _render_form(request, "login.html")


@router.post("/login")
async def post_login(
    *,
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    csrf_token: str | None = Form(None),
) -> Response:
    """Sign in and redirect to the dashboard, or re-render the form with the error."""
    _check_csrf(request, csrf_token)

    try:
        session = await auth_client.sign_in(email=email.strip(), password=password)
    except AuthError:
        return _render_form(request, "login.html", {"error": "Invalid email or password", "email": email})
    except DatabaseError as e:
        _, message = classify_backend_error(e)
        return _render_form(request, "login.html", {"error": message, "email": email})

    return _signed_in_redirect(session)


@router.get("/signup")
async def get_signup(request: Request) -> Response:
    """Render the sign-up form with CSRF token."""
    return _render_form(request, "signup.html")


@router.post("/signup")
async def post_signup(
    *,
    request: Request,
    email: str = Form(...),
    password: str = Form(...),
    confirm_password: str = Form(...),
    full_name: str = Form(""),
    bio: str = Form(""),
    csrf_token: str | None = Form(None),
) -> Response:
    """Create the account and its profile, then sign the new user in."""
    _check_csrf(request, csrf_token)
    form = {"email": email, "full_name": full_name, "bio": bio}

    try:
        signup = SignUpRequest(
            email=email,
            password=password,
            confirm_password=confirm_password,
            full_name=full_name,
            bio=bio,
        )
    except ValidationError as e:
        message = e.errors()[0]["msg"].removeprefix("Value error, ")
        return _render_form(request, "signup.html", {**form, "error": message})

    try:
        user = await auth_client.sign_up(email=signup.email, password=signup.password, full_name=signup.full_name)
    except DatabaseError as e:
        logger.warning("signup_rejected", extra={"email": signup.email, "error": str(e)})
        return _render_form(request, "signup.html", {**form, "error": str(e).split(": ", 1)[-1]})

    try:
        session = await auth_client.sign_in(email=signup.email, password=signup.password)
    except DatabaseError as e:
        # Backends that require email verification refuse the first sign-in
        logger.info("signup_sign_in_deferred", extra={"user_id": user.get("id"), "error": str(e)})
        return _render_form(
            request,
            "login.html",
            {"notice": "Account created. Check your email for the confirmation link, then sign in."},
        )

    try:
        await profile_service.create_profile(
            profile=ProfileCreate(id=session.user_id, full_name=signup.full_name.strip(), bio=signup.bio.strip()),
            token=session.token,
        )
    except DatabaseError as e:
        logger.error("profile_create_failed", extra={"user_id": session.user_id, "error": str(e)})

    return _signed_in_redirect(session)


@router.get("/logout")
async def logout(request: Request) -> Response:
    """Sign out, clear the session and redirect to login."""
    auth_client.sign_out(read_session(request))
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    clear_session_cookie(response)
    return response
