"""Authentication against the PocketBase users collection.

Sign in, sign up, session refresh and sign out, plus an in-process
subscription point for session-change notifications.
"""

import logging
from collections.abc import Callable
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from src.core import db_client
from src.core.config import constants, settings
from src.core.db_client import AuthError, DatabaseError
from src.core.logging import span


logger = logging.getLogger(__name__)


class AuthEvent(StrEnum):
    """Session-change events delivered to subscribers."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class AuthSession(BaseModel):
    """An authenticated backend session."""

    token: str = Field(..., description="Backend auth token sent with record requests")
    user_id: str = Field(..., description="Owner id of the signed-in user")
    email: str = Field(default="", description="Email address of the signed-in user")


AuthListener = Callable[[AuthEvent, AuthSession | None], None]


class AuthStateNotifier:
    """Fan-out of session-change events to registered listeners."""

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []

    def subscribe(self, listener: AuthListener) -> Callable[[], None]:
        """Register a listener and return a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, event: AuthEvent, session: AuthSession | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, session)
            except Exception as e:
                logger.warning("auth_listener_failed", extra={"auth_event": str(event), "error": str(e)})


auth_state = AuthStateNotifier()


def on_auth_state_change(listener: AuthListener) -> Callable[[], None]:
    """Subscribe to session-change notifications."""
    return auth_state.subscribe(listener)


def _auth_url(action: str) -> str:
    return f"{settings.pocketbase_url.rstrip('/')}/api/collections/{constants.USERS_COLLECTION}/{action}"


def _session_from_auth_response(body: dict[str, Any]) -> AuthSession:
    record = body.get("record") or {}
    return AuthSession(token=body["token"], user_id=record["id"], email=record.get("email", ""))


async def sign_in(*, email: str, password: str) -> AuthSession:
    """Sign in with email and password.

    Raises:
        AuthError: If the credentials are rejected
        DatabaseError: If the backend cannot be reached
    """
    with span("auth_client.sign_in"):
        try:
            response = await db_client.send_request(
                "POST",
                _auth_url("auth-with-password"),
                payload={"identity": email, "password": password},
                context="Sign in failed",
            )
        except DatabaseError as e:
            logger.warning("sign_in_failed", extra={"email": email, "error": str(e)})
            if isinstance(e, AuthError) or "Failed to authenticate" in str(e):
                raise AuthError("Invalid email or password") from e
            raise

        session = _session_from_auth_response(response.json())
        logger.info("sign_in_succeeded", extra={"user_id": session.user_id})
        auth_state.notify(AuthEvent.SIGNED_IN, session)
        return session


async def sign_up(*, email: str, password: str, full_name: str = "") -> dict[str, Any]:
    """Create a user account and return the created user record.

    Raises:
        DatabaseError: If the backend rejects the account (e.g. email already registered)
    """
    with span("auth_client.sign_up"):
        user_data = {
            "email": email,
            "password": password,
            "passwordConfirm": password,
            "name": full_name,
        }
        try:
            response = await db_client.send_request(
                "POST",
                _auth_url("records"),
                payload=user_data,
                context="Sign up failed",
            )
        except DatabaseError as e:
            logger.warning("sign_up_failed", extra={"email": email, "error": str(e)})
            raise

        record = response.json()
        logger.info("sign_up_succeeded", extra={"user_id": record.get("id")})
        return record


async def get_current_session(token: str | None) -> AuthSession | None:
    """Return the session for ``token`` after refreshing it, or None when it is no longer valid."""
    if not token:
        return None

    with span("auth_client.get_current_session"):
        try:
            response = await db_client.send_request(
                "POST",
                _auth_url("auth-refresh"),
                token=token,
                context="Session refresh failed",
            )
        except AuthError as e:
            logger.info("session_expired", extra={"error": str(e)})
            auth_state.notify(AuthEvent.SIGNED_OUT, None)
            return None

        session = _session_from_auth_response(response.json())
        auth_state.notify(AuthEvent.TOKEN_REFRESHED, session)
        return session


def sign_out(session: AuthSession | None) -> None:
    """Forget the session locally; PocketBase tokens are stateless."""
    logger.info("sign_out", extra={"user_id": session.user_id if session else None})
    auth_state.notify(AuthEvent.SIGNED_OUT, session)
