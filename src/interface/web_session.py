"""Signed session cookie, CSRF helpers, templates and the per-session board cache."""

import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from fastapi import HTTPException, Request, Response, status
from fastapi.templating import Jinja2Templates
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.auth_client import AuthEvent, AuthSession, on_auth_state_change
from src.core.config import constants, settings
from src.services.board_view import ViewOptions
from src.services.task_store import TaskStore


logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(constants.TEMPLATES_DIR))

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="taskdeck-session")
csrf_serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="taskdeck-csrf")


class WebSession(AuthSession):
    """Backend session plus the id of this browser's board cache."""

    sid: str


def generate_csrf_token() -> str:
    """Generate a secure CSRF token."""
    return secrets.token_hex(32)


def set_csrf_cookie(response: Response, csrf_token: str) -> None:
    """Set the CSRF cookie on a response."""
    signed_token = csrf_serializer.dumps(csrf_token)
    response.set_cookie(
        key=constants.CSRF_COOKIE,
        value=signed_token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=constants.CSRF_MAX_AGE_SECONDS,
    )


def validate_csrf_token(request: Request, token: str | None) -> bool:
    """Validate CSRF token from request against signed cookie value."""
    if not token:
        return False

    expected_token = request.cookies.get(constants.CSRF_COOKIE)
    if not expected_token:
        return False

    try:
        loaded_token = csrf_serializer.loads(expected_token, max_age=constants.CSRF_MAX_AGE_SECONDS)
        return secrets.compare_digest(loaded_token, token)
    except (BadSignature, SignatureExpired):
        return False


def set_session_cookie(response: Response, session: AuthSession, *, sid: str | None = None) -> WebSession:
    """Store the backend session in a signed cookie; a new board id is issued unless ``sid`` is given."""
    web_session = WebSession(**session.model_dump(exclude={"sid"}), sid=sid or secrets.token_urlsafe(16))
    response.set_cookie(
        key=constants.SESSION_COOKIE,
        value=serializer.dumps(web_session.model_dump()),
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        max_age=settings.session_max_age_seconds,
    )
    return web_session


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=constants.SESSION_COOKIE, httponly=True, samesite="strict")


def read_session(request: Request) -> WebSession | None:
    """Return the session from the signed cookie, or None when missing, tampered or expired."""
    session_token = request.cookies.get(constants.SESSION_COOKIE)
    if not session_token:
        return None

    try:
        data = serializer.loads(session_token, max_age=settings.session_max_age_seconds)
        return WebSession.model_validate(data)
    except (BadSignature, SignatureExpired, ValueError):
        logger.warning("session_cookie_rejected", extra={"path": request.url.path})
        return None


def redirect_to_login() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        headers={"Location": "/login"},
    )


async def require_session(request: Request) -> WebSession:
    """Dependency: the signed-in session, or a redirect to the login page."""
    session = read_session(request)
    if session is None:
        logger.warning("auth_missing_session", extra={"path": request.url.path})
        raise redirect_to_login()
    return session


def client_now(request: Request, *, utc_now: datetime | None = None) -> datetime:
    """Naive wall-clock time in the browser's timezone.

    The ``tz_offset`` cookie holds JavaScript's ``getTimezoneOffset()``: minutes
    the browser is behind UTC. Without a usable cookie the server's local time is used.
    """
    raw = request.cookies.get(constants.TZ_OFFSET_COOKIE, "")
    try:
        offset = int(raw)
    except ValueError:
        return datetime.now()
    if abs(offset) > constants.MAX_TZ_OFFSET_MINUTES:
        logger.warning("tz_offset_out_of_range", extra={"tz_offset": raw})
        return datetime.now()

    now = utc_now or datetime.now(UTC)
    return (now - timedelta(minutes=offset)).replace(tzinfo=None)


@dataclass
class SessionBoard:
    """One browser session's cached store and view options."""

    store: TaskStore
    options: ViewOptions = field(default_factory=ViewOptions)


class BoardRegistry:
    """In-process cache of boards keyed by session id.

    A board not touched for ``max_idle`` is evicted on the next access; by then
    the session cookie that points at it has expired as well.
    """

    def __init__(
        self,
        max_idle: timedelta | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ) -> None:
        self._boards: dict[str, SessionBoard] = {}
        self._last_seen: dict[str, datetime] = {}
        self._max_idle = max_idle or timedelta(seconds=settings.session_max_age_seconds)
        self._clock = clock

    def get(self, sid: str) -> SessionBoard | None:
        self.evict_idle()
        board = self._boards.get(sid)
        if board is not None:
            self._last_seen[sid] = self._clock()
        return board

    def put(self, sid: str, board: SessionBoard) -> None:
        self.evict_idle()
        self._boards[sid] = board
        self._last_seen[sid] = self._clock()

    def drop(self, sid: str) -> None:
        self._boards.pop(sid, None)
        self._last_seen.pop(sid, None)

    def drop_token(self, token: str) -> int:
        """Drop every board opened with ``token``; returns how many were dropped."""
        stale = [sid for sid, board in self._boards.items() if board.store.token == token]
        for sid in stale:
            self.drop(sid)
        return len(stale)

    def evict_idle(self) -> int:
        """Drop boards idle for longer than ``max_idle``; returns how many were dropped."""
        cutoff = self._clock() - self._max_idle
        idle = [sid for sid, seen in self._last_seen.items() if seen < cutoff]
        for sid in idle:
            self.drop(sid)
        if idle:
            logger.info("boards_evicted", extra={"count": len(idle), "remaining": len(self._boards)})
        return len(idle)

    def clear(self) -> None:
        self._boards.clear()
        self._last_seen.clear()

    def __len__(self) -> int:
        return len(self._boards)


boards = BoardRegistry()


def _drop_boards_on_sign_out(event: AuthEvent, session: AuthSession | None) -> None:
    if event == AuthEvent.SIGNED_OUT and session is not None:
        dropped = boards.drop_token(session.token)
        logger.info("boards_dropped", extra={"user_id": session.user_id, "count": dropped})


def watch_auth_state() -> Callable[[], None]:
    """Subscribe the board cache to session-change notifications; returns the unsubscribe callable."""
    return on_auth_state_change(_drop_boards_on_sign_out)
