"""Tests for sign-in, sign-up, session refresh and session-change notifications."""

import json

import httpx
import pytest

from src.core import auth_client
from src.core.auth_client import AuthEvent, AuthSession, AuthStateNotifier
from src.core.db_client import AuthError, DatabaseError


AUTH_BODY = {"token": "tok_new", "record": {"id": "user_1", "email": "ada@example.com"}}


@pytest.fixture
def events():
    """Collect session-change events for the duration of a test."""
    received: list[tuple[AuthEvent, AuthSession | None]] = []
    unsubscribe = auth_client.on_auth_state_change(lambda event, session: received.append((event, session)))
    yield received
    unsubscribe()


@pytest.mark.unit
class TestSignIn:
    async def test_sign_in_returns_session(self, backend, events):
        requests = backend(lambda request: httpx.Response(200, json=AUTH_BODY))

        session = await auth_client.sign_in(email="ada@example.com", password="secret")

        assert session == AuthSession(token="tok_new", user_id="user_1", email="ada@example.com")
        assert requests[0].url.path == "/api/collections/users/auth-with-password"
        assert json.loads(requests[0].content) == {"identity": "ada@example.com", "password": "secret"}
        assert events == [(AuthEvent.SIGNED_IN, session)]

    async def test_bad_credentials(self, backend, events):
        backend(lambda request: httpx.Response(400, json={"message": "Failed to authenticate."}))

        with pytest.raises(AuthError, match="Invalid email or password"):
            await auth_client.sign_in(email="ada@example.com", password="wrong")

        assert events == []

    async def test_unreachable_backend_is_not_an_auth_error(self, backend):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        backend(refuse)

        with pytest.raises(DatabaseError) as exc_info:
            await auth_client.sign_in(email="ada@example.com", password="secret")

        assert not isinstance(exc_info.value, AuthError)


@pytest.mark.unit
class TestSignUp:
    async def test_sign_up_sends_confirmation(self, backend):
        requests = backend(lambda request: httpx.Response(200, json={"id": "user_9", "email": "new@example.com"}))

        record = await auth_client.sign_up(email="new@example.com", password="secret1", full_name="New User")

        assert record["id"] == "user_9"
        assert requests[0].url.path == "/api/collections/users/records"
        assert json.loads(requests[0].content) == {
            "email": "new@example.com",
            "password": "secret1",
            "passwordConfirm": "secret1",
            "name": "New User",
        }

    async def test_duplicate_email_rejected(self, backend):
        backend(lambda request: httpx.Response(400, json={"message": "Failed to create record."}))

        with pytest.raises(DatabaseError, match="Failed to create record"):
            await auth_client.sign_up(email="taken@example.com", password="secret1")


@pytest.mark.unit
class TestCurrentSession:
    async def test_no_token_means_no_session(self, backend):
        requests = backend(lambda request: httpx.Response(200, json=AUTH_BODY))

        assert await auth_client.get_current_session(None) is None
        assert requests == []

    async def test_refresh_returns_new_token(self, backend, events):
        requests = backend(lambda request: httpx.Response(200, json=AUTH_BODY))

        session = await auth_client.get_current_session("tok_old")

        assert session.token == "tok_new"
        assert requests[0].headers["Authorization"] == "tok_old"
        assert events == [(AuthEvent.TOKEN_REFRESHED, session)]

    async def test_expired_token_signs_out(self, backend, events):
        backend(lambda request: httpx.Response(401, json={"message": "The request requires valid record authorization token."}))

        assert await auth_client.get_current_session("tok_old") is None
        assert events == [(AuthEvent.SIGNED_OUT, None)]

    async def test_sign_out_notifies(self, events):
        session = AuthSession(token="tok", user_id="user_1")

        auth_client.sign_out(session)

        assert events == [(AuthEvent.SIGNED_OUT, session)]


@pytest.mark.unit
class TestAuthStateNotifier:
    def test_unsubscribe_stops_delivery(self):
        notifier = AuthStateNotifier()
        received = []
        unsubscribe = notifier.subscribe(lambda event, session: received.append(event))

        notifier.notify(AuthEvent.SIGNED_IN, None)
        unsubscribe()
        notifier.notify(AuthEvent.SIGNED_OUT, None)

        assert received == [AuthEvent.SIGNED_IN]

    def test_failing_listener_does_not_block_others(self):
        notifier = AuthStateNotifier()
        received = []

        def broken(event, session):
            raise RuntimeError("listener bug")

        notifier.subscribe(broken)
        notifier.subscribe(lambda event, session: received.append(event))

        notifier.notify(AuthEvent.TOKEN_REFRESHED, None)

        assert received == [AuthEvent.TOKEN_REFRESHED]
