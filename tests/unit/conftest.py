"""Pytest configuration and fixtures for unit tests."""

from collections.abc import Callable
from datetime import date

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.core.auth_client import AuthSession
from src.core.config import constants
from src.interface.auth_router import router as auth_router
from src.interface.dashboard_router import router as dashboard_router
from src.interface.web_session import boards, serializer
from src.services.task_store import TaskStore
from tests.unit.mocks import InMemoryDBClient


OWNER_ID = "user_1"
TOKEN = "token_1"
FIXED_TODAY = date(2026, 3, 10)


@pytest.fixture
def in_memory_db():
    """Provides a fresh InMemoryDBClient for each test."""
    return InMemoryDBClient()


@pytest.fixture
def patched_db(monkeypatch, in_memory_db):
    """Patches src.core.db_client record functions to use InMemoryDBClient."""
    monkeypatch.setattr("src.core.db_client.create_record", in_memory_db.create_record)
    monkeypatch.setattr("src.core.db_client.get_record", in_memory_db.get_record)
    monkeypatch.setattr("src.core.db_client.update_record", in_memory_db.update_record)
    monkeypatch.setattr("src.core.db_client.delete_record", in_memory_db.delete_record)
    monkeypatch.setattr("src.core.db_client.list_records", in_memory_db.list_records)
    monkeypatch.setattr("src.core.db_client.list_all_records", in_memory_db.list_all_records)
    monkeypatch.setattr("src.core.db_client.get_first_record", in_memory_db.get_first_record)
    return in_memory_db


@pytest.fixture
def seeded_db(patched_db):
    """Backend holding two categories and three tasks for OWNER_ID, plus one foreign task."""
    patched_db.seed(
        constants.CATEGORIES_COLLECTION,
        {"id": "cat_work", "cat_name": "Work", "cat_color": "", "user_id": OWNER_ID},
    )
    patched_db.seed(
        constants.CATEGORIES_COLLECTION,
        {"id": "cat_home", "cat_name": "Home", "cat_color": "", "user_id": OWNER_ID},
    )
    patched_db.seed(
        constants.TASKS_COLLECTION,
        {
            "id": "task_a",
            "task_title": "Write report",
            "task_desc": "Quarterly numbers",
            "task_priority": "High",
            "cat_id": "cat_work",
            "user_id": OWNER_ID,
            "status": False,
            "task_date": "2026-03-12",
            "task_only_time": "14:00",
        },
    )
    patched_db.seed(
        constants.TASKS_COLLECTION,
        {
            "id": "task_b",
            "task_title": "Water plants",
            "task_desc": "",
            "task_priority": "Low",
            "cat_id": "cat_home",
            "user_id": OWNER_ID,
            "status": True,
            "task_date": "",
            "task_only_time": "",
        },
    )
    patched_db.seed(
        constants.TASKS_COLLECTION,
        {
            "id": "task_c",
            "task_title": "Call bank",
            "task_desc": "",
            "task_priority": "None",
            "cat_id": "",
            "user_id": OWNER_ID,
            "status": False,
            "task_date": "",
            "task_only_time": "",
        },
    )
    patched_db.seed(
        constants.TASKS_COLLECTION,
        {"id": "task_x", "task_title": "Someone else's", "user_id": "user_2", "status": False},
    )
    patched_db.calls.clear()
    return patched_db


@pytest.fixture
async def store(seeded_db):
    """A loaded TaskStore for OWNER_ID with a fixed clock; backend calls from loading are cleared."""
    task_store = TaskStore(owner_id=OWNER_ID, token=TOKEN, today=lambda: FIXED_TODAY)
    await task_store.load()
    seeded_db.calls.clear()
    return task_store


@pytest.fixture
def web_app() -> FastAPI:
    """App with the auth and dashboard routers, without the startup lifespan."""
    test_app = FastAPI()
    test_app.include_router(auth_router)
    test_app.include_router(dashboard_router)
    return test_app


@pytest.fixture
def client(web_app: FastAPI):
    """Anonymous test client; the board cache is emptied afterwards."""
    yield TestClient(web_app)
    boards.clear()


@pytest.fixture
def signed_in_client(client: TestClient):
    """Test client carrying a valid session cookie for OWNER_ID."""
    session = AuthSession(token=TOKEN, user_id=OWNER_ID, email="ada@example.com")
    cookie = serializer.dumps({**session.model_dump(), "sid": "sid_test"})
    client.cookies.set(constants.SESSION_COOKIE, cookie)
    return client


@pytest.fixture
def refresh_ok(monkeypatch):
    """Make session refresh succeed without contacting the backend."""

    async def _refresh(token):
        return AuthSession(token=token, user_id=OWNER_ID, email="ada@example.com")

    monkeypatch.setattr("src.core.auth_client.get_current_session", _refresh)


@pytest.fixture
def backend(monkeypatch) -> Callable[[Callable[[httpx.Request], httpx.Response]], list[httpx.Request]]:
    """Route db_client's httpx clients through a MockTransport; returns the recorded requests."""
    real_client = httpx.AsyncClient

    def install(handler: Callable[[httpx.Request], httpx.Response]) -> list[httpx.Request]:
        seen: list[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return handler(request)

        transport = httpx.MockTransport(recording_handler)
        monkeypatch.setattr(
            "src.core.db_client.httpx.AsyncClient",
            lambda **kwargs: real_client(transport=transport, **kwargs),
        )
        return seen

    return install
