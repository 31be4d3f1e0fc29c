"""Tests for the dashboard page, its actions and the profile page."""

import pytest

from src.core.config import constants
from src.core.db_client import AuthError
from src.interface.web_session import boards


SID = "sid_test"


@pytest.fixture
def loaded(signed_in_client, seeded_db, refresh_ok):
    """Signed-in client whose board has been loaded by a dashboard page view."""
    response = signed_in_client.get("/dashboard")
    assert response.status_code == 200
    seeded_db.calls.clear()
    return signed_in_client


def _board_titles() -> list[str]:
    return [task.title for task in boards.get(SID).store.state.tasks]


@pytest.mark.unit
class TestDashboardPage:
    def test_requires_session(self, client):
        response = client.get("/dashboard", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_renders_owner_tasks_only(self, signed_in_client, seeded_db, refresh_ok):
        response = signed_in_client.get("/dashboard")

        assert response.status_code == 200
        assert "Write report" in response.text
        assert "Water plants" in response.text
        assert "Someone else" not in response.text
        assert "Mar 12" in response.text
        assert "2:00 PM" in response.text

    def test_page_load_refetches(self, loaded, seeded_db):
        seeded_db.seed(
            constants.TASKS_COLLECTION,
            {"id": "task_new", "task_title": "Added elsewhere", "user_id": "user_1", "status": False},
        )

        response = loaded.get("/dashboard")

        assert "Added elsewhere" in response.text
        assert seeded_db.calls_to("list")

    def test_expired_session_redirects_and_drops_board(self, loaded, monkeypatch):
        async def _expired(token):
            return None

        monkeypatch.setattr("src.core.auth_client.get_current_session", _expired)

        response = loaded.get("/dashboard", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert boards.get(SID) is None

    def test_load_failure_shows_notification(self, signed_in_client, seeded_db, refresh_ok):
        seeded_db.fail_next("list")

        response = signed_in_client.get("/dashboard")

        assert response.status_code == 200
        assert "Failed to load tasks." in response.text

    def test_edit_toggle_renders_from_cache(self, loaded, seeded_db):
        response = loaded.get("/dashboard", params={"edit": "task_a:title"})

        assert 'name="value" value="Write report"' in response.text
        assert seeded_db.calls == []

    def test_view_preferences_survive_reload(self, loaded):
        loaded.post("/view", data={"sort": "title"})

        response = loaded.get("/dashboard")

        assert "Water plants" not in response.text


@pytest.mark.unit
class TestTaskActions:
    def test_add_task(self, loaded, seeded_db):
        response = loaded.post("/tasks", data={"title": "Buy milk", "priority": "Low"})

        assert response.status_code == 200
        assert "Task added successfully!" in response.text
        assert _board_titles()[0] == "Buy milk"
        assert len(seeded_db.calls_to("create")) == 1

    def test_blank_title_shows_field_error(self, loaded, seeded_db):
        response = loaded.post("/tasks", data={"title": "   "})

        assert "Task title is required" in response.text
        assert seeded_db.calls_to("create") == []

    def test_toggle_completion(self, loaded):
        loaded.post("/tasks/task_a/patch", data={"field": "completed", "value": "true"})

        assert boards.get(SID).store.state.find_task("task_a").completed is True

    def test_unchecked_box_clears_completion(self, loaded):
        loaded.post("/tasks/task_b/patch", data={"field": "completed"})

        assert boards.get(SID).store.state.find_task("task_b").completed is False

    def test_failed_patch_keeps_value_and_notifies(self, loaded, seeded_db):
        seeded_db.fail_next("update")

        response = loaded.post("/tasks/task_a/patch", data={"field": "title", "value": "Renamed"})

        assert "Failed to update task." in response.text
        assert "Renamed" not in _board_titles()

    def test_duplicate(self, loaded):
        response = loaded.post("/tasks/task_a/duplicate")

        assert "Task duplicated." in response.text
        assert _board_titles()[0] == "Write report (Copy)"

    def test_delete(self, loaded):
        loaded.post("/tasks/task_b/delete")

        assert _board_titles() == ["Call bank", "Write report"]

    def test_delete_completed(self, loaded, seeded_db):
        response = loaded.post("/tasks/delete-completed")

        assert "Completed tasks deleted." in response.text
        assert "Water plants" not in _board_titles()

    def test_rejected_token_on_action_redirects_to_login(self, loaded, seeded_db):
        seeded_db.fail_next("update", AuthError("The request requires valid record authorization token."))

        response = loaded.post(
            "/tasks/task_a/patch", data={"field": "title", "value": "Renamed"}, follow_redirects=False
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/login"
        assert boards.get(SID) is None

    def test_action_without_cached_board_loads_first(self, signed_in_client, seeded_db):
        response = signed_in_client.post("/tasks/task_c/delete")

        assert response.status_code == 200
        assert seeded_db.calls_to("list")
        assert _board_titles() == ["Water plants", "Write report"]


@pytest.mark.unit
class TestCategoryActions:
    def test_add_category(self, loaded):
        response = loaded.post("/categories", data={"name": "Errands"})

        assert "Category added successfully." in response.text
        assert "Errands" in response.text

    def test_rename_category_updates_task_cards(self, loaded):
        response = loaded.post("/categories/cat_work/rename", data={"name": "Office"})

        assert "Category updated." in response.text
        assert boards.get(SID).store.state.find_task("task_a").category_name == "Office"


@pytest.mark.unit
class TestViewOptions:
    def test_sort_and_hide_completed(self, loaded, seeded_db):
        response = loaded.post("/view", data={"sort": "title", "visible": ["priority"]})

        assert response.status_code == 200
        assert "Water plants" not in response.text
        assert response.text.index("Call bank") < response.text.index("Write report")
        assert seeded_db.calls == []
        assert boards.get(SID).options.visible == {"priority"}


@pytest.mark.unit
class TestProfilePage:
    def test_missing_profile_renders_empty_form(self, signed_in_client, patched_db):
        response = signed_in_client.get("/profile")

        assert response.status_code == 200
        assert 'name="full_name" value=""' in response.text

    def test_update_creates_missing_profile(self, signed_in_client, patched_db):
        response = signed_in_client.post("/profile", data={"full_name": "Ada", "bio": "Mathematician"})

        assert "Profile updated." in response.text
        stored = patched_db.records(constants.PROFILES_COLLECTION)
        assert [(p["id"], p["full_name"], p["bio"]) for p in stored] == [("user_1", "Ada", "Mathematician")]

    def test_update_existing_profile(self, signed_in_client, patched_db):
        patched_db.seed(constants.PROFILES_COLLECTION, {"id": "user_1", "full_name": "Ada", "bio": ""})

        signed_in_client.post("/profile", data={"full_name": "Ada Lovelace", "bio": ""})
        response = signed_in_client.get("/profile")

        assert 'value="Ada Lovelace"' in response.text
