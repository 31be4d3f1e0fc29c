"""Tests for dashboard sorting, filtering and category counts."""

from datetime import date, datetime, time

import pytest

from src.domain.category import Category
from src.domain.task import Task, TaskPriority
from src.services.board_view import SortKey, TaskProperty, ViewOptions, build_dashboard, sort_tasks
from src.services.task_store import build_board


TODAY = date(2026, 3, 10)
NOW = datetime(2026, 3, 10, 12, 0)


@pytest.fixture
def board():
    tasks = [
        Task(id="t1", title="banana", owner_id="u", priority=TaskPriority.LOW, due_date=date(2026, 3, 12)),
        Task(id="t2", title="Apple", owner_id="u", priority=TaskPriority.HIGH, category_id="c1", completed=True),
        Task(id="t3", title="cherry", owner_id="u", due_time=time(9, 0), category_id="c1"),
        Task(id="t4", title="date", owner_id="u", priority=TaskPriority.MEDIUM, due_date=date(2026, 3, 9)),
    ]
    categories = [Category(id="c1", name="Fruit"), Category(id="c2", name="Empty")]
    return build_board("u", tasks, categories)


def _ids(tasks) -> list[str]:
    return [task.id for task in tasks]


@pytest.mark.unit
class TestSortTasks:
    def test_default_keeps_board_order(self, board):
        assert _ids(sort_tasks(list(board.tasks), ViewOptions(), today=TODAY)) == ["t1", "t2", "t3", "t4"]

    def test_title_is_case_insensitive(self, board):
        options = ViewOptions(sort=SortKey.TITLE)

        assert _ids(sort_tasks(list(board.tasks), options, today=TODAY)) == ["t2", "t1", "t3", "t4"]

    def test_priority_descending(self, board):
        options = ViewOptions(sort=SortKey.PRIORITY, descending=True)

        assert _ids(sort_tasks(list(board.tasks), options, today=TODAY)) == ["t2", "t4", "t1", "t3"]

    def test_time_treats_time_only_as_today_and_undated_last(self, board):
        options = ViewOptions(sort=SortKey.TIME)

        assert _ids(sort_tasks(list(board.tasks), options, today=TODAY)) == ["t4", "t3", "t1", "t2"]

    def test_time_descending_still_puts_undated_last(self, board):
        options = ViewOptions(sort=SortKey.TIME, descending=True)

        assert _ids(sort_tasks(list(board.tasks), options, today=TODAY)) == ["t1", "t3", "t4", "t2"]


@pytest.mark.unit
class TestBuildDashboard:
    def test_hides_completed_when_requested(self, board):
        view = build_dashboard(board, ViewOptions(show_completed=False), now=NOW)

        assert _ids(card.task for card in view.cards) == ["t1", "t3", "t4"]
        assert view.total == 4
        assert view.completed == 1

    def test_category_labels(self, board):
        view = build_dashboard(board, ViewOptions(), now=NOW)
        labels = {card.task.id: card.category_label for card in view.cards}

        assert labels["t1"] == "No Category"
        assert labels["t3"] == "Fruit"

    def test_category_counts(self, board):
        view = build_dashboard(board, ViewOptions(), now=NOW)

        assert {cat.name: cat.task_count for cat in view.categories} == {"Fruit": 2, "Empty": 0}

    def test_due_colours(self, board):
        view = build_dashboard(board, ViewOptions(), now=NOW)
        colours = {card.task.id: card.due.color for card in view.cards}

        assert colours["t1"] == "blue"
        assert colours["t3"] == "red"
        assert colours["t4"] == "red"
        assert colours["t2"] is None

    def test_visible_properties_default_to_all(self):
        assert ViewOptions().visible == {TaskProperty.CATEGORY, TaskProperty.PRIORITY, TaskProperty.DESCRIPTION}
