"""Read-only projections of a board for the dashboard: sorting, filtering, counts."""

from collections import Counter
from datetime import date, datetime, time
from enum import StrEnum

from pydantic import BaseModel, Field

from src.core.config import constants
from src.domain.category import Category
from src.domain.task import PRIORITY_RANK, Task
from src.services.due_display import DueDisplay, describe_due
from src.services.task_store import BoardState


class SortKey(StrEnum):
    """Dashboard sort keys; NONE keeps board order (newest first)."""

    NONE = "none"
    TIME = "time"
    TITLE = "title"
    PRIORITY = "priority"


class TaskProperty(StrEnum):
    """Optional task properties the dashboard can show or hide."""

    CATEGORY = "category"
    PRIORITY = "priority"
    DESCRIPTION = "description"


class ViewOptions(BaseModel):
    """Per-session dashboard view settings."""

    sort: SortKey = SortKey.NONE
    descending: bool = False
    show_completed: bool = True
    visible: set[TaskProperty] = Field(default_factory=lambda: set(TaskProperty))


class TaskCard(BaseModel):
    """Everything the template needs to render one task."""

    task: Task
    category_label: str
    due: DueDisplay


class DashboardView(BaseModel):
    cards: list[TaskCard]
    categories: list[Category]
    options: ViewOptions
    total: int
    completed: int


def sort_tasks(tasks: list[Task], options: ViewOptions, *, today: date) -> list[Task]:
    """Order tasks by the chosen key; a stable sort keeps board order for ties."""
    match options.sort:
        case SortKey.TITLE:
            return sorted(tasks, key=lambda task: task.title.lower(), reverse=options.descending)
        case SortKey.PRIORITY:
            return sorted(tasks, key=lambda task: PRIORITY_RANK[task.priority], reverse=options.descending)
        case SortKey.TIME:
            # Tasks without due information always go last
            with_due = [task for task in tasks if task.due_date or task.due_time]
            without_due = [task for task in tasks if not (task.due_date or task.due_time)]
            ordered = sorted(
                with_due,
                key=lambda task: (task.due_date or today, task.due_time or time.max),
                reverse=options.descending,
            )
            return ordered + without_due
    return list(tasks)


def categories_with_counts(state: BoardState) -> list[Category]:
    """Categories annotated with how many tasks on the board reference them."""
    counts = Counter(task.category_id for task in state.tasks if task.category_id)
    return [cat.model_copy(update={"task_count": counts.get(cat.id, 0)}) for cat in state.categories]


def build_dashboard(state: BoardState, options: ViewOptions, *, now: datetime) -> DashboardView:
    """Project the board into the cards and category list shown on the dashboard."""
    tasks = [task for task in state.tasks if options.show_completed or not task.completed]
    cards = [
        TaskCard(
            task=task,
            category_label=task.category_name or constants.NO_CATEGORY_LABEL,
            due=describe_due(task, now=now),
        )
        for task in sort_tasks(tasks, options, today=now.date())
    ]
    return DashboardView(
        cards=cards,
        categories=categories_with_counts(state),
        options=options,
        total=len(state.tasks),
        completed=sum(1 for task in state.tasks if task.completed),
    )
