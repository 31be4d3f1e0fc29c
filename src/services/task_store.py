"""Client task store: the session's cached board and its write-through protocols.

The board is an immutable ``BoardState``; the module-level update functions
return a new state and never touch the backend. ``TaskStore`` pairs a state
with the gateway services: every mutation goes to the backend first and the
local state changes only after the backend confirms it. A failed call leaves
the board exactly as it was.

All user intents funnel through ``TaskStore.dispatch``, which turns
validation and backend failures into a ``CommandResult`` with a
notification instead of raising. A rejected session token is the exception:
it propagates so the caller can send the user back to sign in.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import date
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field

from src.core.config import constants
from src.core.db_client import AuthError, DatabaseError, RecordNotFoundError
from src.core.errors import classify_error_with_response
from src.core.logging import log_with_user_context, span
from src.domain.category import Category
from src.domain.create_models import TaskDraft
from src.domain.task import Task, TaskField, TaskValidationError
from src.domain.update_models import TaskPatch, coerce_task_value, validate_title
from src.services import category_service, task_service


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoardState:
    """Immutable snapshot of one owner's tasks (display order) and categories."""

    owner_id: str
    tasks: tuple[Task, ...] = ()
    categories: tuple[Category, ...] = ()

    def find_task(self, task_id: str) -> Task | None:
        return next((task for task in self.tasks if task.id == task_id), None)

    def find_category(self, category_id: str | None) -> Category | None:
        if not category_id:
            return None
        return next((cat for cat in self.categories if cat.id == category_id), None)

    def category_name(self, category_id: str | None) -> str | None:
        """Name of the referenced category, or None when absent or dangling."""
        category = self.find_category(category_id)
        return category.name if category else None


def build_board(owner_id: str, tasks: Iterable[Task], categories: Iterable[Category]) -> BoardState:
    """Create a board and resolve every task's category name."""
    state = BoardState(owner_id=owner_id, categories=tuple(categories))
    resolved = tuple(task.model_copy(update={"category_name": state.category_name(task.category_id)}) for task in tasks)
    return replace(state, tasks=resolved)


def prepend_task(state: BoardState, task: Task) -> BoardState:
    resolved = task.model_copy(update={"category_name": state.category_name(task.category_id)})
    return replace(state, tasks=(resolved, *state.tasks))


def patch_task_field(state: BoardState, task_id: str, task_field: TaskField, value: Any) -> BoardState:
    """Replace one field of the matching task; ordering and other fields are kept."""
    update: dict[str, Any] = {str(task_field): value}
    if task_field == TaskField.CATEGORY:
        update["category_name"] = state.category_name(value)

    tasks = tuple(task.model_copy(update=update) if task.id == task_id else task for task in state.tasks)
    return replace(state, tasks=tasks)


def remove_task(state: BoardState, task_id: str) -> BoardState:
    return remove_tasks(state, {task_id})


def remove_tasks(state: BoardState, task_ids: set[str]) -> BoardState:
    return replace(state, tasks=tuple(task for task in state.tasks if task.id not in task_ids))


def append_category(state: BoardState, category: Category) -> BoardState:
    return replace(state, categories=(*state.categories, category))


def rename_category(state: BoardState, category_id: str, name: str) -> BoardState:
    """Rename a category and every local task that references it."""
    categories = tuple(
        cat.model_copy(update={"name": name}) if cat.id == category_id else cat for cat in state.categories
    )
    tasks = tuple(
        task.model_copy(update={"category_name": name}) if task.category_id == category_id else task
        for task in state.tasks
    )
    return replace(state, categories=categories, tasks=tasks)


# Commands


class PatchTask(BaseModel):
    """Change one field of one task."""

    kind: Literal["patch_task"] = "patch_task"
    task_id: str
    field: str
    value: Any = None


class CreateTask(BaseModel):
    """Create a task from raw form values."""

    kind: Literal["create_task"] = "create_task"
    title: str = ""
    description: str | None = None
    priority: str | None = None
    category_id: str | None = None
    due_date: str | date | None = None
    due_time: str | None = None


class DuplicateTask(BaseModel):
    kind: Literal["duplicate_task"] = "duplicate_task"
    task_id: str


class DeleteTask(BaseModel):
    kind: Literal["delete_task"] = "delete_task"
    task_id: str


class DeleteCompletedTasks(BaseModel):
    kind: Literal["delete_completed"] = "delete_completed"


class AddCategory(BaseModel):
    kind: Literal["add_category"] = "add_category"
    name: str


class RenameCategory(BaseModel):
    kind: Literal["rename_category"] = "rename_category"
    category_id: str
    name: str


Command = PatchTask | CreateTask | DuplicateTask | DeleteTask | DeleteCompletedTasks | AddCategory | RenameCategory


class NotificationLevel(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class Notification(BaseModel):
    """Transient user-facing message (toast)."""

    level: NotificationLevel
    message: str
    detail: str | None = None


class CommandResult(BaseModel):
    """Outcome of one dispatched command."""

    success: bool
    notification: Notification | None = None
    field_errors: dict[str, str] = Field(default_factory=dict)


# (success message or None, failure message) per command kind
_MESSAGES: dict[str, tuple[str | None, str]] = {
    "patch_task": (None, "Failed to update task."),
    "create_task": ("Task added successfully!", "Failed to add task. Please try again."),
    "duplicate_task": ("Task duplicated.", "Failed to duplicate task."),
    "delete_task": ("Task deleted.", "Failed to delete task."),
    "delete_completed": ("Completed tasks deleted.", "Failed to delete completed tasks."),
    "add_category": ("Category added successfully.", "Failed to add category."),
    "rename_category": ("Category updated.", "Failed to update category."),
}


@dataclass
class TaskStore:
    """The session's task cache plus the protocols that keep it in step with the backend."""

    owner_id: str
    token: str | None = None
    today: Callable[[], date] = date.today
    state: BoardState = field(init=False)

    def __post_init__(self) -> None:
        self.state = BoardState(owner_id=self.owner_id)

    async def load(self) -> BoardState:
        """Discard the cached board and rebuild it from a fresh fetch."""
        with span("task_store.load"):
            tasks = await task_service.get_tasks(owner_id=self.owner_id, token=self.token)
            categories = await category_service.get_categories(owner_id=self.owner_id, token=self.token)
            self.state = build_board(self.owner_id, tasks, categories)
            log_with_user_context(
                logger,
                "info",
                "board_loaded",
                user_id=self.owner_id,
                task_count=len(tasks),
                category_count=len(categories),
            )
            return self.state

    def _require_task(self, task_id: str) -> Task:
        task = self.state.find_task(task_id)
        if task is None:
            raise RecordNotFoundError(f"Task not found: {task_id}")
        return task

    async def apply_patch(self, task_id: str, field_name: str, value: Any) -> Task:
        """Send a single-field change to the backend, then mirror it locally.

        Raises:
            TaskValidationError: If the field or value is invalid (no backend call is made)
            RecordNotFoundError: If the task is not on the board
            DatabaseError: If the backend rejects the change
        """
        with span("task_store.apply_patch"):
            patch = TaskPatch.build(field_name, value)
            self._require_task(task_id)

            await task_service.update_task(task_id=task_id, updates=patch.to_record(), token=self.token)

            self.state = patch_task_field(self.state, task_id, patch.field, patch.value)
            return self._require_task(task_id)

    def _draft_from(self, command: CreateTask) -> TaskDraft:
        title = validate_title(command.title)
        due_date = coerce_task_value(TaskField.DUE_DATE, command.due_date)
        due_time = coerce_task_value(TaskField.DUE_TIME, command.due_time)
        if due_time is not None and due_date is None:
            due_date = self.today()

        return TaskDraft(
            title=title,
            description=coerce_task_value(TaskField.DESCRIPTION, command.description),
            priority=coerce_task_value(TaskField.PRIORITY, command.priority),
            category_id=coerce_task_value(TaskField.CATEGORY, command.category_id),
            owner_id=self.owner_id,
            completed=False,
            due_date=due_date,
            due_time=due_time,
        )

    async def _create(self, draft: TaskDraft) -> Task:
        created = await task_service.create_task(draft=draft, token=self.token)
        self.state = prepend_task(self.state, created)
        return self.state.tasks[0]

    async def create_task(self, command: CreateTask) -> Task:
        """Create a task and prepend the stored record to the board.

        Raises:
            TaskValidationError: If the title is empty or a value is malformed
            DatabaseError: If the backend rejects the task
        """
        with span("task_store.create_task"):
            return await self._create(self._draft_from(command))

    async def duplicate_task(self, task_id: str) -> Task:
        """Create a copy of a task with " (Copy)" appended to its title."""
        with span("task_store.duplicate_task"):
            source = self._require_task(task_id)
            return await self._create(TaskDraft.copy_of(source, title_suffix=constants.COPY_SUFFIX))

    async def delete_task(self, task_id: str) -> None:
        """Delete a task on the backend, then drop it from the board."""
        with span("task_store.delete_task"):
            self._require_task(task_id)
            await task_service.delete_task(task_id=task_id, token=self.token)
            self.state = remove_task(self.state, task_id)

    async def delete_completed(self) -> int:
        """Delete every completed task, one backend call each.

        Tasks whose delete succeeded leave the board even when others fail.

        Returns:
            Number of tasks deleted

        Raises:
            AuthError: If the backend rejects the session token; earlier deletes are kept
            DatabaseError: If any delete failed
        """
        with span("task_store.delete_completed"):
            completed = [task.id for task in self.state.tasks if task.completed]
            deleted: set[str] = set()
            errors: list[str] = []
            for task_id in completed:
                try:
                    await task_service.delete_task(task_id=task_id, token=self.token)
                except AuthError:
                    self.state = remove_tasks(self.state, deleted)
                    raise
                except DatabaseError as e:
                    errors.append(str(e))
                else:
                    deleted.add(task_id)

            self.state = remove_tasks(self.state, deleted)
            if errors:
                raise DatabaseError(
                    f"{len(errors)} of {len(completed)} completed tasks could not be deleted: {errors[0]}"
                )
            return len(deleted)

    async def add_category(self, name: str) -> Category:
        """Return the category matching ``name`` case-insensitively, creating it if needed."""
        with span("task_store.add_category"):
            trimmed = name.strip()
            if not trimmed:
                raise TaskValidationError("name", "Category name is required")

            existing = next((cat for cat in self.state.categories if cat.name.lower() == trimmed.lower()), None)
            if existing:
                return existing

            category = await category_service.create_category(name=trimmed, owner_id=self.owner_id, token=self.token)
            self.state = append_category(self.state, category)
            return category

    async def rename_category(self, category_id: str, name: str) -> Category | None:
        """Rename a category and update every task on the board that references it.

        Returns:
            The renamed category, or the unchanged one when the name did not change
        """
        with span("task_store.rename_category"):
            trimmed = name.strip()
            if not trimmed:
                raise TaskValidationError("name", "Category name is required")

            current = self.state.find_category(category_id)
            if current is not None and current.name == trimmed:
                return current

            await category_service.update_category_name(category_id=category_id, new_name=trimmed, token=self.token)
            self.state = rename_category(self.state, category_id, trimmed)
            return self.state.find_category(category_id)

    async def _run(self, command: Command) -> None:
        match command:
            case PatchTask():
                await self.apply_patch(command.task_id, command.field, command.value)
            case CreateTask():
                await self.create_task(command)
            case DuplicateTask():
                await self.duplicate_task(command.task_id)
            case DeleteTask():
                await self.delete_task(command.task_id)
            case DeleteCompletedTasks():
                await self.delete_completed()
            case AddCategory():
                await self.add_category(command.name)
            case RenameCategory():
                await self.rename_category(command.category_id, command.name)

    async def dispatch(self, command: Command) -> CommandResult:
        """Run one command and report its outcome; validation and backend failures never propagate.

        Raises:
            AuthError: If the backend rejects the session token
        """
        success_message, failure_message = _MESSAGES[command.kind]
        try:
            await self._run(command)
        except TaskValidationError as e:
            log_with_user_context(
                logger, "info", "task_command_rejected", user_id=self.owner_id, command=command.kind, error=e.message
            )
            return CommandResult(
                success=False,
                notification=Notification(level=NotificationLevel.ERROR, message=e.message),
                field_errors={str(e.field): e.message},
            )
        except AuthError:
            log_with_user_context(
                logger, "warning", "task_command_unauthorized", user_id=self.owner_id, command=command.kind
            )
            raise
        except (DatabaseError, ValueError) as e:
            response = classify_error_with_response(e)
            log_with_user_context(
                logger,
                "error",
                "task_command_failed",
                user_id=self.owner_id,
                command=command.kind,
                error=str(e),
                error_code=response.code,
            )
            return CommandResult(
                success=False,
                notification=Notification(
                    level=NotificationLevel.ERROR,
                    message=failure_message,
                    detail=response.suggestion,
                ),
            )

        notification = (
            Notification(level=NotificationLevel.SUCCESS, message=success_message) if success_message else None
        )
        return CommandResult(success=True, notification=notification)
