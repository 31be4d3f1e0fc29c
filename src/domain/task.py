"""Task domain models, enums and record normalization."""

import re
from datetime import date, time
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class TaskPriority(StrEnum):
    """Task priority levels."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NONE = "None"


PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.HIGH: 3,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 1,
    TaskPriority.NONE: 0,
}


class TaskField(StrEnum):
    """Task fields that can be changed one at a time."""

    COMPLETED = "completed"
    TITLE = "title"
    DESCRIPTION = "description"
    DUE_DATE = "due_date"
    DUE_TIME = "due_time"
    PRIORITY = "priority"
    CATEGORY = "category_id"


# Canonical field -> column name in the backend's tasks collection
STORAGE_FIELDS: dict[str, str] = {
    "title": "task_title",
    "description": "task_desc",
    "priority": "task_priority",
    "category_id": "cat_id",
    "owner_id": "user_id",
    "completed": "status",
    "due_date": "task_date",
    "due_time": "task_only_time",
}

_DATE_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2})")
_TIME_PATTERN = re.compile(r"(?:^|[T ])(\d{1,2}:\d{2})(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?$")


class TaskValidationError(ValueError):
    """Raised when a task value fails local validation; no backend call is made."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class Task(BaseModel):
    """Task data transfer object in canonical form."""

    id: str = Field(..., description="Unique task ID assigned by the backend")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Optional task description")
    priority: TaskPriority = Field(default=TaskPriority.NONE, description="Task priority")
    category_id: str | None = Field(default=None, description="Category this task belongs to")
    owner_id: str = Field(..., description="Owner user ID, fixed at creation")
    completed: bool = Field(default=False, description="Completion flag")
    due_date: date | None = Field(default=None, description="Optional due date")
    due_time: time | None = Field(default=None, description="Optional due time of day")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")
    category_name: str | None = Field(default=None, description="Resolved category name, local only")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Task":
        """Build a task from a backend record, migrating legacy field names."""
        return cls.model_validate(normalize_task_record(record))


def _first_present(record: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = record.get(key)
        if value not in (None, ""):
            return value
    return None


def parse_due_date(value: Any) -> date | None:
    """Parse a stored date (``YYYY-MM-DD`` or a full timestamp) into a date."""
    if value in (None, ""):
        return None
    if isinstance(value, date):
        return value
    match = _DATE_PATTERN.match(str(value).strip())
    if not match:
        raise TaskValidationError(TaskField.DUE_DATE, f"Invalid date: {value}")
    try:
        return date.fromisoformat(match.group(1))
    except ValueError as e:
        raise TaskValidationError(TaskField.DUE_DATE, f"Invalid date: {value}") from e


def parse_due_time(value: Any) -> time | None:
    """Parse a stored time of day (``HH:MM`` with optional seconds) into a time."""
    if value in (None, ""):
        return None
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    match = _TIME_PATTERN.search(str(value).strip())
    if not match:
        raise TaskValidationError(TaskField.DUE_TIME, f"Invalid time: {value}")
    hour, minute = (int(part) for part in match.group(1).split(":"))
    try:
        return time(hour, minute)
    except ValueError as e:
        raise TaskValidationError(TaskField.DUE_TIME, f"Invalid time: {value}") from e


def normalize_priority(value: Any) -> TaskPriority:
    """Map a stored priority onto the enum; absent or unknown values become None."""
    try:
        return TaskPriority(value)
    except ValueError:
        return TaskPriority.NONE


def _lenient(parser: Any, value: Any) -> Any:
    try:
        return parser(value)
    except TaskValidationError:
        return None


def normalize_task_record(record: dict[str, Any]) -> dict[str, Any]:
    """Convert a backend task record into canonical field names and types.

    Accepts the current ``task_*`` columns as well as legacy names, and the
    ``created_at``/``updated_at`` timestamp spelling. Malformed dates and times
    from storage are dropped rather than rejected.
    """
    status = record.get("status")
    if status is None:
        status = record.get("completed")

    due_time = record.get("task_only_time")
    if due_time in (None, ""):
        due_time = _first_present(record, "task_time", "time")

    return {
        "id": str(record["id"]),
        "title": _first_present(record, "task_title", "title") or "",
        "description": _first_present(record, "task_desc", "description"),
        "priority": normalize_priority(_first_present(record, "task_priority", "priority")),
        "category_id": _first_present(record, "cat_id", "category"),
        "owner_id": str(_first_present(record, "user_id", "owner_id") or ""),
        "completed": bool(status),
        "due_date": _lenient(parse_due_date, record.get("task_date")),
        "due_time": _lenient(parse_due_time, due_time),
        "created": _first_present(record, "created", "created_at"),
        "updated": _first_present(record, "updated", "updated_at"),
    }


def to_storage_value(value: Any) -> Any:
    """Serialize a canonical value for the backend; cleared fields are sent as empty strings."""
    if value is None:
        return ""
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, StrEnum):
        return str(value)
    return value


def to_storage_fields(values: dict[str, Any]) -> dict[str, Any]:
    """Rename canonical fields to backend columns and serialize their values."""
    return {STORAGE_FIELDS[key]: to_storage_value(val) for key, val in values.items() if key in STORAGE_FIELDS}
