"""Update models for backend operations."""

from typing import Any

from pydantic import BaseModel

from src.domain.task import (
    TaskField,
    TaskPriority,
    TaskValidationError,
    parse_due_date,
    parse_due_time,
    to_storage_fields,
)


_TRUE_VALUES = {"true", "1", "on", "yes"}
_FALSE_VALUES = {"false", "0", "off", "no", ""}


def validate_title(value: Any) -> str:
    """Trim a title and reject empty or whitespace-only titles."""
    title = str(value or "").strip()
    if not title:
        raise TaskValidationError(TaskField.TITLE, "Task title is required")
    return title


def _coerce_completed(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise TaskValidationError(TaskField.COMPLETED, f"Invalid completion value: {value}")


def _coerce_priority(value: Any) -> TaskPriority:
    if value in (None, ""):
        return TaskPriority.NONE
    try:
        return TaskPriority(value)
    except ValueError as e:
        raise TaskValidationError(TaskField.PRIORITY, f"Invalid priority: {value}") from e


def _coerce_optional_text(value: Any) -> str | None:
    text = str(value).strip() if value is not None else ""
    return text or None


def coerce_task_value(field: TaskField, value: Any) -> Any:
    """Validate and convert a raw value for ``field``.

    Raises:
        TaskValidationError: If the value is not acceptable for the field
    """
    match field:
        case TaskField.TITLE:
            return validate_title(value)
        case TaskField.COMPLETED:
            return _coerce_completed(value)
        case TaskField.PRIORITY:
            return _coerce_priority(value)
        case TaskField.DUE_DATE:
            return parse_due_date(value)
        case TaskField.DUE_TIME:
            return parse_due_time(value)
        case TaskField.DESCRIPTION | TaskField.CATEGORY:
            return _coerce_optional_text(value)
    raise TaskValidationError(str(field), f"Field cannot be changed: {field}")


class TaskPatch(BaseModel):
    """A single-field change to a task."""

    field: TaskField
    value: Any = None

    @classmethod
    def build(cls, field: str, value: Any) -> "TaskPatch":
        """Validate the field name and coerce the value.

        Raises:
            TaskValidationError: If the field is not patchable or the value is invalid
        """
        try:
            task_field = TaskField(field)
        except ValueError as e:
            raise TaskValidationError(field, f"Field cannot be changed: {field}") from e
        return cls(field=task_field, value=coerce_task_value(task_field, value))

    def to_record(self) -> dict[str, Any]:
        """Backend payload containing only the changed column."""
        return to_storage_fields({str(self.field): self.value})


class CategoryRename(BaseModel):
    """Update payload for a category name."""

    name: str

    def to_record(self) -> dict[str, Any]:
        return {"cat_name": self.name}


class ProfileUpdate(BaseModel):
    """Update payload for profile name and biography."""

    full_name: str
    bio: str = ""
    preferences: dict[str, Any] | None = None

    def to_record(self) -> dict[str, Any]:
        data: dict[str, Any] = {"full_name": self.full_name.strip(), "bio": self.bio.strip()}
        if self.preferences is not None:
            data["preferences"] = self.preferences
        return data
