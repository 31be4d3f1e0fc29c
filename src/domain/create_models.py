"""Pydantic models for creating records in the backend."""

from datetime import date, time
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from src.domain.task import Task, TaskPriority, to_storage_fields


class TaskDraft(BaseModel):
    """A fully-populated task ready to be created; id and timestamps come from the backend."""

    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Optional task description")
    priority: TaskPriority = Field(default=TaskPriority.NONE, description="Task priority")
    category_id: str | None = Field(default=None, description="Optional category ID")
    owner_id: str = Field(..., description="Owner user ID")
    completed: bool = Field(default=False, description="Completion flag")
    due_date: date | None = Field(default=None, description="Optional due date")
    due_time: time | None = Field(default=None, description="Optional due time of day")

    @classmethod
    def copy_of(cls, task: Task, *, title_suffix: str) -> "TaskDraft":
        """Draft a copy of ``task``: same fields, suffixed title, not completed."""
        return cls(
            title=f"{task.title}{title_suffix}",
            description=task.description,
            priority=task.priority,
            category_id=task.category_id,
            owner_id=task.owner_id,
            completed=False,
            due_date=task.due_date,
            due_time=task.due_time,
        )

    def to_record(self) -> dict[str, Any]:
        """Serialize to backend column names."""
        return to_storage_fields(self.model_dump())


class CategoryCreate(BaseModel):
    """Pydantic model for creating a category record."""

    name: str = Field(..., description="Category name")
    owner_id: str = Field(..., description="Owner user ID")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Trim the name and reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError("Category name cannot be empty")
        return v

    def to_record(self) -> dict[str, Any]:
        return {"cat_name": self.name, "user_id": self.owner_id}


class ProfileCreate(BaseModel):
    """Pydantic model for creating a profile record at sign-up."""

    id: str = Field(..., description="Owner user ID, reused as the profile ID")
    full_name: str = Field(default="", description="Display name")
    bio: str = Field(default="", description="Optional biography")


class SignUpRequest(BaseModel):
    """Sign-up form payload."""

    email: str = Field(..., description="Email address")
    password: str = Field(..., description="Password")
    confirm_password: str = Field(..., description="Password confirmation")
    full_name: str = Field(default="", description="Display name")
    bio: str = Field(default="", description="Optional biography")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Require something shaped like an email address."""
        v = v.strip()
        if "@" not in v:
            raise ValueError("Enter a valid email address")
        return v

    @model_validator(mode="after")
    def validate_passwords_match(self) -> "SignUpRequest":
        """Reject mismatched password confirmation."""
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self
