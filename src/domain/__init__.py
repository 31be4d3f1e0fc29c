"""Domain models and DTOs."""

from src.domain.category import Category
from src.domain.create_models import CategoryCreate, ProfileCreate, SignUpRequest, TaskDraft
from src.domain.profile import Profile
from src.domain.task import Task, TaskField, TaskPriority, TaskValidationError
from src.domain.update_models import CategoryRename, ProfileUpdate, TaskPatch


__all__ = [
    "Category",
    "CategoryCreate",
    "CategoryRename",
    "Profile",
    "ProfileCreate",
    "ProfileUpdate",
    "SignUpRequest",
    "Task",
    "TaskDraft",
    "TaskField",
    "TaskPatch",
    "TaskPriority",
    "TaskValidationError",
]
