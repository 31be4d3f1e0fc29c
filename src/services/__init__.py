from src.services import (
    category_service,
    profile_service,
    task_service,
)


__all__ = [
    "category_service",
    "profile_service",
    "task_service",
]
