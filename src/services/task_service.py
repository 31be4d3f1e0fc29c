"""Task gateway: list, create, patch and delete task records for an owner."""

import logging
from typing import Any

from src.core import db_client
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.domain.create_models import TaskDraft
from src.domain.task import Task


logger = logging.getLogger(__name__)


async def get_tasks(*, owner_id: str, token: str | None = None) -> list[Task]:
    """Fetch all tasks owned by ``owner_id``, newest first.

    Raises:
        db_client.DatabaseError: If the backend call fails
    """
    with span("task_service.get_tasks"):
        records = await db_client.list_all_records(
            collection=constants.TASKS_COLLECTION,
            filter_query=f'user_id = "{sanitize_param(owner_id)}"',
            sort="-created",
            token=token,
        )
        return [Task.from_record(record) for record in records]


async def create_task(*, draft: TaskDraft, token: str | None = None) -> Task:
    """Create a task from a fully-populated draft and return the stored record."""
    with span("task_service.create_task"):
        record = await db_client.create_record(
            collection=constants.TASKS_COLLECTION,
            data=draft.to_record(),
            token=token,
        )
        logger.info("Created task", extra={"task_id": record.get("id"), "user_id": draft.owner_id})
        return Task.from_record(record)


async def update_task(*, task_id: str, updates: dict[str, Any], token: str | None = None) -> Task:
    """Apply a partial patch (backend column names) to a task.

    Raises:
        ValueError: If the patch tries to change the task owner
        db_client.RecordNotFoundError: If the task does not exist
        db_client.DatabaseError: If the backend call fails
    """
    with span("task_service.update_task"):
        if "user_id" in updates:
            msg = "Task owner cannot be changed"
            raise ValueError(msg)

        record = await db_client.update_record(
            collection=constants.TASKS_COLLECTION,
            record_id=task_id,
            data=updates,
            token=token,
        )
        return Task.from_record(record)


async def update_task_status(*, task_id: str, status: bool, token: str | None = None) -> Task:
    """Set a task's completion flag."""
    return await update_task(task_id=task_id, updates={"status": status}, token=token)


async def delete_task(*, task_id: str, token: str | None = None) -> None:
    """Delete a task by ID."""
    with span("task_service.delete_task"):
        await db_client.delete_record(collection=constants.TASKS_COLLECTION, record_id=task_id, token=token)
        logger.info("Deleted task", extra={"task_id": task_id})
