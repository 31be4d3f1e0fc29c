"""Category gateway."""

import logging

from src.core import db_client
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.domain.category import Category
from src.domain.create_models import CategoryCreate
from src.domain.update_models import CategoryRename


logger = logging.getLogger(__name__)


async def get_categories(*, owner_id: str, token: str | None = None) -> list[Category]:
    """Fetch the owner's categories ordered by name."""
    with span("category_service.get_categories"):
        records = await db_client.list_all_records(
            collection=constants.CATEGORIES_COLLECTION,
            filter_query=f'user_id = "{sanitize_param(owner_id)}"',
            sort="cat_name",
            token=token,
        )
        return [Category.from_record(record) for record in records]


async def create_category(*, name: str, owner_id: str, token: str | None = None) -> Category:
    """Create a category for the owner.

    Raises:
        pydantic.ValidationError: If the name is blank
        db_client.DatabaseError: If the backend call fails
    """
    with span("category_service.create_category"):
        payload = CategoryCreate(name=name, owner_id=owner_id)
        record = await db_client.create_record(
            collection=constants.CATEGORIES_COLLECTION,
            data=payload.to_record(),
            token=token,
        )
        logger.info("Created category", extra={"category_id": record.get("id"), "user_id": owner_id})
        return Category.from_record(record)


async def update_category_name(*, category_id: str, new_name: str, token: str | None = None) -> Category:
    """Rename a category."""
    with span("category_service.update_category_name"):
        record = await db_client.update_record(
            collection=constants.CATEGORIES_COLLECTION,
            record_id=category_id,
            data=CategoryRename(name=new_name).to_record(),
            token=token,
        )
        logger.info("Renamed category", extra={"category_id": category_id})
        return Category.from_record(record)
