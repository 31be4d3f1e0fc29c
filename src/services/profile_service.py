"""Profile gateway: create at sign-up, read and update afterwards."""

import logging

from src.core import db_client
from src.core.config import constants
from src.core.logging import span
from src.domain.create_models import ProfileCreate
from src.domain.profile import Profile
from src.domain.update_models import ProfileUpdate


logger = logging.getLogger(__name__)


async def create_profile(*, profile: ProfileCreate, token: str | None = None) -> Profile:
    """Create the profile record for a newly registered user."""
    with span("profile_service.create_profile"):
        record = await db_client.create_record(
            collection=constants.PROFILES_COLLECTION,
            data=profile.model_dump(),
            token=token,
        )
        logger.info("Created profile", extra={"user_id": profile.id})
        return Profile.from_record(record)


async def get_profile(*, owner_id: str, token: str | None = None) -> Profile:
    """Fetch the profile of ``owner_id``.

    Raises:
        db_client.RecordNotFoundError: If the user has no profile
    """
    with span("profile_service.get_profile"):
        record = await db_client.get_record(
            collection=constants.PROFILES_COLLECTION,
            record_id=owner_id,
            token=token,
        )
        return Profile.from_record(record)


async def update_profile(*, owner_id: str, update: ProfileUpdate, token: str | None = None) -> Profile:
    """Update the profile's name, biography and, when given, preferences."""
    with span("profile_service.update_profile"):
        record = await db_client.update_record(
            collection=constants.PROFILES_COLLECTION,
            record_id=owner_id,
            data=update.to_record(),
            token=token,
        )
        logger.info("Updated profile", extra={"user_id": owner_id})
        return Profile.from_record(record)
