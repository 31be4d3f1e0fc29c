"""Profile domain model."""

import json
from typing import Any

from pydantic import BaseModel, Field


class Profile(BaseModel):
    """Profile data transfer object; the id equals the owner's user id."""

    id: str = Field(..., description="Profile ID, same as the owner user ID")
    full_name: str = Field(default="", description="Display name")
    bio: str | None = Field(default=None, description="Optional biography")
    avatar_url: str | None = Field(default=None, description="Optional avatar reference")
    preferences: dict[str, Any] = Field(default_factory=dict, description="Free-form preferences")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Profile":
        """Build a profile from a backend record."""
        preferences = record.get("preferences") or {}
        if isinstance(preferences, str):
            try:
                preferences = json.loads(preferences)
            except ValueError:
                preferences = {}

        return cls(
            id=str(record["id"]),
            full_name=record.get("full_name") or "",
            bio=record.get("bio") or None,
            avatar_url=record.get("avatar_url") or None,
            preferences=preferences if isinstance(preferences, dict) else {},
            created=record.get("created") or record.get("created_at"),
            updated=record.get("updated") or record.get("updated_at"),
        )
