"""Category domain model."""

from typing import Any

from pydantic import BaseModel, Field


class Category(BaseModel):
    """Category data transfer object."""

    id: str = Field(..., description="Unique category ID assigned by the backend")
    name: str = Field(..., description="Display name, unique per owner in practice")
    color: str | None = Field(default=None, description="Optional display colour")
    owner_id: str | None = Field(default=None, description="Owner user ID")
    task_count: int = Field(default=0, description="Number of tasks in this category, computed locally")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Category":
        """Build a category from a backend record (``cat_*`` columns)."""
        return cls(
            id=str(record.get("id") or record["cat_id"]),
            name=record.get("cat_name") or record.get("name") or "",
            color=record.get("cat_color") or None,
            owner_id=record.get("user_id") or None,
            created=record.get("created") or record.get("created_at"),
            updated=record.get("updated") or record.get("updated_at"),
        )
