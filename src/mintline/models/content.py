"""Content entity - raw media uploaded ahead of minting."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


class Content(SQLModel, table=True):
    """Content is owned by the upload flow; minting only links it to an asset."""

    __tablename__ = "contents"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    storage_key: str = Field(max_length=512)
    content_type: Optional[str] = Field(default=None, max_length=100)
    asset_id: Optional[UUID] = Field(default=None, foreign_key="assets.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
