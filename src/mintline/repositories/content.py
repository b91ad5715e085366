"""Content repository for mintline."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mintline.models.content import Content
from mintline.services.exceptions import PersistenceError


class ContentRepository:
    """Repository for Content entities."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, content: Content) -> Content:
        """Persist new content record.

        Args:
            content: Content entity to persist

        Returns:
            Persisted content with generated ID
        """
        try:
            self.session.add(content)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to add content: {e}") from e
        return content

    async def get_standalone_by_id(self, content_id: UUID) -> Content | None:
        """Retrieve a content row on its own, without related records.

        Args:
            content_id: Content's unique identifier

        Returns:
            Content if found, None otherwise
        """
        try:
            result = await self.session.execute(
                select(Content).where(Content.id == content_id)  # type: ignore[arg-type]
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load content {content_id}: {e}") from e
        return result.scalar_one_or_none()

    async def save(self, content: Content) -> Content:
        """Flush pending changes of a content record.

        Raises:
            PersistenceError: If the database rejects or cannot take the write
        """
        try:
            self.session.add(content)
            await self.session.flush()
            await self.session.refresh(content)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save content {content.id}: {e}") from e
        return content
