"""Asset repository for mintline.

Provides data access methods for Asset entities.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mintline.models.asset import Asset, AssetCreate, AssetState
from mintline.services.exceptions import PersistenceError


class AssetRepository:
    """Repository for Asset entities.

    Writes go through the ORM unit of work, so a save only updates the
    columns that changed on the instance.
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def create(self, data: AssetCreate) -> Asset:
        """Create and persist a new asset record.

        Args:
            data: Creation fields (name, symbol, collection, initial state, ...)

        Returns:
            Persisted asset with generated ID
        """
        asset = Asset.model_validate(data.model_dump())
        return await self.save(asset)

    async def get_by_id(self, asset_id: UUID) -> Asset | None:
        """Retrieve asset by UUID, reading the latest committed row.

        Args:
            asset_id: Asset's unique identifier

        Returns:
            Asset if found, None otherwise
        """
        try:
            result = await self.session.execute(
                select(Asset)
                .where(Asset.id == asset_id)  # type: ignore[arg-type]
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load asset {asset_id}: {e}") from e
        return result.scalar_one_or_none()

    async def save(self, asset: Asset) -> Asset:
        """Flush pending changes of an asset and refresh it from the database.

        Args:
            asset: New or modified asset

        Returns:
            The refreshed asset

        Raises:
            PersistenceError: If the database rejects or cannot take the write
        """
        try:
            self.session.add(asset)
            await self.session.flush()
            await self.session.refresh(asset)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save asset {asset.id}: {e}") from e
        return asset

    async def get_by_state(
        self, state: AssetState, limit: int = 100, offset: int = 0
    ) -> list[Asset]:
        """Retrieve assets by lifecycle state with pagination.

        Args:
            state: Lifecycle state to filter by
            limit: Maximum number of assets to return (default: 100)
            offset: Number of assets to skip (default: 0)

        Returns:
            List of assets ordered by created_at timestamp (oldest first)
        """
        result = await self.session.execute(
            select(Asset)
            .where(Asset.state == state)  # type: ignore[arg-type]
            .order_by(Asset.created_at.asc())  # type: ignore[attr-defined]
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())
