"""Unit of Work pattern for mintline.

Provides transaction management with automatic commit/rollback and access to all repositories.
"""

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mintline.repositories.asset import AssetRepository
from mintline.repositories.content import ContentRepository
from mintline.services.exceptions import PersistenceError

logger = structlog.get_logger()


class UnitOfWork:
    """Unit of Work pattern implementation.

    Manages database transactions and provides access to all repositories.
    Use as async context manager for automatic commit/rollback.

    Example:
        async with await uow_factory() as uow:
            asset = await uow.assets.get_by_id(asset_id)
            asset.mark_minted(address, verify_tx)
            await uow.assets.save(asset)
            # Automatically commits on successful exit
            # Automatically rolls back on exception
    """

    def __init__(self, session: AsyncSession):
        """Initialize UnitOfWork with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

        self.assets = AssetRepository(session)
        self.contents = ContentRepository(session)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager with automatic commit/rollback.

        Raises:
            PersistenceError: If the commit fails

        Returns:
            False: Always re-raise exceptions after rollback
        """
        try:
            if exc_type is None:
                try:
                    await self.session.commit()
                except SQLAlchemyError as e:
                    await self.session.rollback()
                    raise PersistenceError(f"Commit failed: {e}") from e
                logger.debug("transaction.committed")
            else:
                await self.session.rollback()
                logger.debug("transaction.rolled_back", exc_type=exc_type.__name__)
        finally:
            await self.session.close()

        return False


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Create a factory function that produces UnitOfWork instances.

    Args:
        session_factory: SQLAlchemy async session factory

    Returns:
        Callable that creates UnitOfWork instances from new sessions

    Example:
        session_factory = setup_db_session(db_url)
        uow_factory = create_uow_factory(session_factory)

        async with await uow_factory() as uow:
            await uow.assets.create(data)
    """

    async def _create_uow():
        """Create a new UnitOfWork instance with a new session."""
        session = session_factory()
        return UnitOfWork(session)

    return _create_uow
