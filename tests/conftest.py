"""pytest fixtures for mintline tests.

Provides:
- postgres_container: Session-scoped testcontainer PostgreSQL instance
- session: Function-scoped database session with table cleanup
- uow_factory: Function-scoped UnitOfWork factory backed by PostgreSQL
- memory_store / memory_uow_factory: In-memory unit of work for orchestration tests
"""

import copy
import os
import subprocess
import sys
from pathlib import Path
from typing import AsyncGenerator
from uuid import UUID

# Settings validation is skipped in the test environment
os.environ.setdefault("APP_ENV", "test")

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import text  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402
from testcontainers.postgres import PostgresContainer  # noqa: E402

from mintline.core.database import setup_db_session  # noqa: E402
from mintline.models.asset import Asset, AssetCreate, AssetState  # noqa: E402
from mintline.models.content import Content  # noqa: E402
from mintline.services.exceptions import PersistenceError  # noqa: E402
from mintline.uow import create_uow_factory  # noqa: E402

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@pytest.fixture(scope="session")
def postgres_container():
    """Provide session-scoped PostgreSQL container with migrations applied.

    Container starts once per test session and is reused across all tests.
    Migrations are applied using subprocess to avoid asyncio event loop conflicts.
    Database tests are skipped when no Docker daemon is reachable.
    """
    try:
        container = PostgresContainer(
            image="postgres:17",
            username="test",
            password="test",
            dbname="test_mintline",
        )
        container.start()
    except Exception as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")

    try:
        db_url = container.get_connection_url(driver="psycopg")

        # alembic/env.py reads DATABASE_URL
        env = os.environ.copy()
        env["DATABASE_URL"] = db_url

        subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
            env=env,
            cwd=PROJECT_ROOT,
        )

        yield container
    finally:
        container.stop()


@pytest_asyncio.fixture(scope="function")
async def session(postgres_container) -> AsyncGenerator[AsyncSession, None]:
    """Provide function-scoped database session with table cleanup.

    Each test gets a fresh session with empty tables.
    """
    db_url = postgres_container.get_connection_url(driver="psycopg")
    session_factory = setup_db_session(db_url, pool_size=5)

    async with session_factory() as session:
        yield session

        # Rollback first so leftover flushes do not block the cleanup
        await session.rollback()

        # contents references assets
        await session.execute(text("DELETE FROM contents"))
        await session.execute(text("DELETE FROM assets"))
        await session.commit()

    await session_factory.kw["bind"].dispose()


@pytest_asyncio.fixture(scope="function")
async def uow_factory(session: AsyncSession):
    """Provide function-scoped UnitOfWork factory sharing the test session's engine."""
    session_factory = async_sessionmaker(
        bind=session.bind,
        expire_on_commit=False,
    )
    return create_uow_factory(session_factory)


# In-memory unit of work


class InMemoryStore:
    """Committed rows, keyed by id. Rows are stored as detached copies."""

    def __init__(self):
        self.assets: dict[UUID, dict] = {}
        self.contents: dict[UUID, dict] = {}
        self.commits = 0
        self.fail_commits = False

    def add_content(self, storage_key: str, content_type: str | None = None) -> Content:
        content = Content(storage_key=storage_key, content_type=content_type)
        self.contents[content.id] = copy.deepcopy(content.model_dump())
        return content

    def asset(self, asset_id: UUID) -> Asset:
        return Asset.model_validate(copy.deepcopy(self.assets[asset_id]))

    def content(self, content_id: UUID) -> Content:
        return Content.model_validate(copy.deepcopy(self.contents[content_id]))


class FakeAssetRepository:
    def __init__(self, store: InMemoryStore, pending: dict):
        self.store = store
        self.pending = pending

    async def create(self, data: AssetCreate) -> Asset:
        return await self.save(Asset.model_validate(data.model_dump()))

    async def get_by_id(self, asset_id: UUID) -> Asset | None:
        data = self.pending.get(("assets", asset_id)) or self.store.assets.get(asset_id)
        if data is None:
            return None
        return Asset.model_validate(copy.deepcopy(data))

    async def save(self, asset: Asset) -> Asset:
        self.pending[("assets", asset.id)] = copy.deepcopy(asset.model_dump())
        return asset

    async def get_by_state(
        self, state: AssetState, limit: int = 100, offset: int = 0
    ) -> list[Asset]:
        rows = sorted(
            (row for row in self.store.assets.values() if row["state"] == state),
            key=lambda row: row["created_at"],
        )
        return [Asset.model_validate(copy.deepcopy(row)) for row in rows[offset : offset + limit]]


class FakeContentRepository:
    def __init__(self, store: InMemoryStore, pending: dict):
        self.store = store
        self.pending = pending

    async def add(self, content: Content) -> Content:
        return await self.save(content)

    async def get_standalone_by_id(self, content_id: UUID) -> Content | None:
        data = self.pending.get(("contents", content_id)) or self.store.contents.get(content_id)
        if data is None:
            return None
        return Content.model_validate(copy.deepcopy(data))

    async def save(self, content: Content) -> Content:
        self.pending[("contents", content.id)] = copy.deepcopy(content.model_dump())
        return content


class FakeUnitOfWork:
    """Stages writes and applies them to the store on successful exit."""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self.pending: dict = {}
        self.assets = FakeAssetRepository(store, self.pending)
        self.contents = FakeContentRepository(store, self.pending)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None and self.pending:
            if self.store.fail_commits:
                raise PersistenceError("Commit failed: database unavailable")
            for (table, row_id), row in self.pending.items():
                getattr(self.store, table)[row_id] = row
            self.store.commits += 1
        return False


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def memory_uow_factory(memory_store: InMemoryStore):
    async def _create_uow():
        return FakeUnitOfWork(memory_store)

    return _create_uow
