"""Pytest configuration and shared fixtures.

Organization:
    - Settings Fixtures: environment defaults and cache reset
    - Database Fixtures: SQLAlchemy engine and session on in-memory SQLite
    - Sluggable Fixtures: listener wired to the test session

When adding new features:
    1. Add fixtures to the appropriate section below
    2. Use @pytest.fixture with clear docstrings
    3. Make fixtures composable (fixtures can depend on other fixtures)
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Generator
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from slugtree.core.database.base import Base
from slugtree.core.database.sluggable import SluggableListener
from slugtree.core.settings import SluggableSettings, clear_all_caches
from slugtree.infra.logging import clear_log_context
from tests.models import SLUGGABLE_MODELS

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

# Tests never read a developer .env
os.environ.setdefault("SLUG_TREE_SYNC_STORAGE", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")
os.environ.setdefault("LOG_JSON", "false")


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_state() -> Generator[None]:
    """Clear cached settings and log context around every test."""
    clear_all_caches()
    clear_log_context()
    yield
    clear_all_caches()
    clear_log_context()


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine with in-memory SQLite.

    Yields:
        Async SQLAlchemy engine connected to in-memory SQLite.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create async database session with automatic table creation and cleanup.

    Yields:
        Async database session for testing.

    Example:
        async def test_create_category(db_session):
            db_session.add(Category(title="Food"))
            await db_session.flush()
    """
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(db_engine, expire_on_commit=False)

    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()

    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


# ============================================================================
# Sluggable Fixtures
# ============================================================================


@pytest.fixture
def slug_settings() -> SluggableSettings:
    """Sluggable settings with library defaults."""
    return SluggableSettings()


@pytest.fixture
def listener(slug_settings: SluggableSettings) -> Generator[SluggableListener]:
    """Listener with every test model registered, not attached to any session."""
    listener = SluggableListener(settings=slug_settings)
    for model in SLUGGABLE_MODELS:
        listener.register(model)
    yield listener
    listener.remove_listeners()


@pytest.fixture
def sluggable_session(
    db_session: AsyncSession,
    listener: SluggableListener,
) -> AsyncSession:
    """Test session whose flushes build slugs.

    Example:
        async def test_slug(sluggable_session):
            food = Category(title="Food")
            sluggable_session.add(food)
            await sluggable_session.flush()
            assert food.slug == "food"
    """
    listener.configure(db_session)
    return db_session
