"""Shared test fixtures for SwatchSync backend tests."""

import os
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, patch

import pytest

# IMPORTANT: Set environment variables BEFORE any app imports
# This must happen before settings/config are loaded
os.environ["LOG_TO_FILE"] = "false"
os.environ["DEBUG"] = "false"
os.environ["SYNC_ENABLED"] = "false"

from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

# Ensure settings use our env vars - import and override before database import
from backend.app.core.config import settings  # noqa: E402

settings.log_to_file = False
settings.sync_enabled = False

from backend.app.core.database import Base  # noqa: E402

# Use in-memory SQLite for tests; StaticPool keeps every session on the same database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    # Import all models to register them
    from backend.app.models import color_standard, filament_type, manufacturer, swatch  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session maker bound to the test engine, as handed to the sync service."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client."""
    from backend.app.core.database import get_db
    from backend.app.main import app
    from backend.app.services.color_match import SwatchSnapshot

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    # Fresh snapshot per test so cached entries never leak between databases
    app.state.swatch_snapshot = SwatchSnapshot()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def no_page_delay():
    """Skip the politeness delay between catalog pages."""
    with patch("backend.app.services.filamentcolors.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


# ============================================================================
# Factory Fixtures for Test Data
# ============================================================================


@pytest.fixture
def swatch_factory(db_session):
    """Factory to create stored swatches together with their parents."""
    _counter = [0]  # Use list to allow mutation in nested function

    async def _create_swatch(**kwargs):
        from backend.app.core.database import utcnow
        from backend.app.models.filament_type import FilamentType
        from backend.app.models.manufacturer import Manufacturer
        from backend.app.models.swatch import Swatch

        _counter[0] += 1
        counter = _counter[0]

        manufacturer_name = kwargs.pop("manufacturer_name", "Prusament")
        filament_type_name = kwargs.pop("filament_type_name", "PLA")
        manufacturer_id = kwargs.pop("manufacturer_id", 1)
        filament_type_id = kwargs.pop("filament_type_id", 1)

        if await db_session.get(Manufacturer, manufacturer_id) is None:
            db_session.add(Manufacturer(id=manufacturer_id, name=manufacturer_name, website="https://example.com"))
        if await db_session.get(FilamentType, filament_type_id) is None:
            db_session.add(
                FilamentType(id=filament_type_id, name=filament_type_name, hot_end_temp=215, bed_temp=60)
            )

        defaults = {
            "id": counter,
            "color_name": f"Test Color {counter}",
            "color_parent": "red",
            "hex_color": "ff0000",
            "card_img": f"https://example.com/card/{counter}.jpg",
            "image_front": f"https://example.com/front/{counter}.jpg",
            "manufacturer_id": manufacturer_id,
            "filament_type_id": filament_type_id,
            "last_synced": utcnow(),
        }
        defaults.update(kwargs)

        swatch = Swatch(**defaults)
        db_session.add(swatch)
        await db_session.commit()
        await db_session.refresh(swatch)
        return swatch

    return _create_swatch
