"""Shared test fixtures."""

from collections.abc import AsyncIterator
from datetime import date, timedelta
from typing import Any

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from kinnect_server.models.base import Base


@pytest.fixture
async def async_engine():
    """Create async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave as on PostgreSQL
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_session(async_engine) -> AsyncIterator[AsyncSession]:
    """Create async session for testing."""
    async_session_maker = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def today() -> date:
    """Reference date for validation in tests."""
    return date.today()


def strava_payload(
    activity_id: int,
    day: date,
    sport: str = "Run",
    distance_m: float = 5000,
    moving_time_s: int = 1800,
) -> dict[str, Any]:
    """Build a Strava activity payload as returned by /athlete/activities."""
    return {
        "id": activity_id,
        "name": f"Morning {sport}",
        "type": sport,
        "sport_type": sport,
        "distance": distance_m,
        "moving_time": moving_time_s,
        "elapsed_time": moving_time_s + 60,
        "start_date": f"{day.isoformat()}T06:30:00Z",
        "start_date_local": f"{day.isoformat()}T07:30:00Z",
    }


@pytest.fixture
def make_strava_payload():
    """Factory fixture for Strava payloads."""
    return strava_payload


@pytest.fixture
def days_ago(today: date):
    """Return the date N days before today."""

    def _days_ago(n: int) -> date:
        return today - timedelta(days=n)

    return _days_ago
