"""Database engine and lifecycle."""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from kinnect_server.core.config import settings

logger = logging.getLogger(__name__)


def create_engine() -> AsyncEngine:
    """Create PostgreSQL database engine.

    Returns:
        Async SQLAlchemy engine configured for PostgreSQL
    """
    return create_async_engine(
        settings.database_url,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_recycle=300,  # Recycle connections every 5 minutes
    )


# Global engine, sessions are provided per request by the SQLAlchemy plugin
engine = create_engine()


async def init_database(db_engine: AsyncEngine = engine) -> None:
    """Verify the database is reachable and migrations have been applied.

    Does NOT create tables - use Alembic migrations for schema management.

    Args:
        db_engine: Engine to check (defaults to the global engine)
    """
    async with db_engine.connect() as conn:
        has_migrations = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).has_table("alembic_version")
        )

        if not has_migrations:
            logger.warning(
                "Database migrations have not been applied. "
                "Run 'alembic upgrade head' to initialize the database schema."
            )
        else:
            result = await conn.execute(text("SELECT version_num FROM alembic_version"))
            version = result.scalar()
            logger.info(f"Database initialized with migration version: {version}")


async def close_database(db_engine: AsyncEngine = engine) -> None:
    """Close database connection pool."""
    await db_engine.dispose()
