"""Litestar application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from advanced_alchemy.config.asyncio import AsyncSessionConfig
from litestar import Litestar
from litestar.contrib.sqlalchemy.plugins import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
from litestar.openapi import OpenAPIConfig
from sqlalchemy.ext.asyncio import AsyncEngine

from kinnect_server import __version__
from kinnect_server.api import api_routers
from kinnect_server.core.config import settings
from kinnect_server.core.database import close_database, engine, init_database

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


def create_app(db_engine: AsyncEngine | None = None) -> Litestar:
    """Create Litestar application.

    Args:
        db_engine: Engine for request sessions (defaults to the global engine)

    Returns:
        Configured Litestar app instance
    """
    db_engine = db_engine or engine

    @asynccontextmanager
    async def lifespan(app: Litestar) -> AsyncIterator[None]:
        """Application lifespan manager.

        Verifies the database on startup and closes the pool on shutdown.
        """
        logger.info("Starting kinnect-server", version=__version__)

        await init_database(db_engine)
        logger.info("Database initialized")

        yield

        await close_database(db_engine)
        logger.info("Shutdown complete")

    return Litestar(
        route_handlers=[*api_routers],
        lifespan=[lifespan],
        openapi_config=OpenAPIConfig(
            title="kinnect-server API",
            version=__version__,
            description="Activity logging, quality control and points for Kinnect",
        ),
        plugins=[
            SQLAlchemyPlugin(
                config=SQLAlchemyAsyncConfig(
                    engine_instance=db_engine,
                    session_dependency_key="session",
                    session_config=AsyncSessionConfig(expire_on_commit=False),
                ),
            ),
        ],
        debug=settings.log_level == "DEBUG",
    )


# Application instance
app = create_app()
