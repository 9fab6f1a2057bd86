"""Create the database tables when they do not exist yet."""

from sqlalchemy.ext.asyncio import AsyncEngine

from tapbridge import models  # noqa: F401
from tapbridge.core.logging import logger
from tapbridge.models._base import Base


async def init_db(engine: AsyncEngine) -> None:
    """Create every table registered on the declarative base.

    Args:
    ----
        engine (AsyncEngine): The engine to create the tables with.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
