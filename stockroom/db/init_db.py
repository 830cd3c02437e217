# stockroom/db/init_db.py
"""Database initialization utilities."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from stockroom.db import tables

logger = logging.getLogger(__name__)


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables and seed the fixed roles.

    Note: This is suitable for development/testing only.
    """
    try:
        async with engine.begin() as conn:
            await conn.run_sync(tables.metadata.create_all)

            existing = set((await conn.execute(select(tables.role.c.roleID))).scalars())
            missing = [row for row in tables.DEFAULT_ROLES if row["roleID"] not in existing]
            if missing:
                await conn.execute(tables.role.insert(), missing)

        logger.info(f"Database initialized with {len(tables.metadata.tables)} tables")
    except Exception as e:
        logger.error(f"Error initializing database: {e}")
        raise


async def drop_db(engine: AsyncEngine) -> None:
    """
    Drop all database tables.

    WARNING: This will delete all data! Only for development/testing purposes.
    """
    async with engine.begin() as conn:
        await conn.run_sync(tables.metadata.drop_all)
    logger.warning("All database tables dropped")


async def reset_db(engine: AsyncEngine) -> None:
    logger.warning("Resetting database...")
    await drop_db(engine)
    await init_db(engine)
    logger.info("Database reset complete")
