import logging
from typing import List
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession, async_sessionmaker

from .config import Settings
from .models import Project
import utils.crud as crud
from utils.text import normalize_phone

logger = logging.getLogger(__name__)


async def run_migrations(engine: AsyncEngine, session_factory: async_sessionmaker, app_settings: Settings):
    """
    Bring an existing database up to the current schema and seed startup data.
    Safe to run on every startup.
    """
    logger.info("Running database migrations...")

    async with engine.begin() as conn:
        await ensure_project_columns(conn)

    async with session_factory() as session:
        await seed_bootstrap_admins(session, app_settings)

    logger.info("Database migrations completed successfully.")


def _missing_project_columns(sync_conn):
    existing = {c["name"] for c in inspect(sync_conn).get_columns(Project.__tablename__)}
    return [c.name for c in Project.__table__.columns if c.name not in existing]


async def ensure_project_columns(conn: AsyncConnection) -> List[str]:
    """
    Add any projects column that the table was created without (e.g. ``videos`` on
    databases from before it existed). New columns are added as plain TEXT.

    Returns the names of the added columns.
    """
    missing = await conn.run_sync(_missing_project_columns)
    for col in missing:
        await conn.execute(text(f"ALTER TABLE {Project.__tablename__} ADD COLUMN {col} TEXT"))
        logger.info(f"Added column {col} to {Project.__tablename__}")
    return missing


async def seed_bootstrap_admins(session: AsyncSession, app_settings: Settings):
    """Insert the configured bootstrap phones into the admin allow-list if absent."""
    for raw_phone in app_settings.bootstrap_admin_phones:
        phone = normalize_phone(raw_phone)
        if not phone:
            continue
        existing = await crud.get_admin_by_phone(session, phone)
        if existing:
            logger.debug(f"Bootstrap admin already present: {phone}")
            continue
        await crud.upsert_admin(session, phone=phone, name=None, actor="bootstrap")
        logger.info(f"Seeded bootstrap admin: {phone}")
