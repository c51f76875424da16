"""
Row store handle.

The engine and session factory are built by the application factory and kept on
``app.state``; request handlers receive sessions through ``get_db``.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from .config import Settings

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(app_settings: Settings) -> AsyncEngine:
    connect_args = {}
    if app_settings.DATABASE_URL.startswith("sqlite"):
        # Requests share one connection pool across the event loop
        connect_args["check_same_thread"] = False
    return create_async_engine(
        app_settings.DATABASE_URL,
        echo=app_settings.DATABASE_ECHO,
        connect_args=connect_args,
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def create_db_and_tables(engine: AsyncEngine) -> None:
    # Import models so they register on Base.metadata
    from . import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables checked/created.")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    session_factory: async_sessionmaker = request.app.state.sessionmaker
    async with session_factory() as session:
        yield session
