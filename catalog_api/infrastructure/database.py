"""Database configuration and session management.

Provides async SQLAlchemy engine and session factory.
"""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from catalog_api.infrastructure.config import settings

# Create async engine
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.database_pool_size,
)

# Session factory
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def ping() -> None:
    """Run a trivial query to check the store is reachable."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
