"""Database setup with SQLAlchemy async."""

from collections.abc import AsyncGenerator

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from fireops.config import get_settings

settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

REQUIRED_TABLES = (
    "stations",
    "departments",
    "units",
    "users",
    "fire_personnel",
    "emergency_alerts",
    "incidents",
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Create database tables."""
    # Register models on Base.metadata
    import fireops.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def check_db_ready() -> None:
    """
    Verify database connectivity and expected schema.

    Raises RuntimeError naming any missing tables.
    """
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

        existing = await conn.run_sync(
            lambda sync_conn: set(inspect(sync_conn).get_table_names())
        )
        missing = [name for name in REQUIRED_TABLES if name not in existing]
        if missing:
            raise RuntimeError(
                f"Database schema is missing tables: {', '.join(missing)} "
                "(run scripts/init_db.py or check migrations)."
            )
