# journal_api/database.py
from typing import AsyncGenerator

from sqlalchemy.orm import declarative_base

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)


# ============================================================================
# ASYNC ENGINE CONFIGURATION
# ============================================================================

def _make_async_url(sync_url: str) -> str:
    """Convert sync PostgreSQL URL to async (asyncpg driver)"""
    if sync_url.startswith("postgres://"):
        return sync_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if sync_url.startswith("postgresql://"):
        return sync_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return sync_url


ASYNC_DATABASE_URL = _make_async_url(settings.DATABASE_URL)
IS_POSTGRES = ASYNC_DATABASE_URL.startswith("postgresql")


def _engine_options() -> dict:
    """Pool options only apply to PostgreSQL; SQLite (tests, local dev) uses its default pool"""
    if not IS_POSTGRES:
        return {"echo": False}
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 5,
        "pool_timeout": 10,         # Fail fast if no connections available
        "pool_recycle": 3600,       # Recycle hourly
        "echo": False,              # Set to True for SQL debugging
        "connect_args": {
            "command_timeout": 60,
            "server_settings": {"jit": "off"},
        },
    }


async_engine = create_async_engine(ASYNC_DATABASE_URL, **_engine_options())

async_session = async_sessionmaker(
    bind=async_engine,
    expire_on_commit=False,
    class_=AsyncSession,
)

logger.info(
    "Async database engine configured",
    extra={"extra_data": {
        "dialect": async_engine.dialect.name,
        "database": ASYNC_DATABASE_URL.split("@")[-1],
    }}
)

# ============================================================================
# BASE MODEL
# ============================================================================

Base = declarative_base()


def import_models():
    """Import all models so they're registered with Base.metadata"""
    from .users import models as users_models  # noqa: F401
    from .entries import models as entries_models  # noqa: F401
    from .prompts import models as prompts_models  # noqa: F401
    from .usage import models as usage_models  # noqa: F401


# ============================================================================
# DEPENDENCIES
# ============================================================================

async def get_async_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Async DB session dependency for FastAPI endpoints.

    Rolls back on exceptions and always closes the session.

    Usage:
        @router.get("/endpoint")
        async def endpoint(db: AsyncSession = Depends(get_async_db)):
            ...
    """
    async with async_session() as session:
        try:
            yield session
        except Exception as e:
            logger.error(
                "Error in async database session",
                extra={"extra_data": {"error": str(e)}},
                exc_info=True
            )
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_models():
    """Create tables that don't exist yet (migrations own schema changes)"""
    import_models()
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_engine():
    """Dispose the connection pool during application shutdown"""
    await async_engine.dispose()
    logger.info("All database connections closed successfully")
