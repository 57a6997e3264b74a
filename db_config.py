"""
Database configuration module using centralized settings.
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from core.config import settings
from core.logging import database_logger as logger

ASYNC_SQLALCHEMY_DATABASE_URL = settings.async_database_url
IS_SQLITE = ASYNC_SQLALCHEMY_DATABASE_URL.startswith("sqlite")


def _engine_options() -> dict:
    if IS_SQLITE:
        # aiosqlite connections are tied to the loop that opened them
        return {"poolclass": NullPool, "echo": settings.enable_sql_logging}
    return {
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "echo": settings.enable_sql_logging,
    }


logger.info("Database configuration loaded",
            backend="sqlite" if IS_SQLITE else "postgresql")

async_engine = create_async_engine(ASYNC_SQLALCHEMY_DATABASE_URL, **_engine_options())

if IS_SQLITE:
    @event.listens_for(async_engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

# Create Base class
Base = declarative_base()


async def get_async_db():
    """FastAPI dependency yielding an async session."""
    async with AsyncSessionLocal() as db:
        try:
            logger.debug("Async database session created")
            yield db
        except Exception as e:
            logger.error("Async database session error", error=str(e))
            await db.rollback()
            raise
        finally:
            logger.debug("Async database session closed")


async def init_models():
    """Create all tables that do not exist yet."""
    import models  # noqa: F401  registers the mappers on Base

    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
