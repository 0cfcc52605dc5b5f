from typing import AsyncGenerator, Awaitable, Callable, TypeVar
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from app.core.config import settings
import asyncio
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Check if using SQLite
is_sqlite = "sqlite" in settings.DATABASE_URL.lower()

if is_sqlite:
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        connect_args={"check_same_thread": False}
    )
else:
    engine = create_async_engine(
        settings.DATABASE_URL,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=settings.DEBUG
    )

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)

# Base model
Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session"""
    async with AsyncSessionLocal() as session:
        yield session


def is_transient_error(error: Exception) -> bool:
    """Dropped connections, lock timeouts and similar errors that may pass on retry"""
    if isinstance(error, OperationalError):
        return True
    return isinstance(error, DBAPIError) and error.connection_invalidated


async def run_with_retry(
    session: AsyncSession,
    operation: Callable[[], Awaitable[T]],
    description: str = "database operation",
) -> T:
    """
    Run an idempotent database call, retrying transient failures.

    Waits DATABASE_RETRY_DELAY, doubling per attempt up to
    DATABASE_MAX_RETRY_DELAY, for at most DATABASE_MAX_RETRIES retries. The
    session is rolled back before each retry. Non-transient errors and the
    last transient one are re-raised unchanged.
    """
    max_retries = settings.DATABASE_MAX_RETRIES
    attempt = 0
    while True:
        try:
            return await operation()
        except DBAPIError as e:
            if attempt >= max_retries or not is_transient_error(e):
                raise

            delay = min(settings.DATABASE_RETRY_DELAY * 2 ** attempt, settings.DATABASE_MAX_RETRY_DELAY)
            attempt += 1
            logger.warning(
                f"Transient database error during {description} "
                f"(retry {attempt}/{max_retries} in {delay:.2f}s): {e}"
            )
            await session.rollback()
            await asyncio.sleep(delay)


async def init_db() -> None:
    """Create tables that do not exist yet"""
    # Import models so they register on Base.metadata
    from app.domain.doctors import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready")


async def ping_db(session: AsyncSession) -> bool:
    """Check database connectivity"""
    try:
        await session.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


async def close_db() -> None:
    """Close database connections"""
    await engine.dispose()
    logger.info("Database connections closed")
