from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from core.config import get_settings
from core.logging import logger


class Base(DeclarativeBase):
    pass


settings = get_settings()

T = TypeVar("T")

# serialization_failure, deadlock_detected
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})


def engine_options(url: str) -> dict:
    options = dict(echo=False, future=True, pool_pre_ping=True)
    if not url.startswith("sqlite"):
        options.update(pool_recycle=1800, pool_size=10, max_overflow=20)
    return options


ENGINE_OPTIONS = engine_options(settings.database_url)

async_engine = create_async_engine(settings.database_url, **ENGINE_OPTIONS)
AsyncSessionMaker = async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """One unit of work: commit everything on success, nothing on failure."""

    async with AsyncSessionMaker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncIterator[AsyncSession]:
    async with session_scope() as session:
        yield session


def is_retryable(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    code = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    return code in RETRYABLE_SQLSTATES


def _log_retry(retry_state) -> None:
    logger.bind(event="transaction_retry", attempt=retry_state.attempt_number).warning(
        "Retrying unit of work after serialization failure"
    )


async def run_in_transaction(operation: Callable[[AsyncSession], Awaitable[T]], attempts: int = 3) -> T:
    """Run ``operation`` in its own unit of work, retrying serialization failures."""

    async for attempt in AsyncRetrying(
        wait=wait_exponential(multiplier=0.05, max=1),
        stop=stop_after_attempt(attempts),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            async with session_scope() as session:
                return await operation(session)
    raise RuntimeError("unreachable")  # pragma: no cover
