"""Commit helper for the probe writers."""
import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import OperationalError, InterfaceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# SQLite writer contention, then PostgreSQL connection churn
TRANSIENT_ERRORS = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


async def retry_on_lock(
    coro_func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 0.1,
) -> T:
    """Run ``coro_func``, retrying when the store reports a transient error.

    Used around the per-check write-back and the reconcile commit. The
    delay doubles after each failed attempt; any other database error, or
    the last transient one, is raised to the caller.
    """
    last_exception = None
    for attempt in range(max_retries):
        try:
            return await coro_func()
        except (OperationalError, InterfaceError) as e:
            if not any(msg in str(e).lower() for msg in TRANSIENT_ERRORS):
                raise
            last_exception = e
            delay = base_delay * (2 ** attempt)
            logger.warning(f"Store busy, retrying in {delay}s (attempt {attempt + 1}/{max_retries}): {e}")
            await asyncio.sleep(delay)
    raise last_exception
