"""
Reliability utilities for storage calls.

Bounded retry with exponential backoff for transient database failures.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from backend.app.core.config import settings

logger = logging.getLogger("wastetrack.reliability")

T = TypeVar("T")

BACKOFF_FACTOR = 4


def is_transient(exc: BaseException) -> bool:
    """
    Classify a failure as transient (worth retrying) or permanent.
    
    Connectivity problems, lock timeouts and pool exhaustion are transient.
    Constraint violations, missing rows and every business-rule error are
    permanent and must surface immediately.
    """
    if isinstance(exc, (OperationalError, InterfaceError, PoolTimeoutError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, (ConnectionError, asyncio.TimeoutError)):
        return True
    return False


def backoff_delay(attempt: int, base_delay: float) -> float:
    """Delay before the retry that follows `attempt` (1-based): 100ms, 400ms, 1600ms..."""
    return base_delay * (BACKOFF_FACTOR ** (attempt - 1))


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    description: str = "database operation",
) -> T:
    """
    Run `operation` up to `attempts` times, sleeping between transient failures.
    
    The operation must be a complete unit of work: each attempt opens its own
    transaction, so a failed attempt leaves nothing behind to duplicate.
    
    Args:
        operation: Zero-argument coroutine function to run
        attempts: Maximum attempts (defaults to settings.db_retry_attempts)
        base_delay: First backoff in seconds (defaults to settings.db_retry_base_delay)
        description: Label used in log lines
    
    Returns:
        Whatever the operation returns
    
    Raises:
        The first permanent error, or the last transient error once attempts run out
    """
    attempts = attempts if attempts is not None else settings.db_retry_attempts
    base_delay = base_delay if base_delay is not None else settings.db_retry_base_delay
    
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except Exception as exc:
            if not is_transient(exc):
                raise
            
            if attempt == attempts:
                logger.error(
                    "%s failed after %d attempts: %s", description, attempts, exc
                )
                raise
            
            delay = backoff_delay(attempt, base_delay)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.3fs: %s",
                description, attempt, attempts, delay, exc
            )
            await asyncio.sleep(delay)
    
    raise ValueError("attempts must be at least 1")
