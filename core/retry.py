# ============================================================================
# BEST-EFFORT WRITES
# ============================================================================
# STATUS: Core - Bounded retry for side-channel writes
# PURPOSE: Retry a coroutine a fixed number of times, then log and drop
# CREATED: 19 OCT 2026
# ============================================================================
"""
Best-effort execution with bounded retry.

Used for writes that describe work which already happened (call history,
the initial job status record, the first verification request). Failing
them must not fail the caller, because the caller cannot undo the work
and a redelivery would duplicate it.

Usage:
    ok = await best_effort(
        lambda: repo.create(record),
        description="call history write",
    )
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY_SECONDS = 1.0


async def best_effort(
    operation: Callable[[], Awaitable[T]],
    description: str,
    attempts: int = DEFAULT_ATTEMPTS,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
) -> Optional[T]:
    """
    Run `operation` up to `attempts` times with a fixed delay between tries.

    Returns the operation result, or None once every attempt has failed.
    Cancellation is never swallowed.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if attempt == attempts:
                logger.error(
                    f"Dropping {description} after {attempts} attempts: {type(e).__name__}: {e}"
                )
                return None
            logger.warning(
                f"{description} failed on attempt {attempt}/{attempts}: {type(e).__name__}: {e}"
            )
            await asyncio.sleep(delay_seconds)
    return None


__all__ = ["best_effort", "DEFAULT_ATTEMPTS", "DEFAULT_DELAY_SECONDS"]
