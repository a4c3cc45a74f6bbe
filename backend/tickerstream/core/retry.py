"""
Retry with a fixed backoff schedule.

Used by the session supervisor to reopen a lost page: each attempt waits
out its delay first, then runs the operation. The loop stops at the first
success, when ``should_continue`` turns false, or when the schedule runs
out. Cancellation propagates immediately.
"""
import asyncio
from typing import Awaitable, Callable, Optional, Sequence

from tickerstream.logger import logger


async def retry_with_backoff(
    operation: Callable[[], Awaitable[bool]],
    delays: Sequence[float],
    *,
    label: str,
    should_continue: Optional[Callable[[], bool]] = None,
    on_attempt: Optional[Callable[[int], None]] = None,
) -> bool:
    """Run ``operation`` once per delay until it succeeds.

    Args:
        operation: Coroutine factory; returns True on success. Exceptions
            count as a failed attempt.
        delays: Seconds to wait before each attempt.
        label: Name used in log messages.
        should_continue: Checked before every attempt; returning False
            stops the loop without further attempts.
        on_attempt: Called with the 1-based attempt number before each try.

    Returns:
        True if an attempt succeeded, False if the schedule was exhausted
        or the loop was told to stop.
    """
    total = len(delays)
    for attempt, delay in enumerate(delays, start=1):
        await asyncio.sleep(delay)

        if should_continue is not None and not should_continue():
            logger.info(f"{label}: retry loop stopped before attempt {attempt}/{total}")
            return False

        if on_attempt is not None:
            on_attempt(attempt)

        try:
            if await operation():
                logger.info(f"{label}: attempt {attempt}/{total} succeeded")
                return True
            logger.warning(f"{label}: attempt {attempt}/{total} did not succeed")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(f"{label}: attempt {attempt}/{total} failed: {exc}")

    logger.error(f"{label}: giving up after {total} attempts")
    return False
