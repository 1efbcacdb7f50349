"""Fixed-delay retry for async operations."""

import asyncio
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

from ..exceptions import RetriesExhausted
from ..logger import StructuredLogger, get_logger

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_DELAY_MS = 50


async def retry(op: Callable[[], Awaitable[T]],
                max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                delay_ms: int = DEFAULT_DELAY_MS,
                on_failure: Optional[Callable[[int, Exception], None]] = None,
                retry_on: Tuple[Type[Exception], ...] = (Exception,),
                logger: Optional[StructuredLogger] = None,
                label: str = "") -> T:
    """
    Await ``op()`` up to ``max_attempts`` times, sleeping ``delay_ms`` between attempts.

    Every failed attempt is reported (log entry plus ``on_failure``) before the
    delay. There is no delay after the last attempt. When all attempts fail,
    ``RetriesExhausted`` is raised with the last error as its cause. Errors not
    matching ``retry_on`` propagate immediately.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    logger = logger or get_logger()
    attempt = 1

    while True:
        try:
            return await op()
        except retry_on as e:
            logger.warning("retry_attempt_failed", {
                "label": label,
                "attempt": attempt,
                "max_attempts": max_attempts,
                "error": str(e),
                "error_type": type(e).__name__
            })
            if on_failure is not None:
                on_failure(attempt, e)
            if attempt >= max_attempts:
                raise RetriesExhausted(attempts=max_attempts, cause=e) from e

        await asyncio.sleep(delay_ms / 1000)
        attempt += 1
