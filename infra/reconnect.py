import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import List, Type, TypeVar

from .logger import get_logger

log = get_logger("infra.reconnect")

T = TypeVar("T")


async def retry_forever(
        fn: Callable[[], Awaitable[T]],
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        retryable_exceptions: List[Type[BaseException]] = None,
        backoff: float = 2.0,
        jitter: bool = True,
) -> T:
    """
    Await ``fn`` until it succeeds and return its result.

    Only ``retryable_exceptions`` are retried; anything else propagates.
    With ``backoff=1`` and ``jitter=False`` the delay stays fixed.
    """
    if retryable_exceptions is None:
        retryable_exceptions = []
    delay = base_delay
    attempt = 0

    while True:
        attempt += 1
        try:
            return await fn()
        except Exception as e:
            if not any(isinstance(e, exc) for exc in retryable_exceptions):
                raise
            log.warning(
                "reconnect.failed",
                attempt=attempt,
                error=str(e),
                error_type=type(e).__name__,
                next_delay=delay,
            )
            await asyncio.sleep(delay)
            delay = min(delay * backoff, max_delay)
            if jitter:
                delay = delay * (0.8 + random.random() * 0.4)
