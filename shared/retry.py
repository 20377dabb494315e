"""
Retry decorator for calls to flaky upstreams such as the licensing server.
"""

import asyncio
import functools
import random
from typing import Any, Optional, Callable, Awaitable

from shared.logging import get_logger


class RetryConfig:
    """Attempts and exponential backoff for ``retry_on_exception``."""

    def __init__(self,
                 max_attempts: int = 3,
                 base_delay: float = 1.0,
                 max_delay: float = 60.0,
                 jitter: bool = True):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Delay after the given failed attempt: doubles each time, capped, with 10% jitter."""
        delay = min(self.base_delay * (2 ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay += random.uniform(-0.1 * delay, 0.1 * delay)
        return max(0.0, delay)


class RetryError(Exception):
    """Raised once every attempt has failed; keeps the last underlying error."""
    def __init__(self, message: str, last_exception: Exception, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def retry_on_exception(exceptions: tuple = (Exception,),
                       config: Optional[RetryConfig] = None) -> Callable:
    """Retry an async function on the given exceptions, then raise ``RetryError``."""
    config = config or RetryConfig()

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        logger = get_logger(f"retry.{func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            for attempt in range(1, config.max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == config.max_attempts:
                        logger.error("Upstream still failing, giving up", attempts=attempt, error=str(e))
                        raise RetryError(
                            f"{func.__name__} failed after {attempt} attempts",
                            last_exception=e,
                            attempts=attempt
                        )
                    delay = config.delay_for(attempt)
                    logger.warning("Upstream call failed, retrying", attempt=attempt, delay=delay, error=str(e))
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
