"""
Circuit breaker that stops hammering an upstream after repeated failures.
"""

import time
from enum import Enum
from typing import Any, Callable, Awaitable

from shared.logging import get_logger


class CircuitBreakerState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenException(Exception):
    """Raised instead of calling the upstream while the breaker is open."""


class CircuitBreaker:
    """Opens after ``failure_threshold`` consecutive failures; one trial call after ``recovery_timeout``."""

    def __init__(self,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 name: str = "default"):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.name = name
        self.logger = get_logger(f"circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0

    def is_open(self) -> bool:
        return self._state == CircuitBreakerState.OPEN

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        if self.is_open():
            if time.time() - self._opened_at < self.recovery_timeout:
                raise CircuitBreakerOpenException(f"Circuit breaker '{self.name}' is open")
            self._state = CircuitBreakerState.HALF_OPEN
            self.logger.info("Circuit breaker half-open, allowing trial call")

        try:
            result = await func(*args, **kwargs)
        except Exception:
            self._failure_count += 1
            if self._state == CircuitBreakerState.HALF_OPEN or self._failure_count >= self.failure_threshold:
                self._state = CircuitBreakerState.OPEN
                self._opened_at = time.time()
                self.logger.warning("Circuit breaker opened", failure_count=self._failure_count)
            raise

        if self._state == CircuitBreakerState.HALF_OPEN:
            self.logger.info("Circuit breaker closed after successful trial call")
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        return result
