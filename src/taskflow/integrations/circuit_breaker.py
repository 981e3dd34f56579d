"""Circuit breaker for outbound calls to external services."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from taskflow.utils.time import utc_now

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # calls pass through
    OPEN = "open"  # calls fail fast
    HALF_OPEN = "half_open"  # probing recovery


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 5
    timeout_seconds: int = 60
    half_open_max_calls: int = 1
    success_threshold: int = 2


@dataclass
class CircuitBreakerStats:
    state: CircuitState
    failure_count: int = 0
    success_count: int = 0
    opened_at: Optional[datetime] = None
    half_open_calls: int = 0
    total_calls: int = 0
    total_failures: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "opened_at": self.opened_at.isoformat() if self.opened_at else None,
            "total_calls": self.total_calls,
            "total_failures": self.total_failures,
        }


class CircuitBreakerOpen(Exception):
    """Raised instead of calling a service whose circuit is open."""

    def __init__(self, service_name: str, retry_after: int):
        self.service_name = service_name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker open for {service_name}, retry after {retry_after}s")


class CircuitBreaker:
    """
    Fail fast while a downstream service keeps failing.

    CLOSED -> OPEN after ``failure_threshold`` consecutive failures.
    OPEN -> HALF_OPEN once ``timeout_seconds`` have passed.
    HALF_OPEN -> CLOSED after ``success_threshold`` successes, or back to
    OPEN on the first failure.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self.clock = clock
        self._stats = CircuitBreakerStats(state=CircuitState.CLOSED)
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._stats.state

    @property
    def stats(self) -> CircuitBreakerStats:
        return CircuitBreakerStats(**vars(self._stats))

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        """Await ``func(*args, **kwargs)`` unless the circuit is open."""
        async with self._lock:
            self._stats.total_calls += 1
            if self._stats.state == CircuitState.OPEN:
                if self._seconds_until_half_open() > 0:
                    raise CircuitBreakerOpen(self.name, self._seconds_until_half_open())
                self._set_state(CircuitState.HALF_OPEN)

            if self._stats.state == CircuitState.HALF_OPEN:
                if self._stats.half_open_calls >= self.config.half_open_max_calls:
                    raise CircuitBreakerOpen(self.name, self.config.timeout_seconds)
                self._stats.half_open_calls += 1

        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            await self._record_failure(e)
            raise
        await self._record_success()
        return result

    async def reset(self) -> None:
        async with self._lock:
            self._set_state(CircuitState.CLOSED)

    async def _record_success(self) -> None:
        async with self._lock:
            self._stats.failure_count = 0
            self._stats.success_count += 1
            if (
                self._stats.state == CircuitState.HALF_OPEN
                and self._stats.success_count >= self.config.success_threshold
            ):
                self._set_state(CircuitState.CLOSED)
            elif self._stats.state == CircuitState.HALF_OPEN:
                # Let the next probe through
                self._stats.half_open_calls = 0

    async def _record_failure(self, error: Exception) -> None:
        async with self._lock:
            self._stats.failure_count += 1
            self._stats.total_failures += 1
            self._stats.success_count = 0
            logger.warning(
                f"Circuit {self.name} failure "
                f"({self._stats.failure_count}/{self.config.failure_threshold}): {error}"
            )
            if self._stats.state == CircuitState.HALF_OPEN or (
                self._stats.failure_count >= self.config.failure_threshold
            ):
                self._set_state(CircuitState.OPEN)

    def _set_state(self, state: CircuitState) -> None:
        previous = self._stats.state
        self._stats.state = state
        self._stats.half_open_calls = 0
        if state == CircuitState.OPEN:
            self._stats.opened_at = self.clock()
            logger.error(f"Circuit {self.name} opened after {self._stats.failure_count} failures")
        elif state == CircuitState.HALF_OPEN:
            self._stats.success_count = 0
            self._stats.failure_count = 0
            logger.info(f"Circuit {self.name} entering half-open state")
        else:
            self._stats.failure_count = 0
            self._stats.success_count = 0
            self._stats.opened_at = None
            if previous != CircuitState.CLOSED:
                logger.info(f"Circuit {self.name} closed")

    def _seconds_until_half_open(self) -> int:
        if not self._stats.opened_at:
            return 0
        elapsed = (self.clock() - self._stats.opened_at).total_seconds()
        return int(max(0, self.config.timeout_seconds - elapsed))
