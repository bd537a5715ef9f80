# specgen/core/circuit_breaker.py
"""
Circuit breaker for calls to external services.

States:
  CLOSED     calls pass through, non-expected failures are counted
  OPEN       calls fail fast with CircuitOpen until recovery_timeout has elapsed
  HALF_OPEN  exactly one trial call is let through; success closes the circuit,
             a counted failure re-opens it

Expected errors (e.g. provider rate limits) never touch the counters: the
provider is healthy, we are just asking too often.
"""

import asyncio
import enum
import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

from specgen.core.errors import CircuitOpen

logger = logging.getLogger(__name__)

ExpectedError = Union[str, re.Pattern, type]


class CircuitState(str, enum.Enum):
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


def _iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


class CircuitBreaker:
    def __init__(self,
                 name: str = "CircuitBreaker",
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 expected_errors: Optional[Iterable[ExpectedError]] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout  # seconds
        self.expected_errors: List[ExpectedError] = list(expected_errors or [])
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time: Optional[float] = None
        self.next_attempt: Optional[float] = None
        self._trial_in_flight = False

        self.stats = {
            "totalRequests": 0,
            "successfulRequests": 0,
            "failedRequests": 0,
            "rejectedRequests": 0,
            "circuitOpenCount": 0,
        }

    async def call(self, fn: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Run `fn` under breaker protection."""
        self.stats["totalRequests"] += 1

        if self.state == CircuitState.OPEN:
            now = self._clock()
            if self.next_attempt is not None and now < self.next_attempt:
                self.stats["rejectedRequests"] += 1
                logger.warning("Circuit breaker %s is OPEN (failures=%d, retry in %.1fs)",
                               self.name, self.failure_count, self.next_attempt - now)
                raise CircuitOpen(self.name, next_attempt_in=self.next_attempt - now)
            self.state = CircuitState.HALF_OPEN
            logger.info("Circuit breaker %s entering HALF_OPEN state", self.name)
        elif self.state == CircuitState.HALF_OPEN and self._trial_in_flight:
            self.stats["rejectedRequests"] += 1
            raise CircuitOpen(self.name)

        trial = self.state == CircuitState.HALF_OPEN
        if trial:
            self._trial_in_flight = True
        try:
            result = await fn(*args, **kwargs)
        except asyncio.CancelledError:
            # the caller gave up: nothing was observed about the service.
            # Only an abandoned trial undoes its own OPEN -> HALF_OPEN move.
            if trial and self.state == CircuitState.HALF_OPEN:
                self.state = CircuitState.OPEN
                logger.info("Circuit breaker %s trial cancelled, back to OPEN", self.name)
            raise
        except Exception as e:
            self.on_failure(e)
            raise
        finally:
            if trial:
                self._trial_in_flight = False
        self.on_success()
        return result

    def on_success(self):
        self.stats["successfulRequests"] += 1
        if self.state == CircuitState.OPEN:
            # admitted before the circuit opened; only a HALF_OPEN trial may close it
            return
        if self.state == CircuitState.HALF_OPEN:
            logger.info("Circuit breaker %s recovered, closing circuit", self.name)
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None
        self.next_attempt = None

    def on_failure(self, error: BaseException):
        self.stats["failedRequests"] += 1
        if self.is_expected_error(error):
            logger.debug("Circuit breaker %s ignoring expected error: %s", self.name, error)
            return

        self.failure_count += 1
        # wall clock, only reported by status(); timing decisions use self._clock
        self.last_failure_time = time.time()
        logger.warning("Circuit breaker %s recorded failure %d/%d: %s",
                       self.name, self.failure_count, self.failure_threshold, error)

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.open_circuit()

    def open_circuit(self):
        self.state = CircuitState.OPEN
        self.next_attempt = self._clock() + self.recovery_timeout
        self.stats["circuitOpenCount"] += 1
        logger.error("Circuit breaker %s OPENED (failures=%d, recovery in %.1fs)",
                     self.name, self.failure_count, self.recovery_timeout)

    def is_expected_error(self, error: BaseException) -> bool:
        text = f"{getattr(error, 'kind', '')} {error}"
        for expected in self.expected_errors:
            if isinstance(expected, str):
                if expected in text:
                    return True
            elif isinstance(expected, re.Pattern):
                if expected.search(text):
                    return True
            elif isinstance(expected, type) and isinstance(error, expected):
                return True
        return False

    def reset(self):
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = None
        self.next_attempt = None
        self._trial_in_flight = False
        logger.info("Circuit breaker %s reset", self.name)

    def status(self) -> Dict[str, Any]:
        next_in = None
        if self.state == CircuitState.OPEN and self.next_attempt is not None:
            next_in = max(0.0, self.next_attempt - self._clock())
        return {
            "name": self.name,
            "state": self.state.value,
            "failureCount": self.failure_count,
            "failureThreshold": self.failure_threshold,
            "lastFailureTime": _iso(self.last_failure_time),
            "nextAttemptIn": next_in,
            "stats": dict(self.stats),
        }


class CircuitBreakerRegistry:
    """Named breakers, created on first use."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    def get(self, name: str, **options) -> CircuitBreaker:
        if name not in self._breakers:
            options.setdefault("clock", self._clock)
            self._breakers[name] = CircuitBreaker(name=name, **options)
        return self._breakers[name]

    def statuses(self) -> List[Dict[str, Any]]:
        return [b.status() for b in self._breakers.values()]

    def reset_all(self):
        for breaker in self._breakers.values():
            breaker.reset()
        logger.info("All circuit breakers reset")

    def aggregated_stats(self) -> Dict[str, int]:
        stats = {
            "totalCircuitBreakers": len(self._breakers),
            "openCircuits": 0,
            "halfOpenCircuits": 0,
            "closedCircuits": 0,
            "totalRequests": 0,
            "totalFailures": 0,
            "totalSuccesses": 0,
        }
        for breaker in self._breakers.values():
            if breaker.state == CircuitState.OPEN:
                stats["openCircuits"] += 1
            elif breaker.state == CircuitState.HALF_OPEN:
                stats["halfOpenCircuits"] += 1
            else:
                stats["closedCircuits"] += 1
            stats["totalRequests"] += breaker.stats["totalRequests"]
            stats["totalFailures"] += breaker.stats["failedRequests"]
            stats["totalSuccesses"] += breaker.stats["successfulRequests"]
        return stats
