# /jewelbot/utils/circuit_breaker.py

import asyncio
import time
import logging
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# In-process circuit breakers for the two outbound dependencies (OpenAI and the
# WhatsApp Graph API). Every breaker registers itself so /health/detailed can
# report which integrations are currently short-circuited.

_registry: List["CircuitBreaker"] = []


class CircuitOpenError(Exception):
    """Raised when a call is blocked because the circuit is open."""


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreaker:
    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout: float = 60,
        success_threshold: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.success_threshold = success_threshold
        self._clock = clock
        self.failure_count = 0
        self.success_count = 0
        self.opened_at: float | None = None
        self.state = CircuitState.CLOSED
        self._lock = asyncio.Lock()
        _registry.append(self)

    async def call(self, func: Callable, *args: Any, **kwargs: Any) -> Any:
        async with self._lock:
            self._check_open()
        try:
            result = await func(*args, **kwargs)
        except Exception:
            async with self._lock:
                self._record_failure()
            raise
        async with self._lock:
            self._record_success()
        return result

    def _check_open(self) -> None:
        if self.state != CircuitState.OPEN:
            return
        if self.opened_at is not None and self._clock() - self.opened_at >= self.timeout:
            self.state = CircuitState.HALF_OPEN
            self.success_count = 0
            logger.info(f"Circuit '{self.name}' is HALF_OPEN; letting trial calls through.")
            return
        raise CircuitOpenError(f"{self.name} is unavailable (circuit open)")

    def _record_success(self) -> None:
        if self.state == CircuitState.HALF_OPEN:
            self.success_count += 1
            if self.success_count < self.success_threshold:
                return
            logger.info(f"Circuit '{self.name}' closed again after {self.success_count} successful calls.")
            self.state = CircuitState.CLOSED
        self.failure_count = 0

    def _record_failure(self) -> None:
        self.failure_count += 1
        # A single failed trial call is enough to reopen a half-open circuit.
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                logger.error(f"Circuit '{self.name}' OPENED after {self.failure_count} consecutive failures.")
            self.state = CircuitState.OPEN
            self.opened_at = self._clock()

    def snapshot(self) -> Dict[str, Any]:
        return {"state": self.state.value, "failures": self.failure_count}


def circuit_states() -> Dict[str, Dict[str, Any]]:
    """State of every breaker created in this process, keyed by name."""
    return {breaker.name: breaker.snapshot() for breaker in _registry}
