"""Circuit breaker guarding the audit sink.

States:
- CLOSED: Normal operation, writes pass through
- OPEN: Sink failing, writes fail immediately
- HALF_OPEN: Reset timeout elapsed, one trial write is allowed
"""
import logging
import threading
import time
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when circuit breaker is open (fail fast)."""
    pass


class CircuitBreaker:
    """Thread-safe circuit breaker for calls into an external collaborator."""

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: float = 60,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            failure_threshold: Consecutive failures before opening the circuit
            timeout: Seconds to wait before allowing a half-open attempt
            clock: Time source, swappable in tests
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failure_count = 0
        self.last_failure_time = None
        self._clock = clock
        self._state = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        """Get current state as string."""
        return self._state.value

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute ``func`` unless the circuit is open.

        Raises:
            CircuitBreakerOpen: If circuit is open
            Exception: Whatever ``func`` raises
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._clock() - self.last_failure_time >= self.timeout:
                    self._state = CircuitState.HALF_OPEN
                    logger.info("Circuit breaker transitioning to HALF_OPEN")
                else:
                    remaining = self.timeout - (self._clock() - self.last_failure_time)
                    raise CircuitBreakerOpen(
                        f"Circuit breaker is OPEN. Retry after {remaining:.1f}s"
                    )

        try:
            result = func(*args, **kwargs)
        except Exception:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self):
        with self._lock:
            self.failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("Circuit breaker closed after successful half-open attempt")

    def _on_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("Circuit breaker opened after failed half-open attempt")
            elif self.failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.error(
                    f"Circuit breaker opened after {self.failure_count} failures. "
                    f"Timeout: {self.timeout}s"
                )
