"""
Circuit Breaker Implementation

Fails fast while the exchange keeps failing. Nothing here retries;
callers decide whether and when to try again.
"""

import asyncio
import time
import threading
from typing import Any, Callable, Dict, Optional
from dataclasses import dataclass
from enum import Enum

from .logger import StructuredLogger, get_logger


class CircuitBreakerState(Enum):
    """Circuit breaker states"""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Failing, requests rejected
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior"""
    failure_threshold: int = 5  # Failures before opening
    recovery_timeout: float = 60.0  # Seconds before attempting recovery
    expected_exception: tuple = (Exception,)  # Exception types to count as failures
    success_threshold: int = 1  # Successes needed to close circuit in half-open state
    timeout: float = 10.0  # Request timeout
    name: str = "default"


@dataclass
class CircuitBreakerMetrics:
    """Metrics for circuit breaker operation"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rejected_requests: int = 0
    state_changes: int = 0
    last_failure_time: Optional[float] = None
    last_success_time: Optional[float] = None
    consecutive_failures: int = 0
    consecutive_successes: int = 0


class CircuitBreakerOpenException(Exception):
    """Exception raised when circuit breaker is open"""
    pass


class CircuitBreakerTimeoutException(Exception):
    """Exception raised when request times out"""
    pass


class CircuitBreaker:
    """Circuit breaker with thread-safe state transitions"""

    def __init__(self, config: CircuitBreakerConfig,
                 logger: Optional[StructuredLogger] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config
        self.state = CircuitBreakerState.CLOSED
        self.metrics = CircuitBreakerMetrics()
        self.logger = logger or get_logger(__name__)
        self._clock = clock
        self._lock = threading.RLock()
        self._last_state_change = clock()

    def _should_attempt_reset(self) -> bool:
        return (self._clock() - self._last_state_change) >= self.config.recovery_timeout

    def _record_success(self):
        with self._lock:
            self.metrics.total_requests += 1
            self.metrics.successful_requests += 1
            self.metrics.consecutive_successes += 1
            self.metrics.consecutive_failures = 0
            self.metrics.last_success_time = time.time()

            if (self.state == CircuitBreakerState.HALF_OPEN and
                    self.metrics.consecutive_successes >= self.config.success_threshold):
                self._change_state(CircuitBreakerState.CLOSED)

    def _record_failure(self):
        with self._lock:
            self.metrics.total_requests += 1
            self.metrics.failed_requests += 1
            self.metrics.consecutive_failures += 1
            self.metrics.consecutive_successes = 0
            self.metrics.last_failure_time = time.time()

            if (self.state == CircuitBreakerState.CLOSED and
                    self.metrics.consecutive_failures >= self.config.failure_threshold):
                self._change_state(CircuitBreakerState.OPEN)
            elif self.state == CircuitBreakerState.HALF_OPEN:
                self._change_state(CircuitBreakerState.OPEN)

    def _change_state(self, new_state: CircuitBreakerState):
        with self._lock:
            if self.state != new_state:
                self.logger.warning("circuit_breaker.state_change", {
                    "name": self.config.name,
                    "from": self.state.value,
                    "to": new_state.value
                })
                self.state = new_state
                self._last_state_change = self._clock()
                self.metrics.state_changes += 1

                if new_state == CircuitBreakerState.HALF_OPEN:
                    self.metrics.consecutive_successes = 0
                    self.metrics.consecutive_failures = 0

    def _can_attempt_request(self) -> bool:
        with self._lock:
            if self.state == CircuitBreakerState.OPEN:
                if self._should_attempt_reset():
                    self._change_state(CircuitBreakerState.HALF_OPEN)
                    return True
                return False
            return True

    async def call_async(self, func: Callable, *args, **kwargs) -> Any:
        """Execute async function with circuit breaker protection"""
        if not self._can_attempt_request():
            with self._lock:
                self.metrics.rejected_requests += 1
            raise CircuitBreakerOpenException(f"Circuit breaker '{self.config.name}' is OPEN")

        try:
            result = await asyncio.wait_for(
                func(*args, **kwargs),
                timeout=self.config.timeout
            )
        except asyncio.TimeoutError as e:
            self._record_failure()
            raise CircuitBreakerTimeoutException(f"Request timeout after {self.config.timeout}s") from e
        except self.config.expected_exception:
            self._record_failure()
            raise

        self._record_success()
        return result

    def get_metrics(self) -> Dict[str, Any]:
        """Get circuit breaker metrics"""
        with self._lock:
            success_rate = (self.metrics.successful_requests / max(self.metrics.total_requests, 1)) * 100

            return {
                'name': self.config.name,
                'state': self.state.value,
                'config': {
                    'failure_threshold': self.config.failure_threshold,
                    'recovery_timeout': self.config.recovery_timeout,
                    'success_threshold': self.config.success_threshold,
                    'timeout': self.config.timeout
                },
                'metrics': {
                    'total_requests': self.metrics.total_requests,
                    'successful_requests': self.metrics.successful_requests,
                    'failed_requests': self.metrics.failed_requests,
                    'rejected_requests': self.metrics.rejected_requests,
                    'success_rate_percent': round(success_rate, 2),
                    'consecutive_failures': self.metrics.consecutive_failures,
                    'state_changes': self.metrics.state_changes,
                    'last_failure_time': self.metrics.last_failure_time,
                    'last_success_time': self.metrics.last_success_time
                }
            }
