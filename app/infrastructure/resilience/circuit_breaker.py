"""Circuit breakers for channel provider calls.

One breaker guards each channel's provider. While a provider keeps failing
transiently the breaker opens and sends fail fast as retryable results, so
a dead gateway does not hold every dispatch round until its timeout.

    CLOSED --(failure_threshold consecutive failures)--> OPEN
    OPEN --(timeout_seconds elapsed, next call)--> HALF_OPEN
    HALF_OPEN --(probe succeeds)--> CLOSED
    HALF_OPEN --(probe fails)--> OPEN

Only transient outcomes count as failures. A permanent error such as an
invalid phone number says nothing about the provider's health.

Usage:
    breaker = get_or_create_circuit_breaker("sms_channel")
    result = breaker.execute(lambda: classify_http_response(client.send_sms(...)))
    if result.error_code == "CIRCUIT_OPEN":
        ...
"""

import threading
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, OperationStatus

logger = get_module_logger()


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    """The breaker rejected a call without running it."""

    def __init__(self, message: str, retry_after: int = 0):
        super().__init__(message)
        self.retry_after = retry_after


class CircuitBreaker:
    """Breaker for one provider.

    Args:
        name: Registry name, by convention "<channel>_channel"
        failure_threshold: Consecutive failures that open the circuit
        timeout_seconds: Time spent OPEN before a probe is allowed
        half_open_max_calls: Probes allowed in flight while HALF_OPEN
        clock: Monotonic time source
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout_seconds: int = 60,
        half_open_max_calls: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.half_open_max_calls = half_open_max_calls
        self._clock = clock

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
        self._probes_in_flight = 0
        self._last_failure_at: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._rejected_count = 0

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    def execute(self, operation: Callable[[], OperationResult]) -> OperationResult:
        """Run a provider operation that reports its outcome as an OperationResult.

        Retryable results count as failures; any other result counts as a
        success. A rejected call returns a TRANSIENT_ERROR result with
        error_code CIRCUIT_OPEN. Exceptions raised by operation count as
        failures and propagate.
        """
        try:
            probe = self._admit()
        except CircuitBreakerOpenError as e:
            return OperationResult.error(
                OperationStatus.TRANSIENT_ERROR,
                str(e),
                error_code="CIRCUIT_OPEN",
                retry_after=e.retry_after,
            )

        try:
            result = operation()
        except Exception as e:
            self._record_failure(probe, str(e))
            raise

        if result.is_retryable:
            self._record_failure(probe, result.message)
        else:
            self._record_success(probe)
        return result

    def call(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run func; any exception it raises counts as a failure.

        Raises:
            CircuitBreakerOpenError: The call was rejected.
        """
        probe = self._admit()
        try:
            value = func(*args, **kwargs)
        except Exception as e:
            self._record_failure(probe, str(e))
            raise
        self._record_success(probe)
        return value

    def reset(self) -> None:
        """Close the circuit and forget past failures."""
        with self._lock:
            self._set_state(CircuitState.CLOSED, reason="manual_reset")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self.failure_threshold,
                "rejected_count": self._rejected_count,
                "last_failure_time": (
                    self._last_failure_at.isoformat() if self._last_failure_at else None
                ),
                "last_error": self._last_error,
            }

    def _admit(self) -> bool:
        """Let a call through or raise; returns True for a HALF_OPEN probe."""
        with self._lock:
            if self._state == CircuitState.OPEN:
                remaining = self.timeout_seconds - (self._clock() - self._opened_at)
                if remaining > 0:
                    self._rejected_count += 1
                    raise CircuitBreakerOpenError(
                        f"Circuit breaker '{self.name}' is OPEN. "
                        f"Retry in {int(remaining)} seconds.",
                        retry_after=int(remaining) + 1,
                    )
                self._set_state(CircuitState.HALF_OPEN, reason="timeout_elapsed")

            if self._state == CircuitState.HALF_OPEN:
                if self._probes_in_flight >= self.half_open_max_calls:
                    self._rejected_count += 1
                    raise CircuitBreakerOpenError(
                        f"Circuit breaker '{self.name}' is HALF_OPEN "
                        f"(max concurrent calls reached)."
                    )
                self._probes_in_flight += 1
                return True
            return False

    def _record_success(self, probe: bool) -> None:
        with self._lock:
            if probe:
                self._probes_in_flight = max(0, self._probes_in_flight - 1)
            if self._state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.CLOSED, reason="probe_succeeded")
            else:
                self._failure_count = 0

    def _record_failure(self, probe: bool, error: Optional[str]) -> None:
        with self._lock:
            if probe:
                self._probes_in_flight = max(0, self._probes_in_flight - 1)
            self._failure_count += 1
            self._last_failure_at = datetime.now(timezone.utc)
            self._last_error = error

            if self._state == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.OPEN, reason="probe_failed", error=error)
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                self._set_state(CircuitState.OPEN, reason="threshold_reached", error=error)
            else:
                logger.warning(
                    "circuit_breaker_failure",
                    name=self.name,
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold,
                    error=error,
                )

    def _set_state(self, state: CircuitState, reason: str, **fields: Any) -> None:
        # Caller holds self._lock
        previous = self._state
        self._state = state
        if state == CircuitState.OPEN:
            self._opened_at = self._clock()
        else:
            self._failure_count = 0
        if state != CircuitState.HALF_OPEN:
            self._probes_in_flight = 0

        log = logger.error if state == CircuitState.OPEN else logger.info
        log(
            "circuit_breaker_state_changed",
            name=self.name,
            from_state=previous.value,
            to_state=state.value,
            reason=reason,
            **fields,
        )


_registry: Dict[str, CircuitBreaker] = {}
_registry_lock = threading.Lock()


def register_circuit_breaker(breaker: CircuitBreaker) -> None:
    with _registry_lock:
        _registry[breaker.name] = breaker


def get_or_create_circuit_breaker(
    name: str,
    failure_threshold: int = 5,
    timeout_seconds: int = 60,
) -> CircuitBreaker:
    """Return the breaker registered under name, creating it on first use."""
    with _registry_lock:
        breaker = _registry.get(name)
        if breaker is None:
            breaker = CircuitBreaker(
                name,
                failure_threshold=failure_threshold,
                timeout_seconds=timeout_seconds,
            )
            _registry[name] = breaker
        return breaker


def get_circuit_breaker(name: str) -> Optional[CircuitBreaker]:
    with _registry_lock:
        return _registry.get(name)


def get_all_circuit_breaker_stats() -> Dict[str, Dict[str, Any]]:
    """Stats for every registered breaker (queue stats endpoint)."""
    with _registry_lock:
        breakers = list(_registry.values())
    return {breaker.name: breaker.get_stats() for breaker in breakers}


def get_open_circuit_breakers() -> List[str]:
    with _registry_lock:
        breakers = list(_registry.values())
    return [b.name for b in breakers if b.state == CircuitState.OPEN]


def reset_circuit_breaker_registry() -> None:
    """Drop all registered breakers (tests)."""
    with _registry_lock:
        _registry.clear()
