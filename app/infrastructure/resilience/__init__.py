"""Resilience patterns for channel providers.

Circuit breakers wrap every provider call made by a notification channel
and are registered by name so the queue stats endpoint can report them.
"""

from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitState,
    register_circuit_breaker,
    get_or_create_circuit_breaker,
    get_circuit_breaker,
    get_all_circuit_breaker_stats,
    get_open_circuit_breakers,
    reset_circuit_breaker_registry,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitState",
    "register_circuit_breaker",
    "get_or_create_circuit_breaker",
    "get_circuit_breaker",
    "get_all_circuit_breaker_stats",
    "get_open_circuit_breakers",
    "reset_circuit_breaker_registry",
]
