"""Fixtures for circuit breaker tests."""

import pytest

from infrastructure.resilience import CircuitBreaker


class ProviderDown(Exception):
    pass


@pytest.fixture
def failing_call():
    """Callable that always raises, like a provider outage."""

    def _call():
        raise ProviderDown("503 from gateway")

    return _call


@pytest.fixture
def breaker_factory():
    """Factory for breakers that recover immediately unless told otherwise."""

    def _factory(name="push_channel", failure_threshold=2, timeout_seconds=0, **kwargs):
        return CircuitBreaker(
            name,
            failure_threshold=failure_threshold,
            timeout_seconds=timeout_seconds,
            **kwargs,
        )

    return _factory
