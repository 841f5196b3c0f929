"""Notification channel abstract base class.

All channel adapters (push, email, SMS, chat, realtime) implement this
interface. Adapters never raise: every failure is returned as a FAILED
DeliveryResult carrying whether it is worth retrying and whether the
endpoint should be invalidated.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

import requests
import structlog
from infrastructure.notifications.models import (
    Channel,
    DeliveryResult,
    Notification,
    RecipientEndpoints,
)
from infrastructure.operations import (
    OperationResult,
    OperationStatus,
    classify_http_response,
    classify_request_exception,
    is_invalid_endpoint,
)
from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    get_or_create_circuit_breaker,
)

logger = structlog.get_logger()


class NotificationChannel(ABC):
    """Abstract base class for notification channels.

    Example Implementation:
        class PushChannel(NotificationChannel):

            @property
            def channel(self) -> Channel:
                return Channel.PUSH

            def send(self, notification, endpoints) -> DeliveryResult:
                resolved = self.resolve_endpoint(endpoints)
                if not resolved.is_success:
                    return self.failure_from_result(resolved)
                result = self.call_provider(self._client.send, ...)
                ...
    """

    provider_name: str = "provider"

    def __init__(self, circuit_breaker: Optional[CircuitBreaker] = None):
        self._circuit_breaker = circuit_breaker or get_or_create_circuit_breaker(
            f"{self.channel.value}_channel"
        )

    @property
    @abstractmethod
    def channel(self) -> Channel:
        """Channel this adapter delivers on."""
        pass

    @property
    def channel_name(self) -> str:
        """Channel identifier for routing and logging."""
        return self.channel.value

    @property
    def circuit_breaker(self) -> CircuitBreaker:
        return self._circuit_breaker

    @abstractmethod
    def send(
        self, notification: Notification, endpoints: RecipientEndpoints
    ) -> DeliveryResult:
        """Deliver notification to the recipient's endpoint on this channel.

        Must not raise.

        Args:
            notification: Notification to send
            endpoints: Recipient endpoints (with live realtime session)

        Returns:
            DeliveryResult for this channel
        """
        pass

    @abstractmethod
    def resolve_endpoint(self, endpoints: RecipientEndpoints) -> OperationResult:
        """Pick and validate this channel's endpoint.

        Returns:
            OperationResult with the endpoint in data, or PERMANENT_ERROR
            when the recipient cannot be reached on this channel.
        """
        pass

    @abstractmethod
    def health_check(self) -> OperationResult:
        """Check provider connectivity and credentials."""
        pass

    def call_provider(
        self, func: Callable[..., requests.Response], *args: Any, **kwargs: Any
    ) -> OperationResult:
        """Call a provider client method through the circuit breaker.

        The HTTP response or network error is classified; transient
        outcomes count as breaker failures. An open circuit is a transient
        failure (CIRCUIT_OPEN).
        """

        def operation() -> OperationResult:
            try:
                response = func(*args, **kwargs)
            except requests.RequestException as e:
                return classify_request_exception(e, self.provider_name)
            return classify_http_response(response, self.provider_name)

        try:
            return self._circuit_breaker.execute(operation)
        except Exception as e:  # pylint: disable=broad-except
            result = classify_request_exception(e, self.provider_name)
            if not result.is_retryable:
                logger.error(
                    "channel_provider_call_error",
                    channel=self.channel_name,
                    error=str(e),
                    exc_info=True,
                )
            return result

    def failure_from_result(
        self, result: OperationResult, endpoint: Optional[str] = None
    ) -> DeliveryResult:
        """Map a failed OperationResult to a FAILED DeliveryResult."""
        invalidate = endpoint is not None and is_invalid_endpoint(result)
        return DeliveryResult.failed(
            channel=self.channel,
            error=result.message,
            error_code=result.error_code,
            retryable=result.status == OperationStatus.TRANSIENT_ERROR,
            invalidate_endpoint=invalidate,
            endpoint=endpoint if invalidate else None,
            response=result.data if isinstance(result.data, dict) else {},
        )

    def health_from_provider(
        self, is_configured: bool, status_call: Callable[[], requests.Response]
    ) -> OperationResult:
        """Health check shared by HTTP gateway channels."""
        if not is_configured:
            return OperationResult.permanent_error(
                f"{self.provider_name} is not configured",
                error_code="NOT_CONFIGURED",
            )
        try:
            result = classify_http_response(status_call(), self.provider_name)
        except Exception as e:  # pylint: disable=broad-except
            result = classify_request_exception(e, self.provider_name)
        if result.is_success:
            return OperationResult.success(
                message=f"{self.provider_name} reachable",
                data={"circuit": self._circuit_breaker.state.value},
            )
        logger.warning(
            "channel_health_check_failed",
            channel=self.channel_name,
            error=result.message,
        )
        return result
