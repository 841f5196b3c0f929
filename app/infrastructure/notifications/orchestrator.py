"""Delivery orchestrator.

Runs one dispatch round for a notification: fans out to every resolved
channel concurrently, records each channel's attempt in the ledger and
moves the notification to its aggregate status.

Usage Example:
    orchestrator = DeliveryOrchestrator(
        ledger=ledger,
        directory=directory,
        queue=queue,
        channels={Channel.PUSH: push_channel, Channel.SMS: sms_channel},
    )

    endpoints = directory.get_endpoints(notification.user_id)
    outcome = orchestrator.dispatch(notification, endpoints, [Channel.PUSH, Channel.SMS])
    logger.info("dispatched", status=outcome.status.value)
"""

import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timedelta
from typing import Dict, List, Optional

import structlog
from infrastructure.notifications.channels.base import NotificationChannel
from infrastructure.notifications.directory import RecipientDirectory
from infrastructure.notifications.ledger import DeliveryLedger
from infrastructure.notifications.models import (
    AggregateResult,
    AttemptOutcome,
    Channel,
    DeliveryAttempt,
    DeliveryResult,
    Notification,
    NotificationStatus,
    RecipientEndpoints,
    utc_now,
)
from infrastructure.notifications.queue import DispatchQueue

logger = structlog.get_logger()


def retry_delay_seconds(retry_count: int, base_delay: int, max_delay: int) -> int:
    """Exponential backoff: min(base_delay * 2^retry_count, max_delay)."""
    return min(base_delay * (2**retry_count), max_delay)


class DeliveryOrchestrator:
    """Concurrent multi-channel dispatch with aggregate status.

    Attributes:
        ledger: DeliveryLedger recording attempts and status
        directory: RecipientDirectory used to invalidate dead endpoints
        queue: DispatchQueue receiving retry rounds
        channels: Adapter per Channel
        channel_timeout_seconds: Per-channel send timeout
        retry_base_delay_seconds: Backoff base delay
        retry_max_delay_seconds: Backoff cap
    """

    def __init__(
        self,
        ledger: DeliveryLedger,
        directory: RecipientDirectory,
        queue: DispatchQueue,
        channels: Dict[Channel, NotificationChannel],
        max_workers: int = 10,
        channel_timeout_seconds: float = 15.0,
        retry_base_delay_seconds: int = 30,
        retry_max_delay_seconds: int = 900,
    ):
        self.ledger = ledger
        self.directory = directory
        self.queue = queue
        self.channels = channels
        self.channel_timeout_seconds = channel_timeout_seconds
        self.retry_base_delay_seconds = retry_base_delay_seconds
        self.retry_max_delay_seconds = retry_max_delay_seconds
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="channel-send"
        )

        logger.info(
            "initialized_delivery_orchestrator",
            channels=[c.value for c in channels],
            max_workers=max_workers,
            channel_timeout_seconds=channel_timeout_seconds,
        )

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def dispatch(
        self,
        notification: Notification,
        endpoints: RecipientEndpoints,
        channels: List[Channel],
        now: Optional[datetime] = None,
    ) -> AggregateResult:
        """Run one dispatch round.

        Process:
        1. Expired notifications move to EXPIRED without any send
        2. Send on every channel concurrently (per-channel timeout)
        3. Record one attempt per channel, in channel order
        4. Aggregate: any success -> SENT (DELIVERED when confirmed),
           only permanent failures or retry budget spent -> FAILED,
           otherwise requeue with exponential backoff; channels that
           failed permanently are stored in excluded_channels
        5. Invalidate endpoints reported dead

        An empty channel list fails the notification at once.

        Raises:
            LedgerWriteError: Attempt or status write failed; no status
                change was made for this round.
        """
        now = now or utc_now()
        if notification.is_expired(now):
            self.ledger.transition(notification.id, NotificationStatus.EXPIRED, now)
            logger.info(
                "notification_expired",
                notification_id=notification.id,
                expires_at=notification.expires_at.isoformat(),
            )
            return AggregateResult(
                notification_id=notification.id, status=NotificationStatus.EXPIRED
            )

        results = self._send_all(notification, endpoints, channels)

        with self.ledger.lock(notification.id):
            for result in results:
                self.ledger.record_attempt(self._attempt_from(notification.id, result))
            outcome = self._aggregate(notification.id, results)

        self._invalidate_endpoints(notification.user_id, results)

        logger.info(
            "notification_dispatched",
            notification_id=notification.id,
            channels=[c.value for c in channels],
            success_count=outcome.success_count,
            status=outcome.status.value,
            retry_scheduled=outcome.retry_scheduled,
        )
        return outcome

    def _send_all(
        self,
        notification: Notification,
        endpoints: RecipientEndpoints,
        channels: List[Channel],
    ) -> List[DeliveryResult]:
        futures: Dict[Channel, Future] = {}
        immediate: Dict[Channel, DeliveryResult] = {}
        for channel in channels:
            adapter = self.channels.get(channel)
            if adapter is None:
                immediate[channel] = DeliveryResult.failed(
                    channel,
                    error=f"No adapter configured for {channel.value}",
                    error_code="CHANNEL_UNAVAILABLE",
                )
                continue
            futures[channel] = self._executor.submit(adapter.send, notification, endpoints)

        deadline = time.monotonic() + self.channel_timeout_seconds
        results: List[DeliveryResult] = []
        for channel in channels:
            if channel in immediate:
                results.append(immediate[channel])
                continue
            results.append(self._collect(notification, channel, futures[channel], deadline))
        return results

    def _collect(
        self,
        notification: Notification,
        channel: Channel,
        future: Future,
        deadline: float,
    ) -> DeliveryResult:
        """Wait for one channel's send until the round deadline.

        A send that misses the deadline is not cancelled: it keeps running
        on its executor thread and is recorded as a retryable TIMEOUT
        failure. If the provider accepts it late, the retry round sends the
        message again, so delivery is at-least-once.
        """
        try:
            return future.result(timeout=max(0.0, deadline - time.monotonic()))
        except FutureTimeoutError:
            logger.warning(
                "channel_send_timeout",
                notification_id=notification.id,
                channel=channel.value,
                timeout_seconds=self.channel_timeout_seconds,
            )
            return DeliveryResult.failed(
                channel,
                error=f"{channel.value} send timed out",
                error_code="TIMEOUT",
                retryable=True,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "channel_send_error",
                notification_id=notification.id,
                channel=channel.value,
                error=str(e),
                exc_info=True,
            )
            return DeliveryResult.failed(
                channel,
                error=f"{type(e).__name__}: {str(e)}",
                error_code="CHANNEL_ERROR",
                retryable=True,
            )

    def _attempt_from(self, notification_id: str, result: DeliveryResult) -> DeliveryAttempt:
        now = utc_now()
        response = dict(result.response)
        if result.error_code:
            response.setdefault("error_code", result.error_code)
        return DeliveryAttempt(
            notification_id=notification_id,
            channel=result.channel,
            attempt_number=self.ledger.next_attempt_number(notification_id, result.channel),
            outcome=result.terminal_status,
            external_id=result.external_id,
            response=response,
            failure_reason=result.error,
            sent_at=now if result.success else None,
            delivered_at=now if result.terminal_status == AttemptOutcome.DELIVERED else None,
            created_at=now,
        )

    def _aggregate(self, notification_id: str, results: List[DeliveryResult]) -> AggregateResult:
        current = self.ledger.require(notification_id)
        succeeded = [r for r in results if r.success]

        if succeeded:
            status = self.ledger.transition(notification_id, NotificationStatus.SENT).status
            if any(r.terminal_status == AttemptOutcome.DELIVERED for r in succeeded):
                status = self.ledger.transition(
                    notification_id, NotificationStatus.DELIVERED
                ).status
            return AggregateResult(
                notification_id=notification_id, status=status, results=results
            )

        retryable = any(r.retryable for r in results)
        if not retryable or current.retry_count >= current.max_retries:
            self.ledger.transition(notification_id, NotificationStatus.FAILED)
            logger.warning(
                "notification_failed",
                notification_id=notification_id,
                retry_count=current.retry_count,
                max_retries=current.max_retries,
                reason="permanent" if not retryable else "retries_exhausted",
            )
            return AggregateResult(
                notification_id=notification_id,
                status=NotificationStatus.FAILED,
                results=results,
            )

        delay = retry_delay_seconds(
            current.retry_count,
            self.retry_base_delay_seconds,
            self.retry_max_delay_seconds,
        )
        excluded = list(current.excluded_channels)
        for result in results:
            if not result.retryable and result.channel not in excluded:
                excluded.append(result.channel)
        updated = self.ledger.update(
            notification_id,
            retry_count=current.retry_count + 1,
            excluded_channels=excluded,
        )
        self.queue.requeue_with_delay(updated, delay)
        logger.info(
            "notification_retry_scheduled",
            notification_id=notification_id,
            retry_count=updated.retry_count,
            delay_seconds=delay,
            excluded_channels=[c.value for c in excluded],
        )
        return AggregateResult(
            notification_id=notification_id,
            status=NotificationStatus.PENDING,
            results=results,
            retry_scheduled=True,
            next_attempt_at=utc_now() + timedelta(seconds=delay),
        )

    def _invalidate_endpoints(self, user_id: str, results: List[DeliveryResult]) -> None:
        for result in results:
            for endpoint in result.endpoints_to_invalidate():
                try:
                    self.directory.invalidate_endpoint(user_id, result.channel, endpoint)
                except Exception as e:  # pylint: disable=broad-except
                    logger.error(
                        "endpoint_invalidation_failed",
                        user_id=user_id,
                        channel=result.channel.value,
                        error=str(e),
                    )
