"""DynamoDB storage backends for the delivery core.

Records are stored as a JSON document (``record``) next to the key and
index attributes DynamoDB needs. Conditional writes give the guarantees
the in-memory backends get from locks:

- notification updates require the stored status to be unchanged
- attempts are insert-only per (notification, channel, attempt number)
- a queue item is handed out by whoever deletes it first

Table layouts are documented on StorageSettings.
"""

import time
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.directory import EndpointStore, PreferenceStore
from infrastructure.notifications.errors import LedgerWriteError, QueueError
from infrastructure.notifications.ledger import DeliveryLedger
from infrastructure.notifications.models import (
    DeliveryAttempt,
    Notification,
    NotificationStatus,
    QueueItem,
    RecipientEndpoints,
    RecipientPreference,
    utc_now,
)
from infrastructure.operations import OperationResult
from integrations.aws.dynamodb import delete_item, get_item, put_item, query

logger = get_module_logger()

USER_INDEX = "user_id-created_at-index"
EXTERNAL_ID_INDEX = "external_id-index"
QUEUE_INDEX = "queue-sort_key-index"
QUEUE_PARTITION = "dispatch"


def _s(value: str) -> Dict[str, str]:
    return {"S": value}


def _record(item: Dict[str, Any]) -> str:
    return item["record"]["S"]


def _is_condition_failure(result: OperationResult) -> bool:
    return result.error_code == "CONDITION_FAILED"


def attempt_key(attempt: DeliveryAttempt) -> str:
    return f"{attempt.channel.value}#{attempt.attempt_number:04d}"


class DynamoDBDeliveryLedger(DeliveryLedger):
    """Ledger backed by the notifications and delivery attempts tables."""

    def __init__(self, notifications_table: str, attempts_table: str):
        super().__init__()
        self.notifications_table = notifications_table
        self.attempts_table = attempts_table

    def _notification_item(self, notification: Notification) -> Dict[str, Any]:
        return {
            "notification_id": _s(notification.id),
            "user_id": _s(notification.user_id),
            "created_at": _s(notification.created_at.isoformat()),
            "status": _s(notification.status.value),
            "record": _s(notification.model_dump_json()),
        }

    def _insert_notification(self, notification: Notification) -> None:
        result = put_item(
            table_name=self.notifications_table,
            Item=self._notification_item(notification),
            ConditionExpression="attribute_not_exists(notification_id)",
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to create notification '{notification.id}': {result.message}"
            )

    def _load_notification(self, notification_id: str) -> Optional[Notification]:
        result = get_item(
            table_name=self.notifications_table,
            Key={"notification_id": _s(notification_id)},
            ConsistentRead=True,
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to read notification '{notification_id}': {result.message}"
            )
        item = (result.data or {}).get("Item")
        return Notification.model_validate_json(_record(item)) if item else None

    def _store_notification(
        self, notification: Notification, expected_status: NotificationStatus
    ) -> None:
        result = put_item(
            table_name=self.notifications_table,
            Item=self._notification_item(notification),
            ConditionExpression="#status = :expected",
            ExpressionAttributeNames={"#status": "status"},
            ExpressionAttributeValues={":expected": _s(expected_status.value)},
        )
        if _is_condition_failure(result):
            raise LedgerWriteError(
                f"Notification '{notification.id}' changed concurrently"
            )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to update notification '{notification.id}': {result.message}"
            )

    def _user_notifications(self, user_id: str) -> List[Notification]:
        result = query(
            table_name=self.notifications_table,
            IndexName=USER_INDEX,
            KeyConditionExpression="user_id = :user_id",
            ExpressionAttributeValues={":user_id": _s(user_id)},
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to list notifications for '{user_id}': {result.message}"
            )
        return [Notification.model_validate_json(_record(i)) for i in result.data or []]

    def _insert_attempt(self, attempt: DeliveryAttempt) -> None:
        item = {
            "notification_id": _s(attempt.notification_id),
            "attempt_key": _s(attempt_key(attempt)),
            "record": _s(attempt.model_dump_json()),
        }
        if attempt.external_id:
            item["external_id"] = _s(attempt.external_id)
        result = put_item(
            table_name=self.attempts_table,
            Item=item,
            ConditionExpression="attribute_not_exists(attempt_key)",
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to record attempt {attempt_key(attempt)} for "
                f"'{attempt.notification_id}': {result.message}"
            )

    def _load_attempts(self, notification_id: str) -> List[DeliveryAttempt]:
        result = query(
            table_name=self.attempts_table,
            KeyConditionExpression="notification_id = :nid",
            ExpressionAttributeValues={":nid": _s(notification_id)},
            ConsistentRead=True,
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to read attempts for '{notification_id}': {result.message}"
            )
        return [DeliveryAttempt.model_validate_json(_record(i)) for i in result.data or []]

    def _attempts_by_external_id(self, external_id: str) -> List[DeliveryAttempt]:
        result = query(
            table_name=self.attempts_table,
            IndexName=EXTERNAL_ID_INDEX,
            KeyConditionExpression="external_id = :eid",
            ExpressionAttributeValues={":eid": _s(external_id)},
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to look up external id '{external_id}': {result.message}"
            )
        return [DeliveryAttempt.model_validate_json(_record(i)) for i in result.data or []]


def queue_sort_key(item: QueueItem) -> str:
    return f"{item.priority.rank:02d}#{item.not_before.isoformat()}#{item.sequence:020d}"


class DynamoDBDispatchQueue:
    """Dispatch queue backed by a DynamoDB table.

    Every item shares one index partition, sorted by
    rank#not_before#sequence. Dequeue walks that order, skips items not
    yet ready and claims the first ready one with a conditional delete.
    """

    def __init__(self, table_name: str):
        self.table_name = table_name

    def _put(self, item: QueueItem, **kwargs: Any) -> OperationResult:
        return put_item(
            table_name=self.table_name,
            Item={
                "notification_id": _s(item.notification_id),
                "queue": _s(QUEUE_PARTITION),
                "sort_key": _s(queue_sort_key(item)),
                "record": _s(item.model_dump_json()),
            },
            **kwargs,
        )

    def enqueue(
        self, notification: Notification, not_before: Optional[datetime] = None
    ) -> QueueItem:
        now = utc_now()
        item = QueueItem(
            notification_id=notification.id,
            priority=notification.priority,
            not_before=not_before or notification.scheduled_at or now,
            enqueued_at=now,
            expires_at=notification.expires_at,
            sequence=time.time_ns(),
        )
        result = self._put(item)
        if not result.is_success:
            raise QueueError(f"Failed to enqueue '{notification.id}': {result.message}")
        logger.debug(
            "notification_enqueued",
            notification_id=notification.id,
            priority=notification.priority.value,
            not_before=item.not_before.isoformat(),
        )
        return item

    def _ordered_items(self) -> List[Dict[str, Any]]:
        result = query(
            table_name=self.table_name,
            IndexName=QUEUE_INDEX,
            KeyConditionExpression="#queue = :queue",
            ExpressionAttributeNames={"#queue": "queue"},
            ExpressionAttributeValues={":queue": _s(QUEUE_PARTITION)},
        )
        if not result.is_success:
            raise QueueError(f"Failed to read dispatch queue: {result.message}")
        return result.data or []

    def dequeue_ready(self, now: Optional[datetime] = None) -> Optional[QueueItem]:
        now = now or utc_now()
        for raw in self._ordered_items():
            item = QueueItem.model_validate_json(_record(raw))
            if not item.is_ready(now):
                continue
            claimed = delete_item(
                table_name=self.table_name,
                Key={"notification_id": _s(item.notification_id)},
                ConditionExpression="sort_key = :sort_key",
                ExpressionAttributeValues={":sort_key": raw["sort_key"]},
            )
            if claimed.is_success:
                return item
            if not _is_condition_failure(claimed):
                raise QueueError(
                    f"Failed to claim '{item.notification_id}': {claimed.message}"
                )
        return None

    def requeue_with_delay(
        self, notification: Notification, delay_seconds: float
    ) -> QueueItem:
        return self.enqueue(
            notification, not_before=utc_now() + timedelta(seconds=delay_seconds)
        )

    def requeue_item(self, item: QueueItem, delay_seconds: float) -> QueueItem:
        restored = item.model_copy(
            update={
                "not_before": utc_now() + timedelta(seconds=delay_seconds),
                "sequence": time.time_ns(),
            }
        )
        result = self._put(
            restored, ConditionExpression="attribute_not_exists(notification_id)"
        )
        if not result.is_success and not _is_condition_failure(result):
            raise QueueError(
                f"Failed to requeue '{item.notification_id}': {result.message}"
            )
        return restored

    def remove(self, notification_id: str) -> bool:
        result = delete_item(
            table_name=self.table_name,
            Key={"notification_id": _s(notification_id)},
            ConditionExpression="attribute_exists(notification_id)",
        )
        if _is_condition_failure(result):
            return False
        if not result.is_success:
            raise QueueError(f"Failed to remove '{notification_id}': {result.message}")
        return True

    def depth(self) -> int:
        return len(self._ordered_items())

    def contains(self, notification_id: str) -> bool:
        result = get_item(
            table_name=self.table_name,
            Key={"notification_id": _s(notification_id)},
            ConsistentRead=True,
        )
        if not result.is_success:
            raise QueueError(f"Failed to read '{notification_id}': {result.message}")
        return bool((result.data or {}).get("Item"))


class DynamoDBPreferenceStore(PreferenceStore):
    def __init__(self, table_name: str):
        self.table_name = table_name

    def get(self, user_id: str) -> Optional[RecipientPreference]:
        result = get_item(table_name=self.table_name, Key={"user_id": _s(user_id)})
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to read preferences for '{user_id}': {result.message}"
            )
        item = (result.data or {}).get("Item")
        return RecipientPreference.model_validate_json(_record(item)) if item else None

    def put(self, preference: RecipientPreference) -> None:
        result = put_item(
            table_name=self.table_name,
            Item={
                "user_id": _s(preference.user_id),
                "record": _s(preference.model_dump_json()),
            },
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to store preferences for '{preference.user_id}': {result.message}"
            )


class DynamoDBEndpointStore(EndpointStore):
    def __init__(self, table_name: str):
        self.table_name = table_name

    def get(self, user_id: str) -> Optional[RecipientEndpoints]:
        result = get_item(table_name=self.table_name, Key={"user_id": _s(user_id)})
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to read endpoints for '{user_id}': {result.message}"
            )
        item = (result.data or {}).get("Item")
        return RecipientEndpoints.model_validate_json(_record(item)) if item else None

    def put(self, endpoints: RecipientEndpoints) -> None:
        result = put_item(
            table_name=self.table_name,
            Item={
                "user_id": _s(endpoints.user_id),
                "record": _s(endpoints.model_dump_json()),
            },
        )
        if not result.is_success:
            raise LedgerWriteError(
                f"Failed to store endpoints for '{endpoints.user_id}': {result.message}"
            )
