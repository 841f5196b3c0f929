"""Static notification type catalog.

Default channels and preference category for every NotificationType.
Both tables are exhaustive over the enum; a new type without an entry
fails at import time.
"""

from typing import Dict, FrozenSet, List, Tuple

from infrastructure.notifications.models import Channel, NotificationType

T = NotificationType
RT, PUSH, EMAIL, SMS, CHAT = (
    Channel.REALTIME,
    Channel.PUSH,
    Channel.EMAIL,
    Channel.SMS,
    Channel.CHAT,
)

FALLBACK_CHANNELS: Tuple[Channel, ...] = (RT, PUSH)

DEFAULT_CHANNELS: Dict[NotificationType, Tuple[Channel, ...]] = {
    T.ORDER_PLACED: (RT, PUSH, SMS),
    T.ORDER_CONFIRMED: (RT, PUSH, EMAIL),
    T.ORDER_PREPARING: (RT, PUSH),
    T.ORDER_READY: (RT, PUSH, SMS),
    T.ORDER_PICKED_UP: FALLBACK_CHANNELS,
    T.ORDER_OUT_FOR_DELIVERY: (RT, PUSH, SMS),
    T.ORDER_DELIVERED: (RT, PUSH, EMAIL),
    T.ORDER_CANCELLED: (RT, PUSH, EMAIL, SMS),
    T.ORDER_DELAYED: (RT, PUSH, SMS),
    T.PAYMENT_SUCCESS: (RT, PUSH, EMAIL),
    T.PAYMENT_FAILED: (RT, PUSH, SMS),
    T.REFUND_PROCESSED: FALLBACK_CHANNELS,
    T.DELIVERY_ASSIGNED: (RT, PUSH),
    T.DELIVERY_ARRIVED: (RT, PUSH, SMS),
    T.PROMOTIONAL_OFFER: (RT, EMAIL, CHAT),
    T.LOYALTY_REWARD: (RT, PUSH, EMAIL),
    T.REFERRAL_BONUS: (RT, PUSH, EMAIL),
    T.BIRTHDAY_OFFER: FALLBACK_CHANNELS,
    T.NEW_RESTAURANT: FALLBACK_CHANNELS,
    T.RESTAURANT_REOPENED: FALLBACK_CHANNELS,
    T.FRIEND_ACTIVITY: FALLBACK_CHANNELS,
    T.SYSTEM_MAINTENANCE: FALLBACK_CHANNELS,
    T.SECURITY_ALERT: FALLBACK_CHANNELS,
    T.ACCOUNT_UPDATE: FALLBACK_CHANNELS,
    T.WEEKLY_DIGEST: FALLBACK_CHANNELS,
    T.CUSTOM_MESSAGE: FALLBACK_CHANNELS,
}

CATEGORY_BY_TYPE: Dict[NotificationType, str] = {
    T.ORDER_PLACED: "order_updates",
    T.ORDER_CONFIRMED: "order_updates",
    T.ORDER_PREPARING: "order_updates",
    T.ORDER_READY: "order_updates",
    T.ORDER_PICKED_UP: "order_updates",
    T.ORDER_OUT_FOR_DELIVERY: "order_updates",
    T.ORDER_DELIVERED: "order_updates",
    T.ORDER_CANCELLED: "order_updates",
    T.ORDER_DELAYED: "order_updates",
    T.PAYMENT_SUCCESS: "order_updates",
    T.PAYMENT_FAILED: "order_updates",
    T.REFUND_PROCESSED: "order_updates",
    T.DELIVERY_ASSIGNED: "order_updates",
    T.DELIVERY_ARRIVED: "order_updates",
    T.PROMOTIONAL_OFFER: "promotional_offers",
    T.BIRTHDAY_OFFER: "promotional_offers",
    T.NEW_RESTAURANT: "promotional_offers",
    T.RESTAURANT_REOPENED: "promotional_offers",
    T.LOYALTY_REWARD: "loyalty_updates",
    T.REFERRAL_BONUS: "loyalty_updates",
    T.FRIEND_ACTIVITY: "social_activity",
    T.SECURITY_ALERT: "security_alerts",
    T.ACCOUNT_UPDATE: "security_alerts",
    T.WEEKLY_DIGEST: "weekly_digest",
    T.SYSTEM_MAINTENANCE: "order_updates",
    T.CUSTOM_MESSAGE: "order_updates",
}

# Bypass quiet hours and category toggles
SECURITY_TYPES: FrozenSet[NotificationType] = frozenset(
    {T.SECURITY_ALERT, T.ACCOUNT_UPDATE}
)

# Subject to the per-user frequency cap
FREQUENCY_CAPPED_CATEGORIES: FrozenSet[str] = frozenset(
    {"promotional_offers", "social_activity", "weekly_digest"}
)


def _check_exhaustive() -> None:
    for name, table in (
        ("DEFAULT_CHANNELS", DEFAULT_CHANNELS),
        ("CATEGORY_BY_TYPE", CATEGORY_BY_TYPE),
    ):
        missing = [t.value for t in NotificationType if t not in table]
        if missing:
            raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")


_check_exhaustive()


def default_channels_for(notification_type: NotificationType) -> List[Channel]:
    return list(DEFAULT_CHANNELS.get(notification_type, FALLBACK_CHANNELS))


def category_for(notification_type: NotificationType) -> str:
    return CATEGORY_BY_TYPE[notification_type]


def is_security_type(notification_type: NotificationType) -> bool:
    return notification_type in SECURITY_TYPES
