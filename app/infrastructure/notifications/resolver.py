"""Channel resolution.

Turns a notification and the recipient's preferences into the ordered,
de-duplicated list of channels to attempt. Never returns an empty list.

Rules, in order:
1. Explicit channel override, else the type's default channels. HIGH
   priority adds SMS.
2. Channels disabled in preferences are dropped, except SMS for HIGH
   priority.
3. Category disabled, or frequency cap reached, for a non-security,
   non-HIGH notification: realtime only.
4. Quiet hours for a non-security, non-HIGH notification: realtime and
   email only.
5. Nothing left: realtime.
"""

from datetime import datetime, time
from typing import List, Optional

import pytz

from infrastructure.logging import get_module_logger
from infrastructure.notifications import catalog
from infrastructure.notifications.models import (
    Channel,
    Notification,
    NotificationPriority,
    RecipientPreference,
    utc_now,
)

logger = get_module_logger()

QUIET_HOURS_CHANNELS = (Channel.REALTIME, Channel.EMAIL)
LAST_RESORT_CHANNEL = Channel.REALTIME


def _parse_hhmm(value: str) -> time:
    hours, minutes = value.split(":")
    return time(int(hours), int(minutes))


def local_time(preferences: RecipientPreference, now: Optional[datetime] = None) -> time:
    """Wall-clock time in the recipient's timezone."""
    tz = pytz.timezone(preferences.timezone)
    return (now or utc_now()).astimezone(tz).time().replace(second=0, microsecond=0)


def is_quiet_hours(
    preferences: RecipientPreference, now: Optional[datetime] = None
) -> bool:
    """True if quiet hours are enabled and active at now (recipient local time).

    A window whose start is not before its end wraps past midnight.
    """
    if not preferences.quiet_hours_enabled:
        return False

    start = _parse_hhmm(preferences.quiet_hours_start)
    end = _parse_hhmm(preferences.quiet_hours_end)
    current = local_time(preferences, now)

    if start < end:
        return start <= current < end
    return current >= start or current < end


def _dedupe(channels: List[Channel]) -> List[Channel]:
    seen = set()
    ordered = []
    for channel in channels:
        if channel not in seen:
            seen.add(channel)
            ordered.append(channel)
    return ordered


class ChannelResolver:
    """Resolve delivery channels from type defaults and preferences."""

    def resolve(
        self,
        notification: Notification,
        preferences: RecipientPreference,
        now: Optional[datetime] = None,
        recent_count: int = 0,
    ) -> List[Channel]:
        """Resolve channels for a notification.

        Args:
            notification: Notification to deliver.
            preferences: Recipient preferences.
            now: Evaluation instant (defaults to current UTC time).
            recent_count: Notifications of the same category the user
                received within the frequency window.

        Returns:
            Non-empty ordered list of channels.
        """
        is_high = notification.priority == NotificationPriority.HIGH
        is_security = catalog.is_security_type(notification.type)

        if notification.channels:
            channels = list(notification.channels)
        else:
            channels = catalog.default_channels_for(notification.type)
        if is_high:
            channels.append(Channel.SMS)
        channels = _dedupe(channels)

        channels = [
            c
            for c in channels
            if preferences.is_channel_enabled(c) or (is_high and c == Channel.SMS)
        ]

        if not is_security and not is_high:
            category = catalog.category_for(notification.type)
            if not preferences.is_category_enabled(category):
                logger.debug(
                    "channels_restricted_category_disabled",
                    notification_id=notification.id,
                    category=category,
                )
                return [LAST_RESORT_CHANNEL]
            if (
                category in catalog.FREQUENCY_CAPPED_CATEGORIES
                and recent_count >= preferences.frequency_cap
            ):
                logger.info(
                    "channels_restricted_frequency_cap",
                    notification_id=notification.id,
                    category=category,
                    recent_count=recent_count,
                    frequency_cap=preferences.frequency_cap,
                )
                return [LAST_RESORT_CHANNEL]
            if is_quiet_hours(preferences, now):
                channels = [c for c in channels if c in QUIET_HOURS_CHANNELS]

        if not channels:
            return [LAST_RESORT_CHANNEL]
        return channels
