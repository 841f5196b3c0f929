"""Recipient directory.

Answers where a user can be reached (endpoints) and how they want to be
reached (preferences). Preferences are created with defaults on first
read. Endpoints reported dead by a provider are removed so later rounds
stop using them. The live realtime session is attached at lookup time.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    Channel,
    EndpointsUpdate,
    PreferenceUpdate,
    RecipientEndpoints,
    RecipientPreference,
    utc_now,
)
from infrastructure.notifications.sessions import RealtimeSessionRegistry

logger = get_module_logger()


class PreferenceStore(ABC):
    """Storage for recipient preferences."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[RecipientPreference]:
        pass

    @abstractmethod
    def put(self, preference: RecipientPreference) -> None:
        pass


class EndpointStore(ABC):
    """Storage for recipient endpoints."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[RecipientEndpoints]:
        pass

    @abstractmethod
    def put(self, endpoints: RecipientEndpoints) -> None:
        pass


class InMemoryPreferenceStore(PreferenceStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, RecipientPreference] = {}

    def get(self, user_id: str) -> Optional[RecipientPreference]:
        with self._lock:
            item = self._items.get(user_id)
            return item.model_copy(deep=True) if item else None

    def put(self, preference: RecipientPreference) -> None:
        with self._lock:
            self._items[preference.user_id] = preference.model_copy(deep=True)


class InMemoryEndpointStore(EndpointStore):
    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, RecipientEndpoints] = {}

    def get(self, user_id: str) -> Optional[RecipientEndpoints]:
        with self._lock:
            item = self._items.get(user_id)
            return item.model_copy(deep=True) if item else None

    def put(self, endpoints: RecipientEndpoints) -> None:
        with self._lock:
            self._items[endpoints.user_id] = endpoints.model_copy(
                update={"active_session": None}, deep=True
            )


class RecipientDirectory:
    """Preferences and endpoints for recipients."""

    def __init__(
        self,
        preference_store: PreferenceStore,
        endpoint_store: EndpointStore,
        session_registry: RealtimeSessionRegistry,
        default_timezone: str = "Asia/Kolkata",
    ):
        self._preferences = preference_store
        self._endpoints = endpoint_store
        self._sessions = session_registry
        self._default_timezone = default_timezone
        self._lock = threading.Lock()

    def _defaults(self, user_id: str) -> RecipientPreference:
        return RecipientPreference(user_id=user_id, timezone=self._default_timezone)

    def get_preferences(self, user_id: str) -> RecipientPreference:
        """Stored preferences, created with defaults on first read."""
        preference = self._preferences.get(user_id)
        if preference is None:
            preference = self._defaults(user_id)
            self._preferences.put(preference)
            logger.debug("preferences_created_with_defaults", user_id=user_id)
        return preference

    def update_preferences(
        self, user_id: str, patch: PreferenceUpdate
    ) -> RecipientPreference:
        """Apply the fields set in patch; category toggles are merged.

        Raises:
            pydantic.ValidationError: The merged preferences are invalid.
        """
        changes = patch.model_dump(exclude_unset=True, exclude_none=True)
        with self._lock:
            current = self.get_preferences(user_id)
            merged = current.model_dump()
            if "categories" in changes:
                merged["categories"] = {**current.categories, **changes.pop("categories")}
            merged.update(changes)
            merged["updated_at"] = utc_now()
            updated = RecipientPreference.model_validate(merged)
            self._preferences.put(updated)
        logger.info(
            "preferences_updated",
            user_id=user_id,
            fields=sorted(patch.model_dump(exclude_unset=True)),
        )
        return updated

    def reset_preferences(self, user_id: str) -> RecipientPreference:
        preference = self._defaults(user_id)
        with self._lock:
            self._preferences.put(preference)
        logger.info("preferences_reset", user_id=user_id)
        return preference

    def get_endpoints(self, user_id: str) -> RecipientEndpoints:
        """Stored endpoints with the live realtime session attached."""
        endpoints = self._endpoints.get(user_id) or RecipientEndpoints(user_id=user_id)
        endpoints.active_session = self._sessions.lookup(user_id)
        return endpoints

    def set_endpoints(self, user_id: str, update: EndpointsUpdate) -> RecipientEndpoints:
        endpoints = RecipientEndpoints(user_id=user_id, **update.model_dump())
        with self._lock:
            self._endpoints.put(endpoints)
        logger.info(
            "endpoints_updated",
            user_id=user_id,
            devices=len(endpoints.device_tokens),
            channels=[
                name
                for name, value in (
                    ("email", endpoints.email),
                    ("sms", endpoints.phone),
                    ("chat", endpoints.chat_handle),
                )
                if value
            ],
        )
        return endpoints

    def invalidate_endpoint(self, user_id: str, channel: Channel, value: str) -> bool:
        """Remove an endpoint a provider reported as permanently unusable.

        Returns:
            True if a stored endpoint was removed.
        """
        with self._lock:
            endpoints = self._endpoints.get(user_id)
            if endpoints is None:
                return False

            removed = False
            if channel == Channel.PUSH and value in endpoints.device_tokens:
                endpoints.device_tokens = [t for t in endpoints.device_tokens if t != value]
                removed = True
            elif channel == Channel.EMAIL and endpoints.email == value:
                endpoints.email = None
                removed = True
            elif channel == Channel.SMS and endpoints.phone == value:
                endpoints.phone = None
                removed = True
            elif channel == Channel.CHAT and endpoints.chat_id == value:
                # A handle borrowed from the phone number stays valid for SMS
                endpoints.chat_id = None
                removed = True

            if removed:
                self._endpoints.put(endpoints)

        if removed:
            logger.warning(
                "endpoint_invalidated",
                user_id=user_id,
                channel=channel.value,
            )
        return removed
