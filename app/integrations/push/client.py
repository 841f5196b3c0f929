"""Push gateway client.

Sends one message per device token. The gateway answers 404/410 for
tokens that are no longer registered.
"""

from typing import Any, Dict, TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from infrastructure.configuration.integrations import PushSettings


class PushClient:
    """REST client for the push gateway (server key auth)."""

    def __init__(self, settings: "PushSettings"):
        self._api_url = settings.PUSH_API_URL.rstrip("/")
        self._api_key = settings.PUSH_API_KEY
        self._ttl = settings.PUSH_TTL_SECONDS
        self._timeout = settings.PUSH_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self._api_url and self._api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"key={self._api_key}",
            "Content-Type": "application/json",
        }

    def send(
        self, device_token: str, title: str, body: str, data: Dict[str, Any]
    ) -> requests.Response:
        """Send a message to a single device token."""
        payload = {
            "to": device_token,
            "notification": {"title": title, "body": body},
            "data": data,
            "time_to_live": self._ttl,
        }
        return requests.post(
            f"{self._api_url}/send",
            json=payload,
            headers=self._headers(),
            timeout=self._timeout,
        )

    def status(self) -> requests.Response:
        return requests.get(
            f"{self._api_url}/status", headers=self._headers(), timeout=self._timeout
        )
