"""Chat messaging (WhatsApp-style) gateway client.

Messages are posted as form data to the account's Messages resource with
basic auth; the gateway reports delivery through the status callback URL.
"""

from typing import TYPE_CHECKING

import requests

if TYPE_CHECKING:
    from infrastructure.configuration.integrations import ChatSettings

CHAT_PREFIX = "whatsapp:"


def as_chat_address(handle: str) -> str:
    """Prefix a handle with the chat scheme unless already present."""
    return handle if handle.startswith(CHAT_PREFIX) else f"{CHAT_PREFIX}{handle}"


class ChatClient:
    """REST client for the chat messaging gateway."""

    def __init__(self, settings: "ChatSettings"):
        self._api_url = settings.CHAT_API_URL.rstrip("/")
        self._account_id = settings.CHAT_ACCOUNT_ID
        self._auth_token = settings.CHAT_AUTH_TOKEN
        self._sender = settings.CHAT_SENDER
        self._callback_url = settings.CHAT_STATUS_CALLBACK_URL
        self._timeout = settings.CHAT_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self._api_url and self._account_id and self._auth_token)

    def _account_url(self) -> str:
        return f"{self._api_url}/Accounts/{self._account_id}"

    def send_message(self, handle: str, text: str) -> requests.Response:
        """Send a text message to a chat handle."""
        form = {
            "From": as_chat_address(self._sender),
            "To": as_chat_address(handle),
            "Body": text,
        }
        if self._callback_url:
            form["StatusCallback"] = self._callback_url
        return requests.post(
            f"{self._account_url()}/Messages.json",
            data=form,
            auth=(self._account_id, self._auth_token),
            timeout=self._timeout,
        )

    def status(self) -> requests.Response:
        return requests.get(
            f"{self._account_url()}.json",
            auth=(self._account_id, self._auth_token),
            timeout=self._timeout,
        )
