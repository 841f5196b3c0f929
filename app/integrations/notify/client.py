"""Email and SMS gateway client.

The gateway authenticates every request with a short-lived HS256 JWT
signed with the service secret (``iss`` = client id, ``iat`` = now).
Methods return the raw ``requests.Response``; callers classify it with
``infrastructure.operations.classify_http_response``. Network failures
propagate as ``requests`` exceptions.
"""

import calendar
import json
import time
from typing import Optional, TYPE_CHECKING

import jwt
import requests
from infrastructure.logging import get_module_logger

if TYPE_CHECKING:
    from infrastructure.configuration.integrations import NotifySettings

logger = get_module_logger()


# generate the epoch seconds for the jwt token
def epoch_seconds():
    return calendar.timegm(time.gmtime())


def create_jwt_token(secret, client_id):
    """
    Generate a JWT Token for the gateway API

    Claims are:
    iss: identifier for the client
    iat: epoch seconds for the token (UTC)

    Returns a JWT token for this request
    """
    if not secret:
        logger.error("jwt_token_creation_failed", error="Missing secret key")
        raise ValueError("Missing secret key")
    if not client_id:
        logger.error("jwt_token_creation_failed", error="Missing client id")
        raise ValueError("Missing client id")

    headers = {"typ": "JWT", "alg": "HS256"}
    claims = {"iss": client_id, "iat": epoch_seconds()}
    return jwt.encode(payload=claims, key=secret, headers=headers)


class NotifyClient:
    """REST client for the email/SMS gateway."""

    def __init__(self, settings: "NotifySettings"):
        self._api_url = settings.NOTIFY_API_URL.rstrip("/")
        self._client_id = settings.NOTIFY_CLIENT_ID
        self._secret = settings.NOTIFY_CLIENT_SECRET
        self._email_from = settings.NOTIFY_EMAIL_FROM
        self._sms_sender = settings.NOTIFY_SMS_SENDER
        self._timeout = settings.NOTIFY_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self._api_url and self._client_id and self._secret)

    def create_authorization_header(self):
        """Create the authorization header tuple for the gateway API."""
        token = create_jwt_token(secret=self._secret, client_id=self._client_id)
        return "Authorization", "Bearer {}".format(token)

    def post_event(self, path: str, payload: dict) -> requests.Response:
        """Post a JSON payload to the gateway."""
        header_key, header_value = self.create_authorization_header()
        headers = {header_key: header_value, "Content-Type": "application/json"}
        return requests.post(
            f"{self._api_url}{path}",
            data=json.dumps(payload),
            headers=headers,
            timeout=self._timeout,
        )

    def send_email(
        self,
        email_address: str,
        subject: str,
        html: str,
        text: str,
        reference: Optional[str] = None,
    ) -> requests.Response:
        """Send an email through the gateway."""
        payload = {
            "email_address": email_address,
            "from": self._email_from,
            "subject": subject,
            "html_body": html,
            "text_body": text,
            "reference": reference,
        }
        return self.post_event("/v2/notifications/email", payload)

    def send_sms(
        self, phone_number: str, message: str, reference: Optional[str] = None
    ) -> requests.Response:
        """Send an SMS through the gateway."""
        payload = {
            "phone_number": phone_number,
            "sender": self._sms_sender,
            "message": message,
            "reference": reference,
        }
        return self.post_event("/v2/notifications/sms", payload)

    def status(self) -> requests.Response:
        """Gateway status endpoint (used by health checks)."""
        return requests.get(f"{self._api_url}/_status", timeout=self._timeout)
