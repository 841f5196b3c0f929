"""Signed email unsubscribe links.

Tokens are HS256 JWTs carrying the user id and an ``unsubscribe`` action
claim, valid for one year.
"""

from datetime import timedelta
from typing import Optional

import jwt

from infrastructure.notifications.errors import NotificationError
from infrastructure.notifications.models import utc_now

UNSUBSCRIBE_ACTION = "unsubscribe"
TOKEN_LIFETIME = timedelta(days=365)


class InvalidUnsubscribeTokenError(NotificationError):
    """Unsubscribe token is malformed, expired or not an unsubscribe token."""


def create_unsubscribe_token(user_id: str, secret: str) -> str:
    if not secret:
        raise ValueError("Missing unsubscribe secret")
    now = utc_now()
    claims = {
        "sub": user_id,
        "action": UNSUBSCRIBE_ACTION,
        "iat": now,
        "exp": now + TOKEN_LIFETIME,
    }
    return jwt.encode(payload=claims, key=secret, algorithm="HS256")


def verify_unsubscribe_token(token: str, secret: str) -> str:
    """Return the user id carried by a valid token.

    Raises:
        InvalidUnsubscribeTokenError: Token rejected.
    """
    if not secret:
        raise InvalidUnsubscribeTokenError("Unsubscribe links are not enabled")
    try:
        claims = jwt.decode(token, key=secret, algorithms=["HS256"])
    except jwt.PyJWTError as e:
        raise InvalidUnsubscribeTokenError(str(e)) from e
    if claims.get("action") != UNSUBSCRIBE_ACTION or not claims.get("sub"):
        raise InvalidUnsubscribeTokenError("Not an unsubscribe token")
    return claims["sub"]


def unsubscribe_url(app_base_url: str, user_id: str, secret: Optional[str]) -> str:
    """Link placed in email footers; the preferences page when unsigned."""
    base = app_base_url.rstrip("/")
    if not secret:
        return f"{base}/preferences"
    return f"{base}/unsubscribe?token={create_unsubscribe_token(user_id, secret)}"
