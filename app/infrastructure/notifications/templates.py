"""Notification template registry.

Templates are looked up by id (notification.template_id) or by
(type, channel). Subjects and bodies are Jinja2 templates rendered with
``notification.data`` plus ``title``, ``body``, ``type`` and
``notification_id``; unknown variables render empty. Channels fall back to
their built-in text when no template matches.
"""

import threading
from typing import Any, Dict, List, Optional

from jinja2 import Environment, Undefined, select_autoescape
from jinja2.exceptions import TemplateError
from pydantic import BaseModel

from infrastructure.logging import get_module_logger
from infrastructure.notifications.models import (
    Channel,
    Notification,
    NotificationType,
)

logger = get_module_logger()

_text_env = Environment(undefined=Undefined, autoescape=False)
_html_env = Environment(
    undefined=Undefined, autoescape=select_autoescape(default_for_string=True)
)


def render_string(source: str, context: Dict[str, Any], html: bool = False) -> str:
    """Render a template string (HTML autoescaped when html is True)."""
    env = _html_env if html else _text_env
    return env.from_string(source).render(**context)


def template_context(notification: Notification, **extra: Any) -> Dict[str, Any]:
    """Variables available to templates."""
    context: Dict[str, Any] = dict(notification.data)
    context.update(
        title=notification.title,
        body=notification.body,
        type=notification.type.value,
        notification_id=notification.id,
    )
    context.update(extra)
    return context


class NotificationTemplate(BaseModel):
    """A registered template for one channel."""

    id: str
    name: str
    channel: Channel
    type: Optional[NotificationType] = None
    subject_template: Optional[str] = None
    body_template: str
    is_html: bool = False
    is_active: bool = True
    version: int = 1


class RenderedMessage(BaseModel):
    subject: Optional[str] = None
    body: str
    is_html: bool = False


class TemplateRegistry:
    """In-process registry of notification templates."""

    def __init__(self, templates: Optional[List[NotificationTemplate]] = None):
        self._lock = threading.Lock()
        self._by_id: Dict[str, NotificationTemplate] = {}
        for template in templates or []:
            self.register(template)

    def register(self, template: NotificationTemplate) -> None:
        with self._lock:
            existing = self._by_id.get(template.id)
            if existing is not None:
                template = template.model_copy(update={"version": existing.version + 1})
            self._by_id[template.id] = template
        logger.debug(
            "template_registered",
            template_id=template.id,
            channel=template.channel.value,
            version=template.version,
        )

    def get(self, template_id: str) -> Optional[NotificationTemplate]:
        with self._lock:
            return self._by_id.get(template_id)

    def find(
        self, notification_type: NotificationType, channel: Channel
    ) -> Optional[NotificationTemplate]:
        with self._lock:
            for template in self._by_id.values():
                if (
                    template.is_active
                    and template.channel == channel
                    and template.type == notification_type
                ):
                    return template
        return None

    def render(
        self, notification: Notification, channel: Channel, **extra: Any
    ) -> Optional[RenderedMessage]:
        """Render the template selected for notification on channel.

        Returns:
            RenderedMessage, or None when no active template applies or
            rendering fails (callers use their built-in default).
        """
        template = None
        if notification.template_id:
            candidate = self.get(notification.template_id)
            if candidate and candidate.is_active and candidate.channel == channel:
                template = candidate
        if template is None:
            template = self.find(notification.type, channel)
        if template is None:
            return None

        context = template_context(notification, **extra)
        try:
            subject = (
                render_string(template.subject_template, context)
                if template.subject_template
                else None
            )
            body = render_string(template.body_template, context, html=template.is_html)
        except TemplateError as e:
            logger.warning(
                "template_render_failed",
                template_id=template.id,
                notification_id=notification.id,
                error=str(e),
            )
            return None

        return RenderedMessage(subject=subject, body=body, is_html=template.is_html)

    def list_templates(self) -> List[NotificationTemplate]:
        with self._lock:
            return list(self._by_id.values())
