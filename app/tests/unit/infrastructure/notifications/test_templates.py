"""Unit tests for the template registry."""

import pytest

from infrastructure.notifications.models import Channel, NotificationType
from infrastructure.notifications.templates import (
    NotificationTemplate,
    TemplateRegistry,
    render_string,
    template_context,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def template_factory():
    def _factory(**overrides):
        fields = {
            "id": "order-placed-sms",
            "name": "Order placed SMS",
            "channel": Channel.SMS,
            "type": NotificationType.ORDER_PLACED,
            "body_template": "Order #{{ orderNumber }} placed",
        }
        fields.update(overrides)
        return NotificationTemplate(**fields)

    return _factory


def test_template_context_merges_data_and_fields(notification_factory):
    notification = notification_factory(data={"orderNumber": "77"})
    context = template_context(notification, extra="x")
    assert context["orderNumber"] == "77"
    assert context["title"] == notification.title
    assert context["type"] == "order_placed"
    assert context["notification_id"] == notification.id
    assert context["extra"] == "x"


def test_render_string_unknown_variable_renders_empty():
    assert render_string("Hi {{ name }}!", {}) == "Hi !"


def test_render_string_escapes_html_only_when_requested():
    assert render_string("{{ v }}", {"v": "<b>"}) == "<b>"
    assert render_string("{{ v }}", {"v": "<b>"}, html=True) == "&lt;b&gt;"


class TestTemplateRegistry:
    def test_render_by_type_and_channel(self, template_factory, notification_factory):
        registry = TemplateRegistry([template_factory()])
        rendered = registry.render(notification_factory(), Channel.SMS)
        assert rendered.body == "Order #1042 placed"
        assert rendered.subject is None

    def test_no_template_for_channel(self, template_factory, notification_factory):
        registry = TemplateRegistry([template_factory()])
        assert registry.render(notification_factory(), Channel.EMAIL) is None

    def test_template_id_takes_precedence(self, template_factory, notification_factory):
        registry = TemplateRegistry(
            [
                template_factory(),
                template_factory(
                    id="special", type=None, body_template="Special {{ title }}"
                ),
            ]
        )
        notification = notification_factory(template_id="special")
        assert registry.render(notification, Channel.SMS).body == "Special Order placed"

    def test_inactive_template_skipped(self, template_factory, notification_factory):
        registry = TemplateRegistry([template_factory(is_active=False)])
        assert registry.render(notification_factory(), Channel.SMS) is None

    def test_subject_rendered(self, template_factory, notification_factory):
        registry = TemplateRegistry(
            [
                template_factory(
                    channel=Channel.EMAIL,
                    subject_template="Order {{ orderNumber }}",
                    body_template="<p>{{ body }}</p>",
                    is_html=True,
                )
            ]
        )
        rendered = registry.render(notification_factory(), Channel.EMAIL)
        assert rendered.subject == "Order 1042"
        assert rendered.is_html
        assert rendered.body.startswith("<p>Your order")

    def test_extra_context_available(self, template_factory, notification_factory):
        registry = TemplateRegistry(
            [template_factory(body_template="{{ APP_BASE_URL }}/track/{{ orderId }}")]
        )
        rendered = registry.render(
            notification_factory(), Channel.SMS, APP_BASE_URL="https://app.test"
        )
        assert rendered.body == "https://app.test/track/o-1042"

    def test_render_error_returns_none(self, template_factory, notification_factory):
        registry = TemplateRegistry([template_factory(body_template="{{ broken ")])
        assert registry.render(notification_factory(), Channel.SMS) is None

    def test_reregister_bumps_version(self, template_factory):
        registry = TemplateRegistry([template_factory()])
        registry.register(template_factory(body_template="v2"))
        template = registry.get("order-placed-sms")
        assert template.version == 2
        assert template.body_template == "v2"
        assert len(registry.list_templates()) == 1
