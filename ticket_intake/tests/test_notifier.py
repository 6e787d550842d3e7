"""
Unit tests for notification templates and the dispatcher
"""
import pytest

from ticket_intake.exceptions import GatewayError
from ticket_intake.services.notifier import (
    NOT_SPECIFIED,
    NotificationDispatcher,
    format_compact,
    format_full,
    format_plain,
)
from ticket_intake.tests.conftest import make_settings, make_ticket


class TestTemplates:
    def test_full_contains_ticket_fields(self):
        text = format_full(make_ticket("TKT-ABC"))

        assert "TKT-ABC" in text
        assert "Sara" in text
        assert "Refund request" in text
        assert "2025-03-01 09:30" in text

    def test_full_escapes_html(self):
        text = format_full(make_ticket(description="<script>alert(1)</script>"))

        assert "<script>" not in text
        assert "&lt;script&gt;" in text

    def test_full_placeholder_for_missing_fields(self):
        text = format_full(make_ticket(email=None, phone=None))

        assert text.count(NOT_SPECIFIED) == 2

    def test_full_includes_summary(self):
        text = format_full(make_ticket(ai_summary="Duplicate charge", ai_processed=True))

        assert "Duplicate charge" in text

    def test_local_time_uses_timezone(self):
        text = format_full(make_ticket(), "Asia/Riyadh")

        assert "2025-03-01 12:30" in text

    def test_unknown_timezone_falls_back_to_utc(self):
        text = format_full(make_ticket(), "Mars/Olympus")

        assert "2025-03-01 09:30" in text

    def test_plain_has_no_markup(self):
        text = format_plain(make_ticket())

        assert "<b>" not in text
        assert "Sara" in text

    def test_compact_is_one_line_plus_summary(self):
        ticket = make_ticket("TKT-1", ai_summary="Duplicate charge")

        lines = format_compact(ticket).splitlines()

        assert len(lines) == 2
        assert lines[0].startswith("🎫 TKT-1")
        assert lines[1] == "🤖 Duplicate charge"


class TestNotificationDispatcher:
    """Best-effort delivery"""

    @pytest.mark.asyncio
    async def test_telegram_delivery(self, notifier, telegram):
        result = await notifier.notify(make_ticket("TKT-1"))

        assert result.ok is True
        assert result.value == "42"
        telegram.send.assert_awaited_once()
        assert "Sara" in telegram.send.call_args[0][0]

    @pytest.mark.asyncio
    async def test_gateway_failure_is_reported_not_raised(self, notifier, telegram):
        telegram.send.side_effect = GatewayError("telegram returned HTTP 502", status_code=502)

        result = await notifier.notify(make_ticket())

        assert result.ok is False
        assert "502" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_error_is_reported_not_raised(self, notifier, telegram):
        telegram.send.side_effect = RuntimeError("Invalid non-printable ASCII character in URL")

        result = await notifier.notify(make_ticket())

        assert result.ok is False
        assert "non-printable" in result.error

    @pytest.mark.asyncio
    async def test_not_configured_is_skipped(self, notifier, telegram):
        telegram.configured = False

        result = await notifier.notify(make_ticket())

        assert result.skipped is True
        assert notifier.configured is False
        telegram.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_whatsapp_group_uses_plain_template(self, telegram, green_api):
        settings = make_settings(notification_channel="whatsapp")
        dispatcher = NotificationDispatcher(settings, telegram=telegram, whatsapp=green_api)

        result = await dispatcher.notify(make_ticket())

        assert result.ok is True
        assert result.value == "BAE5F4886F6F2D06"
        sent = green_api.send_to_group.call_args[0][0]
        assert "<b>" not in sent
        telegram.send.assert_not_called()

    def test_compact_template_selected(self, telegram, green_api):
        settings = make_settings(notification_template="compact")
        dispatcher = NotificationDispatcher(settings, telegram=telegram, whatsapp=green_api)

        assert "\n" not in dispatcher.format(make_ticket())

    def test_unknown_channel_is_not_configured(self, telegram, green_api):
        settings = make_settings(notification_channel="none")
        dispatcher = NotificationDispatcher(settings, telegram=telegram, whatsapp=green_api)

        assert dispatcher.configured is False
