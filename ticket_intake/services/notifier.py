"""
Notification Dispatcher

Formats a ticket for the configured messaging channel and sends it. Delivery
is best-effort: any send failure is logged and reported as a failed
IntegrationResult so ticket creation never depends on them.
"""
import html
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ticket_intake.config import Settings, get_settings
from ticket_intake.exceptions import GatewayError
from ticket_intake.models.result import IntegrationResult
from ticket_intake.models.schemas import Ticket
from ticket_intake.services.gateways import GreenApiGateway, TelegramGateway
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

NOT_SPECIFIED = "غير محدد"
SEPARATOR = "━━━━━━━━━━━━━━━━━━━━━"


def _local_time(moment: datetime, timezone_name: str) -> str:
    try:
        zone = ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {timezone_name}, using UTC")
        zone = ZoneInfo("UTC")
    return moment.astimezone(zone).strftime("%Y-%m-%d %H:%M")


# ============================================================================
# Templates
# ============================================================================

def format_full(ticket: Ticket, timezone_name: str = "UTC") -> str:
    """Full-detail HTML block (Telegram)"""
    def esc(value: Optional[str]) -> str:
        return html.escape(value) if value else NOT_SPECIFIED

    lines = [
        "🎫 <b>بلاغ جديد</b>",
        "",
        f"📋 <b>رقم التذكرة:</b> <code>{html.escape(ticket.ticket_id)}</code>",
        f"👤 <b>الاسم:</b> {esc(ticket.name)}",
        f"📧 <b>البريد:</b> {esc(ticket.email)}",
        f"📱 <b>الجوال:</b> {esc(ticket.phone)}",
        f"📂 <b>نوع البلاغ:</b> {esc(ticket.category)}",
        f"⚡ <b>الأولوية:</b> {esc(ticket.priority)}",
        "",
        "📝 <b>العنوان:</b>",
        esc(ticket.subject),
        "",
        "📄 <b>التفاصيل:</b>",
        esc(ticket.description),
    ]
    if ticket.ai_summary:
        lines += ["", "🤖 <b>ملخص الذكاء الاصطناعي:</b>", html.escape(ticket.ai_summary)]
    lines += [
        "",
        f"🕐 <b>التاريخ:</b> {_local_time(ticket.created_at, timezone_name)}",
        SEPARATOR,
    ]
    return "\n".join(lines)


def format_plain(ticket: Ticket, timezone_name: str = "UTC") -> str:
    """Full-detail block without markup (WhatsApp)"""
    lines = [
        "🎫 *بلاغ جديد*",
        "",
        f"📋 رقم التذكرة: {ticket.ticket_id}",
        f"👤 الاسم: {ticket.name}",
        f"📧 البريد: {ticket.email or NOT_SPECIFIED}",
        f"📱 الجوال: {ticket.phone or NOT_SPECIFIED}",
        f"📂 نوع البلاغ: {ticket.category or NOT_SPECIFIED}",
        f"⚡ الأولوية: {ticket.priority}",
        "",
        f"📝 العنوان: {ticket.subject or NOT_SPECIFIED}",
        f"📄 التفاصيل: {ticket.description or NOT_SPECIFIED}",
    ]
    if ticket.ai_summary:
        lines.append(f"🤖 الملخص: {ticket.ai_summary}")
    lines.append(f"🕐 التاريخ: {_local_time(ticket.created_at, timezone_name)}")
    return "\n".join(lines)


def format_compact(ticket: Ticket, timezone_name: str = "UTC") -> str:
    """Single line plus the AI summary when there is one"""
    headline = " | ".join(
        part for part in (
            f"🎫 {ticket.ticket_id}",
            ticket.name,
            ticket.category,
            ticket.priority,
            ticket.subject or ticket.description,
        ) if part
    )
    if ticket.ai_summary:
        return f"{headline}\n🤖 {ticket.ai_summary}"
    return headline


TEMPLATES = {
    "full": format_full,
    "plain": format_plain,
    "compact": format_compact,
}


# ============================================================================
# Dispatcher
# ============================================================================

class NotificationDispatcher:
    """
    Send new-ticket notifications to Telegram or a WhatsApp group
    """

    def __init__(
        self,
        settings: Settings = None,
        telegram: TelegramGateway = None,
        whatsapp: GreenApiGateway = None
    ):
        settings = settings or get_settings()
        self.channel = settings.notification_channel.lower()
        self.timezone = settings.notification_timezone
        self.telegram = telegram or TelegramGateway(settings)
        self.whatsapp = whatsapp or GreenApiGateway(settings)

        template_name = settings.notification_template.lower()
        # WhatsApp does not render HTML, so the full template degrades to plain
        if self.channel == "whatsapp" and template_name == "full":
            template_name = "plain"
        if template_name not in TEMPLATES:
            logger.warning(f"Unknown notification template '{template_name}', using full")
            template_name = "full"
        self.template: Callable[[Ticket, str], str] = TEMPLATES[template_name]

    @property
    def configured(self) -> bool:
        if self.channel == "telegram":
            return self.telegram.configured
        if self.channel == "whatsapp":
            return self.whatsapp.configured and bool(self.whatsapp.group_id)
        return False

    def format(self, ticket: Ticket) -> str:
        return self.template(ticket, self.timezone)

    async def notify(self, ticket: Ticket) -> IntegrationResult[Optional[str]]:
        """
        Send a notification for a new ticket

        Args:
            ticket: Persisted ticket

        Returns:
            Success (or skip when no channel is configured), or a failure
            describing the error; never raises
        """
        if not self.configured:
            logger.warning(f"Notification channel '{self.channel}' not configured, ticket {ticket.ticket_id} saved only")
            return IntegrationResult.skip(reason="notification channel not configured")

        try:
            message = self.format(ticket)
            if self.channel == "telegram":
                sent = await self.telegram.send(message)
                message_id = str(sent.get("message_id", ""))
            else:
                message_id = await self.whatsapp.send_to_group(message)
        except GatewayError as e:
            logger.error(f"Failed to notify {self.channel} about ticket {ticket.ticket_id}: {e}")
            return IntegrationResult.failure(str(e))
        except Exception as e:
            logger.error(f"Unexpected error notifying {self.channel} about ticket {ticket.ticket_id}: {e}", exc_info=True)
            return IntegrationResult.failure(str(e))

        logger.info(f"Notified {self.channel} about ticket {ticket.ticket_id}")
        return IntegrationResult.success(message_id)
