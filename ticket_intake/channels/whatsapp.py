"""
WhatsApp webhook adapter (Green-API)

Translates Green-API `incomingMessageReceived` notifications into chatbot
messages and sends the replies back through the gateway.
"""
import asyncio
from collections import OrderedDict
from typing import Any, Dict, Optional, Tuple

from ticket_intake.chatbot.engine import ConversationEngine
from ticket_intake.exceptions import GatewayError
from ticket_intake.models.schemas import TicketSource
from ticket_intake.services.gateways import GreenApiGateway
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

INCOMING_MESSAGE = "incomingMessageReceived"


def extract_message(payload: Dict[str, Any]) -> Optional[Tuple[str, str, Optional[str], Optional[str]]]:
    """
    Pull sender id, text, display name and message id from a notification

    Returns:
        (sender_id, text, display_name, message_id) or None when the payload
        is not a private text message
    """
    if payload.get("typeWebhook") != INCOMING_MESSAGE:
        return None

    sender = payload.get("senderData") or {}
    chat_id = sender.get("chatId") or sender.get("sender")
    if not chat_id or chat_id.endswith("@g.us"):
        return None

    message = payload.get("messageData") or {}
    text = (message.get("textMessageData") or {}).get("textMessage")
    if text is None:
        text = (message.get("extendedTextMessageData") or {}).get("text")
    if not text:
        return None

    return chat_id, text, sender.get("senderName") or sender.get("chatName"), payload.get("idMessage")


class WhatsAppWebhookAdapter:
    """
    Inbound WhatsApp messages -> ConversationEngine -> Green-API replies

    Green-API may redeliver a notification; message ids seen within the last
    `dedup_size` notifications are ignored.
    """

    def __init__(
        self,
        engine: ConversationEngine,
        gateway: GreenApiGateway,
        reply_delay_seconds: float = 1.5,
        dedup_size: int = 500
    ):
        self.engine = engine
        self.gateway = gateway
        self.reply_delay_seconds = reply_delay_seconds
        self.dedup_size = dedup_size
        self._seen: "OrderedDict[str, None]" = OrderedDict()

    def _is_duplicate(self, message_id: Optional[str]) -> bool:
        if not message_id:
            return False
        if message_id in self._seen:
            return True
        self._seen[message_id] = None
        while len(self._seen) > self.dedup_size:
            self._seen.popitem(last=False)
        return False

    async def handle_notification(self, payload: Dict[str, Any]) -> Optional[str]:
        """
        Process one webhook notification

        Args:
            payload: Green-API notification body

        Returns:
            Reply that was sent (None if nothing was sent)
        """
        extracted = extract_message(payload)
        if extracted is None:
            logger.debug(f"Ignoring notification type {payload.get('typeWebhook')}")
            return None

        sender_id, text, display_name, message_id = extracted
        if self._is_duplicate(message_id):
            logger.info(f"Ignoring duplicate WhatsApp message {message_id} from {sender_id}")
            return None

        reply = await self.engine.handle_message(
            sender_id, text, display_name=display_name, channel=TicketSource.WHATSAPP.value
        )
        if not reply:
            return None

        if self.reply_delay_seconds > 0:
            await asyncio.sleep(self.reply_delay_seconds)

        try:
            await self.gateway.send(sender_id, reply)
        except GatewayError as e:
            logger.error(f"Failed to send WhatsApp reply to {sender_id}: {e}")
            return None
        return reply
