"""
X (Twitter) direct message poller

Polls the DM events endpoint, feeds new inbound messages to the chatbot and
replies by DM. The newest event id seen is the cursor; the first poll only
primes it so old history is never replayed.
"""
import asyncio
from typing import Any, Dict, List, Optional

from ticket_intake.chatbot.engine import ConversationEngine
from ticket_intake.exceptions import GatewayError
from ticket_intake.models.schemas import TicketSource
from ticket_intake.services.gateways import XDirectMessageClient, users_by_id
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)


def _event_key(event: Dict[str, Any]) -> int:
    try:
        return int(event.get("id", 0))
    except (TypeError, ValueError):
        return 0


class XDirectMessagePoller:
    """
    Polling transport for X direct messages
    """

    def __init__(
        self,
        engine: ConversationEngine,
        client: XDirectMessageClient,
        interval_seconds: float = 60.0,
        reply_delay_seconds: float = 1.5
    ):
        self.engine = engine
        self.client = client
        self.interval_seconds = interval_seconds
        self.reply_delay_seconds = reply_delay_seconds
        self.last_event_id: Optional[int] = None

    async def poll_once(self) -> int:
        """
        Fetch and process new DM events

        Returns:
            Number of inbound messages handled
        """
        payload = await self.client.fetch_dm_events()
        events: List[Dict[str, Any]] = payload.get("data") or []
        events = sorted(events, key=_event_key)

        if self.last_event_id is None:
            self.last_event_id = _event_key(events[-1]) if events else 0
            logger.info(f"X DM cursor primed at {self.last_event_id}")
            return 0

        users = users_by_id(payload)
        handled = 0
        for event in events:
            event_id = _event_key(event)
            if event_id <= self.last_event_id:
                continue
            self.last_event_id = event_id

            sender_id = str(event.get("sender_id") or "")
            text = event.get("text")
            if not sender_id or sender_id == str(self.client.user_id) or not text:
                continue

            display_name = (users.get(sender_id) or {}).get("name")
            await self._handle(sender_id, text, display_name)
            handled += 1

        return handled

    async def _handle(self, sender_id: str, text: str, display_name: Optional[str]) -> None:
        reply = await self.engine.handle_message(
            sender_id, text, display_name=display_name, channel=TicketSource.X_DM.value
        )
        if not reply:
            return

        if self.reply_delay_seconds > 0:
            await asyncio.sleep(self.reply_delay_seconds)

        try:
            await self.client.send_dm(sender_id, reply)
        except GatewayError as e:
            logger.error(f"Failed to send X DM to {sender_id}: {e}")

    async def run(self) -> None:
        """Poll until cancelled; failures are logged and polling continues"""
        logger.info(f"X DM poller started (interval={self.interval_seconds}s)")
        while True:
            try:
                handled = await self.poll_once()
                if handled:
                    logger.info(f"Handled {handled} X direct messages")
            except GatewayError as e:
                logger.warning(f"X DM poll failed: {e}")
            except Exception as e:
                logger.error(f"Unexpected X DM poll error: {e}", exc_info=True)
            await asyncio.sleep(self.interval_seconds)
