"""
Conversation Engine

Applies dialogue transitions for inbound chat messages and creates a ticket
through TicketService when a dialogue completes. Channel-agnostic: the
WhatsApp webhook and the X DM poller both call handle_message.
"""
from typing import Optional

from ticket_intake.chatbot.flow import FIELD_LABELS, advance, confirmation_message
from ticket_intake.chatbot.state import ConversationState, ConversationStore
from ticket_intake.models.schemas import TicketCreate
from ticket_intake.services.ticket_service import TicketService
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

SUBJECT_DELIMITER = " | "


def sender_phone(sender_id: str) -> str:
    """WhatsApp chat ids carry the phone number before the @ suffix"""
    return sender_id.split("@", 1)[0]


def build_ticket_payload(state: ConversationState) -> TicketCreate:
    """
    Assemble a ticket from the collected answers

    Subject joins every non-empty answer in collection order; the
    description lists them with labels.
    """
    answers = [(key, value) for key, value in state.data.items() if value]
    subject = SUBJECT_DELIMITER.join(value for _, value in answers)
    description = "\n".join(f"{FIELD_LABELS.get(key, key)}: {value}" for key, value in answers)

    return TicketCreate(
        name=state.display_name or state.sender_id,
        phone=sender_phone(state.sender_id),
        email=state.data.get("email") or None,
        category=state.data.get("intent"),
        subject=subject,
        description=description,
    )


class ConversationEngine:
    """
    Drives the intake dialogue for every sender
    """

    def __init__(self, store: ConversationStore, ticket_service: TicketService, enabled: bool = True):
        self.store = store
        self.ticket_service = ticket_service
        self.enabled = enabled

    async def handle_message(
        self,
        sender_id: str,
        text: str,
        display_name: Optional[str] = None,
        channel: str = "whatsapp"
    ) -> Optional[str]:
        """
        Advance the sender's dialogue by one message

        Args:
            sender_id: Channel-specific sender identity
            text: Message text
            display_name: Sender's profile name, when the channel provides one
            channel: Ticket source recorded on created tickets

        Returns:
            Reply text, or None when the chatbot is disabled
        """
        if not self.enabled:
            logger.debug(f"Chatbot disabled, ignoring message from {sender_id}")
            return None

        async with self.store.lock_for(sender_id):
            state = self.store.get_or_create(sender_id, channel, display_name)
            previous = state.step
            transition = advance(state, text)

            if transition.reset:
                state.data.clear()
            state.data.update(transition.record)
            state.step = transition.next_step
            state.touch(self.store.now())

            logger.info(f"Conversation {sender_id}: {previous.value} -> {state.step.value}")

            if transition.create_ticket:
                ticket_id = await self._create_ticket(state)
                return confirmation_message(ticket_id)
            return transition.reply

    async def _create_ticket(self, state: ConversationState) -> Optional[str]:
        """
        Create the ticket for a completed dialogue

        The chat user is confirmed either way; a failed creation is logged
        and the confirmation omits the ticket number.
        """
        payload = build_ticket_payload(state)
        try:
            ticket = await self.ticket_service.create_ticket(payload, source=state.channel)
        except Exception as e:
            logger.error(f"Failed to create ticket for conversation {state.sender_id}: {e}", exc_info=True)
            return None
        return ticket.ticket_id
