"""
Application context

One AppContext is built per application and stored on `app.state.context`.
It owns every stateful collaborator (ticket store, conversation store,
chatbot flag) so nothing lives in module globals.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from ticket_intake.channels.whatsapp import WhatsAppWebhookAdapter
from ticket_intake.channels.x_dm import XDirectMessagePoller
from ticket_intake.chatbot.engine import ConversationEngine
from ticket_intake.chatbot.state import ConversationStore
from ticket_intake.config import Settings, get_settings
from ticket_intake.repositories.ticket_repository import TicketRepository, create_repository
from ticket_intake.services.gateways import GreenApiGateway, TelegramGateway, XDirectMessageClient
from ticket_intake.services.notifier import NotificationDispatcher
from ticket_intake.services.summarizer import TicketSummarizer
from ticket_intake.services.ticket_ids import create_id_generator
from ticket_intake.services.ticket_service import TicketService


@dataclass
class AppContext:
    settings: Settings
    repository: TicketRepository
    ticket_service: TicketService
    notifier: NotificationDispatcher
    summarizer: TicketSummarizer
    conversations: ConversationStore
    engine: ConversationEngine
    whatsapp: WhatsAppWebhookAdapter
    x_poller: Optional[XDirectMessagePoller] = None


def build_context(settings: Settings = None, repository: TicketRepository = None) -> AppContext:
    """Wire the service graph from settings"""
    settings = settings or get_settings()
    repository = repository or create_repository(settings)

    telegram = TelegramGateway(settings)
    green_api = GreenApiGateway(settings)
    notifier = NotificationDispatcher(settings, telegram=telegram, whatsapp=green_api)
    summarizer = TicketSummarizer(settings)

    ticket_service = TicketService(
        repository=repository,
        id_generator=create_id_generator(repository, settings),
        summarizer=summarizer,
        notifier=notifier,
        settings=settings,
    )

    conversations = ConversationStore(idle_seconds=settings.conversation_idle_seconds)
    engine = ConversationEngine(conversations, ticket_service, enabled=settings.chatbot_enabled)

    whatsapp = WhatsAppWebhookAdapter(
        engine,
        green_api,
        reply_delay_seconds=settings.reply_delay_seconds,
        dedup_size=settings.webhook_dedup_size,
    )

    x_poller = None
    if settings.x_poll_enabled and settings.x_configured:
        x_poller = XDirectMessagePoller(
            engine,
            XDirectMessageClient(settings),
            interval_seconds=settings.x_poll_interval_seconds,
            reply_delay_seconds=settings.reply_delay_seconds,
        )

    return AppContext(
        settings=settings,
        repository=repository,
        ticket_service=ticket_service,
        notifier=notifier,
        summarizer=summarizer,
        conversations=conversations,
        engine=engine,
        whatsapp=whatsapp,
        x_poller=x_poller,
    )


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the application context"""
    return request.app.state.context
