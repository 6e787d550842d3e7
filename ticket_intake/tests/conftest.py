"""
pytest configuration and shared fixtures

Every fixture builds its own collaborators so tests never share ticket or
conversation state. External gateways are MagicMocks with AsyncMock senders.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from ticket_intake.channels.whatsapp import WhatsAppWebhookAdapter
from ticket_intake.chatbot.engine import ConversationEngine
from ticket_intake.chatbot.state import ConversationStore
from ticket_intake.config import Settings
from ticket_intake.context import AppContext
from ticket_intake.main import create_app
from ticket_intake.models.schemas import Ticket
from ticket_intake.repositories.ticket_repository import InMemoryTicketRepository
from ticket_intake.services.notifier import NotificationDispatcher
from ticket_intake.services.summarizer import TicketSummarizer
from ticket_intake.services.ticket_ids import RandomTicketIdGenerator
from ticket_intake.services.ticket_service import TicketService

SERVICE_KEY = "service-key-123"
ADMIN_KEY = "admin-key-456"


def make_settings(**overrides) -> Settings:
    """Settings isolated from the developer's .env"""
    values = dict(
        service_api_key=SERVICE_KEY,
        admin_api_key=ADMIN_KEY,
        ticket_store="memory",
        openai_api_key="",
        ai_summary_enabled=False,
        notification_channel="telegram",
        notification_template="full",
        notification_timezone="UTC",
        telegram_bot_token="123456:ABC",
        telegram_chat_id="-1001234",
        greenapi_instance_id="1101000001",
        greenapi_api_token="green-token",
        greenapi_group_id="120363000000@g.us",
        greenapi_webhook_secret="",
        reply_delay_seconds=0,
        x_poll_enabled=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_ticket(ticket_id: str = "TKT-1", **fields) -> Ticket:
    values = dict(
        ticket_id=ticket_id,
        name="Sara",
        email="sara@example.com",
        phone="0500000000",
        category="billing",
        subject="Refund request",
        description="I was charged twice",
        created_at=datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc),
    )
    values.update(fields)
    return Ticket(**values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def repository():
    return InMemoryTicketRepository()


@pytest.fixture
def telegram():
    """Mocked Telegram gateway"""
    gateway = MagicMock()
    gateway.configured = True
    gateway.send = AsyncMock(return_value={"message_id": 42})
    return gateway


@pytest.fixture
def green_api():
    """Mocked Green-API gateway"""
    gateway = MagicMock()
    gateway.configured = True
    gateway.group_id = "120363000000@g.us"
    gateway.send = AsyncMock(return_value="BAE5F4886F6F2D05")
    gateway.send_to_group = AsyncMock(return_value="BAE5F4886F6F2D06")
    return gateway


@pytest.fixture
def notifier(settings, telegram, green_api):
    return NotificationDispatcher(settings, telegram=telegram, whatsapp=green_api)


@pytest.fixture
def summarizer(settings):
    return TicketSummarizer(settings)


@pytest.fixture
def ticket_service(repository, summarizer, notifier, settings):
    return TicketService(
        repository=repository,
        id_generator=RandomTicketIdGenerator(),
        summarizer=summarizer,
        notifier=notifier,
        settings=settings,
    )


@pytest.fixture
def conversations():
    return ConversationStore(idle_seconds=3600)


@pytest.fixture
def engine(conversations, ticket_service):
    return ConversationEngine(conversations, ticket_service)


@pytest.fixture
def context(settings, repository, ticket_service, notifier, summarizer, conversations, engine, green_api):
    return AppContext(
        settings=settings,
        repository=repository,
        ticket_service=ticket_service,
        notifier=notifier,
        summarizer=summarizer,
        conversations=conversations,
        engine=engine,
        whatsapp=WhatsAppWebhookAdapter(engine, green_api, reply_delay_seconds=0),
    )


@pytest.fixture
def client(settings, context):
    """TestClient over an app wired to the fixtures above"""
    app = create_app(settings=settings, context=context)
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return {"X-Admin-API-Key": ADMIN_KEY}


@pytest.fixture
def service_headers():
    return {"X-API-Key": SERVICE_KEY}
