"""
Tests for application wiring
"""
from fastapi.testclient import TestClient

from ticket_intake.channels.x_dm import XDirectMessagePoller
from ticket_intake.context import build_context
from ticket_intake.main import create_app
from ticket_intake.repositories.ticket_repository import InMemoryTicketRepository
from ticket_intake.services.ticket_ids import SequentialTicketIdGenerator
from ticket_intake.tests.conftest import make_settings


class TestBuildContext:
    def test_default_wiring(self):
        context = build_context(make_settings())

        assert isinstance(context.repository, InMemoryTicketRepository)
        assert context.ticket_service.repository is context.repository
        assert context.engine.store is context.conversations
        assert context.whatsapp.engine is context.engine
        assert context.x_poller is None

    def test_chatbot_can_start_disabled(self):
        context = build_context(make_settings(chatbot_enabled=False))

        assert context.engine.enabled is False

    def test_sequential_ids_share_the_store(self):
        context = build_context(make_settings(ticket_id_strategy="sequential"))

        generator = context.ticket_service.id_generator
        assert isinstance(generator, SequentialTicketIdGenerator)
        assert generator.repository is context.repository

    def test_x_poller_requires_credentials(self):
        assert build_context(make_settings(x_poll_enabled=True)).x_poller is None

        context = build_context(make_settings(x_poll_enabled=True, x_bearer_token="token", x_user_id="999"))
        assert isinstance(context.x_poller, XDirectMessagePoller)
        assert context.x_poller.client.user_id == "999"


class TestLifespan:
    def test_background_tasks_start_and_stop(self, settings, context):
        app = create_app(settings=settings, context=context)

        with TestClient(app) as client:
            assert client.get("/api/health").status_code == 200

    def test_separate_apps_do_not_share_state(self):
        first = build_context(make_settings())
        second = build_context(make_settings())

        first.conversations.get_or_create("a@c.us", "whatsapp")

        assert len(second.conversations) == 0
        assert first.repository is not second.repository
