"""
Unit tests for TicketService

Tests:
- Required-field validation
- Creation pipeline (id, summary, persist, notify)
- Best-effort integrations
- Admin reads, updates, stats and export
"""
import asyncio
import csv
import io
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from ticket_intake.exceptions import GatewayError, TicketNotFoundError, TicketStoreError, TicketValidationError
from ticket_intake.models.schemas import TicketCreate, utc_now
from ticket_intake.services.summarizer import TicketSummarizer
from ticket_intake.services.ticket_ids import SequentialTicketIdGenerator
from ticket_intake.services.ticket_service import EXPORT_COLUMNS, TicketService
from ticket_intake.tests.conftest import make_settings, make_ticket
from ticket_intake.tests.test_summarizer import mock_openai


def payload(**overrides) -> TicketCreate:
    values = dict(
        name="Sara",
        email="sara@example.com",
        category="billing",
        subject="Refund request",
        description="I was charged twice",
    )
    values.update(overrides)
    return TicketCreate(**values)


class TestValidation:
    @pytest.mark.asyncio
    async def test_missing_description_is_rejected(self, ticket_service, repository, telegram):
        with pytest.raises(TicketValidationError):
            await ticket_service.create_ticket(payload(description=None))

        assert await repository.list() == []
        telegram.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_blank_name_counts_as_missing(self, ticket_service):
        with pytest.raises(TicketValidationError):
            await ticket_service.create_ticket(payload(name="   "))

    @pytest.mark.asyncio
    async def test_category_optional_by_default(self, ticket_service):
        ticket = await ticket_service.create_ticket(payload(category=None, subject=None))

        assert ticket.category is None

    @pytest.mark.asyncio
    async def test_full_ticket_mode_requires_subject(self, repository, summarizer, notifier):
        service = TicketService(
            repository=repository,
            id_generator=SequentialTicketIdGenerator(repository),
            summarizer=summarizer,
            notifier=notifier,
            settings=make_settings(require_full_ticket=True),
        )

        with pytest.raises(TicketValidationError, match="subject"):
            await service.create_ticket(payload(subject=""))


class TestCreateTicket:
    @pytest.mark.asyncio
    async def test_creates_persists_and_notifies_once(self, ticket_service, repository, telegram):
        ticket = await ticket_service.create_ticket(payload())

        assert ticket.ticket_id.startswith("TKT-")
        assert ticket.status == "new"
        assert ticket.priority == "medium"
        assert ticket.source == "web"
        assert (await repository.get(ticket.ticket_id)).name == "Sara"
        telegram.send.assert_awaited_once()
        assert ticket.ticket_id in telegram.send.call_args[0][0]

    @pytest.mark.asyncio
    async def test_source_and_priority_are_recorded(self, ticket_service):
        ticket = await ticket_service.create_ticket(payload(priority="urgent"), source="whatsapp")

        assert ticket.priority == "urgent"
        assert ticket.source == "whatsapp"

    @pytest.mark.asyncio
    async def test_concurrent_creations_get_unique_ids(self, repository, summarizer, notifier, settings):
        service = TicketService(repository, SequentialTicketIdGenerator(repository), summarizer, notifier, settings)

        tickets = await asyncio.gather(*[service.create_ticket(payload()) for _ in range(20)])

        ids = {ticket.ticket_id for ticket in tickets}
        assert len(ids) == 20
        assert len(await repository.list()) == 20

    @pytest.mark.asyncio
    async def test_summary_is_attached(self, repository, notifier):
        settings = make_settings(ai_summary_enabled=True)
        summarizer = TicketSummarizer(settings, client=mock_openai('{"summary": "Double charge"}'))
        service = TicketService(repository, SequentialTicketIdGenerator(repository), summarizer, notifier, settings)

        ticket = await service.create_ticket(payload())

        assert ticket.ai_summary == "Double charge"
        assert ticket.ai_processed is True
        assert (await repository.get(ticket.ticket_id)).ai_summary == "Double charge"

    @pytest.mark.asyncio
    async def test_summary_failure_still_persists(self, repository, notifier):
        settings = make_settings(ai_summary_enabled=True)
        summarizer = TicketSummarizer(settings, client=mock_openai(error=RuntimeError("timeout")))
        service = TicketService(repository, SequentialTicketIdGenerator(repository), summarizer, notifier, settings)

        ticket = await service.create_ticket(payload())

        assert ticket.ai_processed is False
        assert await repository.get(ticket.ticket_id) is not None

    @pytest.mark.asyncio
    async def test_notification_failure_still_returns_ticket(self, ticket_service, repository, telegram):
        telegram.send.side_effect = GatewayError("telegram request failed")

        ticket = await ticket_service.create_ticket(payload())

        assert await repository.get(ticket.ticket_id) is not None

    @pytest.mark.asyncio
    async def test_unexpected_notification_error_still_returns_ticket(self, ticket_service, repository, telegram):
        telegram.send.side_effect = RuntimeError("bad bot token")

        ticket = await ticket_service.create_ticket(payload())

        assert ticket.ticket_id.startswith("TKT-")
        assert await repository.get(ticket.ticket_id) is not None
        assert len(await repository.list()) == 1

    @pytest.mark.asyncio
    async def test_store_failure_propagates_without_notification(
self, summarizer, notifier, telegram, settings):
        repository = MagicMock()
        repository.insert = AsyncMock(side_effect=TicketStoreError("disk full"))
        service = TicketService(repository, MagicMock(generate=AsyncMock(return_value="TKT-X")), summarizer, notifier, settings)

        with pytest.raises(TicketStoreError):
            await service.create_ticket(payload())

        telegram.send.assert_not_called()


class TestAdminOperations:
    @pytest.mark.asyncio
    async def test_get_unknown_ticket(self, ticket_service):
        with pytest.raises(TicketNotFoundError):
            await ticket_service.get_ticket("TKT-missing")

    @pytest.mark.asyncio
    async def test_update_unknown_ticket(self, ticket_service):
        with pytest.raises(TicketNotFoundError):
            await ticket_service.update_ticket("TKT-missing", {"status": "resolved"})

    @pytest.mark.asyncio
    async def test_update_ticket(self, ticket_service):
        ticket = await ticket_service.create_ticket(payload())

        updated = await ticket_service.update_ticket(ticket.ticket_id, {"status": "resolved"})

        assert updated.status == "resolved"
        assert (await ticket_service.get_ticket(ticket.ticket_id)).status == "resolved"

    @pytest.mark.asyncio
    async def test_stats(self, ticket_service, repository):
        await repository.insert(make_ticket("TKT-1", created_at=utc_now()))
        await repository.insert(make_ticket("TKT-2", created_at=utc_now() - timedelta(days=3), status="resolved"))
        await repository.insert(make_ticket(
            "TKT-3", created_at=utc_now(), category=None, source="whatsapp", ai_processed=True
        ))

        stats = await ticket_service.get_stats()

        assert stats.total == 3
        assert stats.today == 2
        assert stats.ai_processed == 1
        assert stats.by_status == {"new": 2, "resolved": 1}
        assert stats.by_category == {"billing": 2, "uncategorized": 1}
        assert stats.by_source == {"web": 2, "whatsapp": 1}

    @pytest.mark.asyncio
    async def test_export_csv(self, ticket_service, repository):
        await repository.insert(make_ticket("TKT-1", description="line one, with comma"))

        content = await ticket_service.export_csv()

        rows = list(csv.DictReader(io.StringIO(content)))
        assert list(rows[0].keys()) == EXPORT_COLUMNS
        assert rows[0]["ticket_id"] == "TKT-1"
        assert rows[0]["description"] == "line one, with comma"
        assert rows[0]["ai_summary"] == ""
