"""
Ticket Service

The single ticket-creation pathway shared by the web form and the chatbot,
plus admin reads, partial updates, statistics and CSV export.
"""
import csv
import io
from collections import Counter
from typing import Any, Dict, List, Optional

from ticket_intake.config import Settings, get_settings
from ticket_intake.exceptions import TicketNotFoundError, TicketValidationError
from ticket_intake.models.schemas import (
    Priority,
    Ticket,
    TicketCreate,
    TicketSource,
    TicketStats,
    TicketStatus,
    utc_now,
)
from ticket_intake.repositories.ticket_repository import TicketRepository
from ticket_intake.services.notifier import NotificationDispatcher
from ticket_intake.services.summarizer import TicketSummarizer
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

EXPORT_COLUMNS = [
    "ticket_id", "created_at", "status", "source", "name", "email", "phone",
    "category", "priority", "subject", "description", "ai_summary",
]


def _tally(values) -> Dict[str, int]:
    # Updated fields may hold any JSON value; stats keys are always strings
    counts = Counter("unset" if value is None else str(value) for value in values)
    return dict(counts)


class TicketService:
    """
    Orchestrates ticket creation and admin operations
    """

    def __init__(
        self,
        repository: TicketRepository,
        id_generator,
        summarizer: TicketSummarizer,
        notifier: NotificationDispatcher,
        settings: Settings = None
    ):
        settings = settings or get_settings()
        self.repository = repository
        self.id_generator = id_generator
        self.summarizer = summarizer
        self.notifier = notifier
        self.require_full_ticket = settings.require_full_ticket

    def validate(self, payload: TicketCreate) -> None:
        """
        Check required fields

        Raises:
            TicketValidationError: When a required field is missing
        """
        required = ["name", "category", "subject", "description"] if self.require_full_ticket else ["name", "description"]
        missing = [field for field in required if not getattr(payload, field)]
        if missing:
            raise TicketValidationError(f"Missing required fields: {', '.join(missing)}")

    async def create_ticket(self, payload: TicketCreate, source: str = TicketSource.WEB.value) -> Ticket:
        """
        Create, enrich, persist and announce a ticket

        Steps:
        1. Validate required fields
        2. Generate identifier
        3. AI summary (best-effort)
        4. Persist
        5. Notify (best-effort)

        Args:
            payload: Submitted ticket fields
            source: Entry path (web, whatsapp, x_dm)

        Returns:
            Persisted ticket

        Raises:
            TicketValidationError: Missing required fields
            TicketStoreError: Persistence failed
        """
        self.validate(payload)

        ticket = Ticket(
            ticket_id=await self.id_generator.generate(),
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            category=payload.category,
            priority=payload.priority or Priority.MEDIUM.value,
            subject=payload.subject,
            description=payload.description,
            status=TicketStatus.NEW.value,
            source=source,
            created_at=utc_now(),
        )

        # Summary failures keep the original ticket
        summary = await self.summarizer.summarize(ticket)
        if summary.value is not None:
            ticket = summary.value

        saved = await self.repository.insert(ticket)
        logger.info(f"Created ticket {saved.ticket_id} from {source}")

        # Delivery is best-effort, the ticket is already stored
        notification = await self.notifier.notify(saved)
        if not notification.ok:
            logger.warning(f"Ticket {saved.ticket_id} stored without notification: {notification.error}")

        return saved

    async def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = await self.repository.get(ticket_id)
        if ticket is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        return ticket

    async def list_tickets(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Ticket]:
        return await self.repository.list(status=status, limit=limit)

    async def update_ticket(self, ticket_id: str, fields: Dict[str, Any]) -> Ticket:
        """Merge arbitrary fields into a ticket"""
        updated = await self.repository.update(ticket_id, fields)
        if updated is None:
            raise TicketNotFoundError(f"Ticket {ticket_id} not found")
        logger.info(f"Updated ticket {ticket_id}: {', '.join(sorted(fields)) or 'no fields'}")
        return updated

    async def get_stats(self) -> TicketStats:
        """Aggregate counts by status, category, priority and source"""
        tickets = await self.repository.list()
        today = utc_now().date()

        return TicketStats(
            total=len(tickets),
            today=sum(1 for ticket in tickets if ticket.created_at.date() == today),
            ai_processed=sum(1 for ticket in tickets if ticket.ai_processed),
            by_status=_tally(ticket.status for ticket in tickets),
            by_category=_tally(ticket.category or "uncategorized" for ticket in tickets),
            by_priority=_tally(ticket.priority for ticket in tickets),
            by_source=_tally(ticket.source for ticket in tickets),
        )

    async def export_csv(self) -> str:
        """All tickets as CSV, newest first"""
        tickets = await self.repository.list()
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        for ticket in tickets:
            writer.writerow({key: ("" if value is None else value) for key, value in ticket.to_record().items()})
        return buffer.getvalue()
