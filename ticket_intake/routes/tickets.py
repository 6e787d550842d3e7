"""
Ticket API routes

- POST  /api/ticket             submit a ticket (service key)
- GET   /api/tickets            list tickets (admin)
- GET   /api/tickets/export     CSV export (admin)
- GET   /api/tickets/{id}       ticket detail (admin)
- PATCH /api/tickets/{id}       partial update (admin)
- GET   /api/stats              aggregated counts (admin)
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ticket_intake.context import AppContext, get_context
from ticket_intake.middleware.auth import verify_admin_key, verify_service_key
from ticket_intake.models.schemas import (
    TicketCreate,
    TicketSource,
    TicketStats,
    TicketSubmitResponse,
    TicketUpdate,
)
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["tickets"])

SUBMIT_SUCCESS_MESSAGE = "تم إرسال البلاغ بنجاح"
NOT_CONFIGURED_WARNING = "لم يتم إعداد قناة الإشعارات"


@router.post(
    "/ticket",
    response_model=TicketSubmitResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(verify_service_key)]
)
async def submit_ticket(payload: TicketCreate, context: AppContext = Depends(get_context)):
    """
    Submit a ticket from the web form

    Validation errors are answered with 400 by the application error
    handlers; notification problems never fail the submission.
    """
    ticket = await context.ticket_service.create_ticket(payload, source=TicketSource.WEB.value)

    warning = None if context.notifier.configured else NOT_CONFIGURED_WARNING
    return TicketSubmitResponse(
        success=True,
        ticketId=ticket.ticket_id,
        message=SUBMIT_SUCCESS_MESSAGE,
        warning=warning
    )


@router.get("/tickets", dependencies=[Depends(verify_admin_key)])
async def list_tickets(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    context: AppContext = Depends(get_context)
) -> List[Dict[str, Any]]:
    """List tickets, newest first"""
    tickets = await context.ticket_service.list_tickets(status=status_filter, limit=limit)
    return [ticket.to_record() for ticket in tickets]


@router.get("/tickets/export", dependencies=[Depends(verify_admin_key)])
async def export_tickets(context: AppContext = Depends(get_context)):
    """Download every ticket as CSV"""
    content = await context.ticket_service.export_csv()
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="tickets.csv"'}
    )


# Ticket bodies are returned as stored records: updates may hold values the
# Ticket field types do not describe, so no response_model is applied.
@router.get("/tickets/{ticket_id}", dependencies=[Depends(verify_admin_key)])
async def get_ticket(ticket_id: str, context: AppContext = Depends(get_context)) -> Dict[str, Any]:
    """Ticket detail; 404 when unknown"""
    ticket = await context.ticket_service.get_ticket(ticket_id)
    return ticket.to_record()


@router.patch(
    "/tickets/{ticket_id}",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(verify_admin_key)]
)
async def update_ticket(
    ticket_id: str,
    update: TicketUpdate,
    context: AppContext = Depends(get_context)
) -> Dict[str, Any]:
    """Merge arbitrary fields into a ticket (identifier is immutable)"""
    ticket = await context.ticket_service.update_ticket(ticket_id, update.changes())
    return ticket.to_record()


@router.get("/stats", response_model=TicketStats, dependencies=[Depends(verify_admin_key)])
async def get_stats(context: AppContext = Depends(get_context)):
    """Counts by status, category, priority and source"""
    return await context.ticket_service.get_stats()
