"""
Pydantic models for the Ticket Intake Service
"""

from ticket_intake.models.schemas import (
    # Enums
    TicketStatus,
    Priority,
    TicketSource,

    # Ticket Models
    Ticket,
    TicketCreate,
    TicketUpdate,

    # API Models
    TicketSubmitResponse,
    ErrorResponse,
    TicketStats,
)
from ticket_intake.models.result import IntegrationResult

__all__ = [
    # Enums
    "TicketStatus",
    "Priority",
    "TicketSource",

    # Ticket Models
    "Ticket",
    "TicketCreate",
    "TicketUpdate",

    # API Models
    "TicketSubmitResponse",
    "ErrorResponse",
    "TicketStats",

    # Integration outcome
    "IntegrationResult",
]
