"""
Pydantic models for the Ticket Intake Service

Tickets flow through every layer as one explicit type. Optional fields are
real optionals rather than absent keys, so the web form, the chatbot and the
admin API all see the same shape.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, ClassVar

from dateutil import parser as date_parser
from pydantic import BaseModel, Field, ConfigDict, field_validator

from ticket_intake.utils.validators import sanitize_input


# ============================================================================
# Enums
# ============================================================================

class TicketStatus(str, Enum):
    """Conventional ticket statuses (updates may still set free strings)"""
    NEW = "new"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"


class Priority(str, Enum):
    """Priorities offered by the web form"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketSource(str, Enum):
    """Entry path a ticket was created through"""
    WEB = "web"
    WHATSAPP = "whatsapp"
    X_DM = "x_dm"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Ticket Models
# ============================================================================

class TicketCreate(BaseModel):
    """
    Ticket submission payload

    Accepted from POST /api/ticket and assembled by the chatbot on terminal
    steps. Blank strings are normalized to None so required-field checks
    treat them as missing.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    subject: Optional[str] = None
    description: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = sanitize_input(value)
            return value or None
        return value


class Ticket(BaseModel):
    """Persisted support ticket"""
    model_config = ConfigDict(use_enum_values=True, extra="allow")

    ticket_id: str = Field(..., description="Unique identifier, immutable once assigned")
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    category: Optional[str] = None
    priority: str = Priority.MEDIUM.value
    subject: Optional[str] = None
    description: Optional[str] = None
    status: str = TicketStatus.NEW.value
    source: str = TicketSource.WEB.value
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: Optional[datetime] = None
    ai_summary: Optional[str] = None
    ai_processed: bool = False

    def to_record(self) -> Dict[str, Any]:
        """JSON-safe representation for stores"""
        return self.model_dump(mode="json", warnings=False)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Ticket":
        """
        Rebuild a stored ticket without re-validating its fields

        Updates may have stored values of any JSON type, so only the
        timestamps are parsed back into datetimes.
        """
        data = dict(record)
        for key in ("created_at", "updated_at"):
            if isinstance(data.get(key), str):
                data[key] = date_parser.isoparse(data[key])
        return cls.model_construct(**data)


class TicketUpdate(BaseModel):
    """
    Partial update payload

    Arbitrary fields are merged into the stored ticket without schema
    validation. The identifier and creation timestamp are protected.
    """
    model_config = ConfigDict(extra="allow")

    PROTECTED_FIELDS: ClassVar[tuple] = ("ticket_id", "created_at")

    def changes(self) -> Dict[str, Any]:
        data = dict(self.model_extra or {})
        return {key: value for key, value in data.items() if key not in self.PROTECTED_FIELDS}


# ============================================================================
# API Models
# ============================================================================

class TicketSubmitResponse(BaseModel):
    """Response for POST /api/ticket"""
    success: bool
    ticketId: Optional[str] = None
    message: str
    warning: Optional[str] = None


class ErrorResponse(BaseModel):
    """Failure envelope shared by every endpoint"""
    success: bool = False
    message: str


class TicketStats(BaseModel):
    """Aggregated counts over stored tickets"""
    total: int = 0
    today: int = 0
    ai_processed: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_category: Dict[str, int] = Field(default_factory=dict)
    by_priority: Dict[str, int] = Field(default_factory=dict)
    by_source: Dict[str, int] = Field(default_factory=dict)
