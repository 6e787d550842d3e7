"""
Repositories package for ticket persistence

Provides interchangeable stores behind TicketRepository:
- InMemoryTicketRepository (process-local)
- JsonFileTicketRepository (single JSON document on disk)
- SupabaseTicketRepository (tickets table plus counter function)
"""
from ticket_intake.repositories.ticket_repository import (
    InMemoryTicketRepository,
    JsonFileTicketRepository,
    SupabaseTicketRepository,
    TicketRepository,
    create_repository,
)

__all__ = [
    "TicketRepository",
    "InMemoryTicketRepository",
    "JsonFileTicketRepository",
    "SupabaseTicketRepository",
    "create_repository",
]
