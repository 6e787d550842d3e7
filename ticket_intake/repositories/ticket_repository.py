"""
Ticket Repository

Stores ticket documents keyed by their generated identifier. Three
interchangeable backends are provided:

- InMemoryTicketRepository: process-local dict (development and tests)
- JsonFileTicketRepository: flat JSON file, last write wins
- SupabaseTicketRepository: `tickets` table in Supabase

Each backend also owns a named counter used by the sequential ticket
identifier strategy. No delete operation is exposed.
"""
from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from ticket_intake.config import Settings, get_settings
from ticket_intake.exceptions import TicketStoreError
from ticket_intake.models.schemas import Ticket, utc_now
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)


class TicketRepository(ABC):
    """Abstract ticket store"""

    @abstractmethod
    async def insert(self, ticket: Ticket) -> Ticket:
        """Persist a new ticket. Raises TicketStoreError if the id already exists."""

    @abstractmethod
    async def get(self, ticket_id: str) -> Optional[Ticket]:
        """Fetch a ticket by id."""

    @abstractmethod
    async def list(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Ticket]:
        """List tickets, newest first."""

    @abstractmethod
    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        """Merge fields into a stored ticket. Returns None when not found."""

    @abstractmethod
    async def next_sequence(self, name: str) -> int:
        """Atomically increment and return the named counter."""

    @staticmethod
    def _merge(ticket: Ticket, fields: Dict[str, Any]) -> Ticket:
        record = ticket.to_record()
        record.update(fields)
        record["ticket_id"] = ticket.ticket_id
        record["created_at"] = ticket.created_at
        record["updated_at"] = utc_now()
        return Ticket.from_record(record)

    @staticmethod
    def _select(tickets: List[Ticket], status: Optional[str], limit: Optional[int]) -> List[Ticket]:
        if status:
            tickets = [ticket for ticket in tickets if ticket.status == status]
        tickets = sorted(tickets, key=lambda ticket: ticket.created_at, reverse=True)
        if limit:
            tickets = tickets[:limit]
        return tickets


# ----------------------------------------------------------------------
# In-memory
# ----------------------------------------------------------------------
class InMemoryTicketRepository(TicketRepository):
    """Process-local store"""

    def __init__(self) -> None:
        self._tickets: Dict[str, Ticket] = {}
        self._counters: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def insert(self, ticket: Ticket) -> Ticket:
        async with self._lock:
            if ticket.ticket_id in self._tickets:
                raise TicketStoreError(f"Ticket {ticket.ticket_id} already exists")
            self._tickets[ticket.ticket_id] = ticket
        return ticket

    async def get(self, ticket_id: str) -> Optional[Ticket]:
        return self._tickets.get(ticket_id)

    async def list(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Ticket]:
        return self._select(list(self._tickets.values()), status, limit)

    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        async with self._lock:
            current = self._tickets.get(ticket_id)
            if current is None:
                return None
            updated = self._merge(current, fields)
            self._tickets[ticket_id] = updated
        return updated

    async def next_sequence(self, name: str) -> int:
        async with self._lock:
            self._counters[name] = self._counters.get(name, 0) + 1
            return self._counters[name]


# ----------------------------------------------------------------------
# Flat JSON file
# ----------------------------------------------------------------------
class JsonFileTicketRepository(TicketRepository):
    """
    Store tickets in a single JSON document.

    Layout: {"tickets": {ticket_id: record}, "counters": {name: int}}.
    Every write rewrites the whole file under a lock.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()
        logger.info("JsonFileTicketRepository using %s", self.path)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"tickets": {}, "counters": {}}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                document = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            raise TicketStoreError(f"Failed to read ticket file {self.path}: {exc}") from exc
        document.setdefault("tickets", {})
        document.setdefault("counters", {})
        return document

    def _write(self, document: Dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as handle:
                json.dump(document, handle, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise TicketStoreError(f"Failed to write ticket file {self.path}: {exc}") from exc

    async def insert(self, ticket: Ticket) -> Ticket:
        async with self._lock:
            document = await asyncio.to_thread(self._read)
            if ticket.ticket_id in document["tickets"]:
                raise TicketStoreError(f"Ticket {ticket.ticket_id} already exists")
            document["tickets"][ticket.ticket_id] = ticket.to_record()
            await asyncio.to_thread(self._write, document)
        return ticket

    async def get(self, ticket_id: str) -> Optional[Ticket]:
        document = await asyncio.to_thread(self._read)
        record = document["tickets"].get(ticket_id)
        return Ticket.from_record(record) if record else None

    async def list(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Ticket]:
        document = await asyncio.to_thread(self._read)
        tickets = [Ticket.from_record(record) for record in document["tickets"].values()]
        return self._select(tickets, status, limit)

    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        async with self._lock:
            document = await asyncio.to_thread(self._read)
            record = document["tickets"].get(ticket_id)
            if record is None:
                return None
            updated = self._merge(Ticket.from_record(record), fields)
            document["tickets"][ticket_id] = updated.to_record()
            await asyncio.to_thread(self._write, document)
        return updated

    async def next_sequence(self, name: str) -> int:
        async with self._lock:
            document = await asyncio.to_thread(self._read)
            value = int(document["counters"].get(name, 0)) + 1
            document["counters"][name] = value
            await asyncio.to_thread(self._write, document)
        return value


# ----------------------------------------------------------------------
# Supabase
# ----------------------------------------------------------------------
class SupabaseTicketRepository(TicketRepository):
    """
    Supabase-backed store.

    The supabase client is synchronous, so each call runs in a worker thread.
    The counter is incremented by a Postgres function (see
    scripts/init_supabase_schema.sql) so concurrent instances never hand out
    the same number.
    """

    def __init__(self, supabase_client=None, settings: Settings = None) -> None:
        settings = settings or get_settings()
        if supabase_client is None:
            from supabase import create_client  # Lazy import for tests

            self.client = create_client(settings.supabase_url, settings.supabase_key)
        else:
            self.client = supabase_client

        self.table_name = settings.supabase_table
        self.counter_function = settings.supabase_counter_function
        logger.info("SupabaseTicketRepository initialized for table: %s", self.table_name)

    @staticmethod
    def _deserialize(row: Dict[str, Any]) -> Ticket:
        return Ticket.from_record(dict(row))

    # ------------------------------------------------------------------
    # Sync operations
    # ------------------------------------------------------------------
    def _insert_sync(self, ticket: Ticket) -> Ticket:
        try:
            response = self.client.table(self.table_name) \
                .insert(ticket.to_record()) \
                .execute()
        except Exception as exc:
            logger.error("Failed to insert ticket %s: %s", ticket.ticket_id, exc)
            raise TicketStoreError(f"Failed to insert ticket {ticket.ticket_id}: {exc}") from exc

        if not response.data:
            raise TicketStoreError("Supabase insert returned no data")
        return self._deserialize(response.data[0])

    def _get_sync(self, ticket_id: str) -> Optional[Ticket]:
        response = self.client.table(self.table_name) \
            .select("*") \
            .eq("ticket_id", ticket_id) \
            .limit(1) \
            .execute()
        rows = response.data or []
        return self._deserialize(rows[0]) if rows else None

    def _list_sync(self, status: Optional[str], limit: Optional[int]) -> List[Ticket]:
        query = self.client.table(self.table_name).select("*")
        if status:
            query = query.eq("status", status)
        query = query.order("created_at", desc=True)
        if limit:
            query = query.limit(limit)
        response = query.execute()
        return [self._deserialize(row) for row in response.data or []]

    def _update_sync(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        current = self._get_sync(ticket_id)
        if current is None:
            return None
        merged = self._merge(current, fields).to_record()
        changes = {key: value for key, value in merged.items() if key not in ("ticket_id", "created_at")}

        try:
            response = self.client.table(self.table_name) \
                .update(changes) \
                .eq("ticket_id", ticket_id) \
                .execute()
        except Exception as exc:
            logger.error("Failed to update ticket %s: %s", ticket_id, exc)
            raise TicketStoreError(f"Failed to update ticket {ticket_id}: {exc}") from exc

        rows = response.data or []
        return self._deserialize(rows[0]) if rows else self._merge(current, fields)

    def _next_sequence_sync(self, name: str) -> int:
        try:
            response = self.client.rpc(self.counter_function, {"counter_name": name}).execute()
        except Exception as exc:
            logger.error("Failed to increment counter %s: %s", name, exc)
            raise TicketStoreError(f"Failed to increment counter {name}: {exc}") from exc

        data = response.data
        if isinstance(data, list):
            data = data[0] if data else None
        if isinstance(data, dict):
            data = next(iter(data.values()), None)
        if data is None:
            raise TicketStoreError(f"Counter {name} returned no value")
        return int(data)

    # ------------------------------------------------------------------
    # Async interface
    # ------------------------------------------------------------------
    async def insert(self, ticket: Ticket) -> Ticket:
        return await asyncio.to_thread(self._insert_sync, ticket)

    async def get(self, ticket_id: str) -> Optional[Ticket]:
        return await asyncio.to_thread(self._get_sync, ticket_id)

    async def list(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Ticket]:
        return await asyncio.to_thread(self._list_sync, status, limit)

    async def update(self, ticket_id: str, fields: Dict[str, Any]) -> Optional[Ticket]:
        return await asyncio.to_thread(self._update_sync, ticket_id, fields)

    async def next_sequence(self, name: str) -> int:
        return await asyncio.to_thread(self._next_sequence_sync, name)


def create_repository(settings: Settings = None) -> TicketRepository:
    """Build the store selected by TICKET_STORE"""
    settings = settings or get_settings()
    backend = settings.ticket_store.lower()

    if backend == "supabase":
        return SupabaseTicketRepository(settings=settings)
    if backend == "file":
        return JsonFileTicketRepository(settings.ticket_store_path)
    if backend != "memory":
        logger.warning("Unknown TICKET_STORE '%s', falling back to memory", settings.ticket_store)
    return InMemoryTicketRepository()
