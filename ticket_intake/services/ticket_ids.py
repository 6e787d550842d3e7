"""
Ticket identifier generation

Two strategies:
- random: TKT-<base36 epoch millis>-<4 random base36 chars>
- sequential: TKT-000042 from a counter persisted in the ticket store

Both sort by creation order.
"""
import secrets
import string
import time
from typing import Callable

from ticket_intake.config import Settings, get_settings
from ticket_intake.repositories.ticket_repository import TicketRepository
from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(value: int) -> str:
    """Encode a non-negative integer in upper-case base36"""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


class RandomTicketIdGenerator:
    """Timestamp plus random suffix"""

    def __init__(self, prefix: str = "TKT", clock: Callable[[], float] = time.time):
        self.prefix = prefix
        self._clock = clock

    async def generate(self) -> str:
        timestamp = to_base36(int(self._clock() * 1000))
        suffix = "".join(secrets.choice(BASE36_ALPHABET) for _ in range(4))
        return f"{self.prefix}-{timestamp}-{suffix}"


class SequentialTicketIdGenerator:
    """Monotonic counter stored alongside the tickets"""

    COUNTER_NAME = "ticket"

    def __init__(self, repository: TicketRepository, prefix: str = "TKT", width: int = 6):
        self.repository = repository
        self.prefix = prefix
        self.width = width

    async def generate(self) -> str:
        number = await self.repository.next_sequence(self.COUNTER_NAME)
        return f"{self.prefix}-{number:0{self.width}d}"


def create_id_generator(repository: TicketRepository, settings: Settings = None):
    """Pick the strategy named by TICKET_ID_STRATEGY"""
    settings = settings or get_settings()
    strategy = settings.ticket_id_strategy.lower()

    if strategy == "sequential":
        return SequentialTicketIdGenerator(repository, prefix=settings.ticket_id_prefix)
    if strategy != "random":
        logger.warning("Unknown TICKET_ID_STRATEGY '%s', using random", settings.ticket_id_strategy)
    return RandomTicketIdGenerator(prefix=settings.ticket_id_prefix)
