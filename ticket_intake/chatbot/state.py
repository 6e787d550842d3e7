"""
Conversation state for the scripted intake dialogue

ConversationStore is the single owner of per-sender state. It is created once
per application (see ticket_intake.context) and injected into the engine and
the channel adapters. State is process-local and ephemeral: entries idle for
longer than the configured threshold are removed by a periodic sweep.
"""
import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from ticket_intake.utils.logger import get_logger

logger = get_logger(__name__)


class ConversationStep(str, Enum):
    """Steps of the intake dialogue"""
    WELCOME = "welcome"
    MAIN_CHOICE = "main_choice"
    BUY_TIMING = "buy_timing"
    BUY_EVENT_NAME = "buy_event_name"
    BUY_EVENT_TYPE = "buy_event_type"
    GET_EMAIL = "get_email"
    SELL_TIMING = "sell_timing"
    SELL_BEFORE_OPTIONS = "sell_before_options"
    SELL_AFTER_OPTIONS = "sell_after_options"
    COMPLETED = "completed"


@dataclass
class ConversationState:
    """Progress of one sender through the dialogue"""
    sender_id: str
    channel: str
    display_name: Optional[str] = None
    step: ConversationStep = ConversationStep.WELCOME
    data: Dict[str, str] = field(default_factory=dict)
    last_active: float = 0.0
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def touch(self, now: float) -> None:
        self.last_active = now
        self.updated_at = datetime.now(timezone.utc)

    def summary(self) -> Dict[str, object]:
        return {
            "sender_id": self.sender_id,
            "channel": self.channel,
            "display_name": self.display_name,
            "step": self.step.value,
            "data": dict(self.data),
            "updated_at": self.updated_at.isoformat(),
        }


class ConversationStore:
    """
    Owns the sender -> ConversationState map

    Each sender has its own asyncio.Lock so transitions for one sender never
    interleave while different senders proceed independently. The idle sweep
    does not take those locks.
    """

    def __init__(self, idle_seconds: float = 3600, clock: Callable[[], float] = time.monotonic):
        self.idle_seconds = idle_seconds
        self._clock = clock
        self._states: Dict[str, ConversationState] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._states)

    def now(self) -> float:
        return self._clock()

    def lock_for(self, sender_id: str) -> asyncio.Lock:
        lock = self._locks.get(sender_id)
        if lock is None:
            lock = self._locks[sender_id] = asyncio.Lock()
        return lock

    def get(self, sender_id: str) -> Optional[ConversationState]:
        return self._states.get(sender_id)

    def get_or_create(self, sender_id: str, channel: str, display_name: Optional[str] = None) -> ConversationState:
        state = self._states.get(sender_id)
        if state is None:
            state = ConversationState(sender_id=sender_id, channel=channel, display_name=display_name)
            state.touch(self.now())
            self._states[sender_id] = state
            logger.info(f"New conversation for {sender_id} via {channel}")
        elif display_name:
            state.display_name = display_name
        return state

    def reset(self, sender_id: Optional[str] = None) -> int:
        """
        Drop conversation state

        Args:
            sender_id: Only this sender; all senders when omitted

        Returns:
            Number of conversations removed
        """
        if sender_id is None:
            count = len(self._states)
            self._states.clear()
            self._locks = {key: lock for key, lock in self._locks.items() if lock.locked()}
            logger.info(f"Reset all conversations ({count})")
            return count

        removed = self._states.pop(sender_id, None)
        lock = self._locks.get(sender_id)
        if lock is not None and not lock.locked():
            del self._locks[sender_id]
        if removed:
            logger.info(f"Reset conversation for {sender_id}")
        return 1 if removed else 0

    def list_active(self) -> List[ConversationState]:
        return sorted(self._states.values(), key=lambda state: state.last_active, reverse=True)

    def sweep(self) -> int:
        """Remove conversations idle longer than idle_seconds"""
        cutoff = self.now() - self.idle_seconds
        expired = [sender_id for sender_id, state in self._states.items() if state.last_active < cutoff]
        for sender_id in expired:
            del self._states[sender_id]
        # Locks held during an earlier sweep are dropped once released
        orphaned = [
            sender_id for sender_id, lock in self._locks.items()
            if sender_id not in self._states and not lock.locked()
        ]
        for sender_id in orphaned:
            del self._locks[sender_id]
        if expired:
            logger.info(f"Reaped {len(expired)} idle conversations")
        return len(expired)

    async def run_reaper(self, interval_seconds: float) -> None:
        """Sweep forever; cancelled at application shutdown"""
        logger.info(f"Conversation reaper started (interval={interval_seconds}s, idle={self.idle_seconds}s)")
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Conversation sweep failed: {e}", exc_info=True)
