# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""In-memory per-actor onboarding state with idle eviction.

Callers work on copies. ``save`` writes a copy back only while the stored
conversation is still the version it was read at, so a turn that raced
with ``/start`` or with registration cannot undo either.
"""
import threading
import time
from datetime import date
from typing import Callable, Optional

from pydantic import BaseModel

from birthday_fund.metrics import ACTIVE_CONVERSATIONS
from birthday_fund.models.domain import Stage


class Conversation(BaseModel):
    actor_id: int
    stage: Stage = Stage.AWAITING_NAME
    name: Optional[str] = None
    birthday: Optional[date] = None
    phone_number: Optional[str] = None
    touched_at: float = 0.0
    version: int = 0


class ConversationStore:
    """Actor id → Conversation. Lost on restart; ``/start`` recreates it."""

    def __init__(self, idle_seconds: int, clock: Callable[[], float] = time.monotonic):
        self._idle = idle_seconds
        self._clock = clock
        self._items: dict[int, Conversation] = {}
        self._lock = threading.Lock()

    def start(self, actor_id: int) -> Conversation:
        with self._lock:
            self._evict_expired()
            current = self._items.get(actor_id)
            conv = Conversation(
                actor_id=actor_id,
                touched_at=self._clock(),
                version=current.version + 1 if current else 0,
            )
            self._items[actor_id] = conv
            ACTIVE_CONVERSATIONS.set(len(self._items))
            return conv.model_copy()

    def get(self, actor_id: int) -> Optional[Conversation]:
        with self._lock:
            self._evict_expired()
            conv = self._items.get(actor_id)
            return conv.model_copy() if conv else None

    def save(self, conv: Conversation) -> bool:
        """Compare-and-set; False when the stored conversation moved on or is gone."""
        with self._lock:
            current = self._items.get(conv.actor_id)
            if current is None or current.version != conv.version:
                return False
            conv.version += 1
            conv.touched_at = self._clock()
            self._items[conv.actor_id] = conv.model_copy()
            ACTIVE_CONVERSATIONS.set(len(self._items))
            return True

    def take(self, actor_id: int, stage: Stage) -> Optional[Conversation]:
        """Remove and return the conversation, but only while it is at ``stage``.

        Of two concurrent callers at most one gets it.
        """
        with self._lock:
            self._evict_expired()
            conv = self._items.get(actor_id)
            if conv is None or conv.stage is not stage:
                return None
            del self._items[actor_id]
            ACTIVE_CONVERSATIONS.set(len(self._items))
            return conv

    def restore(self, conv: Conversation) -> bool:
        """Put back a taken conversation unless a new one was started meanwhile."""
        with self._lock:
            if conv.actor_id in self._items:
                return False
            conv.touched_at = self._clock()
            self._items[conv.actor_id] = conv
            ACTIVE_CONVERSATIONS.set(len(self._items))
            return True

    def drop(self, actor_id: int) -> None:
        with self._lock:
            self._items.pop(actor_id, None)
            ACTIVE_CONVERSATIONS.set(len(self._items))

    def evict_expired(self) -> int:
        with self._lock:
            return self._evict_expired()

    def __len__(self) -> int:
        return len(self._items)

    def _evict_expired(self) -> int:
        cutoff = self._clock() - self._idle
        stale = [k for k, c in self._items.items() if c.touched_at <= cutoff]
        for key in stale:
            del self._items[key]
        if stale:
            ACTIVE_CONVERSATIONS.set(len(self._items))
        return len(stale)
