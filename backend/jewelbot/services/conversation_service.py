# /jewelbot/services/conversation_service.py

import time
import logging
from collections import OrderedDict
from contextlib import asynccontextmanager
from typing import Optional, List, Sequence, Callable

from jewelbot.config.settings import settings
from jewelbot.models.domain import ConversationState, ConversationTurn, PaginationCursor, ProductRecord
from jewelbot.utils.metrics import active_conversations_gauge

# This service keeps per-user conversation history and the pagination cursor of
# the user's last product search in process memory. Entries idle for longer
# than the TTL, or beyond the size bound (least recently used first), are
# evicted. A user whose turn is in progress is never evicted.

logger = logging.getLogger(__name__)


class ConversationStore:
    def __init__(
        self,
        ttl_seconds: int = 3600,
        max_entries: int = 10000,
        max_history: int = 12,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.max_history = max_history
        self._clock = clock
        self._states: "OrderedDict[str, ConversationState]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._states

    def get(self, user_id: str) -> Optional[ConversationState]:
        return self._states.get(user_id)

    def get_or_create(self, user_id: str) -> ConversationState:
        """Returns the user's state, creating it on first contact."""
        state = self._states.get(user_id)
        if state is None:
            self._evict_expired()
            state = ConversationState(user_id=user_id, last_active=self._clock())
            self._states[user_id] = state
            self._evict_overflow(keep=user_id)
            active_conversations_gauge.set(len(self._states))
        else:
            self._touch(state)
        return state

    def evict(self, user_id: str) -> bool:
        removed = self._states.pop(user_id, None) is not None
        active_conversations_gauge.set(len(self._states))
        return removed

    @asynccontextmanager
    async def lock(self, user_id: str):
        """Serialises turns of one user. Yields the user's state."""
        state = self.get_or_create(user_id)
        async with state.lock:
            self._touch(state)
            yield state
            self._touch(state)

    # --- History ---

    def recent_history(self, state: ConversationState, n: int) -> List[ConversationTurn]:
        return list(state.history[-n:]) if n > 0 else []

    def append_exchange(self, state: ConversationState, user_text: str, reply_text: str) -> None:
        state.history.append(ConversationTurn(role="user", content=user_text))
        state.history.append(ConversationTurn(role="assistant", content=reply_text))
        if len(state.history) > self.max_history:
            state.history = state.history[-self.max_history:]

    # --- Pagination ---

    def set_cursor(self, state: ConversationState, results: Sequence[ProductRecord], offset: int) -> PaginationCursor:
        state.cursor = PaginationCursor(results=list(results), offset=min(offset, len(results)))
        return state.cursor

    def clear_cursor(self, state: ConversationState) -> None:
        state.cursor = None

    # --- Eviction ---

    def _touch(self, state: ConversationState) -> None:
        state.last_active = self._clock()
        if state.user_id in self._states:
            self._states.move_to_end(state.user_id)

    def _evict_expired(self) -> None:
        if self.ttl_seconds <= 0:
            return
        now = self._clock()
        expired = [
            user_id for user_id, state in self._states.items()
            if now - state.last_active > self.ttl_seconds and not state.lock.locked()
        ]
        for user_id in expired:
            del self._states[user_id]
        if expired:
            logger.info(f"Evicted {len(expired)} idle conversations.")

    def _evict_overflow(self, keep: Optional[str] = None) -> None:
        if self.max_entries <= 0:
            return
        # Oldest entries sit at the front of the ordered dict.
        for user_id in list(self._states.keys()):
            if len(self._states) <= self.max_entries:
                break
            if user_id == keep or self._states[user_id].lock.locked():
                continue
            del self._states[user_id]
            logger.debug(f"Evicted least recently used conversation for {user_id}.")


# Globally accessible instance
conversation_store = ConversationStore(
    ttl_seconds=settings.conversation_ttl_seconds,
    max_entries=settings.max_conversations,
    max_history=settings.history_max_turns,
)
