"""
StateRepository protocol for the sales assistant.

Abstracts per-user conversation state storage so the dialogue logic
works against any key-value backend.
"""

import logging
from typing import Dict, List, Protocol, runtime_checkable

from .state import HISTORY_LIMIT, ConversationState

logger = logging.getLogger(__name__)


@runtime_checkable
class StateRepository(Protocol):
    """Protocol for conversation state persistence."""

    def get(self, user_id: str) -> ConversationState:
        """Get the state for a user, creating it on first access."""
        ...

    def put(self, state: ConversationState) -> None:
        """Store a state."""
        ...

    def clear(self, user_id: str) -> None:
        """Forget a user's state."""
        ...

    def exists(self, user_id: str) -> bool:
        ...

    def all_user_ids(self) -> List[str]:
        ...


class InMemoryStateStore:
    """Process-lifetime state store keyed by user id."""

    def __init__(self, history_limit: int = HISTORY_LIMIT):
        self.history_limit = history_limit
        self._states: Dict[str, ConversationState] = {}

    def get(self, user_id: str) -> ConversationState:
        state = self._states.get(user_id)
        if state is None:
            state = ConversationState(user_id=user_id, history_limit=self.history_limit)
            self._states[user_id] = state
            logger.debug(f"Created conversation state for {user_id}")
        return state

    def put(self, state: ConversationState) -> None:
        state.touch()
        self._states[state.user_id] = state

    def clear(self, user_id: str) -> None:
        self._states.pop(user_id, None)

    def exists(self, user_id: str) -> bool:
        return user_id in self._states

    def all_user_ids(self) -> List[str]:
        return list(self._states)
