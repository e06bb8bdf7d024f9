"""
In-memory conversation state.

Each conversation id owns:
- a map from subagent id to that subagent's continuation token
- an optional server-held history (channel-style callers only)
- a lock that serializes exchanges on the conversation

Nothing is persisted; a restart forgets every conversation.
"""

from __future__ import annotations

import asyncio as _asyncio
import collections as _collections
import contextlib as _contextlib
import dataclasses as _dataclasses
import logging as _logging
import typing as _typing

import willknow.api.types as api_types
import willknow.constants as _constants

_logger = _logging.getLogger(__name__)


@_dataclasses.dataclass
class ConversationState:
    """State kept for one conversation id."""

    conversation_id: str

    tokens: dict[str, str] = _dataclasses.field(default_factory=dict)
    """Subagent id -> continuation token returned by its last call."""

    history: list[api_types.Message] = _dataclasses.field(default_factory=list)
    """Server-held history, used only by channel-style exchanges."""

    lock: _asyncio.Lock = _dataclasses.field(default_factory=_asyncio.Lock, repr=False)
    """Held for the duration of an exchange on this conversation."""

    holders: int = 0
    """Exchanges holding or waiting for ``lock`` through SessionStore.hold()."""

    def get_token(self, subagent_id: str) -> str | None:
        return self.tokens.get(subagent_id)

    def set_token(self, subagent_id: str, token: str | None) -> None:
        """Replace a subagent's continuation token; None or "" clears it."""
        if token:
            self.tokens[subagent_id] = token
        else:
            self.tokens.pop(subagent_id, None)

    @property
    def in_use(self) -> bool:
        return self.holders > 0 or self.lock.locked()

    def trim_history(self, limit: int) -> None:
        """Drop the oldest messages beyond ``limit``."""
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]
            # History must open with a user message
            while self.history and self.history[0].role != "user":
                del self.history[0]


class SessionStore:
    """
    Conversation states keyed by conversation id.

    States are created lazily on first access. At most ``max_conversations``
    are kept; the least recently used conversation nobody holds is evicted
    first, so the store may briefly exceed its bound while every state is busy.
    """

    def __init__(self, max_conversations: int = _constants.DEFAULT_MAX_CONVERSATIONS) -> None:
        if max_conversations < 1:
            raise ValueError("max_conversations must be at least 1")
        self._max_conversations = max_conversations
        self._states: _collections.OrderedDict[str, ConversationState] = (
            _collections.OrderedDict()
        )

    def get(self, conversation_id: str) -> ConversationState:
        """
        Get the state for a conversation, creating it if needed.

        Args:
            conversation_id: Conversation key.

        Returns:
            The conversation's state, marked most recently used.
        """
        state = self._states.get(conversation_id)
        if state is None:
            state = ConversationState(conversation_id=conversation_id)
            self._states[conversation_id] = state
            self._evict(keep=conversation_id)
        else:
            self._states.move_to_end(conversation_id)
        return state

    @_contextlib.asynccontextmanager
    async def hold(self, conversation_id: str) -> _typing.AsyncIterator[ConversationState]:
        """
        Run one exchange on a conversation.

        Waits for earlier exchanges on the same id to finish. The state is
        protected from eviction from the moment it is requested, including
        while waiting for the lock.
        """
        state = self.get(conversation_id)
        state.holders += 1
        try:
            async with state.lock:
                yield state
        finally:
            state.holders -= 1

    def _evict(self, keep: str) -> None:
        overflow = len(self._states) - self._max_conversations
        if overflow <= 0:
            return
        for conversation_id in list(self._states):
            if overflow <= 0:
                break
            if conversation_id == keep or self._states[conversation_id].in_use:
                continue
            del self._states[conversation_id]
            overflow -= 1
            _logger.debug("Evicted idle conversation %s", conversation_id)

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._states
