"""Bounded per-conversation history."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque

from receptionist.db import Database
from receptionist.models import Turn


class HistoryStore(ABC):
    """Ordered, bounded transcript of prior turns per conversation.

    The system prompt is never stored. After trimming to ``limit`` the oldest
    turns are evicted, plus any ``tool`` turns left at the front without
    their assistant turn.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("history limit must be at least 1")
        self.limit = limit

    @abstractmethod
    def append(self, conversation_id: str, turn: Turn) -> None:
        """Add a turn, evicting the oldest ones beyond the limit."""

    @abstractmethod
    def read(self, conversation_id: str) -> list[Turn]:
        """Return a snapshot of the current window, oldest first."""

    @abstractmethod
    def clear(self, conversation_id: str) -> None:
        """Forget a conversation."""


class InMemoryHistoryStore(HistoryStore):
    """Process-lifetime history."""

    def __init__(self, limit: int) -> None:
        super().__init__(limit)
        self._conversations: dict[str, deque[Turn]] = {}

    def append(self, conversation_id: str, turn: Turn) -> None:
        turns = self._conversations.setdefault(conversation_id, deque())
        turns.append(turn)
        while len(turns) > self.limit:
            turns.popleft()
        while turns and turns[0].role == "tool":
            turns.popleft()

    def read(self, conversation_id: str) -> list[Turn]:
        return list(self._conversations.get(conversation_id, ()))

    def clear(self, conversation_id: str) -> None:
        self._conversations.pop(conversation_id, None)


class SqliteHistoryStore(HistoryStore):
    """History that survives restarts, stored in the SQLite database."""

    def __init__(self, db: Database, limit: int) -> None:
        super().__init__(limit)
        self._db = db

    def append(self, conversation_id: str, turn: Turn) -> None:
        self._db.add_turn(conversation_id, turn.role, turn.to_json())
        self._db.trim_turns(conversation_id, self.limit)

    def read(self, conversation_id: str) -> list[Turn]:
        return [Turn.from_json(row["payload_json"]) for row in self._db.get_turns(conversation_id)]

    def clear(self, conversation_id: str) -> None:
        self._db.clear_turns(conversation_id)
