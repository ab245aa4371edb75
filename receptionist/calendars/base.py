"""Calendar backend interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class CalendarClient(ABC):
    """Calendar operations the booking tools rely on."""

    @abstractmethod
    async def query_busy(self, time_min: str, time_max: str, calendar_id: str) -> list[dict[str, Any]] | None:
        """Return busy intervals for ``calendar_id``, or None if the backend has no data for it."""

    @abstractmethod
    async def insert_event(self, calendar_id: str, event: dict[str, Any]) -> str:
        """Create an event and return its link."""
