"""Inbound message deduplication."""

from __future__ import annotations

import asyncio
import logging

LOGGER = logging.getLogger(__name__)


class DedupCache:
    """Membership set of handled message ids, wiped wholesale every period.

    Reclamation is coarse: after a reset any earlier id is treated as new.
    """

    def __init__(self, reset_interval_seconds: float = 3600.0) -> None:
        self._reset_interval_seconds = reset_interval_seconds
        self._ids: set[str] = set()
        self._stop_event = asyncio.Event()

    def seen(self, message_id: str) -> bool:
        return message_id in self._ids

    def mark(self, message_id: str) -> None:
        self._ids.add(message_id)

    def claim(self, message_id: str) -> bool:
        """Mark ``message_id`` and return True if it had not been seen.

        Check and mark happen without yielding to the event loop, so two
        concurrent deliveries of one id cannot both claim it.
        """

        if message_id in self._ids:
            return False
        self._ids.add(message_id)
        return True

    def clear(self) -> None:
        self._ids.clear()

    def __len__(self) -> int:
        return len(self._ids)

    async def run_reset_loop(self) -> None:
        """Clear the cache every period until stop() is called."""

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._reset_interval_seconds)
            except asyncio.TimeoutError:
                LOGGER.debug("Dedup cache reset (%d ids dropped)", len(self._ids))
                self.clear()

    def stop(self) -> None:
        """Signal the reset loop to stop."""

        self._stop_event.set()
