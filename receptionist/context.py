"""Process-scoped mutable state shared by the bot and scheduler."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from receptionist.config import BotConfig, Settings
from receptionist.db import Database
from receptionist.dedup import DedupCache
from receptionist.history import HistoryStore, InMemoryHistoryStore, SqliteHistoryStore
from receptionist.scheduler import AutoSendScheduler

LOGGER = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Dedup set, history and scheduler registry for one process."""

    config: BotConfig
    dedup: DedupCache
    scheduler: AutoSendScheduler
    history: HistoryStore | None = None
    db: Database | None = None
    _dedup_task: asyncio.Task[None] | None = field(default=None, repr=False)

    def open(self) -> None:
        """Start background housekeeping. Must be called from a running loop."""

        if self._dedup_task is None:
            self._dedup_task = asyncio.create_task(self.dedup.run_reset_loop(), name="dedup-reset")

    async def close(self) -> None:
        self.scheduler.cancel_all()
        self.dedup.stop()
        if self._dedup_task is not None:
            await self._dedup_task
            self._dedup_task = None


def build_context(
    config: BotConfig,
    send: Callable[[str, str], Awaitable[Any]],
    settings: Settings | None = None,
) -> AppContext:
    """Create the shared state described by ``config``."""

    db: Database | None = None
    history: HistoryStore | None = None
    history_config = config.ai.history
    if history_config.enabled:
        if history_config.backend == "sqlite":
            if settings is None:
                raise ValueError("sqlite history needs settings with DATABASE_PATH")
            db = Database(settings.database_path)
            db.initialize()
            history = SqliteHistoryStore(db, history_config.limit)
        else:
            history = InMemoryHistoryStore(history_config.limit)
        LOGGER.info("Chat history enabled (%s, limit %d)", history_config.backend, history_config.limit)

    return AppContext(
        config=config,
        dedup=DedupCache(config.dedup_reset_seconds),
        scheduler=AutoSendScheduler(config.scheduled_jobs(), send),
        history=history,
        db=db,
    )
