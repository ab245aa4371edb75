"""Timers for automatic outbound messages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Sequence

from receptionist.models import ScheduledJob

LOGGER = logging.getLogger(__name__)

STARTUP_GRACE_SECONDS = 1.0


class AutoSendScheduler:
    """Arms one-shot and recurring send timers for a static job list.

    Recurring timers live in a registry keyed ``msg_<index>``; one-shot timers
    that have not fired yet are tracked separately. cancel_all() stops both.
    """

    def __init__(
        self,
        jobs: Sequence[ScheduledJob],
        send: Callable[[str, str], Awaitable[Any]],
        startup_grace_seconds: float = STARTUP_GRACE_SECONDS,
    ) -> None:
        self._jobs = list(jobs)
        self._send = send
        self._startup_grace_seconds = startup_grace_seconds
        self._recurring: dict[str, asyncio.Task[None]] = {}
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def registry(self) -> dict[str, asyncio.Task[None]]:
        return dict(self._recurring)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def start(self) -> None:
        """Arm timers for every job. Must be called from a running loop."""

        self.cancel_all()
        LOGGER.info("Starting automatic message sending (%d jobs)", len(self._jobs))
        for index, job in enumerate(self._jobs):
            schedule = job.schedule
            if schedule.immediate:
                self._arm_one_shot(index, job, self._startup_grace_seconds, then_repeat=False)
            if schedule.delay > 0 or not schedule.immediate:
                self._arm_one_shot(index, job, schedule.delay, then_repeat=True)

    def cancel_all(self) -> None:
        """Stop every armed timer and clear the registry."""

        if self._recurring or self._pending:
            LOGGER.info(
                "Cancelling %d recurring and %d pending scheduled messages",
                len(self._recurring),
                len(self._pending),
            )
        for task in self._recurring.values():
            task.cancel()
        self._recurring.clear()
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()

    def _arm_one_shot(self, index: int, job: ScheduledJob, delay: float, then_repeat: bool) -> None:
        task = asyncio.create_task(self._one_shot(index, job, delay, then_repeat), name=f"auto-send-{index}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _one_shot(self, index: int, job: ScheduledJob, delay: float, then_repeat: bool) -> None:
        await asyncio.sleep(delay)
        await self._deliver(job)
        interval = job.schedule.interval
        if then_repeat and interval and interval > 0:
            key = f"msg_{index}"
            previous = self._recurring.pop(key, None)
            if previous is not None:
                previous.cancel()
            self._recurring[key] = asyncio.create_task(self._repeat(job, interval), name=f"auto-send-{key}")
            LOGGER.info("Scheduled message %d to repeat every %ss", index + 1, interval)

    async def _repeat(self, job: ScheduledJob, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self._deliver(job)

    async def _deliver(self, job: ScheduledJob) -> None:
        try:
            await self._send(job.to, job.message)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Scheduled send to %s failed", job.to)
