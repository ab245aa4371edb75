import asyncio
from unittest.mock import AsyncMock

import pytest

from receptionist.models import ScheduledJob, ScheduleSpec
from receptionist.scheduler import AutoSendScheduler


def _job(immediate=False, delay=0.0, interval=None, to="+94770000000", message="Promo!") -> ScheduledJob:
    return ScheduledJob(to=to, message=message, schedule=ScheduleSpec(immediate=immediate, delay=delay, interval=interval))


@pytest.mark.asyncio
async def test_one_shot_fires_exactly_once():
    send = AsyncMock()
    scheduler = AutoSendScheduler([_job(delay=0.05)], send, startup_grace_seconds=0.01)

    scheduler.start()
    await asyncio.sleep(0.02)
    send.assert_not_awaited()
    await asyncio.sleep(0.1)
    await asyncio.sleep(0.1)

    send.assert_awaited_once_with("+94770000000", "Promo!")
    assert scheduler.registry == {}
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_recurring_job_repeats_until_cancelled():
    send = AsyncMock()
    scheduler = AutoSendScheduler([_job(delay=0.01, interval=0.05)], send, startup_grace_seconds=0.01)

    scheduler.start()
    await asyncio.sleep(0.28)
    fired = send.await_count
    assert fired >= 3
    assert list(scheduler.registry) == ["msg_0"]

    scheduler.cancel_all()
    await asyncio.sleep(0.15)

    assert send.await_count == fired
    assert scheduler.registry == {}


@pytest.mark.asyncio
async def test_immediate_job_uses_startup_grace():
    send = AsyncMock()
    scheduler = AutoSendScheduler([_job(immediate=True)], send, startup_grace_seconds=0.03)

    scheduler.start()
    await asyncio.sleep(0.01)
    send.assert_not_awaited()
    await asyncio.sleep(0.06)

    send.assert_awaited_once()


@pytest.mark.asyncio
async def test_immediate_job_with_delay_sends_twice():
    send = AsyncMock()
    scheduler = AutoSendScheduler([_job(immediate=True, delay=0.05)], send, startup_grace_seconds=0.01)

    scheduler.start()
    await asyncio.sleep(0.12)

    assert send.await_count == 2


@pytest.mark.asyncio
async def test_cancel_all_suppresses_pending_one_shots():
    send = AsyncMock()
    scheduler = AutoSendScheduler([_job(delay=0.05), _job(immediate=True)], send, startup_grace_seconds=0.05)

    scheduler.start()
    assert scheduler.pending == 2
    scheduler.cancel_all()
    await asyncio.sleep(0.1)

    send.assert_not_awaited()
    assert scheduler.pending == 0


@pytest.mark.asyncio
async def test_restart_does_not_duplicate_timers():
    send = AsyncMock()
    scheduler = AutoSendScheduler([_job(delay=0.03)], send, startup_grace_seconds=0.01)

    scheduler.start()
    scheduler.start()
    await asyncio.sleep(0.1)

    send.assert_awaited_once()


@pytest.mark.asyncio
async def test_send_failure_does_not_stop_recurring_job():
    send = AsyncMock(side_effect=RuntimeError("offline"))
    scheduler = AutoSendScheduler([_job(delay=0.01, interval=0.03)], send, startup_grace_seconds=0.01)

    scheduler.start()
    await asyncio.sleep(0.15)
    scheduler.cancel_all()

    assert send.await_count >= 3
