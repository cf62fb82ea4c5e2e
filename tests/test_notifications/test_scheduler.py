"""
PushScheduler: до наступления времени доставка не уходит воркеру,
наступившая уходит один раз.
"""
import asyncio
import datetime as dt
import uuid

import pytest

from kdt_pipeline.core.constants.enums import PushStatus
from kdt_pipeline.modules.notifications.scheduler import PushScheduler

from tests.conftest import NOW


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class Enqueue:
    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    async def __call__(self, push_id):
        if self.fail:
            raise ConnectionError("nats is down")
        self.calls.append(push_id)


async def add_push(uow_factory, deliver_at, token="t1"):
    async with uow_factory() as uow:
        push_id = await uow.push_repo.add(
            request_id=uuid.uuid4(),
            user_id="u1",
            token=token,
            title="H",
            data="C",
            deliver_at=deliver_at,
            status=PushStatus.PENDING.value,
        )
        await uow.commit()
    return push_id


async def status_of(uow_factory, push_id):
    async with uow_factory() as uow:
        return (await uow.push_repo.get(id=push_id)).status


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def enqueue():
    return Enqueue()


@pytest.fixture
def scheduler(uow_factory, enqueue, clock):
    return PushScheduler(uow_factory, enqueue, poll_interval=0.01, clock=clock)


async def test_only_due_pushes_are_enqueued(scheduler, enqueue, clock, uow_factory):
    due_id = await add_push(uow_factory, NOW - dt.timedelta(seconds=1))
    later_id = await add_push(uow_factory, NOW + dt.timedelta(hours=1))

    assert await scheduler.tick() == [due_id]

    assert enqueue.calls == [due_id]
    assert await status_of(uow_factory, due_id) == PushStatus.QUEUED.value
    assert await status_of(uow_factory, later_id) == PushStatus.PENDING.value


async def test_push_fires_once_its_time_comes(scheduler, enqueue, clock, uow_factory):
    deliver_at = NOW + dt.timedelta(minutes=10)
    push_id = await add_push(uow_factory, deliver_at)

    clock.now = deliver_at - dt.timedelta(seconds=1)
    assert await scheduler.tick() == []

    clock.now = deliver_at
    assert await scheduler.tick() == [push_id]

    clock.now = deliver_at + dt.timedelta(minutes=1)
    assert await scheduler.tick() == []
    assert enqueue.calls == [push_id]


async def test_every_token_is_enqueued_separately(scheduler, enqueue, uow_factory):
    ids = [await add_push(uow_factory, NOW, token=token) for token in ("t1", "t2")]

    await scheduler.tick()

    assert sorted(enqueue.calls) == sorted(ids)


async def test_cancelled_push_is_not_enqueued(scheduler, enqueue, uow_factory):
    await add_push(uow_factory, NOW)
    async with uow_factory() as uow:
        await uow.push_repo.cancel_pending(user_id="u1")
        await uow.commit()

    assert await scheduler.tick() == []
    assert enqueue.calls == []


async def test_enqueue_failure_releases_push(uow_factory, clock):
    push_id = await add_push(uow_factory, NOW)
    scheduler = PushScheduler(uow_factory, Enqueue(fail=True), clock=clock)

    assert await scheduler.tick() == []

    assert await status_of(uow_factory, push_id) == PushStatus.PENDING.value


async def test_run_stops_on_event(uow_factory, clock):
    push_id = await add_push(uow_factory, NOW)
    stop = asyncio.Event()
    calls = []

    async def enqueue(pid):
        calls.append(pid)
        stop.set()

    scheduler = PushScheduler(uow_factory, enqueue, poll_interval=0.01, clock=clock)

    await asyncio.wait_for(scheduler.run(stop), timeout=2)

    assert calls == [push_id]


async def test_push_claimed_before_restart_is_requeued(uow_factory, clock):
    push_id = await add_push(uow_factory, NOW)
    crashed = PushScheduler(uow_factory, Enqueue(), visibility_timeout=60, clock=clock)
    # Процесс упал между claim и постановкой задачи
    assert await crashed.claim_due() == [push_id]

    enqueue = Enqueue()
    restarted = PushScheduler(uow_factory, enqueue, visibility_timeout=60, clock=clock)

    clock.now = NOW + dt.timedelta(seconds=30)
    assert await restarted.tick() == []

    clock.now = NOW + dt.timedelta(hours=1)
    assert await restarted.tick() == [push_id]
    assert await restarted.tick() == []

    assert enqueue.calls == [push_id]
    assert await status_of(uow_factory, push_id) == PushStatus.QUEUED.value


async def test_push_is_failed_after_max_attempts(uow_factory, clock):
    push_id = await add_push(uow_factory, NOW)
    enqueue = Enqueue()
    scheduler = PushScheduler(
        uow_factory, enqueue, visibility_timeout=60, max_attempts=2, clock=clock
    )

    for minutes in (0, 2, 4):
        clock.now = NOW + dt.timedelta(minutes=minutes)
        await scheduler.tick()

    assert enqueue.calls == [push_id, push_id]
    async with uow_factory() as uow:
        push = await uow.push_repo.get(id=push_id)
    assert push.status == PushStatus.FAILED.value
    assert push.attempts == 2
    assert "2 attempts" in push.last_error


async def test_sent_push_is_not_requeued(uow_factory, clock):
    push_id = await add_push(uow_factory, NOW)
    enqueue = Enqueue()
    scheduler = PushScheduler(uow_factory, enqueue, visibility_timeout=60, clock=clock)
    await scheduler.tick()

    async with uow_factory() as uow:
        await uow.push_repo.set_status(push_id, PushStatus.SENT, sent_at=NOW)
        await uow.commit()

    clock.now = NOW + dt.timedelta(hours=1)
    assert await scheduler.tick() == []
    assert enqueue.calls == [push_id]
