import asyncio
import datetime as dt
import logging
from typing import Awaitable, Callable, Optional

from kdt_pipeline.core.constants.enums import PushStatus
from kdt_pipeline.core.database.uow import SqlAlchemyUoW
from kdt_pipeline.modules.notifications.timing import utcnow


logger = logging.getLogger(__name__)


class PushScheduler:
    """
    Забирает наступившие доставки из scheduled_pushes и ставит каждую
    отдельной задачей в очередь воркера.

    Доставка, которая пробыла в queued дольше visibility_timeout (упал
    планировщик до постановки задачи или воркер во время отправки),
    забирается повторно. После max_attempts передач она помечается failed.
    """

    def __init__(
        self,
        uow_factory: Callable[[], SqlAlchemyUoW],
        enqueue: Callable[[int], Awaitable[object]],
        poll_interval: float = 1.0,
        batch_size: int = 100,
        visibility_timeout: float = 300.0,
        max_attempts: int = 3,
        clock: Callable[[], dt.datetime] = utcnow,
    ) -> None:
        self.uow_factory = uow_factory
        self.enqueue = enqueue
        self.poll_interval = poll_interval
        self.batch_size = batch_size
        self.visibility_timeout = dt.timedelta(seconds=visibility_timeout)
        self.max_attempts = max_attempts
        self.clock = clock

    async def claim_due(self) -> list[int]:
        now = self.clock()
        async with self.uow_factory() as uow:
            due = await uow.push_repo.get_due(
                now=now,
                stale_before=now - self.visibility_timeout,
                limit=self.batch_size,
            )
            claimed = []
            for push in due:
                if push.status == PushStatus.QUEUED.value:
                    if push.attempts >= self.max_attempts:
                        await self.give_up(uow, push.id)
                        continue
                    logger.warning(
                        "Push %s stuck in queued since %s, requeueing",
                        push.id,
                        push.queued_at,
                    )
                if await uow.push_repo.claim(push, now):
                    claimed.append(push.id)
            await uow.commit()
        return claimed

    async def give_up(self, uow: SqlAlchemyUoW, push_id: int) -> None:
        if await uow.push_repo.set_status(
            push_id,
            PushStatus.FAILED,
            expected=PushStatus.QUEUED,
            last_error=f"not delivered after {self.max_attempts} attempts",
        ):
            logger.error("Push %s failed after %s attempts", push_id, self.max_attempts)

    async def release(self, push_id: int) -> None:
        async with self.uow_factory() as uow:
            await uow.push_repo.set_status(
                push_id, PushStatus.PENDING, expected=PushStatus.QUEUED
            )
            await uow.commit()

    async def tick(self) -> list[int]:
        enqueued = []
        for push_id in await self.claim_due():
            try:
                await self.enqueue(push_id)
            except Exception as exc:
                logger.error("Failed to enqueue push %s: %s", push_id, exc)
                await self.release(push_id)
                continue
            enqueued.append(push_id)

        if enqueued:
            logger.info("Enqueued %s pushes", len(enqueued))
        return enqueued

    async def run(self, stop: Optional[asyncio.Event] = None) -> None:
        stop = stop or asyncio.Event()
        logger.info("Push scheduler started, poll interval %ss", self.poll_interval)
        while not stop.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
