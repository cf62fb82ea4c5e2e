import datetime as dt
from typing import Optional

from sqlalchemy import and_, delete, or_, select, update

from kdt_pipeline.core.constants.enums import FINISHED_PUSH_STATUSES, PushStatus
from kdt_pipeline.core.database.base_repo import BaseRepository
from kdt_pipeline.common.models import ScheduledPush


class ScheduledPushRepository(BaseRepository):
    model = ScheduledPush

    async def get_due(
        self,
        now: dt.datetime,
        stale_before: Optional[dt.datetime] = None,
        limit: int = 100,
    ) -> list[ScheduledPush]:
        """
        Наступившие pending доставки и, если задан stale_before,
        queued доставки, переданные воркеру раньше stale_before.
        """
        condition = and_(
            self.model.status == PushStatus.PENDING.value,
            self.model.deliver_at <= now,
        )
        if stale_before is not None:
            condition = or_(condition, and_(
                self.model.status == PushStatus.QUEUED.value,
                self.model.queued_at <= stale_before,
            ))
        query = (
            select(self.model)
            .where(condition)
            .order_by(self.model.deliver_at.asc(), self.model.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return result.scalars().all()

    async def claim(self, push: ScheduledPush, now: dt.datetime) -> bool:
        # attempts служит версией строки: из двух планировщиков заберет один
        query = (
            update(self.model)
            .where(
                self.model.id == push.id,
                self.model.status == push.status,
                self.model.attempts == push.attempts,
            )
            .values(
                status=PushStatus.QUEUED.value,
                queued_at=now,
                attempts=self.model.attempts + 1,
            )
        )
        result = await self.session.execute(query)
        return result.rowcount == 1

    async def set_status(
        self,
        push_id: int,
        status: PushStatus,
        expected: Optional[PushStatus] = None,
        **values,
    ) -> bool:
        """
        Переводит доставку в status.
        Если задан expected, обновление произойдет только из этого статуса,
        так несколько планировщиков не заберут одну и ту же доставку.
        """
        query = (
            update(self.model)
            .where(self.model.id == push_id)
            .values(status=status.value, **values)
        )
        if expected is not None:
            query = query.where(self.model.status == expected.value)
        result = await self.session.execute(query)
        return result.rowcount == 1

    async def cancel_pending(
        self,
        user_id: Optional[str] = None,
        token: Optional[str] = None,
    ) -> int:
        if user_id is None and token is None:
            raise ValueError('user_id or token is required')

        query = (
            update(self.model)
            .where(self.model.status.in_(
                [PushStatus.PENDING.value, PushStatus.QUEUED.value]
            ))
            .values(status=PushStatus.CANCELLED.value)
        )
        if user_id is not None:
            query = query.where(self.model.user_id == user_id)
        if token is not None:
            query = query.where(self.model.token == token)
        result = await self.session.execute(query)
        return result.rowcount

    async def purge_finished(self, before: dt.datetime) -> int:
        query = delete(self.model).where(
            self.model.status.in_(FINISHED_PUSH_STATUSES),
            self.model.deliver_at < before,
        )
        result = await self.session.execute(query)
        return result.rowcount
