import datetime as dt
import logging
from typing import Optional

from kdt_pipeline.common.events import NotificationRequest
from kdt_pipeline.core.constants.enums import PushStatus
from kdt_pipeline.core.database.uow import SqlAlchemyUoW
from kdt_pipeline.modules.notifications.directory import TokenDirectory
from kdt_pipeline.modules.notifications.timing import (
    compute_delay,
    to_delivery_zone,
    utcnow,
)
from kdt_pipeline.modules.notifications.transport import PushTransport, PushTransportError


logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(
        self,
        uow: SqlAlchemyUoW,
        directory: TokenDirectory,
        tz: dt.tzinfo,
        respect_offset: bool = False,
    ) -> None:
        self.uow = uow
        self.directory = directory
        self.tz = tz
        self.respect_offset = respect_offset

    def delivery_time(
        self, request: NotificationRequest, now: dt.datetime
    ) -> dt.datetime:
        scheduled = to_delivery_zone(request.scheduled_time, self.tz, self.respect_offset)
        delay = compute_delay(scheduled, now)
        if not delay:
            logger.warning(
                "Notification time is in the past, sending immediately: request=%s time=%s",
                request.event_id,
                scheduled.isoformat(),
            )
        return now + delay

    async def schedule(
        self,
        request: NotificationRequest,
        now: Optional[dt.datetime] = None,
    ) -> list[int]:
        """
        Раскладывает запрос на отдельные доставки, по одной на токен.
        Ошибку справочника токенов (TokenDirectoryError) пробрасывает.
        """
        now = now or utcnow()

        tokens = await self.directory.get_tokens(request.user_id)
        if not tokens:
            logger.warning("No device tokens for user_id=%s, skipping", request.user_id)
            return []

        deliver_at = self.delivery_time(request, now)

        push_ids = []
        for token in sorted(tokens):
            push_id = await self.uow.push_repo.add(
                request_id=request.event_id,
                user_id=request.user_id,
                token=token,
                title=request.header,
                data=request.content,
                deliver_at=deliver_at,
                status=PushStatus.PENDING.value,
            )
            push_ids.append(push_id)

        logger.info(
            "Scheduled %s pushes for user_id=%s at %s",
            len(push_ids),
            request.user_id,
            deliver_at.isoformat(),
        )
        return push_ids

    async def cancel(self, user_id: Optional[str] = None, token: Optional[str] = None) -> int:
        cancelled = await self.uow.push_repo.cancel_pending(user_id=user_id, token=token)
        logger.info("Cancelled %s pushes (user_id=%s token=%s)", cancelled, user_id, token)
        return cancelled

    async def revoke_token(self, user_id: str, token: str) -> int:
        await self.directory.remove_token(user_id, token)
        return await self.cancel(token=token)


class PushDeliveryService:
    def __init__(self, uow: SqlAlchemyUoW, transport: PushTransport) -> None:
        self.uow = uow
        self.transport = transport

    async def deliver(self, push_id: int, now: Optional[dt.datetime] = None) -> bool:
        push = await self.uow.push_repo.get(id=push_id)
        if push is None:
            logger.warning("Push %s not found", push_id)
            return False
        if push.status != PushStatus.QUEUED.value:
            logger.info("Push %s skipped, status=%s", push_id, push.status)
            return False

        logger.debug("Sending push %s to token %s", push_id, push.token)
        try:
            await self.transport.send(push.token, push.title, push.data)
        except PushTransportError as exc:
            logger.warning("Error sending push %s: %s", push_id, exc)
            await self.uow.push_repo.set_status(
                push_id, PushStatus.FAILED, last_error=str(exc)
            )
            return False

        await self.uow.push_repo.set_status(
            push_id, PushStatus.SENT, sent_at=now or utcnow()
        )
        logger.debug("Successfully sent push %s", push_id)
        return True
