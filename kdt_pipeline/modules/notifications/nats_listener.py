import asyncio
import datetime as dt
import logging
from typing import Callable

from nats.aio.msg import Msg
from nats.js.api import ConsumerConfig
from sqlalchemy.exc import SQLAlchemyError

from kdt_pipeline.common.events import MessageRejected, decode_notification_request
from kdt_pipeline.core.broker.consumer import BaseConsumer
from kdt_pipeline.core.broker.publisher import DeadLetterPublisher
from kdt_pipeline.core.broker.streams import connect, ensure_streams, wait_closed
from kdt_pipeline.core.constants.config import NOTIFICATION_TZ, Settings
from kdt_pipeline.core.database.uow import SqlAlchemyUoW
from kdt_pipeline.modules.notifications.directory import TokenDirectory, TokenDirectoryError
from kdt_pipeline.modules.notifications.services import NotificationService


logger = logging.getLogger(__name__)


class NotificationsConsumer(BaseConsumer):
    def __init__(
        self,
        uow_factory: Callable[[], SqlAlchemyUoW],
        directory: TokenDirectory,
        tz: dt.tzinfo,
        respect_offset: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.uow_factory = uow_factory
        self.directory = directory
        self.tz = tz
        self.respect_offset = respect_offset

    async def process(self, msg: Msg) -> None:
        try:
            request = decode_notification_request(msg.data)
        except MessageRejected as exc:
            logger.warning("Invalid notification message: %s", exc)
            await self.reject(msg, exc)
            return

        try:
            async with self.uow_factory() as uow:
                service = NotificationService(
                    uow, self.directory, self.tz, self.respect_offset
                )
                await service.schedule(request)
                await uow.commit()
        except TokenDirectoryError as exc:
            logger.warning("Failed to find user tokens: %s", exc)
            await self.retry_or_reject(msg, detail=str(exc))
            return
        except SQLAlchemyError as exc:
            logger.error("Failed to schedule notification %s: %s", request.event_id, exc)
            await self.retry_or_reject(msg, detail=str(exc))
            return

        await msg.ack()


async def notifications_listener(container, settings: Settings) -> None:
    closed = asyncio.Event()
    nc = await connect(settings, closed)
    try:
        js = nc.jetstream()
        await ensure_streams(js, settings)

        consumer = NotificationsConsumer(
            uow_factory=container.uow,
            directory=container.token_directory(),
            tz=NOTIFICATION_TZ,
            respect_offset=settings.RESPECT_TIMESTAMP_OFFSET,
            dead_letters=DeadLetterPublisher(js, settings.DEAD_LETTER_PREFIX),
            max_deliver=settings.MAX_DELIVER,
            redelivery_delay=settings.REDELIVERY_DELAY_SECONDS,
        )
        await js.subscribe(
            settings.NOTIFICATIONS_SUBJECT,
            durable=settings.NOTIFICATIONS_DURABLE,
            cb=consumer.handle,
            manual_ack=True,
            config=ConsumerConfig(max_deliver=settings.MAX_DELIVER),
        )
        logger.info("Dispatcher subscribed to %s", settings.NOTIFICATIONS_SUBJECT)

        await wait_closed(closed)
    finally:
        if not nc.is_closed:
            await nc.close()
