import asyncio
import logging
from typing import Callable

from nats.aio.msg import Msg
from nats.js.api import ConsumerConfig
from sqlalchemy.exc import SQLAlchemyError

from kdt_pipeline.common.events import (
    MessageRejected,
    UnknownMessageType,
    decode_stored_event,
)
from kdt_pipeline.core.broker.consumer import BaseConsumer
from kdt_pipeline.core.broker.publisher import DeadLetterPublisher
from kdt_pipeline.core.broker.streams import connect, ensure_streams, wait_closed
from kdt_pipeline.core.constants.config import Settings
from kdt_pipeline.core.database.uow import SqlAlchemyUoW
from kdt_pipeline.modules.persister.services import EventStoreService


logger = logging.getLogger(__name__)


class EventsConsumer(BaseConsumer):
    """Общая очередь покупок билетов и пожертвований"""

    def __init__(self, uow_factory: Callable[[], SqlAlchemyUoW], **kwargs) -> None:
        super().__init__(**kwargs)
        self.uow_factory = uow_factory

    async def process(self, msg: Msg) -> None:
        try:
            event = decode_stored_event(msg.data)
        except UnknownMessageType as exc:
            logger.warning("unknown message type: subject=%s (%s)", msg.subject, exc)
            await self.reject(msg, exc)
            return
        except MessageRejected as exc:
            logger.warning("Invalid event message: subject=%s (%s)", msg.subject, exc)
            await self.reject(msg, exc)
            return

        try:
            async with self.uow_factory() as uow:
                await EventStoreService(uow).store(event)
                await uow.commit()
        except SQLAlchemyError as exc:
            logger.error("Failed to save %s event_id=%s: %s", event.kind, event.event_id, exc)
            await self.retry_or_reject(msg, detail=str(exc))
            return

        await msg.ack()


async def persister_listener(container, settings: Settings) -> None:
    closed = asyncio.Event()
    nc = await connect(settings, closed)
    try:
        js = nc.jetstream()
        await ensure_streams(js, settings)

        consumer = EventsConsumer(
            uow_factory=container.uow,
            dead_letters=DeadLetterPublisher(js, settings.DEAD_LETTER_PREFIX),
            max_deliver=settings.MAX_DELIVER,
            redelivery_delay=settings.REDELIVERY_DELAY_SECONDS,
        )
        await js.subscribe(
            settings.EVENTS_SUBJECT,
            durable=settings.EVENTS_DURABLE,
            cb=consumer.handle,
            manual_ack=True,
            config=ConsumerConfig(max_deliver=settings.MAX_DELIVER),
        )
        logger.info("Persister subscribed to %s", settings.EVENTS_SUBJECT)

        await wait_closed(closed)
    finally:
        if not nc.is_closed:
            await nc.close()
