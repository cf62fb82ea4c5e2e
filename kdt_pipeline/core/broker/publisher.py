import logging

import nats
from nats.aio.msg import Msg

from kdt_pipeline.common.events import BaseEvent
from kdt_pipeline.core.constants.config import Settings
from kdt_pipeline.core.constants.enums import DeadLetterReason
from kdt_pipeline.core.broker.streams import ensure_streams

logger = logging.getLogger(__name__)


class EventPublisher:
    """Публикует события в JetStream. event_id уходит в Nats-Msg-Id для дедупликации"""

    def __init__(self, js, subject: str) -> None:
        self.js = js
        self.subject = subject

    async def publish(self, event: BaseEvent) -> None:
        await self.js.publish(
            self.subject,
            event.to_message(),
            headers={"Nats-Msg-Id": str(event.event_id)},
        )
        logger.debug("Published %s to %s", event.event_id, self.subject)


class DeadLetterPublisher:
    def __init__(self, js, prefix: str) -> None:
        self.js = js
        self.prefix = prefix

    def subject_for(self, subject: str) -> str:
        return f"{self.prefix}.{subject}"

    async def publish(self, msg: Msg, reason: DeadLetterReason, detail: str = "") -> None:
        headers = {
            "Dlq-Reason": reason.value,
            "Dlq-Source-Subject": msg.subject,
            # Заголовки NATS однострочные
            "Dlq-Detail": " ".join(detail.split())[:1024],
        }
        await self.js.publish(self.subject_for(msg.subject), msg.data, headers=headers)
        logger.warning(
            "Message moved to dead letters: subject=%s reason=%s", msg.subject, reason.value
        )


async def publish_event(event: BaseEvent, subject: str, settings: Settings) -> None:
    """Разовая публикация для сервисов-продюсеров"""
    nc = await nats.connect(settings.NATS_URL)
    try:
        js = nc.jetstream()
        await ensure_streams(js, settings)
        await EventPublisher(js, subject).publish(event)
    finally:
        await nc.close()
