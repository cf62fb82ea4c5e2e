import logging
from abc import ABC, abstractmethod

from nats.aio.msg import Msg

from kdt_pipeline.common.events import (
    InvalidMessage,
    MalformedMessage,
    MessageRejected,
    UnknownMessageType,
)
from kdt_pipeline.core.broker.publisher import DeadLetterPublisher
from kdt_pipeline.core.constants.enums import DeadLetterReason

logger = logging.getLogger(__name__)


REJECT_REASONS = {
    MalformedMessage: DeadLetterReason.MALFORMED,
    UnknownMessageType: DeadLetterReason.UNKNOWN_TYPE,
    InvalidMessage: DeadLetterReason.INVALID,
}


class BaseConsumer(ABC):
    """
    Подтверждение только после успешной обработки.
    Отбракованные сообщения уходят в dead letters и подтверждаются,
    временные ошибки возвращаются брокеру до max_deliver попыток.
    """

    def __init__(
        self,
        dead_letters: DeadLetterPublisher,
        max_deliver: int,
        redelivery_delay: float,
    ) -> None:
        self.dead_letters = dead_letters
        self.max_deliver = max_deliver
        self.redelivery_delay = redelivery_delay

    @abstractmethod
    async def process(self, msg: Msg) -> None:
        pass

    async def handle(self, msg: Msg) -> None:
        try:
            await self.process(msg)
        except Exception as e:
            logger.exception("Ошибка при обработке сообщения subject=%s: %s", msg.subject, e)
            await self.retry_or_reject(msg, detail=str(e))

    async def reject(self, msg: Msg, exc: MessageRejected) -> None:
        reason = REJECT_REASONS.get(type(exc), DeadLetterReason.INVALID)
        await self.dead_letters.publish(msg, reason, detail=str(exc))
        await msg.ack()

    async def retry_or_reject(self, msg: Msg, detail: str) -> None:
        num_delivered = msg.metadata.num_delivered
        if num_delivered >= self.max_deliver:
            logger.error(
                "Giving up after %s deliveries: subject=%s", num_delivered, msg.subject
            )
            await self.dead_letters.publish(msg, DeadLetterReason.EXHAUSTED, detail=detail)
            await msg.ack()
            return
        await msg.nak(delay=self.redelivery_delay)
