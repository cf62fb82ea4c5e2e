import asyncio
import logging

import nats
from nats.aio.client import Client
from nats.js.api import RetentionPolicy, StreamConfig

from kdt_pipeline.core.constants.config import Settings


logger = logging.getLogger(__name__)


class BrokerConnectionLost(RuntimeError):
    pass


async def ensure_stream(
    js,
    *,
    name: str,
    subjects: list[str],
    max_msgs: int,
    retention: RetentionPolicy = RetentionPolicy.WORK_QUEUE,
) -> None:
    stream_config = StreamConfig(
        name=name,
        subjects=subjects,
        retention=retention,
        max_msgs=max_msgs,
    )
    try:
        await js.add_stream(config=stream_config)
    except nats.js.errors.APIError as exc:
        if "stream name already in use" not in str(exc):
            raise


async def ensure_streams(js, settings: Settings) -> None:
    await ensure_stream(
        js,
        name=settings.EVENTS_STREAM,
        subjects=[settings.EVENTS_SUBJECT],
        max_msgs=settings.STREAM_MAX_MSGS,
    )
    await ensure_stream(
        js,
        name=settings.NOTIFICATIONS_STREAM,
        subjects=[settings.NOTIFICATIONS_SUBJECT],
        max_msgs=settings.STREAM_MAX_MSGS,
    )
    # Мертвые письма должны оставаться доступными для разбора, поэтому limits
    await ensure_stream(
        js,
        name=settings.DEAD_LETTER_STREAM,
        subjects=[f"{settings.DEAD_LETTER_PREFIX}.>"],
        max_msgs=settings.STREAM_MAX_MSGS,
        retention=RetentionPolicy.LIMITS,
    )


async def connect(settings: Settings, closed: asyncio.Event) -> Client:
    async def disconnected_cb():
        logger.warning("NATS disconnected")

    async def closed_cb():
        logger.error("NATS connection closed")
        closed.set()

    async def error_cb(exc):
        logger.error("NATS error: %s", exc)

    return await nats.connect(
        settings.NATS_URL,
        allow_reconnect=settings.NATS_ALLOW_RECONNECT,
        disconnected_cb=disconnected_cb,
        closed_cb=closed_cb,
        error_cb=error_cb,
    )


async def wait_closed(closed: asyncio.Event) -> None:
    """Держит процесс, пока соединение с брокером живо"""
    await closed.wait()
    raise BrokerConnectionLost("NATS connection closed")
