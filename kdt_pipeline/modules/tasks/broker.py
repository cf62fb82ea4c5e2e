from contextlib import asynccontextmanager

from nats.js.api import RetentionPolicy, StreamConfig
from taskiq import InMemoryBroker
from taskiq_nats import PullBasedJetStreamBroker

from kdt_pipeline.core.constants.config import settings


stream_config = StreamConfig(
    retention=RetentionPolicy.WORK_QUEUE,
)

if settings.ENV == "pytest":
    broker = InMemoryBroker()
else:
    broker = PullBasedJetStreamBroker(
        servers=settings.NATS_URL,
        queue=settings.TASKIQ_QUEUE,
        stream_config=stream_config,
    )


@asynccontextmanager
async def broker_context():
    await broker.startup()
    try:
        yield
    finally:
        await broker.shutdown()
