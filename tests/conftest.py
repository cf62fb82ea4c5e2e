"""
Общие фикстуры: SQLite в памяти вместо Postgres и подделки для JetStream,
справочника токенов и push-транспорта.
"""
import os

# До импорта kdt_pipeline: taskiq-брокер в тестах in-memory
os.environ.setdefault("ENV", "pytest")

import datetime as dt
import json
from types import SimpleNamespace

import pytest
import pytz
from sqlalchemy.pool import StaticPool

from kdt_pipeline.core.broker.publisher import DeadLetterPublisher
from kdt_pipeline.core.database.database import (
    create_engine,
    create_session_maker,
    create_tables,
)
from kdt_pipeline.core.database.uow import SqlAlchemyUoW
from kdt_pipeline.modules.notifications.directory import TokenDirectoryError
from kdt_pipeline.modules.notifications.transport import PushTransport, PushTransportError


MSK = pytz.FixedOffset(180)

NOW = dt.datetime(2024, 1, 1, 12, 0, tzinfo=dt.timezone.utc)


class FakeMsg:
    def __init__(self, data, subject="events.store", num_delivered=1):
        if isinstance(data, dict):
            data = json.dumps(data).encode("utf-8")
        elif isinstance(data, str):
            data = data.encode("utf-8")
        self.data = data
        self.subject = subject
        self.metadata = SimpleNamespace(num_delivered=num_delivered)
        self.acked = False
        self.nacked = False
        self.nak_delay = None

    async def ack(self):
        self.acked = True

    async def nak(self, delay=None):
        self.nacked = True
        self.nak_delay = delay


class FakeJetStream:
    def __init__(self):
        self.published = []

    async def publish(self, subject, payload=b"", timeout=None, stream=None, headers=None):
        self.published.append(
            SimpleNamespace(subject=subject, payload=payload, headers=headers or {})
        )


class FakeDirectory:
    def __init__(self, tokens=None, error=False):
        self.tokens = tokens or {}
        self.error = error
        self.removed = []

    async def get_tokens(self, user_id):
        if self.error:
            raise TokenDirectoryError("mongo is down")
        if user_id not in self.tokens:
            return None
        return set(self.tokens[user_id])

    async def remove_token(self, user_id, token):
        self.removed.append((user_id, token))
        self.tokens.get(user_id, set()).discard(token)


class FakeTransport(PushTransport):
    def __init__(self, failing=()):
        self.failing = set(failing)
        self.sent = []

    async def send(self, token, title, data):
        if token in self.failing:
            raise PushTransportError(f"token {token} is not registered")
        self.sent.append((token, title, data))
        return f"projects/kdt/messages/{len(self.sent)}"


@pytest.fixture
async def engine():
    engine = create_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return create_session_maker(engine)


@pytest.fixture
def uow_factory(session_maker):
    return lambda: SqlAlchemyUoW(session_maker)


@pytest.fixture
def jetstream() -> FakeJetStream:
    return FakeJetStream()


@pytest.fixture
def dead_letters(jetstream) -> DeadLetterPublisher:
    return DeadLetterPublisher(jetstream, "dlq")


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory(tokens={"u1": {"t1", "t2"}, "u2": set()})


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
