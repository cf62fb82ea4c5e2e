"""
Сторона воркера: контейнер, через который работают задачи taskiq.
"""
import datetime as dt
import uuid

import pytest
from dependency_injector import providers

from kdt_pipeline.core.constants.config import settings
from kdt_pipeline.core.constants.enums import PushStatus
from kdt_pipeline.core.di_container import build_container
from kdt_pipeline.modules.notifications.timing import utcnow
from kdt_pipeline.modules.tasks.tasks import deliver_scheduled_push, purge_pushes


@pytest.fixture
def container(session_maker, transport):
    container = build_container(settings)
    container.session_maker.override(providers.Object(session_maker))
    container.push_transport.override(providers.Object(transport))
    yield container
    container.reset_override()


async def add_push(uow_factory, status, deliver_at=None):
    async with uow_factory() as uow:
        push_id = await uow.push_repo.add(
            request_id=uuid.uuid4(),
            user_id="u1",
            token="t1",
            title="H",
            data="C",
            deliver_at=deliver_at or utcnow(),
            status=status.value,
        )
        await uow.commit()
    return push_id


async def test_deliver_scheduled_push(container, uow_factory, transport):
    push_id = await add_push(uow_factory, PushStatus.QUEUED)

    assert await deliver_scheduled_push(container, push_id) is True

    assert transport.sent == [("t1", "H", "C")]
    async with uow_factory() as uow:
        assert (await uow.push_repo.get(id=push_id)).status == PushStatus.SENT.value


async def test_purge_keeps_recent_and_pending(container, uow_factory):
    old = utcnow() - dt.timedelta(days=30)
    old_sent = await add_push(uow_factory, PushStatus.SENT, deliver_at=old)
    old_pending = await add_push(uow_factory, PushStatus.PENDING, deliver_at=old)
    fresh_sent = await add_push(uow_factory, PushStatus.SENT)

    assert await purge_pushes(container, retention_days=7) == 1

    async with uow_factory() as uow:
        left = {p.id for p in await uow.push_repo.get_all()}
    assert left == {old_pending, fresh_sent}
    assert old_sent not in left
