import datetime as dt
import logging

from taskiq import Context, TaskiqDepends, TaskiqEvents, TaskiqState

from kdt_pipeline.core.constants.config import settings
from kdt_pipeline.core.di_container import AppContainer, build_container, close_container
from kdt_pipeline.core.utils.logger import setup_logging
from kdt_pipeline.modules.notifications.services import PushDeliveryService
from kdt_pipeline.modules.notifications.timing import utcnow
from kdt_pipeline.modules.tasks.broker import broker

logger = logging.getLogger(__name__)


@broker.on_event(TaskiqEvents.WORKER_STARTUP)
async def startup(state: TaskiqState) -> None:
    setup_logging(settings.LOG_LEVEL)
    state.container = build_container(settings)


@broker.on_event(TaskiqEvents.WORKER_SHUTDOWN)
async def shutdown(state: TaskiqState) -> None:
    await close_container(state.container)


async def deliver_scheduled_push(container: AppContainer, push_id: int) -> bool:
    async with container.uow() as uow:
        service = PushDeliveryService(uow, container.push_transport())
        delivered = await service.deliver(push_id)
        await uow.commit()
    return delivered


async def purge_pushes(container: AppContainer, retention_days: int) -> int:
    before = utcnow() - dt.timedelta(days=retention_days)
    async with container.uow() as uow:
        purged = await uow.push_repo.purge_finished(before=before)
        await uow.commit()
    return purged


@broker.task(task_name="notifications.deliver_push")
async def deliver_push(push_id: int, context: Context = TaskiqDepends()) -> bool:
    return await deliver_scheduled_push(context.state.container, push_id)


@broker.task(
    task_name="notifications.purge_finished_pushes",
    schedule=[{"cron": "0 * * * *"}],
)
async def purge_finished_pushes(context: Context = TaskiqDepends()) -> int:
    purged = await purge_pushes(context.state.container, settings.PUSH_RETENTION_DAYS)
    if purged:
        logger.info("Purged %s finished pushes", purged)
    return purged
