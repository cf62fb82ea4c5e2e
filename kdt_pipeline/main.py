import argparse
import asyncio
import logging

from kdt_pipeline.core.constants.config import settings
from kdt_pipeline.core.database.database import create_tables
from kdt_pipeline.core.di_container import build_container, close_container
from kdt_pipeline.core.utils.logger import setup_logging
from kdt_pipeline.modules.notifications.nats_listener import notifications_listener
from kdt_pipeline.modules.notifications.scheduler import PushScheduler
from kdt_pipeline.modules.persister.nats_listener import persister_listener
from kdt_pipeline.modules.tasks.broker import broker_context
from kdt_pipeline.modules.tasks.tasks import deliver_push


logger = logging.getLogger(__name__)


async def run_init_db(container) -> None:
    await create_tables(container.engine())
    logger.info("Tables created")


async def run_persister(container) -> None:
    await persister_listener(container, settings)


async def run_dispatcher(container) -> None:
    async with broker_context():
        scheduler = PushScheduler(
            uow_factory=container.uow,
            enqueue=deliver_push.kiq,
            poll_interval=settings.PUSH_POLL_INTERVAL,
            batch_size=settings.PUSH_BATCH_SIZE,
            visibility_timeout=settings.PUSH_VISIBILITY_TIMEOUT,
            max_attempts=settings.PUSH_MAX_ATTEMPTS,
        )
        # Любая из задач падает -> падает процесс
        await asyncio.gather(
            notifications_listener(container, settings),
            scheduler.run(),
        )


COMMANDS = {
    'init-db': run_init_db,
    'persister': run_persister,
    'dispatcher': run_dispatcher,
}


async def main(command: str):
    container = build_container(settings)
    try:
        await COMMANDS[command](container)
    finally:
        await close_container(container)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='KDT event pipeline')
    parser.add_argument('command', choices=sorted(COMMANDS))
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)
    logger.info("Configuration loaded, env=%s", settings.ENV)
    asyncio.run(main(args.command))
