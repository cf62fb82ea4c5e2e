from dependency_injector import containers, providers
from motor.motor_asyncio import AsyncIOMotorClient

from kdt_pipeline.core.constants.config import Settings
from kdt_pipeline.core.database.database import create_engine, create_session_maker
from kdt_pipeline.core.database.uow import SqlAlchemyUoW
from kdt_pipeline.modules.notifications.directory import TokenDirectory
from kdt_pipeline.modules.notifications.transport import FirebasePushTransport


class AppContainer(containers.DeclarativeContainer):
    config = providers.Configuration()

    engine = providers.Singleton(create_engine, url=config.DATABASE_URL)

    # Фабрика сессий поверх одного engine на процесс
    session_maker = providers.Singleton(create_session_maker, engine=engine)

    # Новый Unit of Work на каждое сообщение
    uow = providers.Factory(SqlAlchemyUoW, session_factory=session_maker)

    mongo_client = providers.Singleton(AsyncIOMotorClient, config.MONGO_URL)

    token_directory = providers.Singleton(
        TokenDirectory.from_client,
        client=mongo_client,
        db_name=config.MONGO_DB_NAME,
        collection_name=config.MONGO_COLLECTION,
    )

    # Нужен только воркеру доставки
    push_transport = providers.Singleton(
        FirebasePushTransport.from_credentials,
        credentials_path=config.FIREBASE_CFG,
    )


def build_container(settings: Settings) -> AppContainer:
    container = AppContainer()
    container.config.from_dict(settings.model_dump())
    return container


async def close_container(container: AppContainer) -> None:
    await container.engine().dispose()
    container.mongo_client().close()
