from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine
)

from kdt_pipeline.common.models import Base


def create_engine(url: str, **kwargs) -> AsyncEngine:
    return create_async_engine(url, **kwargs)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Создает только таблицы пайплайна: ticket_purchases, donations, scheduled_pushes"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
