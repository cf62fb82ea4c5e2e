from abc import ABC, abstractmethod
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from kdt_pipeline.modules.notifications.repositories import ScheduledPushRepository
from kdt_pipeline.modules.persister.repositories import (
    DonationRepository,
    TicketPurchaseRepository,
)


class IUnitOfWork(ABC):
    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class RepositoriesMixin:
    def init_repositories(self, session):
        self.purchase_repo = TicketPurchaseRepository(session)
        self.donation_repo = DonationRepository(session)
        self.push_repo = ScheduledPushRepository(session)


class SqlAlchemyUoW(IUnitOfWork, RepositoriesMixin):
    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def __aenter__(self):
        self.session = self.session_factory()
        self.init_repositories(self.session)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            await self.rollback()
        await self.session.close()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()
