from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import exists, insert, select


class IRepository(ABC):
    @abstractmethod
    async def get(self, **filter_by) -> Optional[object]:
        pass

    @abstractmethod
    async def get_all(self, **filter_by) -> List[object]:
        pass

    @abstractmethod
    async def add(self, **data) -> int:
        pass


class BaseRepository(IRepository):
    model = None

    def __init__(self, session) -> None:
        self.session = session

    async def get(self, **filter_by):
        query = select(self.model).filter_by(**filter_by)
        result = await self.session.execute(query)
        return result.unique().scalar_one_or_none()

    async def get_all(self, **filter_by):
        query = select(self.model).filter_by(**filter_by).order_by(self.model.id)
        result = await self.session.execute(query)
        return result.unique().scalars().all()

    async def add(self, **data):
        query = insert(self.model).values(**data).returning(self.model.id)
        result = await self.session.execute(query)
        return result.scalar()

    async def exists(self, **filter_by) -> bool:
        query = select(exists().where(
            *[getattr(self.model, key) == value for key, value in filter_by.items()]
        ))
        result = await self.session.execute(query)
        return bool(result.scalar())
