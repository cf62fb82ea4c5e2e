import logging
from typing import Union

from kdt_pipeline.common.events import DonationEvent, PurchaseEvent
from kdt_pipeline.core.database.uow import SqlAlchemyUoW


logger = logging.getLogger(__name__)


class EventStoreService:
    def __init__(self, uow: SqlAlchemyUoW) -> None:
        self.uow = uow

    def _target(self, event: Union[PurchaseEvent, DonationEvent]):
        if isinstance(event, PurchaseEvent):
            return self.uow.purchase_repo, {
                "user_token": event.user_token,
                "place_id": event.place_id,
                "event_time": event.event_time,
                "purchase_time": event.purchase_time,
                "cost": event.cost,
            }
        if isinstance(event, DonationEvent):
            return self.uow.donation_repo, {
                "user_token": event.user_token,
                "collection_id": event.collection_id,
                "donation_time": event.donation_time,
                "amount": event.amount,
            }
        raise TypeError(f"unsupported event {type(event).__name__}")

    async def store(self, event: Union[PurchaseEvent, DonationEvent]) -> bool:
        """
        Одна вставка на событие. Повторная доставка с тем же event_id
        строку не добавляет. Возвращает True, если строка записана.
        """
        repo, values = self._target(event)

        if await repo.exists(event_id=event.event_id):
            logger.info("Событие %s (%s) уже сохранено", event.event_id, event.kind)
            return False

        row_id = await repo.add(event_id=event.event_id, **values)
        logger.debug("Saved %s event_id=%s row=%s", event.kind, event.event_id, row_id)
        return True
