import datetime as dt
import uuid

from sqlalchemy import DateTime, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
import kdt_pipeline.common.models.common as cm


# place_id и collection_id ссылаются на таблицы сервисов places и charity,
# схемой которых этот сервис не управляет, поэтому без ForeignKey.


class TicketPurchase(Base):
    __tablename__ = "ticket_purchases"

    id: Mapped[cm.intpk]
    event_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)

    user_token: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    place_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    event_time: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    purchase_time: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    cost: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[cm.created_at]

    def __repr__(self) -> str:
        return (
            f"<TicketPurchase {self.id} place={self.place_id} "
            f"cost={self.cost} at={self.event_time}>"
        )


class Donation(Base):
    __tablename__ = "donations"

    id: Mapped[cm.intpk]
    event_id: Mapped[uuid.UUID] = mapped_column(Uuid, unique=True, nullable=False)

    user_token: Mapped[str] = mapped_column(Text, index=True, nullable=False)
    collection_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    donation_time: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[cm.created_at]

    def __repr__(self) -> str:
        return (
            f"<Donation {self.id} collection={self.collection_id} "
            f"amount={self.amount}>"
        )
