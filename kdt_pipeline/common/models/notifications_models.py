import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
import kdt_pipeline.common.models.common as cm
from kdt_pipeline.core.constants.enums import PushStatus


class ScheduledPush(Base):
    """Одна отложенная доставка пуша на один токен устройства"""
    __tablename__ = "scheduled_pushes"

    id: Mapped[cm.intpk]

    # event_id запроса на уведомление, общий для всех токенов пользователя
    request_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    user_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    token: Mapped[str] = mapped_column(Text, index=True, nullable=False)

    title: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[str] = mapped_column(Text, nullable=False)

    # Всегда UTC
    deliver_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), index=True, nullable=False
    )

    # pending | queued | sent | failed | cancelled
    status: Mapped[str] = mapped_column(
        String(16), index=True, nullable=False, default=PushStatus.PENDING.value
    )
    # Момент последней передачи воркеру и число таких передач.
    # Зависшая в queued доставка забирается повторно по истечении таймаута.
    queued_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sent_at: Mapped[Optional[dt.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[cm.created_at]
    updated_at: Mapped[cm.updated_at]

    def __repr__(self) -> str:
        return (
            f"<ScheduledPush {self.id} user={self.user_id} "
            f"status={self.status} deliver_at={self.deliver_at}>"
        )
