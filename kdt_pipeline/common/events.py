"""
События, которые ходят через брокер.

Хранимые события (покупка билета, пожертвование) различаются по полю `kind`.
Старые продюсеры шлют их без `kind`, тогда тип выводится по форме сообщения:
`place_id` -> покупка, `collection_id` -> пожертвование.
"""
import datetime as dt
import json
import uuid
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from kdt_pipeline.core.constants.enums import EventKind


class MessageRejected(Exception):
    """Сообщение не может быть обработано ни при каком повторе"""


class MalformedMessage(MessageRejected):
    pass


class UnknownMessageType(MessageRejected):
    pass


class InvalidMessage(MessageRejected):
    pass


def _reject_zero_time(value: dt.datetime) -> dt.datetime:
    # Нулевое время продюсеров на Go: 0001-01-01T00:00:00Z
    if value.year <= 1:
        raise ValueError('timestamp is zero')
    return value


# Колонки place_id, cost, collection_id, amount имеют тип integer (int4)
DbPositiveInt = Annotated[int, Field(gt=0, le=2**31 - 1)]


class BaseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)

    def to_message(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode('utf-8')


class PurchaseEvent(BaseEvent):
    kind: Literal['purchase'] = 'purchase'
    user_token: str = Field(min_length=1)
    place_id: DbPositiveInt
    event_time: dt.datetime
    purchase_time: dt.datetime
    cost: DbPositiveInt

    @field_validator('event_time', 'purchase_time')
    @classmethod
    def check_times(cls, value: dt.datetime) -> dt.datetime:
        return _reject_zero_time(value)


class DonationEvent(BaseEvent):
    kind: Literal['donation'] = 'donation'
    user_token: str = Field(min_length=1)
    collection_id: DbPositiveInt
    donation_time: dt.datetime
    amount: DbPositiveInt

    @field_validator('donation_time')
    @classmethod
    def check_time(cls, value: dt.datetime) -> dt.datetime:
        return _reject_zero_time(value)


StoredEvent = Annotated[
    Union[PurchaseEvent, DonationEvent],
    Field(discriminator='kind'),
]

stored_event_adapter = TypeAdapter(StoredEvent)

# Ключ, по которому старые сообщения без `kind` относятся к схеме
SHAPE_KEYS = {
    'place_id': EventKind.PURCHASE,
    'collection_id': EventKind.DONATION,
}


class NotificationRequest(BaseEvent):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(min_length=1)
    header: str = Field(min_length=1)
    content: str = Field(min_length=1)
    scheduled_time: dt.datetime = Field(alias='time')

    @classmethod
    def purchase_reminder(
        cls,
        user_id: str,
        place_name: str,
        event_time: dt.datetime,
        lead: dt.timedelta = dt.timedelta(minutes=15),
    ) -> 'NotificationRequest':
        """Напоминание, которое сервис мест отправляет перед купленным слотом"""
        return cls(
            user_id=user_id,
            header='Напоминание о покупке!',
            content=f"Вы приобрели билет на {place_name} в {event_time.strftime('%H:%M')}",
            scheduled_time=event_time - lead,
        )


def _load_object(raw: bytes) -> dict:
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedMessage(f'body is not json: {exc}') from exc
    if not isinstance(data, dict):
        raise MalformedMessage(f'body is {type(data).__name__}, expected object')
    return data


def infer_kind(data: dict) -> Optional[EventKind]:
    matched = [kind for key, kind in SHAPE_KEYS.items() if key in data]
    if len(matched) != 1:
        return None
    return matched[0]


def decode_stored_event(raw: bytes) -> Union[PurchaseEvent, DonationEvent]:
    data = _load_object(raw)

    kind = data.get('kind')
    if kind is None:
        inferred = infer_kind(data)
        if inferred is None:
            raise UnknownMessageType(
                f'unknown message type, keys={sorted(data)}'
            )
        data['kind'] = inferred.value
    elif not isinstance(kind, str) or kind not in {item.value for item in EventKind}:
        raise UnknownMessageType(f'unknown message type, kind={kind!r}')

    try:
        return stored_event_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidMessage(str(exc)) from exc


def decode_notification_request(raw: bytes) -> NotificationRequest:
    data = _load_object(raw)
    try:
        return NotificationRequest.model_validate(data)
    except ValidationError as exc:
        raise InvalidMessage(str(exc)) from exc
