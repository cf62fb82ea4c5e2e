import datetime as dt


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: dt.datetime) -> dt.datetime:
    """Наивное время из БД считается UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def to_delivery_zone(
    value: dt.datetime,
    tz: dt.tzinfo,
    respect_offset: bool = False,
) -> dt.datetime:
    """
    Продюсеры всегда имеют в виду московское время, какую бы зону они ни
    указали, поэтому поля даты и времени переносятся в tz без пересчета момента.
    С respect_offset время с явной зоной остается как есть.
    """
    if respect_offset and value.tzinfo is not None:
        return value
    return value.replace(tzinfo=tz)


def compute_delay(deliver_at: dt.datetime, now: dt.datetime) -> dt.timedelta:
    delay = deliver_at - now
    if delay < dt.timedelta(0):
        return dt.timedelta(0)
    return delay
