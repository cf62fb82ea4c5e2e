from enum import Enum


class EventKind(str, Enum):
    PURCHASE = 'purchase'
    DONATION = 'donation'


class PushStatus(str, Enum):
    """
    pending -> queued -> sent | failed
    pending | queued -> cancelled
    """
    PENDING = 'pending'
    QUEUED = 'queued'
    SENT = 'sent'
    FAILED = 'failed'
    CANCELLED = 'cancelled'


FINISHED_PUSH_STATUSES = (
    PushStatus.SENT.value,
    PushStatus.FAILED.value,
    PushStatus.CANCELLED.value,
)


class DeadLetterReason(str, Enum):
    MALFORMED = 'malformed'
    UNKNOWN_TYPE = 'unknown_type'
    INVALID = 'invalid'
    EXHAUSTED = 'redelivery_exhausted'
