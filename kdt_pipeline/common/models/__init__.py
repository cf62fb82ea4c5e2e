from .base import Base
from .events_models import Donation, TicketPurchase
from .notifications_models import ScheduledPush

__all__ = ["Base", "Donation", "ScheduledPush", "TicketPurchase"]
