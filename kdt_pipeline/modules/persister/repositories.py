from kdt_pipeline.core.database.base_repo import BaseRepository
from kdt_pipeline.common.models import Donation, TicketPurchase


class TicketPurchaseRepository(BaseRepository):
    model = TicketPurchase


class DonationRepository(BaseRepository):
    model = Donation
