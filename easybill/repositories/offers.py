"""Offer persistence."""

import datetime as dt
from typing import List

from easybill.business.statuses import OfferStatus
from easybill.repositories.base import TenantRepository
from easybill.storage.models import Offer


class OfferRepository(TenantRepository[Offer]):
    model = Offer

    async def active_at(self, moment: dt.datetime) -> List[Offer]:
        """ACTIVE offers whose validity window contains ``moment``, highest priority first."""
        return await self.list(
            Offer.status == OfferStatus.ACTIVE.value,
            Offer.valid_from <= moment,
            Offer.valid_to >= moment,
            order_by=(Offer.priority.desc(), Offer.created_at),
        )
