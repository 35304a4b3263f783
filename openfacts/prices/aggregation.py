"""Concurrent price enrichment for resolved products."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import date, timedelta

from ..models import PriceEnrichment, PriceStatistics
from .client import PricesClient

logger = logging.getLogger(__name__)


class PriceAggregationService:
    """Fetches the latest price and a recent window side by side.

    Pricing is optional context: a disabled service or a failed fetch
    yields an empty ``PriceEnrichment``, never an exception.
    """

    def __init__(
        self,
        client: PricesClient,
        enabled: bool = True,
        recent_days: int = 30,
        recent_limit: int = 30,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._enabled = enabled
        self._recent_days = recent_days
        self._recent_limit = recent_limit
        self._today = today

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def enrich(self, barcode: str, location: str | None = None) -> PriceEnrichment:
        if not self._enabled:
            return PriceEnrichment.empty("pricing disabled")

        since = self._today() - timedelta(days=self._recent_days)
        current, recent = await asyncio.gather(
            self._client.get_latest_price(barcode, location=location),
            self._client.get_product_prices(
                barcode,
                limit=self._recent_limit,
                location=location,
                since=since,
            ),
        )

        if current is None and not recent:
            logger.debug("No pricing data for %s", barcode)
            return PriceEnrichment.empty("no prices")

        stats = PriceStatistics.from_prices(recent) if recent else None
        logger.info("Found pricing data for %s: %d recent prices", barcode, len(recent))
        return PriceEnrichment(current=current, recent=list(recent), stats=stats)
