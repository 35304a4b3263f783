"""Open Prices API client.

Read endpoints work without authentication. Every read degrades to an
empty result (logged) on transport errors or non-success statuses; only
``submit_price`` needs an authenticated session.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

import httpx

from ..models import PriceRecord, PriceStatistics
from .executor import AuthenticatedRequestExecutor

logger = logging.getLogger(__name__)


def _parse_prices(body: Any) -> list[PriceRecord]:
    """Map a ``{"results": [...]}`` page, skipping malformed entries."""
    results = body.get("results") if isinstance(body, dict) else None
    prices: list[PriceRecord] = []
    for entry in results or []:
        if not isinstance(entry, dict):
            continue
        try:
            prices.append(PriceRecord.from_open_prices(entry))
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("Skipping malformed price entry %s: %s", entry.get("id"), e)
    return prices


class PricesClient:
    """Client for the Open Prices service (prices, locations, status)."""

    def __init__(self, executor: AuthenticatedRequestExecutor) -> None:
        self._executor = executor

    @property
    def can_submit(self) -> bool:
        return self._executor.sessions.is_authenticated()

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET and decode, or None on any failure."""
        try:
            response = await self._executor.execute("GET", path, params=params)
        except httpx.HTTPError as e:
            logger.warning("Open Prices request %s failed: %s", path, e)
            return None

        if response.status_code == 404:
            logger.debug("Open Prices %s: not found", path)
            return None
        if not response.is_success:
            logger.warning(
                "Open Prices %s error: HTTP %d", path, response.status_code
            )
            return None

        try:
            return response.json()
        except ValueError as e:
            logger.warning("Open Prices %s returned malformed JSON: %s", path, e)
            return None

    async def get_product_prices(
        self,
        barcode: str,
        limit: int = 20,
        location: str | None = None,
        since: date | None = None,
    ) -> list[PriceRecord]:
        """Prices for a product, newest first."""
        params: dict[str, Any] = {
            "product_code": barcode,
            "size": limit,
            "order_by": "-date",
        }
        if location is not None:
            params["location_osm_name"] = location
        if since is not None:
            params["date__gte"] = since.isoformat()

        logger.debug("Fetching prices for %s from Open Prices", barcode)
        prices = _parse_prices(await self._get_json("/prices", params))
        logger.debug("Found %d prices for %s", len(prices), barcode)
        return prices

    async def get_latest_price(
        self, barcode: str, location: str | None = None
    ) -> PriceRecord | None:
        prices = await self.get_product_prices(barcode, limit=1, location=location)
        if not prices:
            return None
        return max(prices, key=lambda p: p.date)

    async def get_price_stats(
        self,
        barcode: str,
        location: str | None = None,
        days: int = 30,
        limit: int = 100,
    ) -> PriceStatistics | None:
        since = date.today() - timedelta(days=days)
        prices = await self.get_product_prices(
            barcode, limit=limit, location=location, since=since
        )
        if not prices:
            return None
        return PriceStatistics.from_prices(prices)

    async def search_products_with_prices(
        self,
        location: str | None = None,
        store_brand: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"size": limit}
        if location is not None:
            params["location_osm_name"] = location
        if store_brand is not None:
            params["location_osm_display_name"] = store_brand

        body = await self._get_json("/prices", params)
        return _results(body)

    async def get_locations(self, limit: int = 50) -> list[dict[str, Any]]:
        body = await self._get_json("/locations", {"size": limit})
        return _results(body)

    async def get_api_status(self) -> dict[str, Any] | None:
        body = await self._get_json("/status")
        return body if isinstance(body, dict) else None

    async def submit_price(
        self,
        barcode: str,
        price: float,
        currency: str,
        location_id: str,
        proof_url: str | None = None,
        price_date: date | None = None,
        extra: dict[str, Any] | None = None,
    ) -> bool:
        """Submit a price observation. Requires an authenticated session.

        Raises:
            ValueError: If the price is not positive or currency is empty.
        """
        if price <= 0:
            raise ValueError(f"price must be positive, got {price!r}")
        if not currency:
            raise ValueError("currency is required")

        sessions = self._executor.sessions
        if sessions.is_expired():
            # Login sessions time out; log in again before giving up
            await sessions.refresh(observed_generation=sessions.generation)

        if not self.can_submit:
            logger.warning("Authentication required to submit prices")
            return False

        body: dict[str, Any] = {
            "product_code": barcode,
            "price": price,
            "currency": currency,
            "location_osm_id": location_id,
            "date": (price_date or date.today()).isoformat(),
        }
        if proof_url is not None:
            body["proof"] = proof_url
        if extra:
            body.update(extra)

        try:
            response = await self._executor.execute("POST", "/prices", json=body)
        except httpx.HTTPError as e:
            logger.warning("Error submitting price for %s: %s", barcode, e)
            return False

        if response.status_code in (200, 201):
            logger.info("Price submitted for %s", barcode)
            return True

        logger.warning(
            "Failed to submit price for %s: HTTP %d", barcode, response.status_code
        )
        return False


def _results(body: Any) -> list[dict[str, Any]]:
    results = body.get("results") if isinstance(body, dict) else None
    return [r for r in results or [] if isinstance(r, dict)]
