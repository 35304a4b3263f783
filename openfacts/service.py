"""Product resolution pipeline and the service facade."""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Callable, Iterable
from datetime import date
from typing import Any

import httpx

from .barcode import is_valid_barcode
from .catalog import CatalogClient, create_catalog
from .config import OpenFactsConfig
from .credentials import DEFAULT_PRICES_API_URL, CredentialBundle, CredentialStore
from .db import ProductCacheDB
from .languages import LanguageList
from .models import (
    PriceEnrichment,
    PriceRecord,
    PriceStatistics,
    ProductQuery,
    ProductRecord,
)
from .prices import (
    AuthenticatedRequestExecutor,
    AuthSessionManager,
    AuthStatus,
    PriceAggregationService,
    PricesClient,
)
from .resolver import LanguageFallbackProductResolver
from .results import Lookup

logger = logging.getLogger(__name__)


class ServiceNotInitializedError(RuntimeError):
    """Raised when the service is used before ``initialize()``."""


class ProductResolutionOrchestrator:
    """Validate, resolve metadata, enrich with prices, cache.

    Only a malformed barcode short-circuits before any I/O. Cache read and
    write failures are logged and treated as a miss / no-op.
    """

    def __init__(
        self,
        resolver: LanguageFallbackProductResolver,
        languages: LanguageList,
        pricing: PriceAggregationService | None = None,
        cache: ProductCacheDB | None = None,
        validator: Callable[[str], bool] = is_valid_barcode,
    ) -> None:
        self._resolver = resolver
        self._languages = languages
        self._pricing = pricing
        self._cache = cache
        self._validator = validator

    @property
    def languages(self) -> LanguageList:
        return self._languages

    def _wants_pricing(self, query: ProductQuery) -> bool:
        return (
            query.include_pricing
            and self._pricing is not None
            and self._pricing.enabled
        )

    async def resolve(self, query: ProductQuery) -> Lookup[ProductRecord]:
        barcode = query.barcode.strip()
        if not self._validator(barcode):
            logger.warning("Invalid barcode format: %r", query.barcode)
            return Lookup.rejected(f"invalid barcode: {query.barcode!r}")

        cached = self._read_cache(barcode)
        if cached is not None:
            logger.debug("Cache hit for %s", barcode)
            if not query.include_pricing:
                cached = cached.with_prices(PriceEnrichment.empty())
            elif self._wants_pricing(query) and not cached.has_price_data:
                enrichment = await self._pricing.enrich(barcode, query.location)
                if not enrichment.is_empty:
                    cached = cached.with_prices(enrichment)
            return Lookup.hit(cached, detail="cache")

        lookup = await self._resolver.resolve(barcode, self._languages)
        if not lookup.ok:
            logger.info("Product %s not resolved: %s", barcode, lookup.detail)
            return lookup

        record = lookup.value
        if self._wants_pricing(query):
            enrichment = await self._pricing.enrich(barcode, query.location)
            if not enrichment.is_empty:
                record = record.with_prices(enrichment)

        self._write_cache(record)
        return Lookup.hit(record, detail=lookup.detail)

    async def get_product(self, query: ProductQuery) -> ProductRecord | None:
        lookup = await self.resolve(query)
        return lookup.value if lookup.ok else None

    def _read_cache(self, barcode: str) -> ProductRecord | None:
        if self._cache is None:
            return None
        try:
            return self._cache.get(barcode)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Product cache read failed for %s: %s", barcode, e)
            return None

    def _write_cache(self, record: ProductRecord) -> None:
        if self._cache is None:
            return
        try:
            self._cache.put(record)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Product cache write failed for %s: %s", record.barcode, e)


class OpenFactsService:
    """Single entry point: product lookup, prices, credentials, cache.

    Usage::

        async with OpenFactsService(load_config("openfacts.toml")) as svc:
            product = await svc.get_product("3017624010701")
    """

    def __init__(
        self,
        config: OpenFactsConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        credentials: CredentialStore | None = None,
        catalog: CatalogClient | None = None,
        cache: ProductCacheDB | None = None,
    ) -> None:
        self._config = config or OpenFactsConfig()
        self._http_client = http_client
        self._credentials = credentials
        self._catalog = catalog
        self._cache = cache
        self._owned_clients: list[httpx.AsyncClient] = []
        # Built by initialize() and dropped again by aclose()
        self._owns_credentials = False
        self._owns_catalog = False
        self._owns_cache = False
        self._credentials_path: str | None = None
        self._sessions: AuthSessionManager | None = None
        self._prices: PricesClient | None = None
        self._orchestrator: ProductResolutionOrchestrator | None = None

    @property
    def is_initialized(self) -> bool:
        return self._orchestrator is not None

    def _client(self, timeout: float) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        client = httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._owned_clients.append(client)
        return client

    async def initialize(self, credentials_path: str | None = None) -> None:
        """Load credentials, open the session and wire the pipeline.

        Missing credentials are not an error: prices stay read-only.
        """
        if self.is_initialized:
            return

        config = self._config
        credentials_path = credentials_path or self._credentials_path
        self._credentials_path = credentials_path
        if self._credentials is None:
            self._credentials = CredentialStore()
            self._owns_credentials = True
            self._credentials.load(credentials_path or config.prices.credentials_path or None)
        elif (
            not self._credentials.has_credentials
            and self._credentials.source_path is not None
        ):
            # cleared by a previous aclose()
            self._credentials.load(self._credentials.source_path)

        prices_http = self._client(config.prices.timeout)
        self._sessions = AuthSessionManager(prices_http, config.prices.session_url)
        await self._sessions.configure(self._credentials.resolve())

        api_url = config.prices.api_url
        if api_url == DEFAULT_PRICES_API_URL:
            api_url = self._credentials.api_url
        executor = AuthenticatedRequestExecutor(
            prices_http, self._sessions, api_url, user_agent=config.user_agent
        )
        self._prices = PricesClient(executor)
        pricing = PriceAggregationService(
            self._prices,
            enabled=config.service.enable_pricing,
            recent_days=config.prices.recent_days,
            recent_limit=config.prices.recent_limit,
        )

        if self._catalog is None:
            self._catalog = create_catalog(config, self._client(config.catalog.timeout))
            self._owns_catalog = True
        if self._cache is None and config.cache.enabled:
            self._cache = ProductCacheDB(config.cache.path, config.cache.max_age_days)
            self._owns_cache = True

        self._orchestrator = ProductResolutionOrchestrator(
            LanguageFallbackProductResolver(self._catalog),
            LanguageList.from_codes(config.service.languages),
            pricing=pricing,
            cache=self._cache,
        )
        logger.info(
            "OpenFacts service initialized (catalog=%s, languages=%s, pricing=%s)",
            self._catalog.product_type.value,
            self._orchestrator.languages,
            "on" if pricing.enabled else "off",
        )

    async def aclose(self) -> None:
        """Clear credentials and session, release the cache and HTTP clients."""
        if self._credentials is not None:
            self._credentials.clear()
        if self._sessions is not None:
            self._sessions.reset()
        if self._cache is not None:
            self._cache.close()
        for client in self._owned_clients:
            await client.aclose()
        self._owned_clients.clear()

        # The catalog is bound to a closed client; rebuild everything we own
        if self._owns_catalog:
            self._catalog = None
            self._owns_catalog = False
        if self._owns_cache:
            self._cache = None
            self._owns_cache = False
        if self._owns_credentials:
            self._credentials = None
            self._owns_credentials = False

        self._orchestrator = None
        self._prices = None
        self._sessions = None
        logger.info("OpenFacts service closed")

    async def __aenter__(self) -> OpenFactsService:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    def _require(self) -> ProductResolutionOrchestrator:
        if self._orchestrator is None:
            raise ServiceNotInitializedError(
                "OpenFactsService not initialized. Call initialize() first."
            )
        return self._orchestrator

    def _require_prices(self) -> PricesClient:
        self._require()
        assert self._prices is not None
        return self._prices

    def _require_sessions(self) -> AuthSessionManager:
        self._require()
        assert self._sessions is not None
        return self._sessions

    # --- products ---

    async def lookup(
        self,
        barcode: str,
        *,
        include_pricing: bool = True,
        location: str | None = None,
    ) -> Lookup[ProductRecord]:
        """Typed form of ``get_product``: tells rejection, absence and failure apart."""
        orchestrator = self._require()
        return await orchestrator.resolve(
            ProductQuery(barcode, include_pricing=include_pricing, location=location)
        )

    async def get_product(
        self,
        barcode: str,
        *,
        include_pricing: bool = True,
        location: str | None = None,
    ) -> ProductRecord | None:
        orchestrator = self._require()
        return await orchestrator.get_product(
            ProductQuery(barcode, include_pricing=include_pricing, location=location)
        )

    async def get_product_basic(self, barcode: str) -> ProductRecord | None:
        return await self.get_product(barcode, include_pricing=False)

    async def get_product_with_pricing(
        self, barcode: str, location: str | None = None
    ) -> ProductRecord | None:
        return await self.get_product(barcode, include_pricing=True, location=location)

    def set_languages(self, codes: Iterable[str]) -> None:
        self._require().languages.update(LanguageList.from_codes(codes))

    # --- prices ---

    async def get_latest_price(
        self, barcode: str, location: str | None = None
    ) -> PriceRecord | None:
        return await self._require_prices().get_latest_price(barcode, location=location)

    async def get_price_history(
        self,
        barcode: str,
        limit: int = 20,
        location: str | None = None,
        since: date | None = None,
    ) -> list[PriceRecord]:
        return await self._require_prices().get_product_prices(
            barcode, limit=limit, location=location, since=since
        )

    async def get_price_stats(
        self, barcode: str, location: str | None = None, days: int = 30
    ) -> PriceStatistics | None:
        return await self._require_prices().get_price_stats(
            barcode, location=location, days=days
        )

    async def search_products_with_prices(
        self,
        location: str | None = None,
        store_brand: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        return await self._require_prices().search_products_with_prices(
            location=location, store_brand=store_brand, limit=limit
        )

    async def get_store_locations(self, limit: int = 50) -> list[dict[str, Any]]:
        return await self._require_prices().get_locations(limit=limit)

    async def submit_price(
        self,
        barcode: str,
        price: float,
        currency: str,
        location_id: str,
        proof_url: str | None = None,
        price_date: date | None = None,
    ) -> bool:
        return await self._require_prices().submit_price(
            barcode,
            price,
            currency,
            location_id,
            proof_url=proof_url,
            price_date=price_date,
        )

    async def get_prices_status(self) -> dict[str, Any]:
        prices = self._require_prices()
        auth = self.auth_status()
        return {
            "api": await prices.get_api_status(),
            "authenticated": auth.authenticated,
            "method": auth.method.value,
            "expired": auth.expired,
            "can_submit": prices.can_submit,
        }

    # --- credentials ---

    def auth_status(self) -> AuthStatus:
        return self._require_sessions().status()

    async def set_auth_token(self, token: str) -> bool:
        """Switch the session to an explicit API token."""
        return await self._require_sessions().configure(CredentialBundle.for_token(token))

    async def reload_credentials(self) -> bool:
        """Re-read the credential file and re-establish the session."""
        sessions = self._require_sessions()
        assert self._credentials is not None
        self._credentials.reload()
        return await sessions.configure(self._credentials.resolve())

    def credential_status(self) -> dict[str, Any]:
        store = self._credentials
        if store is None:
            return {
                "has_credentials": False,
                "has_auth_token": False,
                "has_login_credentials": False,
                "preferred_method": "none",
                "source_path": None,
            }
        return {
            "has_credentials": store.has_credentials,
            "has_auth_token": store.has_auth_token,
            "has_login_credentials": store.has_login_credentials,
            "preferred_method": store.preferred_auth_method.value,
            "source_path": str(store.source_path) if store.source_path else None,
        }

    # --- cache ---

    def clear_cache(self) -> int:
        self._require()
        if self._cache is None:
            return 0
        removed = self._cache.clear()
        logger.info("Cleared %d cached products", removed)
        return removed

    def cache_stats(self) -> dict[str, Any]:
        self._require()
        if self._cache is None:
            return {"enabled": False}
        return {"enabled": True, **self._cache.stats()}
