"""Barcode lookups across the Open Facts catalogs, enriched with Open Prices data."""

from .barcode import is_likely_food_product, is_valid_barcode, is_valid_ean13
from .catalog import CatalogClient, create_catalog
from .config import (
    CacheConfig,
    CatalogConfig,
    OpenFactsConfig,
    PricesConfig,
    ServiceConfig,
    load_config,
)
from .credentials import AuthMethod, CredentialBundle, CredentialStore
from .languages import Language, LanguageList
from .models import (
    PriceEnrichment,
    PriceRecord,
    PriceStatistics,
    ProductQuery,
    ProductRecord,
    ProductType,
)
from .resolver import LanguageFallbackProductResolver
from .results import Lookup, LookupStatus
from .service import (
    OpenFactsService,
    ProductResolutionOrchestrator,
    ServiceNotInitializedError,
)

__all__ = [
    "OpenFactsService",
    "ProductResolutionOrchestrator",
    "ServiceNotInitializedError",
    "LanguageFallbackProductResolver",
    "CatalogClient",
    "create_catalog",
    "Lookup",
    "LookupStatus",
    "ProductQuery",
    "ProductRecord",
    "ProductType",
    "PriceRecord",
    "PriceStatistics",
    "PriceEnrichment",
    "Language",
    "LanguageList",
    "AuthMethod",
    "CredentialBundle",
    "CredentialStore",
    "OpenFactsConfig",
    "ServiceConfig",
    "CatalogConfig",
    "PricesConfig",
    "CacheConfig",
    "load_config",
    "is_valid_barcode",
    "is_valid_ean13",
    "is_likely_food_product",
]
