"""Product catalog base class and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from ..config import OpenFactsConfig
    from ..languages import Language
    from ..models import ProductRecord, ProductType


class CatalogClient(ABC):
    """Abstract base for barcode lookups against a product catalog."""

    product_type: ProductType

    @abstractmethod
    async def fetch_product(
        self, barcode: str, language: Language
    ) -> ProductRecord | None:
        """Fetch one product localized into ``language``.

        Returns None when the catalog reports no such product.

        Raises:
            httpx.HTTPError: On transport errors or unexpected statuses.
            ValueError: On a malformed response body.
        """
        ...


def create_catalog(config: OpenFactsConfig, http_client: httpx.AsyncClient) -> CatalogClient:
    """Create a catalog client based on configuration."""
    backend_name = config.catalog.backend
    kwargs = {
        "http_client": http_client,
        "user_agent": config.user_agent,
    }
    if config.catalog.base_url:
        kwargs["base_url"] = config.catalog.base_url

    match backend_name:
        case "food":
            from .food import FoodFactsCatalog

            return FoodFactsCatalog(**kwargs)
        case "beauty":
            from .beauty import BeautyFactsCatalog

            return BeautyFactsCatalog(**kwargs)
        case "products":
            from .products import ProductsFactsCatalog

            return ProductsFactsCatalog(**kwargs)
        case _:
            raise ValueError(
                f"Unknown catalog backend: {backend_name!r} "
                f"(choose food / beauty / products)"
            )
