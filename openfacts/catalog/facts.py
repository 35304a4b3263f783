"""Shared HTTP access for the Open *Facts family of catalogs."""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any

import httpx

from ..languages import Language
from ..models import ProductRecord
from . import CatalogClient

logger = logging.getLogger(__name__)

# Envelope status values meaning "product present" (v2 uses 1, v3 strings)
_FOUND_STATUSES = (1, "1", "success", "success_with_warnings")


class FactsCatalog(CatalogClient):
    """Fetches ``/product/{barcode}`` and hands the product dict to a mapper.

    Subclasses set ``default_base_url``, ``fields`` and implement
    ``_parse_product``. Each name in ``localized_fields`` is also requested
    with the ``_<lc>`` suffix. ``expected_product_type`` rejects records
    that belong to a sibling catalog.
    """

    default_base_url: str = ""
    expected_product_type: str | None = None
    fields: tuple[str, ...] = ()
    localized_fields: tuple[str, ...] = ()

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str | None = None,
        user_agent: str = "openfacts",
    ) -> None:
        self._http = http_client
        self._base_url = (base_url or self.default_base_url).rstrip("/")
        self._user_agent = user_agent

    async def fetch_product(
        self, barcode: str, language: Language
    ) -> ProductRecord | None:
        product = await self._fetch_raw(barcode, language)
        if product is None:
            return None

        if (
            self.expected_product_type is not None
            and product.get("product_type") != self.expected_product_type
        ):
            logger.info(
                "Product %s is not a %s product (type: %s)",
                barcode,
                self.expected_product_type,
                product.get("product_type"),
            )
            return None

        return self._parse_product(product, barcode, language)

    async def _fetch_raw(self, barcode: str, language: Language) -> dict[str, Any] | None:
        params: dict[str, str] = {"lc": language.code}
        if self.fields:
            requested = list(self.fields)
            requested += [f"{name}_{language.code}" for name in self.localized_fields]
            params["fields"] = ",".join(requested)

        response = await self._http.get(
            f"{self._base_url}/product/{barcode}",
            params=params,
            headers={"User-Agent": self._user_agent, "Accept": "application/json"},
        )
        if response.status_code == 404:
            return None
        response.raise_for_status()

        body = response.json()
        if not isinstance(body, dict):
            raise ValueError(f"unexpected response body for {barcode}: {type(body).__name__}")

        product = body.get("product")
        if body.get("status") not in _FOUND_STATUSES or not isinstance(product, dict):
            return None
        return product

    @abstractmethod
    def _parse_product(
        self, product: dict[str, Any], barcode: str, language: Language
    ) -> ProductRecord:
        """Map the catalog's raw ``product`` object to a ``ProductRecord``."""
        ...


def localized(product: dict[str, Any], key: str, language: Language) -> str | None:
    """Prefer ``<key>_<lc>``, then ``<key>``. Empty strings count as missing."""
    for candidate in (f"{key}_{language.code}", key):
        value = product.get(candidate)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def split_tags(product: dict[str, Any], key: str) -> list[str]:
    """Read ``<key>_tags`` (``["en:milk"]``) or a comma-separated ``<key>``."""
    tags = product.get(f"{key}_tags")
    if not isinstance(tags, list):
        raw = product.get(key)
        tags = raw.split(",") if isinstance(raw, str) else []

    names: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        name = tag.split(":", 1)[-1].strip()
        if name and name not in names:
            names.append(name)
    return names


def first_url(product: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = product.get(key)
        if isinstance(value, str) and value:
            return value
    return None
