"""Language-fallback product resolution."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx

from .catalog import CatalogClient
from .languages import Language, LanguageList
from .models import ProductRecord
from .results import Lookup

logger = logging.getLogger(__name__)


class LanguageFallbackProductResolver:
    """Tries each preferred language in order until the catalog answers.

    The first language that yields a record wins and later languages are
    never queried. A language that reports "no such product" and one that
    fails are both skipped; the final outcome tells them apart.
    """

    def __init__(self, catalog: CatalogClient) -> None:
        self._catalog = catalog

    @property
    def catalog(self) -> CatalogClient:
        return self._catalog

    async def resolve(
        self, barcode: str, languages: Iterable[Language] | LanguageList
    ) -> Lookup[ProductRecord]:
        order = list(languages) or list(LanguageList())
        errors: list[str] = []

        for language in order:
            try:
                record = await self._catalog.fetch_product(barcode, language)
            except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
                logger.warning(
                    "Lookup of %s in %s failed: %s", barcode, language.code, e
                )
                errors.append(f"{language.code}: {e}")
                continue

            if record is not None:
                logger.debug("Resolved %s in %s", barcode, language.code)
                return Lookup.hit(record, detail=language.code)

            logger.debug("No product %s in %s", barcode, language.code)

        tried = ",".join(lang.code for lang in order)
        if errors:
            return Lookup.failure(f"all languages failed ({tried})", errors)
        return Lookup.miss(f"not found in {tried}")
