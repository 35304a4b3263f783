"""Open Beauty Facts catalog."""

from __future__ import annotations

from typing import Any

from ..languages import Language
from ..models import ProductRecord, ProductType
from .facts import FactsCatalog, first_url, localized, split_tags

BEAUTY_FIELDS = (
    "code",
    "product_type",
    "product_name",
    "generic_name",
    "brands",
    "ingredients_text",
    "allergens_tags",
    "periods_after_opening",
    "image_front_url",
    "image_url",
    "image_ingredients_url",
)


class BeautyFactsCatalog(FactsCatalog):
    """Open Beauty Facts: cosmetics with period-after-opening data."""

    product_type = ProductType.BEAUTY
    default_base_url = "https://world.openbeautyfacts.org/api/v2"
    expected_product_type = "beauty"
    fields = BEAUTY_FIELDS
    localized_fields = ("product_name", "generic_name", "ingredients_text")

    def _parse_product(
        self, product: dict[str, Any], barcode: str, language: Language
    ) -> ProductRecord:
        period = product.get("periods_after_opening")
        return ProductRecord(
            barcode=str(product.get("code") or barcode),
            product_type=ProductType.BEAUTY,
            language=language,
            name=localized(product, "product_name", language)
            or localized(product, "generic_name", language),
            brand=product.get("brands") or None,
            ingredients=localized(product, "ingredients_text", language),
            allergens=split_tags(product, "allergens"),
            period_after_opening=str(period) if period else None,
            image_url=first_url(product, "image_front_url", "image_url"),
            ingredients_image_url=first_url(product, "image_ingredients_url"),
        )
