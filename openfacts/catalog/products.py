"""Open Products Facts catalog (general merchandise)."""

from __future__ import annotations

from typing import Any

from ..languages import Language
from ..models import ProductRecord, ProductType
from .facts import FactsCatalog, first_url, localized, split_tags

PRODUCTS_FIELDS = (
    "code",
    "product_type",
    "product_name",
    "generic_name",
    "brands",
    "ingredients_text",
    "allergens_tags",
    "traces_tags",
    "image_front_url",
    "image_url",
    "image_ingredients_url",
)


class ProductsFactsCatalog(FactsCatalog):
    product_type = ProductType.GENERAL
    default_base_url = "https://world.openproductsfacts.org/api/v2"
    expected_product_type = "product"
    fields = PRODUCTS_FIELDS
    localized_fields = ("product_name", "generic_name", "ingredients_text")

    def _parse_product(
        self, product: dict[str, Any], barcode: str, language: Language
    ) -> ProductRecord:
        # traces count as allergens for general products
        allergens = split_tags(product, "allergens")
        allergens += [t for t in split_tags(product, "traces") if t not in allergens]
        return ProductRecord(
            barcode=str(product.get("code") or barcode),
            product_type=ProductType.GENERAL,
            language=language,
            name=localized(product, "product_name", language)
            or localized(product, "generic_name", language),
            brand=product.get("brands") or None,
            ingredients=localized(product, "ingredients_text", language),
            allergens=allergens,
            image_url=first_url(product, "image_front_url", "image_url"),
            ingredients_image_url=first_url(product, "image_ingredients_url"),
        )
