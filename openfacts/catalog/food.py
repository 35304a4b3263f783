"""Open Food Facts catalog."""

from __future__ import annotations

from typing import Any

from ..languages import Language
from ..models import ProductRecord, ProductType
from ..nutrition import normalize_nutriscore, parse_nova_group
from .facts import FactsCatalog, first_url, localized, split_tags

FOOD_FIELDS = (
    "code",
    "product_name",
    "generic_name",
    "brands",
    "ingredients_text",
    "allergens_tags",
    "nutriscore_grade",
    "nova_group",
    "nutriments",
    "image_front_url",
    "image_url",
    "image_ingredients_url",
    "image_nutrition_url",
)


def _energy_kcal(nutriments: Any) -> float | None:
    if not isinstance(nutriments, dict):
        return None
    value = nutriments.get("energy-kcal_100g")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class FoodFactsCatalog(FactsCatalog):
    """Open Food Facts: nutrition, NOVA and allergen data."""

    product_type = ProductType.FOOD
    default_base_url = "https://world.openfoodfacts.org/api/v2"
    fields = FOOD_FIELDS
    localized_fields = ("product_name", "generic_name", "ingredients_text")

    def _parse_product(
        self, product: dict[str, Any], barcode: str, language: Language
    ) -> ProductRecord:
        return ProductRecord(
            barcode=str(product.get("code") or barcode),
            product_type=ProductType.FOOD,
            language=language,
            name=localized(product, "product_name", language)
            or localized(product, "generic_name", language),
            brand=product.get("brands") or None,
            ingredients=localized(product, "ingredients_text", language),
            allergens=split_tags(product, "allergens"),
            nutri_score=normalize_nutriscore(product.get("nutriscore_grade")),
            nova_group=parse_nova_group(product.get("nova_group")),
            energy_kcal=_energy_kcal(product.get("nutriments")),
            image_url=first_url(product, "image_front_url", "image_url"),
            ingredients_image_url=first_url(product, "image_ingredients_url"),
            nutrition_image_url=first_url(product, "image_nutrition_url"),
        )
