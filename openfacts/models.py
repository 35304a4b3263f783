"""Data models for product records and price observations."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any

from .languages import DEFAULT_LANGUAGE, Language

# Open Prices "price_per" values meaning the amount is already a unit price
_UNIT_PRICE_BASES = frozenset({"KILOGRAM", "LITER"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProductType(Enum):
    FOOD = "food"
    BEAUTY = "beauty"
    GENERAL = "general"

    @property
    def display_name(self) -> str:
        return {
            ProductType.FOOD: "Food Product",
            ProductType.BEAUTY: "Beauty/Cosmetic Product",
            ProductType.GENERAL: "General Product",
        }[self]


@dataclass(frozen=True)
class PriceRecord:
    """A single crowdsourced price observation."""

    amount: float
    currency: str
    date: date
    store_name: str | None = None
    store_brand: str | None = None
    location: str | None = None
    unit_price: float | None = None
    is_promotional: bool = False
    source: str = "open_prices"

    @classmethod
    def from_open_prices(cls, data: dict[str, Any]) -> PriceRecord:
        """Build from one entry of the Open Prices ``results`` array.

        Raises:
            KeyError: If price, currency or date is missing.
            ValueError: If the price or date cannot be parsed.
        """
        amount = float(data["price"])
        location = data.get("location") or {}
        price_per = data.get("price_per")
        return cls(
            amount=amount,
            currency=data["currency"],
            date=date.fromisoformat(str(data["date"])[:10]),
            store_name=location.get("osm_name"),
            store_brand=location.get("osm_brand"),
            location=location.get("osm_address_city")
            or location.get("osm_display_name"),
            unit_price=amount if price_per in _UNIT_PRICE_BASES else None,
            is_promotional=bool(data.get("price_is_discounted", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "currency": self.currency,
            "date": self.date.isoformat(),
            "store_name": self.store_name,
            "store_brand": self.store_brand,
            "location": self.location,
            "unit_price": self.unit_price,
            "is_promotional": self.is_promotional,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PriceRecord:
        return cls(
            amount=data["amount"],
            currency=data["currency"],
            date=date.fromisoformat(data["date"]),
            store_name=data.get("store_name"),
            store_brand=data.get("store_brand"),
            location=data.get("location"),
            unit_price=data.get("unit_price"),
            is_promotional=data.get("is_promotional", False),
            source=data.get("source", "open_prices"),
        )

    def __str__(self) -> str:
        return f"{self.amount:.2f} {self.currency}"


@dataclass(frozen=True)
class PriceStatistics:
    """Aggregate over a set of prices. ``count == 0`` is the empty form."""

    count: int = 0
    average: float | None = None
    minimum: float | None = None
    maximum: float | None = None
    currency: str | None = None
    last_updated: date | None = None

    @classmethod
    def empty(cls) -> PriceStatistics:
        return cls()

    @classmethod
    def from_prices(cls, prices: Sequence[PriceRecord]) -> PriceStatistics:
        """Aggregate the prices quoted in the most common currency.

        Amounts in other currencies are left out rather than mixed in; on a
        tie the currency seen first wins.
        """
        if not prices:
            return cls.empty()
        currency = Counter(p.currency for p in prices).most_common(1)[0][0]
        same = [p for p in prices if p.currency == currency]
        amounts = [p.amount for p in same]
        return cls(
            count=len(amounts),
            average=sum(amounts) / len(amounts),
            minimum=min(amounts),
            maximum=max(amounts),
            currency=currency,
            last_updated=max(p.date for p in same),
        )

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "average": self.average,
            "minimum": self.minimum,
            "maximum": self.maximum,
            "currency": self.currency,
            "last_updated": self.last_updated.isoformat()
            if self.last_updated
            else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PriceStatistics:
        last = data.get("last_updated")
        return cls(
            count=data.get("count", 0),
            average=data.get("average"),
            minimum=data.get("minimum"),
            maximum=data.get("maximum"),
            currency=data.get("currency"),
            last_updated=date.fromisoformat(last) if last else None,
        )


@dataclass
class PriceEnrichment:
    """Pricing context attached to a product. Empty when unavailable."""

    current: PriceRecord | None = None
    recent: list[PriceRecord] = field(default_factory=list)
    stats: PriceStatistics | None = None
    detail: str = ""

    @classmethod
    def empty(cls, detail: str = "") -> PriceEnrichment:
        return cls(detail=detail)

    @property
    def is_empty(self) -> bool:
        return self.current is None and not self.recent


@dataclass
class ProductQuery:
    barcode: str
    include_pricing: bool = True
    location: str | None = None


@dataclass
class ProductRecord:
    """A product resolved from one of the catalogs, optionally priced."""

    barcode: str
    product_type: ProductType = ProductType.FOOD
    language: Language = DEFAULT_LANGUAGE
    name: str | None = None
    brand: str | None = None
    ingredients: str | None = None
    allergens: list[str] = field(default_factory=list)
    nutri_score: str | None = None      # A-E, food only
    nova_group: int | None = None       # 1-4, food only
    energy_kcal: float | None = None    # per 100 g, food only
    period_after_opening: str | None = None  # e.g. "12M", cosmetics only
    image_url: str | None = None
    ingredients_image_url: str | None = None
    nutrition_image_url: str | None = None
    retrieved_at: datetime = field(default_factory=_utcnow)
    current_price: PriceRecord | None = None
    recent_prices: list[PriceRecord] = field(default_factory=list)
    price_stats: PriceStatistics | None = None

    @property
    def has_basic_info(self) -> bool:
        return self.name is not None or self.brand is not None

    @property
    def has_nutrition_info(self) -> bool:
        return self.nutri_score is not None or self.nova_group is not None

    @property
    def has_allergen_info(self) -> bool:
        return bool(self.allergens)

    @property
    def has_ingredient_info(self) -> bool:
        return bool(self.ingredients)

    @property
    def has_price_data(self) -> bool:
        return self.current_price is not None or bool(self.recent_prices)

    def is_fresh(self, max_age: timedelta, now: datetime | None = None) -> bool:
        now = now or _utcnow()
        return now - self.retrieved_at <= max_age

    def with_prices(self, enrichment: PriceEnrichment) -> ProductRecord:
        """Return a copy carrying the given pricing context."""
        return replace(
            self,
            current_price=enrichment.current,
            recent_prices=list(enrichment.recent),
            price_stats=enrichment.stats,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "barcode": self.barcode,
            "product_type": self.product_type.value,
            "language": self.language.code,
            "name": self.name,
            "brand": self.brand,
            "ingredients": self.ingredients,
            "allergens": list(self.allergens),
            "nutri_score": self.nutri_score,
            "nova_group": self.nova_group,
            "energy_kcal": self.energy_kcal,
            "period_after_opening": self.period_after_opening,
            "image_url": self.image_url,
            "ingredients_image_url": self.ingredients_image_url,
            "nutrition_image_url": self.nutrition_image_url,
            "retrieved_at": self.retrieved_at.isoformat(),
            "current_price": self.current_price.to_dict()
            if self.current_price
            else None,
            "recent_prices": [p.to_dict() for p in self.recent_prices],
            "price_stats": self.price_stats.to_dict() if self.price_stats else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProductRecord:
        try:
            product_type = ProductType(data.get("product_type", "general"))
        except ValueError:
            product_type = ProductType.GENERAL
        current = data.get("current_price")
        stats = data.get("price_stats")
        return cls(
            barcode=data["barcode"],
            product_type=product_type,
            language=Language.from_code(data.get("language", "")) or DEFAULT_LANGUAGE,
            name=data.get("name"),
            brand=data.get("brand"),
            ingredients=data.get("ingredients"),
            allergens=list(data.get("allergens") or []),
            nutri_score=data.get("nutri_score"),
            nova_group=data.get("nova_group"),
            energy_kcal=data.get("energy_kcal"),
            period_after_opening=data.get("period_after_opening"),
            image_url=data.get("image_url"),
            ingredients_image_url=data.get("ingredients_image_url"),
            nutrition_image_url=data.get("nutrition_image_url"),
            retrieved_at=datetime.fromisoformat(data["retrieved_at"]),
            current_price=PriceRecord.from_dict(current) if current else None,
            recent_prices=[
                PriceRecord.from_dict(p) for p in data.get("recent_prices") or []
            ],
            price_stats=PriceStatistics.from_dict(stats) if stats else None,
        )
