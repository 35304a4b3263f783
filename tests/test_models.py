"""Tests for product and price models."""

from datetime import date, datetime, timedelta, timezone

import pytest

from openfacts.languages import Language
from openfacts.models import (
    PriceEnrichment,
    PriceRecord,
    PriceStatistics,
    ProductRecord,
    ProductType,
)


def _price(amount, day=1, currency="EUR"):
    return PriceRecord(amount=amount, currency=currency, date=date(2024, 5, day))


class TestPriceStatistics:
    def test_from_prices(self):
        """Stats over 2, 3, 4: average 3, min 2, max 4, count 3."""
        stats = PriceStatistics.from_prices([_price(2.0, 1), _price(3.0, 5), _price(4.0, 3)])
        assert stats.average == 3.0
        assert stats.minimum == 2.0
        assert stats.maximum == 4.0
        assert stats.count == 3
        assert stats.currency == "EUR"
        assert stats.last_updated == date(2024, 5, 5)

    def test_mixed_currencies_use_the_most_common(self):
        prices = [
            _price(2.0, 1),
            _price(150.0, 9, currency="USD"),
            _price(4.0, 3),
        ]
        stats = PriceStatistics.from_prices(prices)
        assert stats.currency == "EUR"
        assert stats.count == 2
        assert stats.average == 3.0
        assert stats.maximum == 4.0
        assert stats.last_updated == date(2024, 5, 3)

    def test_currency_tie_keeps_first_seen(self):
        stats = PriceStatistics.from_prices([_price(5.0, currency="USD"), _price(1.0)])
        assert stats.currency == "USD"
        assert stats.count == 1
        assert stats.average == 5.0

    def test_empty_form(self):
        stats = PriceStatistics.empty()
        assert stats.count == 0
        assert stats.average is None
        assert stats.minimum is None
        assert stats.maximum is None
        assert stats.is_empty

    def test_from_no_prices_is_empty(self):
        assert PriceStatistics.from_prices([]) == PriceStatistics.empty()

    def test_dict_round_trip(self):
        stats = PriceStatistics.from_prices([_price(1.0), _price(2.0, 2)])
        assert PriceStatistics.from_dict(stats.to_dict()) == stats


class TestPriceRecord:
    def test_from_open_prices_requires_price(self):
        with pytest.raises(KeyError):
            PriceRecord.from_open_prices({"currency": "EUR", "date": "2024-05-01"})

    def test_from_open_prices_without_location(self):
        record = PriceRecord.from_open_prices(
            {"price": 1, "currency": "USD", "date": "2024-05-01"}
        )
        assert record.store_name is None
        assert record.location is None
        assert record.is_promotional is False

    def test_str(self):
        assert str(_price(3.5)) == "3.50 EUR"


def test_product_defaults():
    record = ProductRecord(barcode="3017624010701")
    assert record.product_type is ProductType.FOOD
    assert record.language is Language.ENGLISH
    assert record.has_basic_info is False
    assert record.has_price_data is False
    assert record.retrieved_at.tzinfo is not None


def test_product_flags():
    record = ProductRecord(
        barcode="1",
        name="Nutella",
        nova_group=4,
        allergens=["milk"],
        ingredients="sugar, palm oil",
    )
    assert record.has_basic_info
    assert record.has_nutrition_info
    assert record.has_allergen_info
    assert record.has_ingredient_info


def test_is_fresh():
    now = datetime(2024, 5, 10, tzinfo=timezone.utc)
    record = ProductRecord(barcode="1", retrieved_at=now - timedelta(days=3))
    assert record.is_fresh(timedelta(days=7), now=now)
    assert not record.is_fresh(timedelta(days=2), now=now)


def test_with_prices_returns_copy():
    record = ProductRecord(barcode="1", name="Nutella")
    enrichment = PriceEnrichment(
        current=_price(4.0),
        recent=[_price(4.0)],
        stats=PriceStatistics.from_prices([_price(4.0)]),
    )
    priced = record.with_prices(enrichment)
    assert priced is not record
    assert priced.has_price_data
    assert priced.price_stats.count == 1
    assert record.has_price_data is False


def test_product_dict_round_trip():
    record = ProductRecord(
        barcode="3017624010701",
        product_type=ProductType.BEAUTY,
        language=Language.FRENCH,
        name="Crème",
        allergens=["limonene"],
        period_after_opening="12M",
        current_price=_price(5.0),
        recent_prices=[_price(5.0)],
        price_stats=PriceStatistics.from_prices([_price(5.0)]),
    )
    assert ProductRecord.from_dict(record.to_dict()) == record


def test_product_type_display_names():
    assert ProductType.FOOD.display_name == "Food Product"
    assert ProductType.BEAUTY.display_name == "Beauty/Cosmetic Product"
    assert ProductType.GENERAL.display_name == "General Product"
