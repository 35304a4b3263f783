"""Tests for the Open Facts catalog backends."""

import httpx
import pytest

from openfacts.catalog import create_catalog
from openfacts.catalog.beauty import BeautyFactsCatalog
from openfacts.catalog.facts import FactsCatalog
from openfacts.catalog.food import FoodFactsCatalog
from openfacts.catalog.products import ProductsFactsCatalog
from openfacts.config import OpenFactsConfig
from openfacts.languages import Language
from openfacts.models import ProductType

NUTELLA = {
    "code": "3017624010701",
    "product_name": "Nutella",
    "product_name_fr": "Nutella pâte à tartiner",
    "brands": "Ferrero",
    "ingredients_text": "Sugar, palm oil, hazelnuts",
    "allergens_tags": ["en:milk", "en:nuts", "en:soybeans"],
    "nutriscore_grade": "e",
    "nova_group": "4",
    "nutriments": {"energy-kcal_100g": 539},
    "image_front_url": "https://images.test/front.jpg",
    "image_ingredients_url": "https://images.test/ingredients.jpg",
    "image_nutrition_url": "https://images.test/nutrition.jpg",
}


def _http(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _serve(body, status=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, json=body)

    return handler


class TestFactory:
    @pytest.mark.parametrize(
        "backend,cls",
        [
            ("food", FoodFactsCatalog),
            ("beauty", BeautyFactsCatalog),
            ("products", ProductsFactsCatalog),
        ],
    )
    def test_create_catalog(self, backend, cls):
        config = OpenFactsConfig()
        config.catalog.backend = backend
        assert isinstance(create_catalog(config, _http(_serve({}))), cls)

    def test_unknown_backend(self):
        config = OpenFactsConfig()
        config.catalog.backend = "pets"
        with pytest.raises(ValueError, match="Unknown catalog backend"):
            create_catalog(config, _http(_serve({})))

    def test_catalog_without_parser_cannot_be_built(self):
        class Incomplete(FactsCatalog):
            default_base_url = "https://incomplete.test/api/v2"

        with pytest.raises(TypeError, match="_parse_product"):
            Incomplete(http_client=_http(_serve({})))

    @pytest.mark.asyncio
    async def test_base_url_override(self):
        seen = []
        config = OpenFactsConfig()
        config.catalog.base_url = "http://localhost:8000/api/v2/"
        catalog = create_catalog(config, _http(_serve({"status": 0}, seen=seen)))
        await catalog.fetch_product("123", Language.ENGLISH)
        assert str(seen[0].url).startswith("http://localhost:8000/api/v2/product/123?")


@pytest.mark.asyncio
async def test_food_product_mapping():
    seen = []
    catalog = FoodFactsCatalog(_http(_serve({"status": 1, "product": NUTELLA}, seen=seen)))

    record = await catalog.fetch_product("3017624010701", Language.FRENCH)

    assert record.product_type is ProductType.FOOD
    assert record.language is Language.FRENCH
    assert record.name == "Nutella pâte à tartiner"
    assert record.brand == "Ferrero"
    assert record.allergens == ["milk", "nuts", "soybeans"]
    assert record.nutri_score == "E"
    assert record.nova_group == 4
    assert record.energy_kcal == 539.0
    assert record.image_url == "https://images.test/front.jpg"
    assert record.nutrition_image_url == "https://images.test/nutrition.jpg"

    request = seen[0]
    assert request.url.host == "world.openfoodfacts.org"
    assert request.url.path == "/api/v2/product/3017624010701"
    assert request.url.params["lc"] == "fr"
    fields = request.url.params["fields"].split(",")
    assert "nutriscore_grade" in fields
    assert "product_name_fr" in fields
    assert request.headers["user-agent"] == "openfacts"


@pytest.mark.asyncio
async def test_falls_back_to_default_name():
    catalog = FoodFactsCatalog(_http(_serve({"status": 1, "product": NUTELLA})))
    record = await catalog.fetch_product("3017624010701", Language.GERMAN)
    assert record.name == "Nutella"


@pytest.mark.asyncio
async def test_unknown_nutriscore_is_none():
    product = dict(NUTELLA, nutriscore_grade="unknown", nova_group=None, nutriments={})
    catalog = FoodFactsCatalog(_http(_serve({"status": 1, "product": product})))
    record = await catalog.fetch_product("3017624010701", Language.ENGLISH)
    assert record.nutri_score is None
    assert record.nova_group is None
    assert record.energy_kcal is None


@pytest.mark.asyncio
async def test_v3_status_strings_are_accepted():
    body = {"status": "success_with_warnings", "product": NUTELLA}
    catalog = FoodFactsCatalog(_http(_serve(body)))
    assert await catalog.fetch_product("3017624010701", Language.ENGLISH) is not None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body,status",
    [
        ({"status": 0, "status_verbose": "product not found"}, 200),
        ({"status": 1}, 200),
        ({"status": "failure", "product": NUTELLA}, 200),
        ({"status": 0}, 404),
    ],
)
async def test_not_found_returns_none(body, status):
    catalog = FoodFactsCatalog(_http(_serve(body, status=status)))
    assert await catalog.fetch_product("3017624010701", Language.ENGLISH) is None


@pytest.mark.asyncio
async def test_server_error_raises():
    catalog = FoodFactsCatalog(_http(_serve({}, status=503)))
    with pytest.raises(httpx.HTTPStatusError):
        await catalog.fetch_product("3017624010701", Language.ENGLISH)


@pytest.mark.asyncio
async def test_malformed_body_raises_value_error():
    catalog = FoodFactsCatalog(_http(lambda r: httpx.Response(200, text="<html>")))
    with pytest.raises(ValueError):
        await catalog.fetch_product("3017624010701", Language.ENGLISH)


class TestBeauty:
    @pytest.mark.asyncio
    async def test_maps_period_after_opening(self):
        product = {
            "code": "3600523614165",
            "product_type": "beauty",
            "product_name": "Shampoo",
            "brands": "L'Oréal",
            "periods_after_opening": "12M",
            "allergens_tags": ["en:limonene"],
        }
        seen = []
        catalog = BeautyFactsCatalog(_http(_serve({"status": 1, "product": product}, seen=seen)))

        record = await catalog.fetch_product("3600523614165", Language.ENGLISH)

        assert record.product_type is ProductType.BEAUTY
        assert record.period_after_opening == "12M"
        assert record.allergens == ["limonene"]
        assert record.nutri_score is None
        assert seen[0].url.host == "world.openbeautyfacts.org"

    @pytest.mark.asyncio
    async def test_rejects_other_product_types(self):
        product = dict(NUTELLA, product_type="food")
        catalog = BeautyFactsCatalog(_http(_serve({"status": 1, "product": product})))
        assert await catalog.fetch_product("3017624010701", Language.ENGLISH) is None


class TestProducts:
    @pytest.mark.asyncio
    async def test_includes_traces(self):
        product = {
            "code": "0885909950805",
            "product_type": "product",
            "product_name": "Phone case",
            "allergens_tags": ["en:latex"],
            "traces_tags": ["en:nickel", "en:latex"],
        }
        catalog = ProductsFactsCatalog(_http(_serve({"status": 1, "product": product})))

        record = await catalog.fetch_product("0885909950805", Language.ENGLISH)

        assert record.product_type is ProductType.GENERAL
        assert record.allergens == ["latex", "nickel"]

    @pytest.mark.asyncio
    async def test_rejects_other_product_types(self):
        product = {"code": "1", "product_type": "beauty", "product_name": "Soap"}
        catalog = ProductsFactsCatalog(_http(_serve({"status": 1, "product": product})))
        assert await catalog.fetch_product("12345678", Language.ENGLISH) is None
