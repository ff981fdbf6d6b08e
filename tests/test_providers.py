# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest
from unittest import mock

import httpx

from platescan.providers import openfoodfacts, usda

from support import mock_client


class TestOpenFoodFacts(unittest.TestCase):
    def test_per100g_prefers_sodium_over_salt(self) -> None:
        p = openfoodfacts.per100g_from_nutriments(
            {"energy-kcal_100g": 400, "sodium_100g": 0.25, "salt_100g": 9, "sugars_100g": "50"}
        )
        self.assertEqual(p.kcal, 400.0)
        self.assertEqual(p.sodium_mg, 250.0)
        self.assertEqual(p.sugar_g, 50.0)

    def test_per100g_salt_fallback(self) -> None:
        p = openfoodfacts.per100g_from_nutriments({"salt_100g": 1.0})
        self.assertEqual(p.sodium_mg, 400.0)
        self.assertTrue(openfoodfacts.per100g_from_nutriments(None).is_empty())

    def test_get_product(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/12345678.json"):
                return httpx.Response(200, json={"status": 1, "code": "12345678", "product": {"product_name": "Oats"}})
            if request.url.path.endswith("/00000000.json"):
                return httpx.Response(200, json={"status": 0, "status_verbose": "product not found"})
            return httpx.Response(404)

        client = mock_client(handler)
        product = openfoodfacts.get_product("12345678", client=client)
        self.assertIsNotNone(product)
        assert product is not None
        self.assertEqual(product["code"], "12345678")
        self.assertEqual(product["product_name"], "Oats")
        self.assertIsNone(openfoodfacts.get_product("00000000", client=client))
        self.assertIsNone(openfoodfacts.get_product("99999999", client=client))
        client.close()

    def test_search_passes_categories(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            return httpx.Response(200, json={"products": [{"product_name": "Gummies"}, "junk"]})

        client = mock_client(handler)
        products = openfoodfacts.search_products("haribo", page_size=3, categories="candy", client=client)
        client.close()

        self.assertEqual(products, [{"product_name": "Gummies"}])
        self.assertEqual(seen["categories"], "candy")
        self.assertEqual(seen["page_size"], "3")
        self.assertEqual(seen["search_terms"], "haribo")

    def test_region_from_countries(self) -> None:
        self.assertEqual(openfoodfacts.region_from_countries("France, United States"), "US")
        self.assertEqual(openfoodfacts.region_from_countries("Canada"), "CA")
        self.assertEqual(openfoodfacts.region_from_countries(None), "International")


class TestUsda(unittest.TestCase):
    def test_requires_api_key(self) -> None:
        with mock.patch.object(usda.settings, "usda_api_key", None):
            with self.assertRaises(ValueError):
                usda.search_by_gtin("04963406")

    def test_search_by_gtin_matches_exact_code(self) -> None:
        food = {
            "gtinUpc": "04963406",
            "description": "ALMOND BUTTER",
            "foodNutrients": [
                {"nutrientId": usda.ENERGY, "value": 614},
                {"nutrientId": usda.PROTEIN, "value": 21.4},
                {"nutrientId": usda.SODIUM, "value": "bad"},
            ],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.params.get("api_key"), "k")
            return httpx.Response(200, json={"foods": [{"gtinUpc": "0000"}, food]})

        client = mock_client(handler)
        with mock.patch.object(usda.settings, "usda_api_key", "k"):
            found = usda.search_by_gtin("04963406", client=client)
        client.close()

        self.assertEqual(found, food)
        p = usda.per100g_from_food(found)
        self.assertEqual(p.kcal, 614.0)
        self.assertEqual(p.protein_g, 21.4)
        self.assertEqual(p.sodium_mg, 0.0)


if __name__ == "__main__":
    unittest.main()
