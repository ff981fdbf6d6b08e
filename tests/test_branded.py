# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

import httpx

from platescan.branded.service import match_branded_product, serving_nutrition

from support import mock_client

GRANOLA = {
    "code": "016000275287",
    "product_name": "Nature Valley Crunchy Oats",
    "brands": "Nature Valley",
    "nutriments": {"energy-kcal_100g": 470, "proteins_100g": 10, "sodium_100g": 0.3},
}


def _handler(product_status: int, search_products):
    def handler(request: httpx.Request) -> httpx.Response:
        if "/api/v0/product/" in request.url.path:
            if product_status == 1:
                return httpx.Response(200, json={"status": 1, "code": GRANOLA["code"], "product": GRANOLA})
            return httpx.Response(200, json={"status": 0})
        if request.url.path.endswith("/cgi/search.pl"):
            if search_products is None:
                return httpx.Response(503)
            return httpx.Response(200, json={"products": search_products})
        return httpx.Response(404)

    return handler


class TestBrandedMatch(unittest.TestCase):
    def test_serving_nutrition_scales_to_thirty_grams(self) -> None:
        n = serving_nutrition(GRANOLA)
        self.assertIsNotNone(n)
        assert n is not None
        self.assertEqual(n.calories, 141)
        self.assertEqual(n.protein, 3.0)
        self.assertEqual(n.sodium, 90)
        self.assertIsNone(serving_nutrition({"product_name": "no data"}))

    def test_barcode_match(self) -> None:
        client = mock_client(_handler(1, []))
        match = match_branded_product("granola", barcode=GRANOLA["code"], client=client)
        client.close()

        self.assertTrue(match.found)
        self.assertEqual(match.source, "barcode")
        self.assertEqual(match.confidence, 99)
        self.assertEqual(match.debug_info.match_method, "barcode_exact_match")

    def test_fuzzy_match_after_barcode_miss(self) -> None:
        client = mock_client(_handler(0, [{"product_name": "Other"}, GRANOLA]))
        match = match_branded_product("Nature Valley Crunchy Oats", barcode="00000000", client=client)
        client.close()

        self.assertTrue(match.found)
        self.assertEqual(match.source, "fuzzy_match")
        self.assertEqual(match.confidence, 100)
        self.assertEqual(match.product_id, GRANOLA["code"])
        self.assertEqual(match.debug_info.candidates_found, 2)

    def test_weak_candidates_fall_back(self) -> None:
        client = mock_client(_handler(0, [{"product_name": "Something Else Entirely", "nutriments": {"x": 1}}]))
        match = match_branded_product("Nature Valley Crunchy Oats", client=client)
        client.close()

        self.assertFalse(match.found)
        self.assertEqual(match.source, "fallback")
        self.assertEqual(match.confidence, 50)
        self.assertEqual(match.debug_info.match_method, "generic_fallback")
        self.assertEqual(match.debug_info.fallback_reason, "no_barcode_detected")

    def test_search_error_is_reported(self) -> None:
        client = mock_client(_handler(0, None))
        match = match_branded_product("Nature Valley Crunchy Oats", client=client)
        client.close()

        self.assertFalse(match.found)
        self.assertTrue(match.debug_info.fallback_reason.startswith("search_error"))


if __name__ == "__main__":
    unittest.main()
