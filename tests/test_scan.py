# -*- coding: utf-8 -*-

from __future__ import annotations

import importlib
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import httpx

from support import isolate_env, mock_client, vision_features

COLA = "5000112637922"

COLA_PAYLOAD = {
    "status": 1,
    "code": COLA,
    "product": {
        "product_name": "Cola",
        "brands": "Coca-Cola",
        "countries": "United Kingdom",
        "serving_size": "330 ml",
        "ingredients_text": "carbonated water, sugar",
        "nutriments": {"energy-kcal_100g": 42, "sugars_100g": 10.6, "sodium_100g": 0.01},
    },
}

SKITTLES = {
    "code": "0040000000327",
    "product_name": "Skittles Original",
    "brands": "Skittles",
    "categories": "Snacks, Sweets, Candies",
    "nutriments": {"energy-kcal_100g": 405, "sugars_100g": 76},
    "ingredients_text": "sugar, corn syrup, red 40",
}


def _off_handler(search_products):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith(f"/product/{COLA}.json"):
            return httpx.Response(200, json=COLA_PAYLOAD)
        if request.url.path.endswith("/cgi/search.pl"):
            return httpx.Response(200, json={"products": search_products})
        return httpx.Response(404)

    return handler


class TestScanPipeline(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="platescan-test-"))
        isolate_env(cls._tmp)

        cls.settings = importlib.import_module("platescan.config").settings
        importlib.import_module("platescan.app_db").init_app_db(cls.settings.app_db_path)
        cls.pipeline = importlib.import_module("platescan.scan.pipeline")
        cls.models = importlib.import_module("platescan.scan.models")
        cls.vault = importlib.import_module("platescan.vault.storage")
        VaultItemIn = importlib.import_module("platescan.vault.models").VaultItemIn
        cls.salmon = cls.vault.upsert_item(
            VaultItemIn(
                canonical_key="generic:salmon",
                provider="manual",
                name="Salmon fillet",
                confidence=0.9,
                per100g={"kcal": 200, "protein_g": 20},
            )
        )

    @classmethod
    def tearDownClass(cls) -> None:
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def _scan(self, handler, **fields):
        client = mock_client(handler)
        try:
            return self.pipeline.run_scan(self.models.ScanRequest(**fields), client=client, entry="test")
        finally:
            client.close()

    def test_barcode_hit(self) -> None:
        result = self._scan(_off_handler([]), barcode=COLA)

        self.assertEqual(result.kind, self.models.ScanKind.single_product)
        self.assertEqual(result.product.name, "Cola")
        self.assertEqual(result.product.per100g.kcal, 42)
        self.assertEqual(result.trace[0].step, "barcode")
        self.assertTrue(result.trace[0].hit)
        self.assertEqual(result.product.portion.source, "category_estimate")
        self.assertEqual(result.product.portion.grams, 30)
        self.assertFalse(result.health.fallback)
        self.assertEqual(result.health.score, 80)
        self.assertTrue(result.health.evidence["barcode_hit"])

    def test_user_portion_scales_nutrition(self) -> None:
        result = self._scan(_off_handler([]), text=f"cola {COLA}", portion_grams=250)

        self.assertEqual(result.kind, self.models.ScanKind.single_product)
        self.assertEqual(result.product.portion.source, "user_set")
        self.assertFalse(result.product.portion.is_estimated)
        self.assertEqual(result.product.per_portion["kcal"], 105.0)

    def test_label_with_clear_leader(self) -> None:
        other = {"code": "1", "product_name": "Random Bar", "brands": "Other"}
        result = self._scan(_off_handler([SKITTLES, other]), text="Skittles Original")

        self.assertEqual(result.kind, self.models.ScanKind.single_product)
        self.assertEqual(result.product.name, "Skittles Original")
        self.assertEqual(result.product.source, "off")
        self.assertEqual(result.product.similarity, 0.75)
        self.assertEqual(result.trace[0].step, "label")
        self.assertEqual(result.health.product_name, "Skittles Original")
        self.assertEqual(result.health.evidence["brand_tokens"], ["skittles"])
        self.assertIn("high_sugar", [f.id for f in result.health.flags])

    def test_close_candidates(self) -> None:
        products = [
            {"code": "2", "product_name": "Trail Mix", "brands": "Kirkland"},
            {"code": "3", "product_name": "Trail Mix Nuts", "brands": "Kirkland"},
        ]
        result = self._scan(_off_handler(products), text="Kirkland trail mix nuts")

        self.assertEqual(result.kind, self.models.ScanKind.multiple_candidates)
        self.assertEqual(len(result.candidates), 2)
        self.assertIsNone(result.product)
        self.assertIsNone(result.health)

    def test_candy_search_filters_beverages(self) -> None:
        seen = {}
        drink = {"code": "4", "product_name": "Haribo Drink", "brands": "Haribo", "categories": "Beverages"}
        gummies = {"code": "5", "product_name": "Haribo Goldbears", "brands": "Haribo", "categories": "Candies"}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/cgi/search.pl"):
                seen["categories"] = request.url.params.get("categories")
                return httpx.Response(200, json={"products": [drink, gummies]})
            return httpx.Response(404)

        result = self._scan(handler, text="Haribo gummy bears")

        self.assertEqual(seen["categories"], "candy,gummies,sweets")
        self.assertEqual(result.kind, self.models.ScanKind.single_product)
        self.assertEqual(result.product.name, "Haribo Goldbears")

    def test_no_brand_evidence_falls_back(self) -> None:
        result = self._scan(_off_handler([]), text="just some food")

        self.assertEqual(result.kind, self.models.ScanKind.none)
        self.assertTrue(result.health.fallback)
        self.assertEqual(result.trace[0].detail, "no brand evidence")

    def test_meal_photo(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            features = vision_features(request)
            if "TEXT_DETECTION" in features:
                return httpx.Response(200, json={"responses": [{"textAnnotations": []}]})
            if "OBJECT_LOCALIZATION" in features:
                return httpx.Response(
                    200,
                    json={"responses": [{"localizedObjectAnnotations": [{"name": "Salmon", "score": 0.9}]}]},
                )
            return httpx.Response(404)

        with mock.patch.object(self.settings, "vision_api_key", "k"):
            result = self._scan(handler, image_base64="aGVsbG8gd29ybGQgaW1hZ2U=")

        self.assertEqual(result.kind, self.models.ScanKind.meal)
        self.assertEqual([s.step for s in result.trace], ["ocr", "meal"])
        self.assertFalse(result.trace[0].hit)
        food = result.foods[0]
        self.assertEqual((food.name, food.grams), ("salmon", 120.0))
        self.assertEqual(food.vault_id, self.salmon.id)
        self.assertEqual(food.per_portion["kcal"], 240.0)

    def test_failing_steps_are_traced_and_skipped(self) -> None:
        def unreachable(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no provider is configured")

        result = self._scan(unreachable, image_base64="aGVsbG8gd29ybGQgaW1hZ2U=")

        self.assertEqual(result.kind, self.models.ScanKind.none)
        self.assertEqual([s.step for s in result.trace], ["ocr", "meal"])
        self.assertTrue(result.trace[0].detail.startswith("error:"))
        self.assertTrue(result.health.fallback)

    def test_candidate_similarity(self) -> None:
        text = importlib.import_module("platescan.ocr.text")
        label = text.tokenize_label("Kirkland trail mix")
        product = self.models.ScanProduct(name="Trail Mix", brand="Kirkland", source="off")
        self.assertEqual(self.pipeline.candidate_similarity(label, product), 1.0)
        unbranded = self.models.ScanProduct(name="Trail Mix Deluxe", source="off")
        self.assertEqual(self.pipeline.candidate_similarity(label, unbranded), 0.333)


if __name__ == "__main__":
    unittest.main()
