# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from platescan.health.models import FlagLevel, HealthFlag
from platescan.health.service import (
    GENERAL_TIPS,
    compute_health,
    health_report,
    normalize_product,
    rating_for,
    score_meal,
    summarize,
)

CEREAL = {
    "product": {
        "product_name": "Choco Crunch",
        "brands": "Acme, Other Co",
        "code": "0001112223334",
        "ingredients_text_en": "Sugar, whole grain oats, Red 40, BHT (preservative)",
        "additives_tags": ["en:e129", "en:e321"],
        "allergens_tags": ["en:milk"],
        "nutrition_data_per": "serving",
        "serving_size": "30g",
        "nutriments": {
            "energy-kcal_serving": 120,
            "energy-kcal_100g": 400,
            "sugars_serving": 12,
            "sodium_serving": 0.15,
            "proteins_100g": 8,
        },
    }
}


class TestNormalizeProduct(unittest.TestCase):
    def test_envelope_per_serving_values_and_tags(self) -> None:
        p = normalize_product(CEREAL)
        self.assertEqual(p["name"], "Choco Crunch")
        self.assertEqual(p["brand"], "Acme")
        self.assertEqual(p["barcode"], "0001112223334")
        self.assertTrue(p["per_serving"])
        self.assertEqual(p["additives"], ["e129", "e321"])
        self.assertEqual(p["allergens"], ["milk"])
        self.assertEqual(p["ingredients"], ["Sugar", "whole grain oats", "Red 40", "BHT", "preservative"])

        n = p["nutrition"]
        self.assertEqual(n["calories"], 120.0)
        self.assertEqual(n["sugar_g"], 12.0)
        self.assertEqual(n["sodium_mg"], 150.0)
        self.assertEqual(n["protein_g"], 8.0)
        self.assertEqual(n["serving_size"], "30 g")

        health = p["health"]
        self.assertEqual(health["score"], 50)
        self.assertEqual([f["id"] for f in health["flags"]], ["artificial_colors", "preservatives"])

    def test_energy_and_salt_conversions(self) -> None:
        p = normalize_product({"product_name": "Crackers", "nutriments": {"energy_100g": 1000, "salt_100g": 1.0}})
        self.assertEqual(p["nutrition"]["calories"], 239.0)
        self.assertEqual(p["nutrition"]["sodium_mg"], 393.0)
        self.assertFalse(p["per_serving"])

    def test_ingredient_objects_and_locale_fallback(self) -> None:
        p = normalize_product(
            {
                "ingredients_text_fr": "farine, sel",
                "ingredients": [{"text": "farine"}, {"id": "en:salt"}, {}],
            },
            barcode="12345678",
        )
        self.assertEqual(p["name"], "Unknown product")
        self.assertEqual(p["barcode"], "12345678")
        self.assertEqual(p["ingredients_text"], "farine, sel")
        self.assertEqual(p["ingredients"], ["farine", "en:salt"])
        self.assertIsNone(p["health"]["score"])


class TestComputeHealth(unittest.TestCase):
    def test_danger_flags_lower_the_score(self) -> None:
        health = compute_health([], "", {"calories": 300, "sugar_g": 30, "sodium_mg": 1500})
        levels = {f.id: f.level for f in health.flags}
        self.assertEqual(levels, {"high_sugar": FlagLevel.danger, "high_sodium": FlagLevel.danger})
        self.assertEqual(health.score, 30)

    def test_sweeteners(self) -> None:
        health = compute_health(["water", "sucralose"], None, {"calories": 5})
        self.assertEqual([f.id for f in health.flags], ["artificial_sweeteners"])
        self.assertEqual(health.score, 60)

    def test_positive_flags(self) -> None:
        health = compute_health([], "Whole grain wheat, salt", {"calories": 100, "sugar_g": 5, "sodium_mg": 100})
        self.assertEqual([f.id for f in health.flags], ["whole_grains", "low_sodium"])
        self.assertEqual(health.score, 90)

    def test_zero_values_count_as_data(self) -> None:
        health = compute_health([], "Whole grain oats", {"calories": 0, "sugar_g": 0, "sodium_mg": 0})
        self.assertEqual([f.id for f in health.flags], ["whole_grains", "low_sodium"])
        self.assertEqual(health.score, 90)

        p = normalize_product({"product_name": "Still Water", "nutriments": {"energy-kcal_100g": 0, "sodium_100g": 0}})
        self.assertEqual(p["nutrition"]["calories"], 0.0)
        self.assertEqual(p["health"]["score"], 80)

    def test_no_nutrition_means_no_score(self) -> None:
        self.assertIsNone(compute_health(["sugar"], "sugar", None).score)


class TestHealthReport(unittest.TestCase):
    def test_fallback_without_product(self) -> None:
        report = health_report(None, {"brand_tokens": []})
        self.assertTrue(report.fallback)
        self.assertEqual(report.summary, "We couldn't confidently identify this product")
        self.assertEqual(report.recommendations, GENERAL_TIPS)
        self.assertEqual(report.evidence, {"brand_tokens": []})

    def test_report_from_normalized_product(self) -> None:
        report = health_report(normalize_product(CEREAL), {"barcode_hit": True})
        self.assertFalse(report.fallback)
        self.assertEqual(report.product_name, "Choco Crunch")
        self.assertEqual(report.score, 50)
        self.assertEqual(report.summary, "This product is relatively neutral from a health perspective.")
        self.assertEqual(
            report.recommendations,
            [
                "Look for products without artificial colors when possible",
                "Choose fresh or minimally processed alternatives when available",
            ],
        )

    def test_summaries(self) -> None:
        danger = [HealthFlag(id=str(i), level=FlagLevel.danger, label="x") for i in range(3)]
        self.assertIn("multiple concerning", summarize(danger, 10))
        self.assertIn("moderation", summarize(danger[:1], 50))
        self.assertIn("insufficient", summarize([], None))


class TestMealScore(unittest.TestCase):
    def test_existing_quality_score_is_clamped(self) -> None:
        result = score_meal({"quality_score": 120})
        self.assertEqual(result, {"score": 100, "rating_text": "Excellent", "penalties": []})

    def test_penalties_accumulate(self) -> None:
        result = score_meal(
            {
                "processing_level": "Ultra-Processed",
                "ingredient_analysis": {
                    "contains_artificial_sweeteners": True,
                    "high_sugar": True,
                    "flagged_ingredients": ["red 40", "bht"],
                },
                "quality_reasons": ["Fried"],
            }
        )
        self.assertEqual(result["score"], 7)
        self.assertEqual(result["rating_text"], "Poor")
        self.assertEqual(
            result["penalties"],
            [
                "Ultra-processed food",
                "Contains artificial sweeteners",
                "High sugar content",
                "2 flagged ingredients",
                "Fried",
            ],
        )

    def test_analysis_as_json_string(self) -> None:
        self.assertEqual(score_meal({"ingredient_analysis": '{"preservatives": true}'})["score"], 90)
        self.assertEqual(score_meal({"ingredient_analysis": "not json"})["score"], 100)

    def test_score_never_goes_negative(self) -> None:
        result = score_meal({"processing_level": "ultra-processed", "quality_reasons": ["x"] * 10})
        self.assertEqual(result["score"], 0)

    def test_rating_bands(self) -> None:
        self.assertEqual(rating_for(80), "Excellent")
        self.assertEqual(rating_for(79), "Average")
        self.assertEqual(rating_for(50), "Average")
        self.assertEqual(rating_for(49), "Poor")


if __name__ == "__main__":
    unittest.main()
