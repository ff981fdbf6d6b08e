# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

from platescan.brands.matcher import find_brands, levenshtein, match_brand, similarity


class TestBrandMatching(unittest.TestCase):
    def test_levenshtein(self) -> None:
        self.assertEqual(levenshtein("kitten", "sitting"), 3)
        self.assertEqual(levenshtein("", "abc"), 3)
        self.assertEqual(levenshtein("mars", "mars"), 0)
        self.assertEqual(similarity("", ""), 1.0)

    def test_exact_and_fuzzy_match(self) -> None:
        exact = match_brand("mars")
        self.assertIsNotNone(exact)
        assert exact is not None
        self.assertTrue(exact.exact)
        self.assertEqual(exact.score, 1.0)

        fuzzy = match_brand("skitles")
        self.assertIsNotNone(fuzzy)
        assert fuzzy is not None
        self.assertEqual(fuzzy.brand, "skittles")
        self.assertFalse(fuzzy.exact)
        self.assertEqual(fuzzy.score, 0.875)

    def test_short_tokens_only_match_exactly(self) -> None:
        self.assertIsNone(match_brand("mar"))
        self.assertIsNone(match_brand(""))

    def test_multi_word_brand_consumes_its_tokens(self) -> None:
        found = find_brands(["trader", "joe", "s", "cookies"])
        brands = [m.brand for m in found]
        self.assertEqual(brands[0], "trader joe s")
        self.assertNotIn("trader", brands)

    def test_results_are_deduplicated(self) -> None:
        found = find_brands(["mars", "mars"])
        self.assertEqual([m.brand for m in found], ["mars"])


if __name__ == "__main__":
    unittest.main()
