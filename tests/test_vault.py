# -*- coding: utf-8 -*-

from __future__ import annotations

import importlib
import shutil
import sqlite3
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import httpx

from support import isolate_env, mock_client


class TestNutritionVault(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        cls._tmp = Path(tempfile.mkdtemp(prefix="platescan-test-"))
        isolate_env(cls._tmp)

        cls.settings = importlib.import_module("platescan.config").settings
        importlib.import_module("platescan.app_db").init_app_db(cls.settings.app_db_path)
        cls.storage = importlib.import_module("platescan.vault.storage")
        cls.models = importlib.import_module("platescan.vault.models")

        VaultItemIn = cls.models.VaultItemIn
        cls.yogurt = cls.storage.upsert_item(
            VaultItemIn(
                canonical_key="generic:greek-yogurt",
                provider="manual",
                name="Greek Yogurt",
                brand="Fage",
                confidence=0.9,
                per100g={"kcal": 97, "protein_g": 9},
                portion_defs=[{"label": "1 cup", "grams": 170}],
                ingredients_text="milk, cultures",
            )
        )
        cls.storage.upsert_item(
            VaultItemIn(
                canonical_key="generic:greek-salad",
                provider="manual",
                name="Greek Salad",
                confidence=0.5,
                per100g={"kcal": 120},
            )
        )

    @classmethod
    def tearDownClass(cls) -> None:
        shutil.rmtree(cls._tmp, ignore_errors=True)

    def test_prefix_search_ranks_branded_confident_items_first(self) -> None:
        hits = self.storage.search("gre")
        self.assertEqual([h.name for h in hits], ["Greek Yogurt", "Greek Salad"])
        self.assertGreater(hits[0].score, hits[1].score)
        self.assertEqual(hits[0].source, "vault")
        self.assertEqual(hits[0].ingredients_list, ["milk", "cultures"])

    def test_short_query_returns_nothing(self) -> None:
        self.assertEqual(self.storage.search("gr"), [])
        self.assertEqual(self.storage.search(None), [])

    def test_brand_prefix_matches(self) -> None:
        hits = self.storage.search("fage")
        self.assertEqual([h.name for h in hits], ["Greek Yogurt"])

    def test_region_is_respected(self) -> None:
        self.assertEqual(self.storage.search("greek", region="CA"), [])

    def test_get_item(self) -> None:
        item = self.storage.get_item(self.yogurt.id)
        self.assertIsNotNone(item)
        assert item is not None
        self.assertEqual(item.per100g.kcal, 97)
        self.assertEqual(item.portion_defs[0].grams, 170)
        self.assertIsNone(self.storage.get_item("missing"))

    def test_upsert_refreshes_and_invalidates_cached_search(self) -> None:
        VaultItemIn = self.models.VaultItemIn
        self.storage.upsert_item(VaultItemIn(canonical_key="generic:hummus", provider="manual", name="Hummus"))
        first = self.storage.search("humm")
        self.assertEqual([h.name for h in first], ["Hummus"])

        updated = self.storage.upsert_item(
            VaultItemIn(canonical_key="generic:hummus", provider="manual", name="Hummus Classic")
        )
        second = self.storage.search("humm")
        self.assertEqual([h.name for h in second], ["Hummus Classic"])
        self.assertEqual(second[0].id, first[0].id)
        self.assertEqual(updated.name, "Hummus Classic")

    def test_expired_items_are_hidden(self) -> None:
        VaultItemIn = self.models.VaultItemIn
        with mock.patch.object(self.settings, "vault_ttl_days", -1):
            self.storage.upsert_item(VaultItemIn(canonical_key="generic:stale", provider="manual", name="Stale Bread"))
        self.assertEqual(self.storage.search("stale"), [])

    def test_falls_back_to_off_when_vault_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertTrue(request.url.path.endswith("/cgi/search.pl"))
            return httpx.Response(
                200,
                json={
                    "products": [
                        {
                            "code": "3017620422003",
                            "product_name": "Nutella",
                            "brands": "Ferrero",
                            "nutriments": {"energy-kcal_100g": 539},
                            "ingredients_text": "sugar; palm oil; hazelnuts",
                        }
                    ]
                },
            )

        client = mock_client(handler)
        with mock.patch.object(self.storage, "_query_vault", side_effect=sqlite3.OperationalError("locked")):
            hits = self.storage.search("nutella", client=client)
        client.close()

        self.assertEqual(len(hits), 1)
        self.assertEqual(hits[0].source, "off")
        self.assertEqual(hits[0].confidence, 0.6)
        self.assertEqual(hits[0].provider_ref, "3017620422003")
        self.assertEqual(hits[0].ingredients_list, ["sugar", "palm oil", "hazelnuts"])

    def test_like_wildcards_are_literal(self) -> None:
        VaultItemIn = self.models.VaultItemIn
        self.storage.upsert_item(VaultItemIn(canonical_key="generic:juice", provider="manual", name="100% Orange Juice"))
        self.storage.upsert_item(VaultItemIn(canonical_key="generic:dressing", provider="manual", name="1000 Island"))

        self.assertEqual([h.name for h in self.storage.search("100%")], ["100% Orange Juice"])
        self.assertEqual(self.storage.search("gr_"), [])
        self.assertEqual(self.storage._like_prefix("50%_off\\"), "50\\%\\_off\\\\%")

    def _lookups(self, q: str) -> list:
        conn = sqlite3.connect(self.settings.app_db_path)
        try:
            return conn.execute("SELECT item_id, hit FROM vault_lookups WHERE q = ?", (q,)).fetchall()
        finally:
            conn.close()

    def test_search_records_lookup_telemetry(self) -> None:
        hits = self.storage.search("greek yo")
        self.assertEqual(self._lookups("greek yo"), [(hits[0].id, 1)])

        self.assertEqual(self.storage.search("zzzz"), [])
        self.assertEqual(self._lookups("zzzz"), [(None, 0)])

    def test_telemetry_failure_does_not_break_search(self) -> None:
        real_conn = self.storage.db_conn(self.settings.app_db_path)
        with mock.patch.object(
            self.storage, "db_conn", side_effect=[real_conn, sqlite3.OperationalError("readonly")]
        ), self.assertLogs("platescan.vault.storage", level="WARNING") as logs:
            hits = self.storage.search("fage gr")

        self.assertEqual(hits, [])
        self.assertTrue(any("telemetry insert failed" in line for line in logs.output))
        self.assertEqual(self._lookups("fage gr"), [])

    def test_portion_defs_from_serving(self) -> None:
        self.assertEqual(self.storage.portion_defs_from_serving(0), [])
        defs = self.storage.portion_defs_from_serving(30)
        self.assertEqual(defs[0].grams, 30)
        self.assertEqual(defs[0].label, "1 serving")


if __name__ == "__main__":
    unittest.main()
