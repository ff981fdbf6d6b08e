# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import unittest
from unittest import mock

import httpx

from platescan.detect import gpt, router
from platescan.detect.models import DetectMode
from platescan.detect.parsing import (
    extract_items,
    extract_message_text,
    normalize_items,
    parse_model_output_json,
)
from platescan.detect.vision import vision_detect

from support import mock_client, request_json, vision_features

settings = router.settings

PLATE_BOX = {"x": 0, "y": 0}, {"x": 1, "y": 0}, {"x": 1, "y": 1}, {"x": 0, "y": 1}
SALMON_BOX = {"x": 0, "y": 0}, {"x": 0.5, "y": 0}, {"x": 0.5, "y": 0.4}, {"x": 0, "y": 0.4}


def _chat(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


def _objects(*objs) -> httpx.Response:
    return httpx.Response(200, json={"responses": [{"localizedObjectAnnotations": list(objs)}]})


def _obj(name: str, score: float, box) -> dict:
    return {"name": name, "score": score, "boundingPoly": {"normalizedVertices": list(box)}}


class TestModelOutputParsing(unittest.TestCase):
    def test_fenced_json_with_trailing_commas(self) -> None:
        parsed = parse_model_output_json('```json\n{"items": [{"name": "rice",},]}\n```')
        self.assertEqual(parsed, {"items": [{"name": "rice"}]})

    def test_array_inside_prose(self) -> None:
        parsed = parse_model_output_json('Sure! Here you go: [{"name": "egg"}] hope it helps')
        self.assertEqual(parsed, [{"name": "egg"}])

    def test_python_literal_fallback(self) -> None:
        parsed = parse_model_output_json("{'items': [{'name': 'toast', 'confidence': None}]}")
        self.assertEqual(parsed, {"items": [{"name": "toast", "confidence": None}]})

    def test_fullwidth_punctuation(self) -> None:
        parsed = parse_model_output_json('{"name"："米饭"，"confidence"：0.9}')
        self.assertEqual(parsed, {"name": "米饭", "confidence": 0.9})

    def test_nothing_parses(self) -> None:
        with self.assertRaises(ValueError):
            parse_model_output_json("I cannot see any food in this photo.")

    def test_extract_message_text(self) -> None:
        data = {"choices": [{"message": {"content": "a"}}, {"delta": {"content": "b"}}, {"text": "c"}]}
        self.assertEqual(extract_message_text(data), "abc")
        self.assertEqual(extract_message_text(None), "")

    def test_items_aliases(self) -> None:
        self.assertEqual(extract_items({"result": {"items": [1]}}), [1])
        self.assertEqual(extract_items({"foods": ["x"]}), ["x"])
        self.assertEqual(extract_items("nope"), [])

        items = normalize_items(
            ["apple", {"label": "Rice", "conf": "85%", "food_category": "Grain", "hint": "1 cup"}, {"name": ""}, 5]
        )
        self.assertEqual(
            items,
            [
                {"name": "apple", "confidence": 0.8, "category": "unknown", "portion_hint": None},
                {"name": "Rice", "confidence": 0.85, "category": "grain", "portion_hint": "1 cup"},
            ],
        )


class TestGptExtraction(unittest.TestCase):
    def test_canonicalize_items(self) -> None:
        items = gpt.canonicalize_items(
            [
                {"name": "Plate", "confidence": 0.9, "category": "unknown"},
                {"name": "Tomatoes", "confidence": 0.3, "category": "vegetable"},
                {"name": "tomato", "confidence": 0.6, "category": "vegetable"},
                {"name": "Chicken", "confidence": 0.45, "category": "protein"},
                {"name": "Rice", "confidence": 0.9, "category": "grain"},
            ]
        )
        self.assertEqual([i["name"] for i in items], ["tomato", "rice"])
        self.assertEqual(items[0]["confidence"], 0.6)

    def test_extracts_foods(self) -> None:
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers.get("authorization")
            seen["body"] = request_json(request)
            return _chat(
                json.dumps(
                    {
                        "items": [
                            {"name": "Salmon", "category": "protein", "confidence": 0.95, "portion_hint": "1 fillet"},
                            {"name": "fork", "confidence": 0.99},
                        ]
                    }
                )
            )

        client = mock_client(handler)
        with mock.patch.object(settings, "openai_api_key", "sk-test"):
            foods = gpt.gpt_extract_foods("AAAAAAAA", client=client)
        client.close()

        self.assertTrue(seen["path"].endswith("/chat/completions"))
        self.assertEqual(seen["auth"], "Bearer sk-test")
        self.assertEqual(seen["body"]["response_format"], {"type": "json_object"})
        image_part = seen["body"]["messages"][1]["content"][1]
        self.assertEqual(image_part["image_url"]["url"], "data:image/jpeg;base64,AAAAAAAA")
        self.assertEqual(
            foods,
            [{"name": "salmon", "confidence": 0.95, "category": "protein", "portion_hint": "1 fillet", "source": "gpt"}],
        )

    def test_failures_return_empty(self) -> None:
        with mock.patch.object(settings, "openai_api_key", None):
            self.assertEqual(gpt.gpt_extract_foods("AAAAAAAA"), [])

        for response in (httpx.Response(500, text="overloaded"), _chat("I cannot help with that")):
            client = mock_client(lambda request, r=response: r)
            with mock.patch.object(settings, "openai_api_key", "sk-test"):
                self.assertEqual(gpt.gpt_extract_foods("AAAAAAAA", client=client), [])
            client.close()


class TestVisionDetect(unittest.TestCase):
    def test_objects_first(self) -> None:
        client = mock_client(lambda request: _objects(_obj("Salmon", 0.8, SALMON_BOX), _obj("Plate", 0.9, PLATE_BOX)))
        with mock.patch.object(settings, "vision_api_key", "k"):
            out = vision_detect("AAAAAAAA", client=client)
        client.close()

        self.assertEqual(out["from"], "objects")
        self.assertEqual([i["name"] for i in out["items"]], ["salmon", "plate"])
        self.assertEqual(out["items"][0]["source"], "vision")
        self.assertEqual(len(out["objects"]), 2)

    def test_label_fallback_keeps_foodish_labels(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "OBJECT_LOCALIZATION" in vision_features(request):
                return _objects()
            return httpx.Response(
                200,
                json={
                    "responses": [
                        {
                            "labelAnnotations": [
                                {"description": "Salmon", "score": 0.9},
                                {"description": "Tableware", "score": 0.95},
                            ]
                        }
                    ]
                },
            )

        client = mock_client(handler)
        with mock.patch.object(settings, "vision_api_key", "k"):
            out = vision_detect("AAAAAAAA", client=client)
        client.close()

        self.assertEqual(out["from"], "labels")
        self.assertEqual([i["name"] for i in out["items"]], ["salmon"])
        self.assertEqual(out["objects"], [])

    def test_errors_yield_no_items(self) -> None:
        with mock.patch.object(settings, "vision_api_key", None):
            out = vision_detect("AAAAAAAA")
        self.assertEqual(out, {"items": [], "objects": [], "from": "error"})


class TestDetectRouter(unittest.TestCase):
    def test_resolve_mode(self) -> None:
        self.assertEqual(router.resolve_mode("hybrid"), DetectMode.HYBRID)
        self.assertEqual(router.resolve_mode(DetectMode.VISION_ONLY), DetectMode.VISION_ONLY)
        with mock.patch.object(settings, "detect_mode", "VISION_ONLY"):
            self.assertEqual(router.resolve_mode(None), DetectMode.VISION_ONLY)
            self.assertEqual(router.resolve_mode("bogus"), DetectMode.VISION_ONLY)
        with mock.patch.object(settings, "detect_mode", "NOT_A_MODE"):
            self.assertEqual(router.resolve_mode("bogus"), DetectMode.GPT_ONLY)
            self.assertEqual(router.resolve_mode(None), DetectMode.GPT_ONLY)

    def test_filter_and_score(self) -> None:
        self.assertEqual(
            router.filter_detected_items([{"name": "Plate"}, {"name": " Rice "}, {"name": ""}]),
            [{"name": "rice"}],
        )
        self.assertEqual(router.score_results([]), 0.0)
        self.assertEqual(router.score_results([{"name": "grilled chicken", "confidence": 1.0}]), 1.75)

    def test_hybrid_picks_higher_scoring_source(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/chat/completions"):
                return _chat('{"items": [{"name": "rice", "category": "grain", "confidence": 0.9}]}')
            return _objects(_obj("Salmon", 0.8, SALMON_BOX), _obj("Plate", 0.9, PLATE_BOX))

        client = mock_client(handler)
        with mock.patch.object(settings, "openai_api_key", "sk-test"), mock.patch.object(
            settings, "vision_api_key", "k"
        ):
            result = router.detect_meal("AAAAAAAA", "HYBRID", client=client)
        client.close()

        self.assertEqual(result.mode, DetectMode.HYBRID)
        self.assertEqual(result.picked, "vision")
        self.assertGreater(result.scores["vision"], result.scores["gpt"])
        self.assertEqual(len(result.items), 1)
        salmon = result.items[0]
        self.assertEqual(salmon.name, "salmon")
        self.assertEqual(salmon.portion_source, "area")
        self.assertEqual(salmon.grams, 90.0)
        self.assertEqual(result.plate.area, 1.0)

    def test_gpt_only_falls_back_to_vision(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if "OBJECT_LOCALIZATION" in vision_features(request):
                return _objects()
            return httpx.Response(200, json={"responses": [{"labelAnnotations": [{"description": "Rice", "score": 0.7}]}]})

        client = mock_client(handler)
        with mock.patch.object(settings, "openai_api_key", None), mock.patch.object(settings, "vision_api_key", "k"):
            result = router.detect_meal("AAAAAAAA", DetectMode.GPT_ONLY, client=client)
        client.close()

        self.assertEqual(result.picked, "vision")
        self.assertEqual([(i.name, i.grams, i.portion_source) for i in result.items], [("rice", 150.0, "base")])

    def test_nothing_detected(self) -> None:
        with mock.patch.object(settings, "openai_api_key", None), mock.patch.object(settings, "vision_api_key", None):
            result = router.detect_meal("AAAAAAAA", "VISION_ONLY")
        self.assertEqual(result.picked, "none")
        self.assertEqual(result.items, [])


if __name__ == "__main__":
    unittest.main()
