# -*- coding: utf-8 -*-

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict

import httpx

PROVIDER_KEYS = ("OPENAI_API_KEY", "GOOGLE_VISION_API_KEY", "USDA_API_KEY")


def isolate_env(tmp: Path) -> None:
    """Point settings at a temp data root and force a fresh import of the package."""
    data_root = tmp / "data"
    os.environ["PLATESCAN_DATA_ROOT"] = str(data_root)
    os.environ["PLATESCAN_DB_PATH"] = str(data_root / "platescan.db")
    os.environ["PLATESCAN_JWT_SECRET"] = "test-secret"
    # Make OpenFoodFacts fail fast so lookups degrade deterministically.
    os.environ["PLATESCAN_OFF_BASE_URL"] = "http://127.0.0.1:1"
    for key in PROVIDER_KEYS:
        os.environ.pop(key, None)

    for name in list(sys.modules.keys()):
        if name == "platescan" or name.startswith("platescan."):
            sys.modules.pop(name, None)


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def request_json(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content.decode("utf-8") or "{}")


def vision_features(request: httpx.Request) -> set:
    body = request_json(request)
    return {f["type"] for r in body.get("requests", []) for f in r.get("features", [])}
