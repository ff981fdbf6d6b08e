# -*- coding: utf-8 -*-
"""Detect — food item extraction through an OpenAI chat-completions vision call."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..ocr.vision import strip_data_url
from .parsing import extract_items, extract_message_text, normalize_items, parse_model_output_json

logger = logging.getLogger(__name__)

MAX_ITEMS = 6

CONTAINER_WORDS = frozenset(
    {
        "plate", "dish", "bowl", "table", "tableware", "cutlery", "silverware", "utensil",
        "fork", "knife", "spoon", "chopsticks", "napkin", "tray", "placemat", "glass", "cup",
    }
)

CATEGORY_THRESHOLDS: Dict[str, float] = {
    "vegetable": 0.20,
    "fruit": 0.20,
    "protein": 0.50,
    "grain": 0.50,
    "dairy": 0.50,
    "sauce_condiment": 0.35,
}
DEFAULT_THRESHOLD = 0.40

SYSTEM_PROMPT = (
    "You are a nutrition vision assistant. Return STRICT JSON only, no markdown. "
    "List the main edible foods visible in the photo, at most 6 items, most important first: "
    "proteins, then starches/grains, vegetables, fruits, sauces only if clearly visible. "
    "Collapse citrus variants to just 'lemon' or 'lime'. "
    "Never list tableware, plates, cutlery, napkins, packaging, text or brand names. "
    "Categories: protein, vegetable, fruit, grain, dairy, fat_oil, sauce_condiment."
)
USER_PROMPT = (
    "Return JSON of the form "
    '{"items": [{"name": "salmon", "category": "protein", "confidence": 0.95, "portion_hint": "1 fillet"}]}'
)


def _stem(name: str) -> str:
    if name.endswith("ies") and len(name) > 4:
        return name[:-3] + "y"
    if name.endswith("es") and len(name) > 4:
        return name[:-2]
    if name.endswith("s") and not name.endswith("ss") and len(name) > 3:
        return name[:-1]
    return name


def canonicalize_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Lowercase names, drop containers and low-confidence items, de-dup by stem."""
    kept: Dict[str, Dict[str, Any]] = {}
    for item in items:
        name = " ".join(str(item.get("name") or "").lower().split())
        if not name or name in CONTAINER_WORDS:
            continue
        category = item.get("category") or "unknown"
        confidence = float(item.get("confidence") or 0.0)
        if confidence < CATEGORY_THRESHOLDS.get(category, DEFAULT_THRESHOLD):
            continue
        stem = _stem(name)
        current = kept.get(stem)
        if current is None or confidence > current["confidence"]:
            kept[stem] = {**item, "name": name, "confidence": confidence, "category": category}
    return list(kept.values())[:MAX_ITEMS]


def _data_url(image_b64: str) -> str:
    raw = (image_b64 or "").strip()
    if raw.startswith("data:image/"):
        return raw
    return f"data:image/jpeg;base64,{strip_data_url(raw)}"


def gpt_extract_foods(image_b64: str, *, client: Optional[httpx.Client] = None) -> List[Dict[str, Any]]:
    """Detected foods as ``{name, confidence, category, portion_hint, source}`` dicts.

    Returns an empty list when no API key is configured or the upstream call
    fails; failures are logged, not raised.
    """
    if not settings.openai_api_key:
        logger.warning("[DETECT][GPT] OPENAI_API_KEY is not configured")
        return []
    if not strip_data_url(image_b64):
        return []

    payload = {
        "model": settings.openai_model,
        "temperature": 0,
        "max_tokens": 300,
        "response_format": {"type": "json_object"},
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": USER_PROMPT},
                    {"type": "image_url", "image_url": {"url": _data_url(image_b64), "detail": "high"}},
                ],
            },
        ],
    }
    headers = {"Authorization": f"Bearer {settings.openai_api_key}", "Content-Type": "application/json"}

    owns_client = client is None
    http = client or httpx.Client(timeout=settings.openai_timeout)
    try:
        resp = http.post(f"{settings.openai_base_url.rstrip('/')}/chat/completions", headers=headers, json=payload)
        if resp.status_code >= 400:
            logger.warning("[DETECT][GPT] http_error status=%s body=%s", resp.status_code, resp.text[:300])
            return []
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("[DETECT][GPT] request failed: %s", exc)
        return []
    finally:
        if owns_client:
            http.close()

    content = extract_message_text(data)
    try:
        parsed = parse_model_output_json(content)
    except ValueError as exc:
        logger.warning("[DETECT][GPT] output parse failed: %s raw=%r", exc, content[:200])
        return []

    raw_items = normalize_items(extract_items(parsed))
    items = canonicalize_items(raw_items)
    logger.info(
        "[DETECT][GPT] raw=%d kept=%d names=%s", len(raw_items), len(items), [i["name"] for i in items]
    )
    return [{**i, "source": "gpt"} for i in items]
