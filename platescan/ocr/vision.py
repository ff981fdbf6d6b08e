# -*- coding: utf-8 -*-
"""OCR — Google Vision images:annotate client."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import settings
from .text import extract_nutrition_facts

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:[^;,]+;base64,", re.IGNORECASE)

FOOD_LABEL_WORDS = ("food", "fruit", "vegetable", "meat", "drink", "bread", "cheese", "snack")

Feature = Tuple[str, int]


def strip_data_url(image_b64: str) -> str:
    return _DATA_URL_RE.sub("", (image_b64 or "").strip())


def annotate(
    image_b64: str,
    features: Sequence[Feature],
    *,
    client: Optional[httpx.Client] = None,
) -> Dict[str, Any]:
    """Run one annotate request and return its first response object."""
    if not settings.vision_api_key:
        raise ValueError("GOOGLE_VISION_API_KEY is not configured")
    content = strip_data_url(image_b64)
    if not content:
        raise ValueError("image is required")

    payload = {
        "requests": [
            {
                "image": {"content": content},
                "features": [{"type": f, "maxResults": n} for f, n in features],
            }
        ]
    }
    owns_client = client is None
    http = client or httpx.Client(timeout=settings.vision_timeout)
    try:
        resp = http.post(settings.vision_url, params={"key": settings.vision_api_key}, json=payload)
        if resp.status_code >= 400:
            raise RuntimeError(f"Google Vision API error: {resp.status_code} {resp.text[:200]}")
        data = resp.json()
    finally:
        if owns_client:
            http.close()

    responses = data.get("responses") if isinstance(data, dict) else None
    if not responses or not isinstance(responses[0], dict):
        raise RuntimeError("Invalid response from Vision API")
    first = responses[0]
    err = first.get("error")
    if err:
        message = err.get("message") if isinstance(err, dict) else str(err)
        raise RuntimeError(f"Vision API error: {message}")
    return first


def read_label_text(image_b64: str, *, client: Optional[httpx.Client] = None) -> str:
    annotations = annotate(image_b64, [("TEXT_DETECTION", 1)], client=client)
    text = annotations.get("textAnnotations") or []
    if text and isinstance(text[0], dict):
        return str(text[0].get("description") or "")
    return ""


def _is_food_label(label: Dict[str, Any]) -> bool:
    desc = str(label.get("description") or "").lower()
    return any(w in desc for w in FOOD_LABEL_WORDS) or float(label.get("score") or 0.0) > 0.7


def recognize_labels(image_b64: str, *, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    annotations = annotate(
        image_b64,
        [("LABEL_DETECTION", 10), ("TEXT_DETECTION", 10), ("OBJECT_LOCALIZATION", 10)],
        client=client,
    )
    labels = [
        {"description": str(l.get("description") or ""), "score": float(l.get("score") or 0.0)}
        for l in annotations.get("labelAnnotations") or []
        if isinstance(l, dict)
    ]
    objects: List[Dict[str, Any]] = []
    for obj in annotations.get("localizedObjectAnnotations") or []:
        if not isinstance(obj, dict):
            continue
        poly = obj.get("boundingPoly") or {}
        objects.append(
            {
                "name": str(obj.get("name") or ""),
                "score": float(obj.get("score") or 0.0),
                "vertices": [
                    (float(v.get("x") or 0.0), float(v.get("y") or 0.0))
                    for v in poly.get("normalizedVertices") or []
                ],
            }
        )
    text_ann = annotations.get("textAnnotations") or []
    text = str(text_ann[0].get("description") or "") if text_ann and isinstance(text_ann[0], dict) else ""

    logger.info("[VISION] labels=%d objects=%d text_len=%d", len(labels), len(objects), len(text))
    return {
        "labels": labels,
        "food_labels": [l for l in labels if _is_food_label(l)],
        "objects": objects,
        "text": text,
        "nutrition": extract_nutrition_facts(text),
    }
