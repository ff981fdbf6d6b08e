# -*- coding: utf-8 -*-
"""Detect — Google Vision object localization with a label fallback."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from ..ocr.vision import annotate

logger = logging.getLogger(__name__)

FOODISH_RE = re.compile(
    r"salmon|fish|asparagus|vegetable|veggie|tomato|potato|chicken|beef|pork|meat|egg|rice|noodle|pasta|bread"
    r"|sandwich|soup|salad|fruit|berry|shrimp|prawn|tuna|sardine|broccoli|cauliflower|yogurt|cheese|bean"
    r"|lentil|tofu|oat|cereal|corn|spinach|lettuce|carrot|onion|garlic|apple|banana|orange|avocado|nuts"
    r"|olive|mushroom"
)


def _vertices(obj: Dict[str, Any]) -> List[List[float]]:
    poly = obj.get("boundingPoly") or {}
    return [
        [float(v.get("x") or 0.0), float(v.get("y") or 0.0)]
        for v in poly.get("normalizedVertices") or []
        if isinstance(v, dict)
    ]


def vision_detect(image_b64: str, *, client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    """``{items, objects, from}``; ``objects`` keeps every localized box for plate estimation.

    Upstream failures are logged and yield no items.
    """
    try:
        first = annotate(image_b64, [("OBJECT_LOCALIZATION", 20)], client=client)
    except (ValueError, RuntimeError, httpx.HTTPError) as exc:
        logger.warning("[DETECT][VISION] object localization failed: %s", exc)
        return {"items": [], "objects": [], "from": "error"}

    objects = [
        {
            "name": str(o.get("name") or "").lower(),
            "score": float(o.get("score") or 0.0),
            "vertices": _vertices(o),
        }
        for o in first.get("localizedObjectAnnotations") or []
        if isinstance(o, dict)
    ]
    if objects:
        items = [
            {"name": o["name"], "confidence": o["score"], "source": "vision", "vertices": o["vertices"]}
            for o in objects
        ]
        logger.info("[DETECT][VISION] objects=%d", len(items))
        return {"items": items, "objects": objects, "from": "objects"}

    try:
        labels = annotate(image_b64, [("LABEL_DETECTION", 15)], client=client)
    except (ValueError, RuntimeError, httpx.HTTPError) as exc:
        logger.warning("[DETECT][VISION] label fallback failed: %s", exc)
        return {"items": [], "objects": [], "from": "error"}

    raw = [l for l in labels.get("labelAnnotations") or [] if isinstance(l, dict)]
    items = []
    for l in raw:
        name = str(l.get("description") or "").lower()
        if FOODISH_RE.search(name):
            items.append({"name": name, "confidence": float(l.get("score") or 0.0), "source": "vision", "vertices": None})
    logger.info("[DETECT][VISION] labels=%d foodish=%d", len(raw), len(items))
    return {"items": items, "objects": [], "from": "labels"}
