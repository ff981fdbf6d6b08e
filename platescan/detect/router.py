# -*- coding: utf-8 -*-
"""Detect — mode routing, best-of scoring and portion estimates."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from ..config import settings
from ..portion.plate import PlateEstimate, estimate_plate, estimate_portion_v3
from .gpt import gpt_extract_foods
from .models import DetectedItem, DetectMode, DetectResponse, PlateInfo
from .vision import vision_detect

logger = logging.getLogger(__name__)

REJECT = frozenset(
    {
        "plate", "dish", "bowl", "table", "tableware", "cutlery", "fork", "knife", "spoon", "cup", "glass",
        "syrup", "curd", "ketchup", "bar", "cookie", "snack", "container", "wrapper", "package",
    }
)

PROTEIN_WORDS = ("salmon", "chicken", "beef", "pork", "fish", "meat", "egg")


def resolve_mode(mode: Optional[Any] = None) -> DetectMode:
    """Requested mode, else the configured default, else GPT_ONLY."""
    if isinstance(mode, DetectMode):
        return mode
    for raw in (mode, settings.detect_mode):
        text = str(raw or "").strip().upper()
        if not text:
            continue
        try:
            return DetectMode(text)
        except ValueError:
            logger.warning("[ROUTER] unknown detect mode %r", raw)
    return DetectMode.GPT_ONLY


def filter_detected_items(items: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    out = []
    for item in items or []:
        name = str(item.get("name") or "").strip().lower()
        if name and name not in REJECT:
            out.append({**item, "name": name})
    return out


def score_results(items: Sequence[Mapping[str, Any]]) -> float:
    """Best-of score: protein presence, item count and mean confidence."""
    if not items:
        return 0.0
    has_protein = any(
        "protein" in str(i.get("source") or "")
        or i.get("category") == "protein"
        or any(p in str(i.get("name") or "").lower() for p in PROTEIN_WORDS)
        for i in items
    )
    count_score = min(len(items) / 4.0, 1.0)
    mean_conf = sum(float(i.get("confidence") or 0.0) for i in items) / len(items)
    return (1.0 if has_protein else 0.0) + count_score + 0.5 * mean_conf


def _with_portions(items: Sequence[Mapping[str, Any]], plate: PlateEstimate) -> List[DetectedItem]:
    mode = "strict" if settings.portion_strict else "lenient"
    out: List[DetectedItem] = []
    for item in items:
        est = estimate_portion_v3(
            item,
            plate_area=plate.area if plate.usable else None,
            mode=mode,
            plate_confidence=plate.confidence,
        )
        out.append(
            DetectedItem(
                name=item["name"],
                grams=est.grams,
                confidence=max(0.0, min(1.0, float(item.get("confidence") or 0.0))),
                source=str(item.get("source") or "unknown"),
                category=est.category or item.get("category"),
                portion_source=est.source,
                portion_range=list(est.range),
            )
        )
    return out


def detect_meal(
    image_b64: str,
    mode: Optional[Any] = None,
    *,
    client: Optional[httpx.Client] = None,
) -> DetectResponse:
    resolved = resolve_mode(mode)
    best_of = resolved == DetectMode.HYBRID or bool(settings.safe_detect)
    logger.info("[ROUTER] start mode=%s best_of=%s", resolved.value, best_of)

    gpt_items: List[Dict[str, Any]] = []
    vision: Dict[str, Any] = {"items": [], "objects": []}
    scores: Dict[str, float] = {}
    picked = "none"

    if best_of:
        gpt_items = filter_detected_items(gpt_extract_foods(image_b64, client=client))
        vision = vision_detect(image_b64, client=client)
        vision_items = filter_detected_items(vision["items"])
        scores = {"gpt": round(score_results(gpt_items), 3), "vision": round(score_results(vision_items), 3)}
        use_gpt = scores["gpt"] >= scores["vision"]
        chosen = gpt_items if use_gpt else vision_items
        picked = "gpt" if use_gpt else "vision"
        logger.info("[BESTOF] gptScore=%.2f visScore=%.2f pick=%s", scores["gpt"], scores["vision"], picked)
    elif resolved == DetectMode.VISION_ONLY:
        vision = vision_detect(image_b64, client=client)
        chosen = filter_detected_items(vision["items"])
        picked = "vision"
    else:
        chosen = filter_detected_items(gpt_extract_foods(image_b64, client=client))
        picked = "gpt"
        if not chosen:
            logger.info("[ROUTER] gpt_empty=true fallback=VISION_ONLY")
            vision = vision_detect(image_b64, client=client)
            chosen = filter_detected_items(vision["items"])
            picked = "vision"

    if not chosen:
        picked = "none"
    plate = estimate_plate(vision.get("objects"))
    items = _with_portions(chosen, plate)
    logger.info(
        "[ROUTER] done mode=%s picked=%s items=%d grams=%s",
        resolved.value, picked, len(items), [i.grams for i in items],
    )
    return DetectResponse(
        mode=resolved,
        picked=picked,
        items=items,
        plate=PlateInfo(area=round(plate.area, 4), confidence=plate.confidence),
        scores=scores,
    )
