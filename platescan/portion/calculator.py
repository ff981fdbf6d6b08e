# -*- coding: utf-8 -*-
"""Portion — serving-size parsing and per-portion scaling."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import numpy as np

from ..providers.models import Per100g

NutritionLike = Union[Per100g, Mapping[str, Any]]

MIN_PORTION_G = 5
MAX_PORTION_G = 250

_GRAMS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*g(?:rams?)?\b")
_PER_GRAMS_RE = re.compile(r"per\s+(\d+(?:\.\d+)?)\s*g\b")

# grams per one unit
UNIT_GRAMS: Tuple[Tuple[str, float], ...] = (
    ("bar", 40),
    ("piece", 25),
    ("cookie", 30),
    ("cracker", 10),
    ("cup", 240),
    ("bottle", 500),
    ("can", 355),
    ("serving", 30),
    ("portion", 30),
    ("pack", 25),
    ("sachet", 15),
)

CATEGORY_GRAMS: Tuple[Tuple[re.Pattern, float], ...] = (
    (re.compile(r"juice|drink|soda|water|milk|tea|coffee"), 240),
    (re.compile(r"cereal|flakes|granola|muesli|oats"), 30),
    (re.compile(r"yogurt|yoghurt"), 150),
    (re.compile(r"chips|crackers|cookies|bar"), 25),
    (re.compile(r"butter|jam|peanut butter|nutella"), 15),
    (re.compile(r"apple|banana|orange|fruit"), 150),
    (re.compile(r"nuts|almonds|walnuts"), 30),
    (re.compile(r"rice|quinoa|pasta"), 100),
    (re.compile(r"vegetables|salad"), 80),
)

_NUTRIENT_KEYS = ("kcal", "protein_g", "carbs_g", "fat_g", "fiber_g", "sugar_g", "sodium_mg")
_INT_KEYS = {"kcal", "sodium_mg"}


@dataclass(frozen=True)
class PortionInfo:
    grams: float
    is_estimated: bool
    source: str
    confidence: int = 0
    display: Optional[str] = None


_NONE = PortionInfo(grams=0, is_estimated=True, source="estimated", confidence=0)


def _as_dict(values: Optional[NutritionLike]) -> Dict[str, float]:
    if values is None:
        return {}
    raw = values.model_dump() if isinstance(values, Per100g) else dict(values)
    out: Dict[str, float] = {}
    for k in _NUTRIENT_KEYS:
        v = raw.get(k)
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            out[k] = float(v)
    return out


def parse_serving_size(serving: Optional[str]) -> float:
    """Grams for a serving string such as ``"1 bar (40 g)"`` or ``"2 cookies"``; 0 when unknown."""
    if not serving or not isinstance(serving, str):
        return 0.0
    s = serving.lower().strip()
    m = _GRAMS_RE.search(s)
    if m:
        return float(m.group(1))
    for unit, grams in UNIT_GRAMS:
        if re.search(rf"\b{unit}", s):
            qty = re.search(rf"(\d+(?:\.\d+)?)\s*{unit}", s)
            return (float(qty.group(1)) if qty else 1.0) * grams
    return 0.0


def extract_declared_portion(ocr_text: Optional[str]) -> PortionInfo:
    for line in (ocr_text or "").splitlines():
        lower = line.lower().strip()
        if "serving size" in lower or "portion size" in lower:
            grams = parse_serving_size(line)
            if grams > 0:
                return PortionInfo(grams=grams, is_estimated=False, source="ocr_declared", confidence=1)
        m = _PER_GRAMS_RE.search(lower)
        if m:
            return PortionInfo(grams=float(m.group(1)), is_estimated=False, source="ocr_declared", confidence=1)
    return _NONE


def _ratio_portion(ratio: float) -> Optional[PortionInfo]:
    grams = round(ratio * 100)
    if MIN_PORTION_G <= grams <= MAX_PORTION_G:
        return PortionInfo(
            grams=float(round(grams / 5) * 5), is_estimated=False, source="ocr_inferred_ratio", confidence=1
        )
    return None


def infer_portion_from_ratio(per100g: Optional[NutritionLike], per_serving: Optional[NutritionLike]) -> PortionInfo:
    base = _as_dict(per100g)
    serving = _as_dict(per_serving)
    if not base or not serving:
        return _NONE

    if base.get("kcal", 0) > 0 and serving.get("kcal", 0) > 0:
        hit = _ratio_portion(serving["kcal"] / base["kcal"])
        if hit:
            return hit

    ratios = [
        serving[k] / base[k]
        for k in ("protein_g", "carbs_g", "fat_g")
        if base.get(k, 0) > 0 and serving.get(k, 0) > 0
    ]
    if ratios:
        # upper median, matching an index-based pick on even counts
        ordered = np.sort(np.asarray(ratios, dtype=float))
        hit = _ratio_portion(float(ordered[len(ordered) // 2]))
        if hit:
            return hit
    return _NONE


def estimate_portion_from_name(name: Optional[str]) -> PortionInfo:
    n = (name or "").lower()
    if not n:
        return _NONE
    for pattern, grams in CATEGORY_GRAMS:
        if pattern.search(n):
            return PortionInfo(grams=float(grams), is_estimated=True, source="model_estimate", confidence=0)
    return _NONE


def parse_portion_grams(
    product: Optional[Mapping[str, Any]] = None,
    ocr_text: Optional[str] = None,
    user_preference: Optional[Mapping[str, Any]] = None,
    default: float = 30,
) -> PortionInfo:
    """Resolve a portion in precedence order.

    user_set, ocr_declared, db_declared, ocr_inferred_ratio, model_estimate,
    then the estimated default.
    """
    pref_grams = float((user_preference or {}).get("grams") or 0)
    if pref_grams > 0:
        return PortionInfo(
            grams=pref_grams,
            is_estimated=False,
            source="user_set",
            confidence=2,
            display=(user_preference or {}).get("display"),
        )

    if ocr_text:
        declared = extract_declared_portion(ocr_text)
        if declared.grams > 0:
            return declared

    p = product or {}
    serving = p.get("serving_size")
    if serving:
        grams = parse_serving_size(str(serving))
        if grams > 0:
            return PortionInfo(grams=grams, is_estimated=False, source="db_declared", confidence=2)

    inferred = infer_portion_from_ratio(p.get("per100g"), p.get("per_serving"))
    if inferred.grams > 0:
        return inferred

    guessed = estimate_portion_from_name(p.get("name") or p.get("product_name") or "")
    if guessed.grams > 0:
        return guessed

    return PortionInfo(grams=float(default), is_estimated=True, source="estimated", confidence=0)


def to_per_portion(per100g: Optional[NutritionLike], grams: float) -> Dict[str, float]:
    base = _as_dict(per100g)
    if not base or grams is None or grams <= 0:
        return {}
    factor = float(grams) / 100.0
    out: Dict[str, float] = {}
    for k, v in base.items():
        if not v:
            continue
        out[k] = float(round(v * factor)) if k in _INT_KEYS else round(v * factor, 1)
    return out
