# -*- coding: utf-8 -*-
"""Portion — plate-area scaled gram estimates for detected meal items."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from .calculator import estimate_portion_from_name

PLATE_NAMES = ("plate", "bowl", "dish", "tray", "platter")
PLATE_MIN_CONFIDENCE = 0.35

# grams for a typical single serving
CATEGORY_BASE_G: Dict[str, float] = {
    "protein": 120,
    "vegetable": 80,
    "fruit": 120,
    "grain": 150,
    "dairy": 150,
    "fat_oil": 10,
    "sauce_condiment": 20,
}

# grams if the item covered the whole plate
CATEGORY_FULL_PLATE_G: Dict[str, float] = {
    "protein": 450,
    "vegetable": 300,
    "fruit": 400,
    "grain": 500,
    "dairy": 400,
    "fat_oil": 40,
    "sauce_condiment": 80,
}

CATEGORY_LIMITS_G: Dict[str, Tuple[float, float]] = {
    "protein": (30, 350),
    "vegetable": (20, 300),
    "fruit": (30, 350),
    "grain": (40, 400),
    "dairy": (20, 400),
    "fat_oil": (3, 40),
    "sauce_condiment": (5, 100),
}

UNIT_G: Dict[str, float] = {
    "egg": 50,
    "slice": 30,
    "piece": 40,
    "strip": 15,
    "nugget": 18,
    "wing": 35,
    "meatball": 30,
    "cookie": 30,
    "pancake": 40,
    "taco": 100,
    "dumpling": 25,
    "tortilla": 45,
    "shrimp": 12,
    "roll": 30,
}

CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("protein", ("chicken", "beef", "pork", "salmon", "fish", "tuna", "egg", "steak", "tofu", "shrimp",
                 "turkey", "meat", "lamb", "bacon", "sausage", "beans", "lentil")),
    ("grain", ("rice", "pasta", "bread", "noodle", "quinoa", "toast", "tortilla", "potato", "oat", "pancake")),
    ("vegetable", ("salad", "broccoli", "carrot", "spinach", "lettuce", "pepper", "tomato", "cucumber",
                   "zucchini", "asparagus", "vegetable", "greens", "kale", "onion", "mushroom", "corn")),
    ("fruit", ("apple", "banana", "orange", "berry", "berries", "grape", "melon", "mango", "pineapple", "fruit")),
    ("dairy", ("yogurt", "cheese", "milk", "cottage")),
    ("fat_oil", ("butter", "oil", "avocado", "mayo")),
    ("sauce_condiment", ("sauce", "dressing", "salsa", "gravy", "ketchup", "mustard", "hummus")),
)

_COUNT_RE = re.compile(r"\b(\d+)\s+([a-z]+)\b")


@dataclass(frozen=True)
class PlateEstimate:
    area: float
    confidence: float

    @property
    def usable(self) -> bool:
        return self.area > 0 and self.confidence > PLATE_MIN_CONFIDENCE


@dataclass(frozen=True)
class PortionEstimate:
    grams: float
    source: str
    range: Tuple[float, float]
    category: Optional[str] = None


def polygon_area(vertices: Optional[Sequence[Sequence[float]]]) -> float:
    """Shoelace area of a polygon given as normalized (x, y) vertices."""
    if not vertices or len(vertices) < 3:
        return 0.0
    pts = np.asarray(vertices, dtype=float)
    x, y = pts[:, 0], pts[:, 1]
    return float(abs(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1))) / 2.0)


def estimate_plate(objects: Optional[Iterable[Mapping[str, Any]]]) -> PlateEstimate:
    best = PlateEstimate(area=0.0, confidence=0.0)
    for obj in objects or []:
        name = str(obj.get("name") or "").lower()
        if not any(p in name for p in PLATE_NAMES):
            continue
        area = polygon_area(obj.get("vertices"))
        if area > best.area:
            best = PlateEstimate(area=area, confidence=float(obj.get("score") or 0.0))
    return best


def category_for(name: str, hint: Optional[str] = None) -> Optional[str]:
    if hint and hint in CATEGORY_BASE_G:
        return hint
    n = (name or "").lower()
    for category, words in CATEGORY_KEYWORDS:
        if any(w in n for w in words):
            return category
    return None


def _singular(word: str) -> Optional[str]:
    for candidate in (word, word[:-2] if word.endswith("es") else "", word[:-1] if word.endswith("s") else ""):
        if candidate in UNIT_G:
            return candidate
    return None


def _count_grams(text: str) -> Optional[float]:
    for m in _COUNT_RE.finditer(text.lower()):
        count, word = int(m.group(1)), m.group(2)
        unit = _singular(word)
        if unit and 0 < count <= 24:
            return count * UNIT_G[unit]
    return None


def _item_area(item: Mapping[str, Any]) -> float:
    area = item.get("area")
    if isinstance(area, (int, float)) and area > 0:
        return float(area)
    return polygon_area(item.get("vertices"))


def _range(grams: float, mode: str) -> Tuple[float, float]:
    spread = 0.15 if mode == "strict" else 0.25
    return (round(grams * (1 - spread)), round(grams * (1 + spread)))


def estimate_portion_v3(
    item: Mapping[str, Any],
    plate_area: Optional[float] = None,
    mode: str = "lenient",
    plate_confidence: float = 1.0,
) -> PortionEstimate:
    """Gram estimate for one detected item.

    Order: count hint, plate-area ratio, category base, then a name heuristic
    for unknown categories in lenient mode.
    """
    name = str(item.get("name") or "")
    category = category_for(name, item.get("category"))

    hint_text = " ".join(str(x) for x in (item.get("portion_hint"), name) if x)
    counted = _count_grams(hint_text)
    if counted:
        return PortionEstimate(grams=float(counted), source="count", range=_range(counted, mode), category=category)

    item_area = _item_area(item)
    if (
        category
        and plate_area
        and plate_area > 0
        and plate_confidence > PLATE_MIN_CONFIDENCE
        and item_area > 0
    ):
        lo, hi = CATEGORY_LIMITS_G[category]
        grams = float(np.clip(CATEGORY_FULL_PLATE_G[category] * min(item_area / plate_area, 1.0), lo, hi))
        grams = float(round(grams))
        return PortionEstimate(grams=grams, source="area", range=_range(grams, mode), category=category)

    if category:
        grams = CATEGORY_BASE_G[category]
        return PortionEstimate(grams=float(grams), source="base", range=_range(grams, mode), category=category)

    if mode != "strict":
        guessed = estimate_portion_from_name(name)
        if guessed.grams > 0:
            return PortionEstimate(
                grams=guessed.grams, source="heuristic", range=_range(guessed.grams, mode), category=None
            )
        return PortionEstimate(grams=100.0, source="heuristic", range=_range(100.0, mode), category=None)

    return PortionEstimate(grams=100.0, source="base", range=_range(100.0, mode), category=None)
