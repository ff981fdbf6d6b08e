# -*- coding: utf-8 -*-
"""OCR — normalize label text into tokens and brand evidence."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..brands.matcher import BrandMatch, find_brands

STOP_WORDS = frozenset(
    {
        "original", "natural", "flavored", "sweet", "crunchy", "family", "size",
        "net", "wt", "gluten", "free", "non", "gmo", "keto", "certified", "made", "with",
    }
)

CANDY_KEYWORDS = frozenset({"candy", "gummy", "gummies", "taffy", "lollipop"})

_PUNCT_RE = re.compile(r"[^\w\s]", re.UNICODE)
_SPACE_RE = re.compile(r"\s+")
_BARCODE_RE = re.compile(r"\b\d{8,14}\b")

_NUTRITION_PATTERNS = {
    "calories": re.compile(r"calories?\s*:?\s*(\d+)", re.IGNORECASE),
    "protein": re.compile(r"protein\s*:?\s*(\d+(?:\.\d+)?)\s*g", re.IGNORECASE),
    "carbs": re.compile(r"(?:carbohydrates?|carbs?)\s*:?\s*(\d+(?:\.\d+)?)\s*g", re.IGNORECASE),
    "fat": re.compile(r"fat\s*:?\s*(\d+(?:\.\d+)?)\s*g", re.IGNORECASE),
    "fiber": re.compile(r"fib(?:er|re)\s*:?\s*(\d+(?:\.\d+)?)\s*g", re.IGNORECASE),
    "sugar": re.compile(r"sugars?\s*:?\s*(\d+(?:\.\d+)?)\s*g", re.IGNORECASE),
    "sodium": re.compile(r"sodium\s*:?\s*(\d+(?:\.\d+)?)\s*mg", re.IGNORECASE),
}


@dataclass
class LabelTokens:
    text: str
    tokens: List[str] = field(default_factory=list)
    brand_matches: List[BrandMatch] = field(default_factory=list)
    has_candy: bool = False

    @property
    def brand_tokens(self) -> List[str]:
        return [m.brand for m in self.brand_matches]

    @property
    def has_brand_evidence(self) -> bool:
        return bool(self.brand_matches)


def normalize_text(raw: Optional[str]) -> str:
    lowered = (raw or "").lower().replace("_", " ")
    return _SPACE_RE.sub(" ", _PUNCT_RE.sub(" ", lowered)).strip()


def tokenize_label(raw: Optional[str]) -> LabelTokens:
    normalized = normalize_text(raw)
    tokens = [t for t in normalized.split(" ") if t and t not in STOP_WORDS]
    return LabelTokens(
        text=raw or "",
        tokens=tokens,
        brand_matches=find_brands(tokens),
        has_candy=any(t in CANDY_KEYWORDS for t in tokens),
    )


def extract_nutrition_facts(text: Optional[str]) -> Dict[str, float]:
    """Pull per-serving values off a printed nutrition facts panel."""
    out: Dict[str, float] = {}
    if not text:
        return out
    for key, pattern in _NUTRITION_PATTERNS.items():
        m = pattern.search(text)
        if m:
            out[key] = float(m.group(1))
    return out


def find_barcode(text: Optional[str]) -> Optional[str]:
    m = _BARCODE_RE.search(text or "")
    return m.group(0) if m else None
