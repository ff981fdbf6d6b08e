# -*- coding: utf-8 -*-
"""Brands — Levenshtein similarity against the brand lexicon."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .lexicon import BRAND_LEXICON, MULTI_WORD_BRANDS

_MIN_FUZZY_LEN = 4


@dataclass(frozen=True)
class BrandMatch:
    brand: str
    score: float
    exact: bool
    token: str


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit insert/delete/substitute costs."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if len(a) < len(b):
        a, b = b, a

    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur[j] = min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost)
        prev = cur
    return prev[-1]


def similarity(a: str, b: str) -> float:
    longer, shorter = (a, b) if len(a) >= len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - levenshtein(longer, shorter)) / len(longer)


def match_brand(
    token: str,
    threshold: float = 0.8,
    *,
    candidates: Optional[Iterable[str]] = None,
) -> Optional[BrandMatch]:
    """Match a normalized token (or n-gram) against the lexicon.

    Tokens shorter than four characters only match exactly.
    """
    t = (token or "").strip().lower()
    if not t:
        return None
    pool = BRAND_LEXICON if candidates is None else frozenset(candidates)
    if t in pool:
        return BrandMatch(brand=t, score=1.0, exact=True, token=t)
    if len(t) < _MIN_FUZZY_LEN:
        return None

    best: Optional[BrandMatch] = None
    for brand in pool:
        # Length gap alone already rules the entry out.
        if abs(len(brand) - len(t)) > max(len(brand), len(t)) * (1 - threshold):
            continue
        score = similarity(t, brand)
        if score >= threshold and (best is None or score > best.score):
            best = BrandMatch(brand=brand, score=round(score, 3), exact=False, token=t)
    return best


def find_brands(tokens: Sequence[str], threshold: float = 0.8) -> List[BrandMatch]:
    """Scan unigrams, bigrams and trigrams for brand evidence.

    Longer n-grams are tried first; a multi-word match consumes its tokens.
    Results are de-duplicated by brand in first-seen order.
    """
    out: List[BrandMatch] = []
    seen = set()
    i = 0
    while i < len(tokens):
        matched: Optional[BrandMatch] = None
        width = 1
        for n in (3, 2):
            if i + n > len(tokens):
                continue
            gram = " ".join(tokens[i : i + n])
            matched = match_brand(gram, threshold, candidates=MULTI_WORD_BRANDS)
            if matched:
                width = n
                break
        if matched is None:
            matched = match_brand(tokens[i], threshold)
        if matched and matched.brand not in seen:
            seen.add(matched.brand)
            out.append(matched)
        i += width
    return out
