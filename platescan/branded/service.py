# -*- coding: utf-8 -*-
"""Branded — barcode first, then fuzzy OFF search, then a generic fallback."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..brands.matcher import similarity
from ..providers import openfoodfacts
from .models import BrandedProductMatch, MatchDebugInfo, ServingNutrition

logger = logging.getLogger(__name__)

SERVING_FACTOR = 0.3
CANDIDATE_MIN = 0.6
ACCEPT_MIN = 0.75
RETURN_MIN_CONFIDENCE = 90
BARCODE_CONFIDENCE = 99
FALLBACK_CONFIDENCE = 50


def serving_nutrition(product: Dict[str, Any]) -> Optional[ServingNutrition]:
    """Per-100 g values scaled to a ~30 g serving; None without nutriments."""
    nutriments = product.get("nutriments")
    if not isinstance(nutriments, dict) or not nutriments:
        return None
    p = openfoodfacts.per100g_from_nutriments(nutriments)
    return ServingNutrition(
        calories=round(p.kcal * SERVING_FACTOR),
        protein=round(p.protein_g * SERVING_FACTOR, 1),
        carbs=round(p.carbs_g * SERVING_FACTOR, 1),
        fat=round(p.fat_g * SERVING_FACTOR, 1),
        fiber=round(p.fiber_g * SERVING_FACTOR, 1),
        sugar=round(p.sugar_g * SERVING_FACTOR, 1),
        sodium=round(p.sodium_mg * SERVING_FACTOR),
    )


def candidate_score(product_name: str, candidate: Dict[str, Any], ocr_text: Optional[str]) -> float:
    name_score = similarity(product_name.lower().strip(), str(candidate.get("product_name") or "").lower().strip())
    brands = str(candidate.get("brands") or "")
    if ocr_text and brands:
        return max(name_score, similarity(ocr_text.lower(), brands.lower()) * 0.8)
    return name_score


def _try_barcode(barcode: str, product_name: str, debug: MatchDebugInfo, client) -> Optional[BrandedProductMatch]:
    try:
        product = openfoodfacts.get_product(barcode, client=client)
    except httpx.HTTPStatusError as exc:
        debug.fallback_reason = f"barcode_api_error_{exc.response.status_code}"
        return None
    except (httpx.HTTPError, ValueError) as exc:
        debug.fallback_reason = f"barcode_exception: {exc}"
        return None
    if not product:
        debug.fallback_reason = "barcode_not_in_database"
        return None
    nutrition = serving_nutrition(product)
    if nutrition is None:
        debug.fallback_reason = "barcode_found_incomplete_nutrition"
        return None
    return BrandedProductMatch(
        found=True,
        confidence=BARCODE_CONFIDENCE,
        product_id=barcode,
        product_name=product.get("product_name") or product_name,
        brand_name=product.get("brands") or None,
        nutrition=nutrition,
        source="barcode",
        debug_info=MatchDebugInfo(
            search_query=barcode,
            candidates_found=1,
            match_method="barcode_exact_match",
            fallback_reason="none_barcode_success",
        ),
    )


def match_branded_product(
    product_name: str,
    ocr_text: Optional[str] = None,
    barcode: Optional[str] = None,
    *,
    client: Optional[httpx.Client] = None,
) -> BrandedProductMatch:
    debug = MatchDebugInfo(search_query=product_name)

    code = (barcode or "").strip()
    if code:
        hit = _try_barcode(code, product_name, debug, client)
        if hit:
            logger.info("[BRANDED] barcode match %s", code)
            return hit
    else:
        debug.fallback_reason = "no_barcode_detected"

    query = f"{product_name} {ocr_text}" if ocr_text else product_name
    debug.search_query = query
    try:
        candidates = openfoodfacts.search_products(query, page_size=10, client=client)
    except (httpx.HTTPError, ValueError) as exc:
        debug.fallback_reason = f"search_error: {exc}"
        candidates = []
    else:
        debug.candidates_found = len(candidates)

    best: Optional[Dict[str, Any]] = None
    best_score = 0.0
    for candidate in candidates:
        if not candidate.get("product_name"):
            continue
        score = candidate_score(product_name, candidate, ocr_text)
        if score > best_score and score > CANDIDATE_MIN:
            best, best_score = candidate, score

    if best is not None and best_score > ACCEPT_MIN:
        nutrition = serving_nutrition(best)
        if nutrition is not None:
            confidence = round(best_score * 100)
            if confidence >= RETURN_MIN_CONFIDENCE:
                logger.info("[BRANDED] fuzzy match %r confidence=%d", best.get("product_name"), confidence)
                return BrandedProductMatch(
                    found=True,
                    confidence=confidence,
                    product_id=str(best.get("code") or "") or None,
                    product_name=best.get("product_name"),
                    brand_name=best.get("brands") or None,
                    nutrition=nutrition,
                    source="fuzzy_match",
                    debug_info=MatchDebugInfo(
                        search_query=query,
                        candidates_found=debug.candidates_found,
                        match_method=f"fuzzy_match_{confidence}%",
                    ),
                )
            debug.fallback_reason = f"confidence_{confidence}%_below_90%"

    debug.match_method = "generic_fallback"
    debug.fallback_reason = debug.fallback_reason or "no_suitable_matches_found"
    logger.info("[BRANDED] fallback for %r: %s", product_name, debug.fallback_reason)
    return BrandedProductMatch(found=False, confidence=FALLBACK_CONFIDENCE, source="fallback", debug_info=debug)
