# -*- coding: utf-8 -*-
"""Health — product normalization, health flags/score and meal quality scoring."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import (
    FlagLevel,
    HealthData,
    HealthFlag,
    HealthReport,
    NormalizedProduct,
    ProductNutritionFacts,
)

logger = logging.getLogger(__name__)

BASE_SCORE = 70
LEVEL_DELTA = {FlagLevel.danger: -20, FlagLevel.warning: -10, FlagLevel.ok: 10}

KJ_PER_KCAL = 4.184
SODIUM_PER_SALT = 0.393

GENERAL_TIPS = [
    "Focus on whole, unprocessed foods when possible",
    "Check ingredient lists for hidden additives",
    "Consider portion sizes and frequency of consumption",
]

_TAG_PREFIX_RE = re.compile(r"^(?:en|fr|es):")
_INGREDIENT_SPLIT_RE = re.compile(r"[,;•·()]")
_SERVING_RE = re.compile(r"([\d.]+)\s*([a-zA-Z]+)?")

_COLOR_RE = re.compile(
    r"(red\s?40|allura\s?red|yellow\s?5|tartrazine|yellow\s?6|sunset\s?yellow|blue\s?1|blue\s?2|green\s?3)",
    re.IGNORECASE,
)
_PRESERVATIVE_RE = re.compile(r"(bha|bht|tbhq|sodium\s+benzoate|potassium\s+sorbate)", re.IGNORECASE)
_SWEETENER_RE = re.compile(r"(aspartame|acesulfame\s*k|sucralose|saccharin)", re.IGNORECASE)

PROCESSING_PENALTIES = {
    "ultra-processed": (40, "Ultra-processed food"),
    "highly processed": (30, "Highly processed food"),
    "processed": (15, "Processed food"),
}

# (flag keys, penalty, reason); either key variant triggers the penalty
ANALYSIS_PENALTIES = (
    (("artificial_sweeteners", "contains_artificial_sweeteners"), 15, "Contains artificial sweeteners"),
    (("high_sugar", "excessive_sugar"), 20, "High sugar content"),
    (("high_sodium", "excessive_sodium"), 15, "High sodium content"),
    (("trans_fats", "contains_trans_fats"), 25, "Contains trans fats"),
    (("artificial_colors", "contains_artificial_colors"), 10, "Contains artificial colors"),
    (("preservatives", "contains_preservatives"), 10, "Contains preservatives"),
    (("gmo", "contains_gmo"), 10, "Contains GMO ingredients"),
)


def _num(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def _to_mg(grams: Optional[float]) -> Optional[float]:
    return None if grams is None else float(round(grams * 1000))


def _salt_to_sodium_mg(grams: Optional[float]) -> Optional[float]:
    return None if grams is None else float(round(grams * 1000 * SODIUM_PER_SALT))


def _strip_tags(tags: Iterable[Any]) -> List[str]:
    out = []
    for tag in tags or []:
        cleaned = _TAG_PREFIX_RE.sub("", str(tag)).lower()
        if cleaned:
            out.append(cleaned)
    return out


def split_ingredients_list(text: Optional[str]) -> List[str]:
    if not text:
        return []
    return [s.strip() for s in _INGREDIENT_SPLIT_RE.split(text) if s.strip()]


def _ingredients_text(product: Mapping[str, Any]) -> str:
    for key in ("ingredients_text_en", "ingredients_text", "ingredients_text_es", "ingredients_text_fr"):
        value = product.get(key)
        if value:
            return str(value)
    return ""


def _ingredient_names(product: Mapping[str, Any], text: str) -> List[str]:
    raw = product.get("ingredients")
    if isinstance(raw, list):
        names = []
        for ing in raw:
            if isinstance(ing, dict):
                name = ing.get("text") or ing.get("id")
            else:
                name = ing
            if name:
                names.append(str(name))
        return names
    return split_ingredients_list(text)


def normalize_product(off_product: Optional[Mapping[str, Any]], barcode: str = "") -> Dict[str, Any]:
    """Stable product shape shared by the scan and logging flows.

    Accepts either an Open Food Facts product or the ``{"product": ...}``
    envelope. Nutrition is per serving when the label declares it that way,
    per 100 g otherwise.
    """
    wrapped = off_product or {}
    product: Mapping[str, Any] = wrapped.get("product") if isinstance(wrapped.get("product"), dict) else wrapped

    text = _ingredients_text(product)
    ingredients = _ingredient_names(product, text)
    additives = _strip_tags(product.get("additives_tags") or product.get("additives_original_tags") or [])
    allergens = _strip_tags(product.get("allergens_tags") or [])

    nutriments = product.get("nutriments") or {}
    per_serving = product.get("nutrition_data_per") == "serving"

    def pick(base: str) -> Optional[float]:
        if per_serving:
            value = _num(nutriments.get(f"{base}_serving"))
            if value is not None:
                return value
        return _num(nutriments.get(f"{base}_100g"))

    kcal = pick("energy-kcal")
    if kcal is None:
        kj = pick("energy")
        kcal = kj / KJ_PER_KCAL if kj is not None else None

    sodium_mg = _to_mg(pick("sodium"))
    if sodium_mg is None:
        sodium_mg = _salt_to_sodium_mg(pick("salt"))

    serving_size = None
    m = _SERVING_RE.search(str(product.get("serving_size") or "").strip())
    if m:
        try:
            amount = float(m.group(1))
        except ValueError:
            amount = 0.0
        if amount:
            unit = (m.group(2) or "").lower() or ("serving" if per_serving else "100g")
            serving_size = f"{amount:g} {unit}"

    nutrition = ProductNutritionFacts(
        calories=float(round(kcal)) if kcal is not None else None,
        protein_g=pick("proteins"),
        carbs_g=pick("carbohydrates"),
        fat_g=pick("fat"),
        sugar_g=pick("sugars"),
        fiber_g=pick("fiber"),
        sodium_mg=sodium_mg,
        satfat_g=pick("saturated-fat"),
        serving_size=serving_size,
    )
    brands = str(product.get("brands") or "")
    normalized = NormalizedProduct(
        name=str(product.get("product_name") or product.get("generic_name") or "Unknown product"),
        brand=brands.split(",")[0].strip() or None,
        barcode=barcode or str(product.get("code") or "") or None,
        image_url=product.get("image_front_small_url") or product.get("image_url") or None,
        ingredients_text=text,
        ingredients=ingredients,
        additives=additives,
        allergens=allergens,
        nutrition=nutrition,
        per_serving=per_serving,
    )
    normalized.health = compute_health(ingredients, text, nutrition.model_dump(), additives)
    return normalized.model_dump(mode="json")


def compute_health(
    ingredients: List[str],
    ingredients_text: Optional[str],
    nutrition: Optional[Mapping[str, Any]],
    additives: Optional[List[str]] = None,
) -> HealthData:
    n = nutrition or {}
    lower = (ingredients_text or " ".join(ingredients or [])).lower()
    flags: List[HealthFlag] = []

    sugar = _num(n.get("sugar_g"))
    if sugar is not None and sugar >= 18:
        flags.append(
            HealthFlag(
                id="high_sugar",
                level=FlagLevel.danger if sugar >= 25 else FlagLevel.warning,
                label="High Sugar",
                description=f"{sugar:g}g sugar per serving",
            )
        )

    if _COLOR_RE.search(lower):
        flags.append(
            HealthFlag(
                id="artificial_colors",
                level=FlagLevel.warning,
                label="Artificial Colors",
                description="Contains Red 40, Yellow 5/6, Blue 1, or other artificial colors",
            )
        )

    if _PRESERVATIVE_RE.search(lower):
        flags.append(
            HealthFlag(
                id="preservatives",
                level=FlagLevel.warning,
                label="Preservatives of Concern",
                description="Contains BHA, BHT, TBHQ, or other concerning preservatives",
            )
        )

    if _SWEETENER_RE.search(lower):
        flags.append(
            HealthFlag(
                id="artificial_sweeteners",
                level=FlagLevel.warning,
                label="Artificial Sweeteners",
                description="Contains aspartame, sucralose, or other artificial sweeteners",
            )
        )

    sodium = _num(n.get("sodium_mg"))
    if sodium is not None and sodium > 800:
        flags.append(
            HealthFlag(
                id="high_sodium",
                level=FlagLevel.danger if sodium > 1200 else FlagLevel.warning,
                label="High Sodium",
                description=f"{sodium:g}mg sodium per serving",
            )
        )

    if "whole grain" in lower and (sugar is None or sugar < 10):
        flags.append(
            HealthFlag(id="whole_grains", level=FlagLevel.ok, label="Whole Grains",
                       description="Contains whole grain ingredients")
        )

    if sodium is not None and sodium < 140:
        flags.append(HealthFlag(id="low_sodium", level=FlagLevel.ok, label="Low Sodium", description="Low in sodium"))

    score: Optional[int] = None
    if any(v is not None for v in (_num(n.get("calories")), sugar, sodium)):
        raw = BASE_SCORE + sum(LEVEL_DELTA[f.level] for f in flags)
        score = max(0, min(100, raw))

    return HealthData(score=score, flags=flags)


def summarize(flags: List[HealthFlag], score: Optional[int]) -> str:
    if score is None:
        return "Unable to provide health assessment - insufficient product information"
    danger = sum(1 for f in flags if f.level == FlagLevel.danger)
    warnings = sum(1 for f in flags if f.level == FlagLevel.warning)
    if danger > 2:
        return "This product contains multiple concerning ingredients that may impact your health."
    if danger > 0:
        return "This product contains some concerning ingredients. Consume in moderation."
    if warnings > 3:
        return "This product has several ingredients that warrant caution."
    return "This product is relatively neutral from a health perspective."


def recommend(flags: List[HealthFlag]) -> List[str]:
    ids = {f.id for f in flags}
    out = []
    if "high_sugar" in ids:
        out.append("Consider limiting portion size due to high sugar content")
    if "artificial_colors" in ids:
        out.append("Look for products without artificial colors when possible")
    if "preservatives" in ids:
        out.append("Choose fresh or minimally processed alternatives when available")
    return out or list(GENERAL_TIPS)


def fallback_report(evidence: Optional[Mapping[str, Any]] = None) -> HealthReport:
    return HealthReport(
        product_name="Unknown product",
        score=None,
        summary="We couldn't confidently identify this product",
        recommendations=list(GENERAL_TIPS),
        evidence=dict(evidence or {}),
        fallback=True,
    )


def health_report(
    product: Optional[Mapping[str, Any]],
    evidence: Optional[Mapping[str, Any]] = None,
) -> HealthReport:
    """Health report for a normalized product.

    Without a product there is no strong evidence and the fallback report
    with general tips is returned.
    """
    if not product:
        logger.info("[HEALTH] low confidence, evidence=%s", dict(evidence or {}))
        return fallback_report(evidence)

    health = product.get("health") or {}
    flags = [HealthFlag.model_validate(f) for f in health.get("flags") or []]
    score = health.get("score")
    return HealthReport(
        product_name=str(product.get("name") or "Unknown product"),
        brand=product.get("brand"),
        score=score,
        summary=summarize(flags, score),
        flags=flags,
        recommendations=recommend(flags),
        evidence=dict(evidence or {}),
    )


def _analysis(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("[MEAL] ingredient_analysis is not valid JSON")
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def rating_for(score: int) -> str:
    if score >= 80:
        return "Excellent"
    if score >= 50:
        return "Average"
    return "Poor"


def score_meal(meal: Mapping[str, Any]) -> Dict[str, Any]:
    """Quality score for a logged meal: ``{score, rating_text, penalties}``."""
    penalties: List[str] = []
    existing = _num(meal.get("quality_score"))
    if existing is not None:
        score = int(round(max(0.0, min(100.0, existing))))
        return {"score": score, "rating_text": rating_for(score), "penalties": penalties}

    score = 100
    level = str(meal.get("processing_level") or "").lower()
    if level in PROCESSING_PENALTIES:
        amount, reason = PROCESSING_PENALTIES[level]
        score -= amount
        penalties.append(reason)

    analysis = _analysis(meal.get("ingredient_analysis"))
    for keys, amount, reason in ANALYSIS_PENALTIES:
        if any(analysis.get(k) for k in keys):
            score -= amount
            penalties.append(reason)
    flagged = analysis.get("flagged_ingredients")
    if isinstance(flagged, list):
        score -= 5 * len(flagged)
        penalties.append(f"{len(flagged)} flagged ingredients")

    reasons = meal.get("quality_reasons")
    if isinstance(reasons, list):
        score -= 8 * len(reasons)
        penalties.extend(str(r) for r in reasons)

    score = max(0, min(100, score))
    return {"score": score, "rating_text": rating_for(score), "penalties": penalties}
