# -*- coding: utf-8 -*-
"""Barcode — lookup chain."""

from __future__ import annotations

import logging
import re
import sqlite3
from typing import Optional

import httpx

from ..cache import nutrition_store
from ..providers import openfoodfacts, usda
from ..providers.models import Per100g
from ..vault.models import VaultItemIn
from ..vault.storage import portion_defs_from_serving, upsert_item
from .models import BarcodeLookupResult, BarcodeProduct, ProductNutrition

logger = logging.getLogger(__name__)

_BARCODE_RE = re.compile(r"^\d{8,14}$")
_SERVING_GRAMS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*g\b", re.IGNORECASE)

NOT_FOUND_GLOBAL = (
    "Product not found in US or international databases. "
    "This product may not be available in our nutrition database."
)
NOT_FOUND_LOCAL = (
    "Product not found in US database. "
    "Try enabling global search in settings for international products."
)


def clean_barcode(raw: Optional[str]) -> str:
    code = re.sub(r"\s+", "", raw or "")
    if not code:
        raise ValueError("Barcode is required")
    if not _BARCODE_RE.match(code):
        raise ValueError("Invalid barcode format. Must be 8-14 digits.")
    return code


def _nutrition(per100g: Per100g) -> ProductNutrition:
    r = per100g.rounded()
    return ProductNutrition(
        calories=r.kcal,
        protein=r.protein_g,
        fat=r.fat_g,
        carbs=r.carbs_g,
        sugar=r.sugar_g,
        fiber=r.fiber_g,
        sodium=r.sodium_mg,
    )


def _from_off(code: str, client: Optional[httpx.Client]) -> Optional[BarcodeProduct]:
    payload = openfoodfacts.get_product_payload(code, client=client)
    if not payload:
        return None
    if str(payload.get("code") or "") != code:
        logger.warning("[BARCODE] OFF returned code=%s for %s, ignoring", payload.get("code"), code)
        return None
    p = payload["product"]
    ingredients = openfoodfacts.ingredients_text(p)
    return BarcodeProduct(
        name=p.get("product_name") or "Unknown Product",
        brand=p.get("brands") or "",
        barcode=code,
        nutrition=_nutrition(openfoodfacts.per100g_from_nutriments(p.get("nutriments"))),
        image=p.get("image_front_url") or p.get("image_url"),
        source="open_food_facts",
        region=openfoodfacts.region_from_countries(p.get("countries")),
        serving_size=p.get("serving_size") or None,
        ingredients_text=ingredients,
        ingredients_available=bool(ingredients),
    )


def _from_usda(code: str, client: Optional[httpx.Client]) -> Optional[BarcodeProduct]:
    food = usda.search_by_gtin(code, client=client)
    if not food:
        return None
    ingredients = str(food.get("ingredients") or "")
    serving = None
    if food.get("servingSize"):
        serving = f"{food.get('servingSize')} {food.get('servingSizeUnit') or 'g'}".strip()
    return BarcodeProduct(
        name=food.get("description") or "Unknown Product",
        brand=food.get("brandOwner") or "",
        barcode=code,
        nutrition=_nutrition(usda.per100g_from_food(food)),
        source="usda",
        region="US",
        serving_size=serving,
        ingredients_text=ingredients,
        ingredients_available=bool(ingredients),
    )


def _remember(product: BarcodeProduct) -> None:
    nutrition_store.set(f"barcode:{product.barcode}", product)
    serving_g = None
    if product.serving_size:
        m = _SERVING_GRAMS_RE.search(product.serving_size)
        serving_g = float(m.group(1)) if m else None
    item = VaultItemIn(
        canonical_key=f"barcode:{product.barcode}",
        provider=product.source,
        provider_ref=product.barcode,
        name=product.name,
        brand=product.brand or None,
        confidence=0.95,
        per100g=product.nutrition.to_per100g(),
        portion_defs=portion_defs_from_serving(serving_g),
        flags={"generic": False, "barcode": True},
        region=product.region if product.region in {"US", "CA", "UK"} else "US",
        ingredients_text=product.ingredients_text or None,
    )
    try:
        upsert_item(item)
    except sqlite3.Error as exc:
        logger.warning("[BARCODE][ERROR] vault upsert failed for %s: %s", product.barcode, exc)


def lookup_barcode(
    raw: str,
    *,
    enable_global_search: bool = True,
    client: Optional[httpx.Client] = None,
) -> BarcodeLookupResult:
    """Resolve a barcode; raises ValueError on a malformed code."""
    code = clean_barcode(raw)
    scope = "global" if enable_global_search else "local"

    cached = nutrition_store.get(f"barcode:{code}")
    if isinstance(cached, BarcodeProduct):
        logger.info("[BARCODE] store hit %s", code)
        return BarcodeLookupResult(success=True, product=cached, search_scope=scope, cached=True)

    product: Optional[BarcodeProduct] = None
    if enable_global_search:
        try:
            product = _from_off(code, client)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[BARCODE][ERROR] OpenFoodFacts lookup failed for %s: %s", code, exc)

    if product is None:
        try:
            product = _from_usda(code, client)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("[BARCODE][ERROR] USDA lookup failed for %s: %s", code, exc)

    if product is None:
        logger.info("[BARCODE] not found %s scope=%s", code, scope)
        return BarcodeLookupResult(
            success=False,
            search_scope=scope,
            message=NOT_FOUND_GLOBAL if enable_global_search else NOT_FOUND_LOCAL,
            suggestions=[
                "Check that the barcode number is correct",
                "Try scanning the barcode again with better lighting",
                "Contact support if this product should be available"
                if enable_global_search
                else "Enable global search in settings for international products",
            ],
        )

    logger.info("[BARCODE] %s resolved via %s: %s", code, product.source, product.name)
    _remember(product)
    return BarcodeLookupResult(success=True, product=product, search_scope=scope)
