# -*- coding: utf-8 -*-
"""Providers — USDA FoodData Central branded food search."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from .models import Per100g

ENERGY = 1008
PROTEIN = 1003
FAT = 1004
CARBS = 1005
FIBER = 1079
SUGAR = 2000
SODIUM = 1093


def search_by_gtin(barcode: str, *, client: Optional[httpx.Client] = None) -> Optional[Dict[str, Any]]:
    """First branded food whose ``gtinUpc`` equals the barcode."""
    if not settings.usda_api_key:
        raise ValueError("USDA_API_KEY is not configured")
    params = {
        "query": barcode,
        "gtinUpc": barcode,
        "dataType": "Branded",
        "pageSize": 5,
        "api_key": settings.usda_api_key,
    }
    http = client or httpx.Client(timeout=settings.http_timeout)
    try:
        resp = http.get(f"{settings.usda_base_url}/foods/search", params=params)
        resp.raise_for_status()
        data = resp.json()
    finally:
        if client is None:
            http.close()

    foods: List[Dict[str, Any]] = (data.get("foods") or []) if isinstance(data, dict) else []
    for food in foods:
        if isinstance(food, dict) and str(food.get("gtinUpc") or "") == barcode:
            return food
    return None


def nutrient_value(food: Dict[str, Any], nutrient_id: int) -> float:
    for n in food.get("foodNutrients") or []:
        if not isinstance(n, dict):
            continue
        if n.get("nutrientId") == nutrient_id:
            try:
                return float(n.get("value") or 0.0)
            except (TypeError, ValueError):
                return 0.0
    return 0.0


def per100g_from_food(food: Dict[str, Any]) -> Per100g:
    return Per100g(
        kcal=max(0.0, nutrient_value(food, ENERGY)),
        protein_g=max(0.0, nutrient_value(food, PROTEIN)),
        carbs_g=max(0.0, nutrient_value(food, CARBS)),
        fat_g=max(0.0, nutrient_value(food, FAT)),
        fiber_g=max(0.0, nutrient_value(food, FIBER)),
        sugar_g=max(0.0, nutrient_value(food, SUGAR)),
        sodium_mg=max(0.0, nutrient_value(food, SODIUM)),
    )
