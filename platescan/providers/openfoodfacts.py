# -*- coding: utf-8 -*-
"""Providers — OpenFoodFacts product and search API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from .models import Per100g, first_number

logger = logging.getLogger(__name__)


def _client(client: Optional[httpx.Client]) -> httpx.Client:
    return client or httpx.Client(
        timeout=settings.http_timeout,
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
    )


def get_product_payload(barcode: str, *, client: Optional[httpx.Client] = None) -> Optional[Dict[str, Any]]:
    """Raw ``/api/v0/product`` payload when ``status == 1``, else None."""
    http = _client(client)
    try:
        resp = http.get(
            f"{settings.off_base_url}/api/v0/product/{barcode}.json",
            headers={"User-Agent": settings.user_agent},
        )
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        data = resp.json()
    finally:
        if client is None:
            http.close()
    if not isinstance(data, dict) or data.get("status") != 1 or not isinstance(data.get("product"), dict):
        return None
    return data


def get_product(barcode: str, *, client: Optional[httpx.Client] = None) -> Optional[Dict[str, Any]]:
    data = get_product_payload(barcode, client=client)
    if not data:
        return None
    product = dict(data["product"])
    product.setdefault("code", data.get("code") or barcode)
    return product


def search_products(
    terms: str,
    *,
    page_size: int = 10,
    categories: Optional[str] = None,
    client: Optional[httpx.Client] = None,
) -> List[Dict[str, Any]]:
    params: Dict[str, Any] = {
        "search_terms": terms,
        "search_simple": 1,
        "action": "process",
        "json": 1,
        "page_size": int(page_size),
    }
    if categories:
        params["categories"] = categories
    http = _client(client)
    try:
        resp = http.get(f"{settings.off_base_url}/cgi/search.pl", params=params)
        resp.raise_for_status()
        data = resp.json()
    finally:
        if client is None:
            http.close()
    products = data.get("products") if isinstance(data, dict) else None
    if not isinstance(products, list):
        return []
    logger.debug("[OFF][SEARCH] terms=%r hits=%d", terms, len(products))
    return [p for p in products if isinstance(p, dict)]


def per100g_from_nutriments(nutriments: Optional[Dict[str, Any]]) -> Per100g:
    n = nutriments or {}
    sodium_g = first_number(n, "sodium_100g")
    if sodium_g:
        sodium_mg = sodium_g * 1000.0
    else:
        salt_g = first_number(n, "salt_100g")
        sodium_mg = salt_g * 400.0 if salt_g else 0.0
    return Per100g(
        kcal=max(0.0, first_number(n, "energy-kcal_100g", "energy_kcal_100g", "energy-kcal") or 0.0),
        protein_g=max(0.0, first_number(n, "proteins_100g", "protein_100g") or 0.0),
        carbs_g=max(0.0, first_number(n, "carbohydrates_100g") or 0.0),
        fat_g=max(0.0, first_number(n, "fat_100g") or 0.0),
        fiber_g=max(0.0, first_number(n, "fiber_100g") or 0.0),
        sugar_g=max(0.0, first_number(n, "sugars_100g") or 0.0),
        sodium_mg=max(0.0, sodium_mg),
    )


def region_from_countries(countries: Optional[str]) -> str:
    c = countries or ""
    if "United States" in c:
        return "US"
    if "Canada" in c:
        return "CA"
    if "United Kingdom" in c:
        return "UK"
    return "International"


def ingredients_text(product: Dict[str, Any]) -> str:
    return str(product.get("ingredients_text_en") or product.get("ingredients_text") or "")
