# -*- coding: utf-8 -*-
"""Scan — barcode, label text, meal guess, then a low-confidence fallback.

Each step runs guarded: a failing provider is logged and recorded in the
trace, and the chain moves on to the next step.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any, Dict, Iterator, List, Optional, Tuple

import httpx

from ..barcode.service import lookup_barcode
from ..brands.matcher import similarity
from ..detect.router import detect_meal
from ..health.models import HealthReport
from ..health.service import (
    compute_health,
    fallback_report,
    health_report,
    normalize_product,
    split_ingredients_list,
)
from ..ocr.text import LabelTokens, find_barcode, normalize_text, tokenize_label
from ..ocr.vision import read_label_text
from ..portion.calculator import parse_portion_grams, to_per_portion
from ..portion.detector import detect_portion_safe, portion_info
from ..providers import openfoodfacts
from ..vault.storage import search as vault_search
from .models import PortionDisplay, ScanFood, ScanKind, ScanProduct, ScanRequest, ScanResult, TraceStep

logger = logging.getLogger(__name__)

CLEAR_LEAD = 0.15
MAX_CANDIDATES = 5
OFF_PAGE_SIZE = 5
CANDY_CATEGORIES = "candy,gummies,sweets"

Candidate = Tuple[ScanProduct, Optional[Dict[str, Any]]]


class _Trace:
    def __init__(self, entry: str) -> None:
        self.entry = entry
        self.steps: List[TraceStep] = []

    @contextmanager
    def step(self, name: str) -> Iterator[TraceStep]:
        record = TraceStep(step=name)
        t0 = time.perf_counter()
        try:
            yield record
        except Exception as exc:
            logger.warning("[SCAN] entry=%s step=%s failed: %s", self.entry, name, exc, exc_info=True)
            record.hit = False
            record.detail = f"error: {exc}"
        finally:
            record.ms = int((time.perf_counter() - t0) * 1000)
            self.steps.append(record)


def _product_from_barcode(result) -> ScanProduct:
    p = result.product
    return ScanProduct(
        name=p.name,
        brand=p.brand or None,
        barcode=p.barcode,
        source=p.source,
        per100g=p.nutrition.to_per100g(),
        serving_size=p.serving_size,
        image_url=p.image,
        ingredients_text=p.ingredients_text or None,
    )


def _product_from_off(p: Dict[str, Any]) -> ScanProduct:
    return ScanProduct(
        name=str(p.get("product_name") or "Unknown Product"),
        brand=str(p.get("brands") or "").split(",")[0].strip() or None,
        barcode=str(p.get("code") or "") or None,
        source="off",
        per100g=openfoodfacts.per100g_from_nutriments(p.get("nutriments")),
        serving_size=p.get("serving_size") or None,
        image_url=p.get("image_front_small_url") or p.get("image_url") or None,
        ingredients_text=openfoodfacts.ingredients_text(p) or None,
    )


def candidate_similarity(label: LabelTokens, product: ScanProduct) -> float:
    """Half brand agreement, half share of the product name found on the label."""
    brand = normalize_text(product.brand)
    brand_score = max((similarity(brand, b) for b in label.brand_tokens), default=0.0) if brand else 0.0
    name_tokens = [t for t in normalize_text(product.name).split(" ") if t]
    seen = set(label.tokens)
    coverage = sum(1 for t in name_tokens if t in seen) / len(name_tokens) if name_tokens else 0.0
    return round(0.5 * brand_score + 0.5 * coverage, 3)


def _off_brand_search(label: LabelTokens, client: Optional[httpx.Client]) -> List[Dict[str, Any]]:
    query = " ".join(label.brand_tokens)
    try:
        products = openfoodfacts.search_products(
            query,
            page_size=OFF_PAGE_SIZE,
            categories=CANDY_CATEGORIES if label.has_candy else None,
            client=client,
        )
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("[SCAN] OFF brand search failed for %r: %s", query, exc)
        return []
    if label.has_candy:
        products = [
            p for p in products
            if "beverage" not in str(p.get("categories") or "").lower()
            and "drink" not in str(p.get("categories") or "").lower()
        ]
    return products


def label_candidates(
    label: LabelTokens,
    *,
    region: str = "US",
    client: Optional[httpx.Client] = None,
) -> List[Candidate]:
    """Brand-gated candidates from the vault and OFF, best first."""
    if not label.has_brand_evidence:
        return []
    pool: List[Candidate] = []
    for s in vault_search(" ".join(label.brand_tokens), max_results=MAX_CANDIDATES, region=region, client=client):
        pool.append(
            (
                ScanProduct(
                    name=s.name,
                    brand=s.brand,
                    barcode=s.provider_ref if (s.provider_ref or "").isdigit() else None,
                    source=s.source,
                    per100g=s.per100g,
                    image_url=s.image_url,
                    ingredients_text=s.ingredients_text,
                ),
                None,
            )
        )
    for raw in _off_brand_search(label, client):
        pool.append((_product_from_off(raw), raw))

    seen = set()
    unique: List[Candidate] = []
    for product, raw in pool:
        key = (product.name.lower(), (product.brand or "").lower())
        if key in seen:
            continue
        seen.add(key)
        product.similarity = candidate_similarity(label, product)
        unique.append((product, raw))
    unique.sort(key=lambda c: c[0].similarity or 0.0, reverse=True)
    return unique


def _product_health(product: ScanProduct, raw: Optional[Dict[str, Any]], evidence: Dict[str, Any]) -> HealthReport:
    if raw is not None:
        return health_report(normalize_product(raw, barcode=product.barcode or ""), evidence)
    p = product.per100g
    nutrition = {"calories": p.kcal or None, "sugar_g": p.sugar_g or None, "sodium_mg": p.sodium_mg or None}
    text = product.ingredients_text or ""
    health = compute_health(split_ingredients_list(text), text, nutrition)
    return health_report(
        {"name": product.name, "brand": product.brand, "health": health.model_dump(mode="json")},
        evidence,
    )


def _attach_portion(product: ScanProduct, request: ScanRequest, ocr_text: Optional[str], entry: str) -> None:
    if request.portion_grams:
        info = parse_portion_grams(
            {"serving_size": product.serving_size, "name": product.name},
            ocr_text,
            {"grams": request.portion_grams},
        )
        product.portion = PortionDisplay(
            grams=info.grams,
            is_estimated=info.is_estimated,
            source=info.source,
            confidence=info.confidence,
            display=info.display or f"{info.grams:g}g",
        )
    else:
        detected = detect_portion_safe(
            {"name": product.name, "ocr_text": product.serving_size or "", "ingredients_text": ""},
            ocr_text,
            entry=entry,
        )
        product.portion = PortionDisplay(**portion_info(asdict(detected)))
    product.per_portion = to_per_portion(product.per100g, product.portion.grams)


def _meal_foods(image_b64: str, region: str, client: Optional[httpx.Client]) -> List[ScanFood]:
    detection = detect_meal(image_b64, client=client)
    foods: List[ScanFood] = []
    for item in detection.items:
        hits = vault_search(item.name, max_results=1, region=region, client=client)
        hit = hits[0] if hits else None
        foods.append(
            ScanFood(
                name=item.name,
                grams=item.grams,
                confidence=item.confidence,
                category=item.category,
                portion_source=item.portion_source,
                portion_range=item.portion_range,
                vault_id=hit.id if hit else None,
                per_portion=to_per_portion(hit.per100g, item.grams) if hit else {},
            )
        )
    return foods


def run_scan(
    request: ScanRequest,
    *,
    client: Optional[httpx.Client] = None,
    entry: str = "scan",
) -> ScanResult:
    trace = _Trace(entry)
    evidence: Dict[str, Any] = {}
    ocr_text = request.ocr_text

    if request.image_base64 and not ocr_text:
        with trace.step("ocr") as step:
            ocr_text = read_label_text(request.image_base64, client=client)
            step.hit = bool(ocr_text.strip())
            step.detail = f"chars={len(ocr_text)}"

    label_source = " ".join(t for t in (ocr_text, request.text) if t)

    code = request.barcode or find_barcode(label_source)
    if code:
        evidence["barcode"] = code
        product: Optional[ScanProduct] = None
        with trace.step("barcode") as step:
            found = lookup_barcode(code, enable_global_search=request.enable_global_search, client=client)
            step.hit = found.success
            step.detail = "cached" if found.cached else (found.product.source if found.product else found.message)
            if found.success:
                product = _product_from_barcode(found)
                _attach_portion(product, request, ocr_text, entry)
        if product is not None:
            evidence["barcode_hit"] = True
            logger.info("[SCAN] entry=%s barcode hit %s: %s", entry, code, product.name)
            return ScanResult(
                kind=ScanKind.single_product,
                product=product,
                health=_product_health(product, None, evidence),
                trace=trace.steps,
            )

    if label_source.strip():
        ranked: List[Candidate] = []
        with trace.step("label") as step:
            label = tokenize_label(label_source)
            evidence["brand_tokens"] = label.brand_tokens
            evidence["has_candy"] = label.has_candy
            if label.has_brand_evidence:
                ranked = label_candidates(label, region=request.region, client=client)
                step.hit = bool(ranked)
                step.detail = f"brands={label.brand_tokens} candidates={len(ranked)}"
            else:
                step.detail = "no brand evidence"
        if ranked:
            lead = (ranked[0][0].similarity or 0.0) - ((ranked[1][0].similarity or 0.0) if len(ranked) > 1 else 0.0)
            if len(ranked) == 1 or lead >= CLEAR_LEAD:
                product, raw = ranked[0]
                _attach_portion(product, request, ocr_text, entry)
                evidence["name_hit"] = True
                logger.info("[SCAN] entry=%s label hit: %s (lead=%.2f)", entry, product.name, lead)
                return ScanResult(
                    kind=ScanKind.single_product,
                    product=product,
                    health=_product_health(product, raw, evidence),
                    trace=trace.steps,
                )
            logger.info("[SCAN] entry=%s %d close candidates", entry, len(ranked))
            return ScanResult(
                kind=ScanKind.multiple_candidates,
                candidates=[p for p, _ in ranked[:MAX_CANDIDATES]],
                trace=trace.steps,
            )

    if request.image_base64:
        foods: List[ScanFood] = []
        with trace.step("meal") as step:
            foods = _meal_foods(request.image_base64, request.region, client)
            step.hit = bool(foods)
            step.detail = f"foods={len(foods)}"
        if foods:
            return ScanResult(kind=ScanKind.meal, foods=foods, trace=trace.steps)

    logger.info("[SCAN] entry=%s no confident match evidence=%s", entry, evidence)
    return ScanResult(kind=ScanKind.none, health=fallback_report(evidence), trace=trace.steps)
