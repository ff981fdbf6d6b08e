# -*- coding: utf-8 -*-
"""Portion — timeout-guarded source chain with a per-entry trace."""

from __future__ import annotations

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import settings
from .calculator import MAX_PORTION_G, MIN_PORTION_G

logger = logging.getLogger(__name__)

FALLBACK_GRAMS = 30

CUP_DENSITY = {"cereals": 55, "grains": 45, "nuts": 120, "dairy": 240, "beverages": 240}
CUP_DENSITY_DEFAULT = 60
ML_DENSITY = {"oils": 0.92, "beverages": 1.0, "dairy": 1.03}

DB_OVERRIDES = {
    "nuts_mixed": 40,
    "granola_organic": 45,
    "protein_bar": 60,
    "granola": 55,
    "nuts": 40,
    "candy": 40,
}

CATEGORY_DEFAULTS = {
    "cereals": 55,
    "breakfast-cereals": 55,
    "granola": 55,
    "nuts": 30,
    "snacks": 25,
    "candy": 40,
    "chocolate": 40,
    "beverages": 240,
    "dairy": 150,
    "yogurt": 170,
    "protein-bars": 60,
    "cookies": 30,
    "crackers": 30,
    "chips": 28,
}

_DIRECT_GRAMS_RE = re.compile(r"(\d+(?:\.\d+)?)\s*g(?:\s|$|[^a-z])")
_SERVING_PAREN_RE = re.compile(r"serving\s+size.*?\((\d+(?:\.\d+)?)\s*g\)")
_FRACTION_CUP_RE = re.compile(r"(\d+)/(\d+)\s*cups?")
_DECIMAL_CUP_RE = re.compile(r"(\d+(?:\.\d+)?)\s*cups?")
_ML_RE = re.compile(r"(\d+(?:\.\d+)?)\s*ml")

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="portion")
_kill_switch = threading.Event()
_traces: Dict[str, "PortionTrace"] = {}
_traces_lock = threading.Lock()


@dataclass(frozen=True)
class PortionResult:
    grams: float
    source: str
    label: str


@dataclass
class PortionOutcome:
    source: str
    hit: bool
    grams: Optional[float]
    ms: int
    reason: Optional[str] = None


@dataclass
class PortionTrace:
    flags: Dict[str, bool]
    sources_tried: List[str] = field(default_factory=list)
    outcomes: List[PortionOutcome] = field(default_factory=list)
    chosen: Dict[str, Any] = field(default_factory=dict)
    total_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _in_bounds(grams: Optional[float]) -> bool:
    return grams is not None and MIN_PORTION_G <= grams <= MAX_PORTION_G


def _fmt(grams: float) -> str:
    return f"{grams:g}"


def cups_to_grams(cups: float, category: Optional[str] = None) -> float:
    return float(round(cups * CUP_DENSITY.get(category or "", CUP_DENSITY_DEFAULT)))


def ml_to_grams(ml: float, category: Optional[str] = None) -> float:
    return float(round(ml * ML_DENSITY.get(category or "", 1.0)))


def parse_ocr_portion(text: Optional[str], category: Optional[str] = None) -> Optional[float]:
    """First in-bounds gram amount from label text: grams, serving size, cups, then ml."""
    if not text:
        return None
    t = text.lower()

    m = _DIRECT_GRAMS_RE.search(t)
    if m and _in_bounds(float(m.group(1))):
        return float(m.group(1))

    m = _SERVING_PAREN_RE.search(t)
    if m and _in_bounds(float(m.group(1))):
        return float(m.group(1))

    m = _FRACTION_CUP_RE.search(t)
    if m and float(m.group(2)) > 0:
        grams = cups_to_grams(float(m.group(1)) / float(m.group(2)), category)
        if _in_bounds(grams):
            return grams

    m = _DECIMAL_CUP_RE.search(t)
    if m:
        grams = cups_to_grams(float(m.group(1)), category)
        if _in_bounds(grams):
            return grams

    m = _ML_RE.search(t)
    if m:
        grams = ml_to_grams(float(m.group(1)), category)
        if _in_bounds(grams):
            return grams
    return None


def _from_ocr(product: Mapping[str, Any], ocr_text: Optional[str]) -> Optional[PortionResult]:
    text = ocr_text or product.get("ocr_text") or product.get("ingredients_text") or ""
    grams = parse_ocr_portion(text, product.get("category"))
    if grams is None:
        return None
    return PortionResult(grams=grams, source="ocr", label=f"{_fmt(grams)}g · OCR")


def _key(value: Any) -> str:
    return re.sub(r"\s+", "_", str(value or "").lower())


def _from_db(product: Mapping[str, Any]) -> Optional[PortionResult]:
    category = product.get("category") or ""
    grams = (
        DB_OVERRIDES.get(_key(f"{category}_{product.get('name') or ''}"))
        or DB_OVERRIDES.get(_key(product.get("item_name")))
        or DB_OVERRIDES.get(str(category))
    )
    if not grams:
        return None
    return PortionResult(grams=float(grams), source="db", label=f"{grams}g · DB")


def _from_ratio(product: Mapping[str, Any]) -> Optional[PortionResult]:
    n = product.get("nutriments") or product.get("nutrients") or {}
    per100 = n.get("energy_kcal_100g") or n.get("energy-kcal_100g")
    per_serving = n.get("energy_kcal") or n.get("energy-kcal")
    if not per100 or not per_serving or float(per100) <= 0:
        return None
    grams = float(round(float(per_serving) / float(per100) * 100))
    return PortionResult(grams=grams, source="nutrition_ratio", label=f"{_fmt(grams)}g · calc")


def _from_category(product: Mapping[str, Any]) -> Optional[PortionResult]:
    tags = product.get("categories_tags") or []
    category = product.get("category") or (tags[0] if tags else "")
    grams = CATEGORY_DEFAULTS.get(str(category), FALLBACK_GRAMS)
    return PortionResult(grams=float(grams), source="category_estimate", label=f"{grams}g · est.")


def _fallback() -> PortionResult:
    return PortionResult(grams=float(FALLBACK_GRAMS), source="fallback", label=f"{FALLBACK_GRAMS}g · est.")


def disable_portions() -> None:
    """Emergency kill switch; every later call returns the fallback."""
    _kill_switch.set()


def enable_portions() -> None:
    _kill_switch.clear()


def last_trace(entry: Optional[str] = None) -> Optional[Any]:
    with _traces_lock:
        if entry is None:
            return dict(_traces)
        return _traces.get(entry)


def _store(entry: str, trace: PortionTrace) -> None:
    with _traces_lock:
        _traces[entry] = trace
    logger.info("[PORTION][TRACE] entry=%s %s", entry, trace.to_dict())


def _ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def detect_portion_safe(
    product: Optional[Mapping[str, Any]],
    ocr_text: Optional[str] = None,
    entry: str = "unknown",
) -> PortionResult:
    start = time.perf_counter()
    p: Mapping[str, Any] = product or {}
    flags = {
        "enabled": bool(settings.portion_detection_enabled) and not _kill_switch.is_set(),
        "emergency_kill": _kill_switch.is_set(),
    }

    if not flags["enabled"]:
        chosen = _fallback()
        _store(
            entry,
            PortionTrace(
                flags=flags,
                sources_tried=["flags"],
                outcomes=[PortionOutcome(source="flags", hit=False, grams=None, ms=0, reason="disabled")],
                chosen={"source": chosen.source, "grams": chosen.grams},
                total_ms=_ms(start),
            ),
        )
        return chosen

    sources: List[tuple[str, Callable[[], Optional[PortionResult]]]] = [
        ("ocr", lambda: _from_ocr(p, ocr_text)),
        ("db", lambda: _from_db(p)),
        ("nutrition_ratio", lambda: _from_ratio(p)),
        ("category_estimate", lambda: _from_category(p)),
    ]
    trace = PortionTrace(flags=flags)
    chosen: Optional[PortionResult] = None
    timeout = float(settings.portion_source_timeout)

    for name, fn in sources:
        trace.sources_tried.append(name)
        t0 = time.perf_counter()
        try:
            result = _executor.submit(fn).result(timeout=timeout)
        except FutureTimeout:
            trace.outcomes.append(PortionOutcome(source=name, hit=False, grams=None, ms=_ms(t0), reason="timeout"))
            continue
        except Exception as exc:
            logger.warning("[PORTION] source %s failed: %s", name, exc)
            trace.outcomes.append(PortionOutcome(source=name, hit=False, grams=None, ms=_ms(t0), reason="error"))
            continue

        if result is not None and _in_bounds(result.grams):
            trace.outcomes.append(PortionOutcome(source=name, hit=True, grams=result.grams, ms=_ms(t0)))
            chosen = result
            break
        trace.outcomes.append(
            PortionOutcome(
                source=name,
                hit=False,
                grams=result.grams if result else None,
                ms=_ms(t0),
                reason="out_of_bounds" if result and result.grams else "no_data",
            )
        )

    chosen = chosen or _fallback()
    trace.chosen = {"source": chosen.source, "grams": chosen.grams}
    trace.total_ms = _ms(start)
    _store(entry, trace)
    return chosen


def portion_info(cached: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """Display-ready portion info from a cached detector result."""
    grams = (cached or {}).get("grams")
    if isinstance(grams, (int, float)) and grams > 0:
        source = cached.get("source") or "fallback"
        return {
            "grams": grams,
            "is_estimated": source in {"fallback", "category_estimate"},
            "source": source,
            "confidence": 0.9 if source == "ocr" else 0.8 if source == "db" else 0.3,
            "display": cached.get("label") or f"{_fmt(float(grams))}g",
        }
    return {
        "grams": FALLBACK_GRAMS,
        "is_estimated": True,
        "source": "fallback",
        "confidence": 0,
        "display": f"{FALLBACK_GRAMS}g · est.",
    }


_DISPLAY_FIELDS = (
    "energy_kcal", "energy_kcal_100g",
    "proteins", "proteins_100g",
    "carbohydrates", "carbohydrates_100g",
    "sugars", "sugars_100g",
    "fat", "fat_100g",
    "saturated_fat", "saturated_fat_100g",
    "fiber", "fiber_100g",
    "sodium", "sodium_100g",
    "salt", "salt_100g",
)


def scale_per100_for_display(per100: Optional[Mapping[str, Any]], grams: float) -> Dict[str, float]:
    """Scale ``*_100g`` nutriment fields to a portion; other fields pass through."""
    if not per100 or not grams:
        return {}
    factor = float(grams) / 100.0
    out: Dict[str, float] = {}
    for name in _DISPLAY_FIELDS:
        value = per100.get(name)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and value >= 0:
            out[name] = round(value * factor, 1) if "100g" in name else value
    return out
