# -*- coding: utf-8 -*-
"""Nutrition Vault — SQLite storage, ranked prefix search and OFF fallback."""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

import httpx

from ..app_db import db_conn
from ..cache import nutrition_store
from ..config import settings
from ..providers import openfoodfacts
from .models import PortionDef, VaultItem, VaultItemIn, VaultSuggestion

logger = logging.getLogger(__name__)

MIN_PREFIX = 3
MAX_RESULTS = 8
DEFAULT_CONFIDENCE = 0.7
FRESH_DAYS = 90
OFF_CONFIDENCE = 0.6

_INGREDIENT_SPLIT_RE = re.compile(r"[,;|]")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace("+00:00", "Z")


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _cache_key(region: str, q: str, max_results: int) -> str:
    return f"vault:{region}:{q.lower()}:{max_results}"


def _loads(raw: Optional[str], default: Any) -> Any:
    if not raw:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return default


def _row_to_item(row: sqlite3.Row) -> VaultItem:
    d = dict(row)
    return VaultItem(
        id=d["id"],
        canonical_key=d["canonical_key"],
        provider=d["provider"],
        provider_ref=d.get("provider_ref"),
        name=d["name"],
        brand=d.get("brand"),
        class_id=d.get("class_id"),
        confidence=d.get("confidence"),
        per100g=_loads(d.get("per100g_json"), {}),
        portion_defs=_loads(d.get("portion_defs_json"), []),
        flags=_loads(d.get("flags_json"), {}),
        region=d["region"],
        ingredients_text=d.get("ingredients_text"),
        updated_at=d["updated_at"],
        expires_at=d["expires_at"],
    )


def upsert_item(item: VaultItemIn) -> VaultItem:
    """Insert or refresh an item keyed by canonical key and region."""
    canonical_key = item.canonical_key or f"{item.provider}:{item.provider_ref or item.name.lower()}"
    now = _now()
    row = {
        "id": str(uuid4()),
        "canonical_key": canonical_key,
        "provider": item.provider,
        "provider_ref": item.provider_ref,
        "name": item.name,
        "brand": item.brand or None,
        "class_id": item.class_id,
        "confidence": item.confidence,
        "per100g_json": item.per100g.model_dump_json(),
        "portion_defs_json": json.dumps([p.model_dump() for p in item.portion_defs]),
        "flags_json": json.dumps(item.flags, ensure_ascii=False, default=str),
        "region": item.region,
        "ingredients_text": item.ingredients_text,
        "updated_at": _iso(now),
        "expires_at": _iso(now + timedelta(days=int(settings.vault_ttl_days))),
    }
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO vault_items (
                id, canonical_key, provider, provider_ref, name, brand, class_id, confidence,
                per100g_json, portion_defs_json, flags_json, region, ingredients_text, updated_at, expires_at
            ) VALUES (
                :id, :canonical_key, :provider, :provider_ref, :name, :brand, :class_id, :confidence,
                :per100g_json, :portion_defs_json, :flags_json, :region, :ingredients_text, :updated_at, :expires_at
            )
            ON CONFLICT(canonical_key, region) DO UPDATE SET
                provider = excluded.provider,
                provider_ref = excluded.provider_ref,
                name = excluded.name,
                brand = excluded.brand,
                class_id = excluded.class_id,
                confidence = excluded.confidence,
                per100g_json = excluded.per100g_json,
                portion_defs_json = excluded.portion_defs_json,
                flags_json = excluded.flags_json,
                ingredients_text = excluded.ingredients_text,
                updated_at = excluded.updated_at,
                expires_at = excluded.expires_at
            """,
            row,
        )
        stored = conn.execute(
            "SELECT * FROM vault_items WHERE canonical_key = ? AND region = ?",
            (canonical_key, item.region),
        ).fetchone()
    nutrition_store.delete_prefix(f"vault:{item.region}:")
    return _row_to_item(stored)


def get_item(item_id: str) -> Optional[VaultItem]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute("SELECT * FROM vault_items WHERE id = ?", (item_id,)).fetchone()
    return _row_to_item(row) if row else None


def rank_score(item: VaultItem, q: str, *, now: Optional[datetime] = None) -> float:
    score = item.confidence if item.confidence is not None else DEFAULT_CONFIDENCE
    if (item.name or "").lower().startswith(q.lower()):
        score += 4.0
    if item.brand:
        score += 1.0
    updated = _parse_iso(item.updated_at)
    if updated is not None and ((now or _now()) - updated).total_seconds() <= FRESH_DAYS * 86400:
        score += 0.5
    return score


def _suggestion(item: VaultItem, score: float) -> VaultSuggestion:
    return VaultSuggestion(
        id=item.id,
        name=item.name,
        brand=item.brand,
        class_id=item.class_id,
        source="vault",
        per100g=item.per100g,
        portion_defs=item.portion_defs,
        confidence=item.confidence,
        provider=item.provider,
        provider_ref=item.provider_ref,
        is_generic=item.flags.get("generic") is True,
        ingredients_text=item.ingredients_text,
        ingredients_list=split_ingredients(item.ingredients_text),
        score=round(score, 3),
    )


def split_ingredients(text: Optional[str], cap: int = 20) -> List[str]:
    if not text:
        return []
    return [s.strip() for s in _INGREDIENT_SPLIT_RE.split(text) if s.strip()][:cap]


def _like_prefix(q: str) -> str:
    escaped = q.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


def _query_vault(q: str, region: str, max_results: int) -> List[VaultItem]:
    like = _like_prefix(q)
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            """
            SELECT * FROM vault_items
            WHERE (lower(name) LIKE ? ESCAPE '\\' OR lower(brand) LIKE ? ESCAPE '\\')
              AND region = ?
              AND expires_at > ?
            ORDER BY updated_at DESC
            LIMIT ?
            """,
            (like, like, region, _iso(_now()), int(max_results) * 2),
        ).fetchall()
    return [_row_to_item(r) for r in rows]


def _record_lookup(q: str, item_id: Optional[str], hit: bool, provider: str) -> None:
    try:
        with db_conn(settings.app_db_path) as conn:
            conn.execute(
                "INSERT INTO vault_lookups (id, q, item_id, hit, provider, created_at) VALUES (?, ?, ?, ?, ?, ?)",
                (str(uuid4()), q, item_id, 1 if hit else 0, provider, _iso(_now())),
            )
    except sqlite3.Error as exc:
        logger.warning("[NV][SEARCH] telemetry insert failed: %s", exc)


def _off_suggestions(q: str, max_results: int, client: Optional[httpx.Client]) -> List[VaultSuggestion]:
    products = openfoodfacts.search_products(q, page_size=max_results, client=client)
    out: List[VaultSuggestion] = []
    for p in products:
        ingredients = openfoodfacts.ingredients_text(p)
        ref = str(p.get("code") or p.get("id") or "")
        out.append(
            VaultSuggestion(
                id=ref or str(uuid4()),
                name=str(p.get("product_name") or q),
                brand=p.get("brands") or None,
                source="off",
                per100g=openfoodfacts.per100g_from_nutriments(p.get("nutriments")),
                confidence=OFF_CONFIDENCE,
                provider="openfoodfacts",
                provider_ref=ref,
                is_generic=True,
                image_url=p.get("image_url") or None,
                ingredients_text=ingredients or None,
                ingredients_list=split_ingredients(ingredients),
            )
        )
    return out


def search(
    q: Optional[str],
    *,
    max_results: int = MAX_RESULTS,
    region: str = "US",
    client: Optional[httpx.Client] = None,
) -> List[VaultSuggestion]:
    trimmed = (q or "").strip()
    if len(trimmed) < MIN_PREFIX:
        logger.info("[NV][SEARCH] q=%r hits=0 (too short)", trimmed)
        return []

    key = _cache_key(region, trimmed, max_results)
    cached = nutrition_store.get(key)
    if cached is not None:
        return list(cached)

    try:
        items = _query_vault(trimmed, region, max_results)
    except sqlite3.Error as exc:
        logger.warning("[NV][SEARCH] vault query failed, falling back to OFF: %s", exc)
        try:
            return _off_suggestions(trimmed, max_results, client)
        except (httpx.HTTPError, ValueError) as off_exc:
            logger.warning("[NV][SEARCH] OFF fallback failed: %s", off_exc)
            return []

    now = _now()
    scored = sorted(((rank_score(i, trimmed, now=now), i) for i in items), key=lambda t: t[0], reverse=True)
    suggestions = [_suggestion(item, score) for score, item in scored[:max_results]]

    _record_lookup(trimmed, suggestions[0].id if suggestions else None, bool(suggestions), "cache")
    logger.info("[NV][SEARCH] q=%r region=%s hits=%d", trimmed, region, len(suggestions))
    nutrition_store.set(key, suggestions)
    return suggestions


def portion_defs_from_serving(serving_grams: Optional[float], label: str = "1 serving") -> List[PortionDef]:
    if not serving_grams or serving_grams <= 0:
        return []
    return [PortionDef(label=label, grams=round(float(serving_grams), 1))]
