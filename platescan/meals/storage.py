# -*- coding: utf-8 -*-
"""Meals — JSON file storage for entries, SQLite for quality scores."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings
from .models import MealDailySummary, MealEntry, NutritionTotals

logger = logging.getLogger(__name__)

_TOTAL_FIELDS = ("calories_kcal", "protein_g", "carbs_g", "fat_g", "fiber_g", "sugar_g", "sodium_mg")


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _data_root_for(user_id: str) -> Path:
    return settings.data_root / "users" / user_id / "meals"


def _ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def _rounded(values: Dict[str, float]) -> NutritionTotals:
    return NutritionTotals(**{k: round(values.get(k, 0.0), 1) for k in _TOTAL_FIELDS})


def compute_totals(items: List[Dict[str, Any]]) -> NutritionTotals:
    sums = {k: 0.0 for k in _TOTAL_FIELDS}
    for item in items:
        for k in _TOTAL_FIELDS:
            sums[k] += float(item.get(k) or 0.0)
    return _rounded(sums)


def save_entry(user_id: str, entry: MealEntry, data_root: Path | None = None) -> str:
    root = data_root or _data_root_for(user_id)
    _ensure_dir(root)
    fp = root / f"{entry.entry_id}.json"
    fp.write_text(entry.model_dump_json(indent=2), encoding="utf-8")
    return entry.entry_id


def create_entry_record(
    *,
    eaten_at: str,
    meal_type: str,
    items: List[Dict[str, Any]],
    notes: Optional[str],
    source: str,
    warnings: List[str],
    quality_score: Optional[float] = None,
    processing_level: Optional[str] = None,
    ingredient_analysis: Optional[Dict[str, Any]] = None,
    quality_reasons: Optional[List[str]] = None,
) -> MealEntry:
    return MealEntry(
        entry_id=str(uuid4()),
        created_at=_utc_now(),
        eaten_at=eaten_at,
        meal_type=meal_type,
        items=items,
        totals=compute_totals(items),
        notes=notes,
        source=source,
        warnings=warnings,
        quality_score=quality_score,
        processing_level=processing_level,
        ingredient_analysis=ingredient_analysis,
        quality_reasons=list(quality_reasons or []),
    )


def get_entry(user_id: str, entry_id: str, data_root: Path | None = None) -> Optional[MealEntry]:
    """Entry by id; callers validate ``entry_id`` as a UUID before it reaches a path."""
    fp = (data_root or _data_root_for(user_id)) / f"{entry_id}.json"
    if not fp.is_file():
        return None
    return MealEntry.model_validate_json(fp.read_text(encoding="utf-8"))


def _iter_entries(root: Path) -> List[MealEntry]:
    if not root.exists():
        return []
    entries: List[MealEntry] = []
    for fp in root.glob("*.json"):
        try:
            entries.append(MealEntry.model_validate_json(fp.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            logger.warning("[MEAL] skipping unreadable entry %s: %s", fp.name, exc)
    entries.sort(key=lambda e: (e.eaten_at, e.created_at), reverse=True)
    return entries


def _date_prefix(iso8601: str) -> str:
    return (iso8601 or "")[:10]


def get_entries(
    user_id: str,
    *,
    start: Optional[str] = None,
    end: Optional[str] = None,
    data_root: Path | None = None,
) -> List[MealEntry]:
    """Entries newest first, optionally limited to an inclusive YYYY-MM-DD range."""
    entries = _iter_entries(data_root or _data_root_for(user_id))
    if not start and not end:
        return entries
    start_date = start or "0000-01-01"
    end_date = end or "9999-12-31"
    return [e for e in entries if start_date <= _date_prefix(e.eaten_at) <= end_date]


def get_summary(
    user_id: str,
    *,
    start: str,
    end: str,
    data_root: Path | None = None,
) -> Dict[str, Any]:
    entries = get_entries(user_id, start=start, end=end, data_root=data_root)

    per_day: Dict[str, Dict[str, Any]] = {}
    overall = {k: 0.0 for k in _TOTAL_FIELDS}
    for entry in entries:
        day = _date_prefix(entry.eaten_at)
        bucket = per_day.setdefault(day, {"sums": {k: 0.0 for k in _TOTAL_FIELDS}, "entry_count": 0})
        bucket["entry_count"] += 1
        for k in _TOTAL_FIELDS:
            value = getattr(entry.totals, k)
            bucket["sums"][k] += value
            overall[k] += value

    days = [
        MealDailySummary(date=day, totals=_rounded(per_day[day]["sums"]), entry_count=per_day[day]["entry_count"])
        for day in sorted(per_day)
    ]
    return {"start": start, "end": end, "totals": _rounded(overall), "days": days}


def get_meal_score(user_id: str, meal_id: str) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(
            "SELECT * FROM meal_scores WHERE user_id = ? AND meal_id = ?",
            (user_id, meal_id),
        ).fetchone()
    if not row:
        return None
    d = dict(row)
    d["penalties"] = json.loads(d.pop("penalties_json") or "[]")
    return d


def save_meal_score(user_id: str, meal_id: str, score: int, rating_text: str, penalties: List[str]) -> Dict[str, Any]:
    """Insert a score once per (user, meal); a concurrent duplicate returns the stored row."""
    created_at = _utc_now()
    try:
        with db_conn(settings.app_db_path) as conn:
            conn.execute(
                """
                INSERT INTO meal_scores (id, user_id, meal_id, score, rating_text, penalties_json, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (str(uuid4()), user_id, meal_id, score, rating_text, json.dumps(penalties), created_at),
            )
    except sqlite3.IntegrityError:
        logger.info("[MEAL] score for %s already stored", meal_id)
    stored = get_meal_score(user_id, meal_id)
    if stored is None:
        raise RuntimeError(f"meal score for {meal_id} was not persisted")
    return stored
