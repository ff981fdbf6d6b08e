# -*- coding: utf-8 -*-
"""Meals — API endpoints."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from ..auth.security import get_current_user
from ..health.models import MealScore
from ..health.service import score_meal
from ..security.guards import require_safe_text, require_uuid
from .models import MealCreateRequest, MealCreateResponse, MealEntriesResponse, MealSummaryResponse
from .storage import (
    create_entry_record,
    get_entries,
    get_entry,
    get_meal_score,
    get_summary,
    save_entry,
    save_meal_score,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meals", tags=["Meals"])


@router.post("", response_model=MealCreateResponse, summary="Log a meal")
def create_meal(request: MealCreateRequest, user: dict = Depends(get_current_user)):
    for item in request.items:
        require_safe_text(item.name, field="items.name", user_id=user["id"], max_length=300)
    if request.notes:
        require_safe_text(request.notes, field="notes", user_id=user["id"], max_length=2000)

    entry = create_entry_record(
        eaten_at=request.eaten_at,
        meal_type=request.meal_type.value,
        items=[i.model_dump() for i in request.items],
        notes=request.notes,
        source=request.source or "scan",
        warnings=[] if request.items else ["No food items were logged"],
        quality_score=request.quality_score,
        processing_level=request.processing_level,
        ingredient_analysis=request.ingredient_analysis,
        quality_reasons=request.quality_reasons,
    )
    try:
        save_entry(user["id"], entry)
    except OSError as exc:
        raise HTTPException(status_code=500, detail=f"Failed to save entry: {exc}") from exc

    logger.info("[MEAL] saved %s type=%s items=%d", entry.entry_id, entry.meal_type.value, len(entry.items))
    return MealCreateResponse(
        entry_id=entry.entry_id,
        saved_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        totals=entry.totals,
    )


@router.get("", response_model=MealEntriesResponse, summary="List logged meals")
def list_meals(
    start: str | None = Query(default=None, description="YYYY-MM-DD"),
    end: str | None = Query(default=None, description="YYYY-MM-DD"),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    user: dict = Depends(get_current_user),
):
    entries = get_entries(user["id"], start=start, end=end)
    return MealEntriesResponse(count=len(entries), entries=entries[offset : offset + limit])


@router.get("/summary", response_model=MealSummaryResponse, summary="Daily nutrition totals")
def summary(
    start: str = Query(..., description="YYYY-MM-DD"),
    end: str = Query(..., description="YYYY-MM-DD"),
    user: dict = Depends(get_current_user),
):
    return MealSummaryResponse.model_validate(get_summary(user["id"], start=start, end=end))


@router.post("/{entry_id}/score", response_model=MealScore, summary="Score a logged meal's quality")
def score(entry_id: str, user: dict = Depends(get_current_user)):
    entry_id = require_uuid(entry_id, field="entry_id", user_id=user["id"])

    existing = get_meal_score(user["id"], entry_id)
    if existing:
        return MealScore(
            meal_id=entry_id,
            score=int(existing["score"]),
            rating_text=existing["rating_text"],
            penalties=existing["penalties"],
            already_existed=True,
            created_at=existing["created_at"],
        )

    entry = get_entry(user["id"], entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Meal not found or access denied")

    result = score_meal(entry.model_dump())
    stored = save_meal_score(user["id"], entry_id, result["score"], result["rating_text"], result["penalties"])
    logger.info("[MEAL] scored %s score=%s rating=%s", entry_id, stored["score"], stored["rating_text"])
    return MealScore(
        meal_id=entry_id,
        score=int(stored["score"]),
        rating_text=stored["rating_text"],
        penalties=stored["penalties"],
        already_existed=False,
        created_at=stored["created_at"],
    )
