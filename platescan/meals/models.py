# -*- coding: utf-8 -*-
"""Meals — Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class NutritionTotals(BaseModel):
    calories_kcal: float = Field(0.0, ge=0)
    protein_g: float = Field(0.0, ge=0)
    carbs_g: float = Field(0.0, ge=0)
    fat_g: float = Field(0.0, ge=0)
    fiber_g: float = Field(0.0, ge=0)
    sugar_g: float = Field(0.0, ge=0)
    sodium_mg: float = Field(0.0, ge=0)


class FoodItem(BaseModel):
    name: str = Field(..., min_length=1, max_length=300, description="Food name, e.g. 'rice', 'apple'")
    portion: Optional[str] = Field(None, max_length=100, description="Human-readable portion, e.g. '1 bowl'")
    grams: Optional[float] = Field(None, ge=0, description="Grams eaten")
    calories_kcal: Optional[float] = Field(None, ge=0)
    protein_g: Optional[float] = Field(None, ge=0)
    carbs_g: Optional[float] = Field(None, ge=0)
    fat_g: Optional[float] = Field(None, ge=0)
    fiber_g: Optional[float] = Field(None, ge=0)
    sugar_g: Optional[float] = Field(None, ge=0)
    sodium_mg: Optional[float] = Field(None, ge=0)
    confidence: Optional[float] = Field(None, ge=0, le=1)
    vault_id: Optional[str] = None


class MealType(str, Enum):
    breakfast = "breakfast"
    lunch = "lunch"
    dinner = "dinner"
    snack = "snack"


class MealCreateRequest(BaseModel):
    eaten_at: str = Field(..., description="ISO8601 timestamp")
    meal_type: MealType
    items: List[FoodItem] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=2000)
    source: Optional[str] = Field("scan", max_length=64)
    quality_score: Optional[float] = Field(None, description="Pre-computed quality score, clamped to 0-100")
    processing_level: Optional[str] = Field(None, max_length=64)
    ingredient_analysis: Optional[Dict[str, Any]] = None
    quality_reasons: List[str] = Field(default_factory=list)

    @field_validator("eaten_at")
    @classmethod
    def _date_prefix_required(cls, value: str) -> str:
        v = (value or "").strip()
        if len(v) < 10 or v[4] != "-" or v[7] != "-":
            raise ValueError("eaten_at must start with YYYY-MM-DD")
        return v


class MealCreateResponse(BaseModel):
    entry_id: str
    saved_at: str
    totals: NutritionTotals


class MealEntry(BaseModel):
    entry_id: str
    created_at: str
    eaten_at: str
    meal_type: MealType
    items: List[FoodItem] = []
    totals: NutritionTotals = NutritionTotals()
    notes: Optional[str] = None
    source: str = "scan"
    warnings: List[str] = []
    quality_score: Optional[float] = None
    processing_level: Optional[str] = None
    ingredient_analysis: Optional[Dict[str, Any]] = None
    quality_reasons: List[str] = []


class MealEntriesResponse(BaseModel):
    count: int
    entries: List[MealEntry]


class MealDailySummary(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD")
    totals: NutritionTotals
    entry_count: int = Field(0, ge=0)


class MealSummaryResponse(BaseModel):
    start: str
    end: str
    totals: NutritionTotals
    days: List[MealDailySummary]
