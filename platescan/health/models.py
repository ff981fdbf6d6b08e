# -*- coding: utf-8 -*-
"""Health — Pydantic models for product checks and meal quality scores."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class FlagLevel(str, Enum):
    danger = "danger"
    warning = "warning"
    ok = "ok"


class HealthFlag(BaseModel):
    id: str
    level: FlagLevel
    label: str
    description: Optional[str] = None


class ProductNutritionFacts(BaseModel):
    calories: Optional[float] = None
    sugar_g: Optional[float] = None
    sodium_mg: Optional[float] = None
    protein_g: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    fiber_g: Optional[float] = None
    satfat_g: Optional[float] = None
    serving_size: Optional[str] = None


class HealthData(BaseModel):
    score: Optional[int] = Field(None, ge=0, le=100)
    flags: List[HealthFlag] = Field(default_factory=list)


class NormalizedProduct(BaseModel):
    name: str
    brand: Optional[str] = None
    barcode: Optional[str] = None
    image_url: Optional[str] = None
    ingredients_text: str = ""
    ingredients: List[str] = Field(default_factory=list)
    additives: List[str] = Field(default_factory=list)
    allergens: List[str] = Field(default_factory=list)
    nutrition: ProductNutritionFacts = Field(default_factory=ProductNutritionFacts)
    per_serving: bool = False
    health: HealthData = Field(default_factory=HealthData)


class HealthReport(BaseModel):
    product_name: str
    brand: Optional[str] = None
    score: Optional[int] = Field(None, ge=0, le=100)
    summary: str
    flags: List[HealthFlag] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    evidence: Dict[str, Any] = Field(default_factory=dict)
    fallback: bool = False


class HealthReportRequest(BaseModel):
    barcode: Optional[str] = Field(None, description="8-14 digit barcode to look up")
    product: Optional[Dict[str, Any]] = Field(None, description="Raw Open Food Facts product payload")
    evidence: Dict[str, Any] = Field(default_factory=dict)


class MealScore(BaseModel):
    meal_id: str
    score: int = Field(..., ge=0, le=100)
    rating_text: str
    penalties: List[str] = Field(default_factory=list)
    already_existed: bool = False
    created_at: Optional[str] = None
