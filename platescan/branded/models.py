# -*- coding: utf-8 -*-
"""Branded — Pydantic models."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class ServingNutrition(BaseModel):
    calories: float = 0
    protein: float = 0
    carbs: float = 0
    fat: float = 0
    fiber: float = 0
    sugar: float = 0
    sodium: float = 0


class MatchDebugInfo(BaseModel):
    search_query: str = ""
    candidates_found: int = 0
    match_method: str = "none"
    fallback_reason: Optional[str] = None


class BrandedProductMatch(BaseModel):
    found: bool = False
    confidence: int = Field(0, ge=0, le=100)
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    brand_name: Optional[str] = None
    nutrition: Optional[ServingNutrition] = None
    source: Literal["barcode", "fuzzy_match", "fallback"] = "fallback"
    debug_info: MatchDebugInfo = Field(default_factory=MatchDebugInfo)


class BrandedMatchRequest(BaseModel):
    product_name: str = Field(..., min_length=1, max_length=300)
    ocr_text: Optional[str] = Field(None, max_length=5000)
    barcode: Optional[str] = Field(None, max_length=32)
