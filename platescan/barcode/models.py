# -*- coding: utf-8 -*-
"""Barcode — Pydantic models."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..providers.models import Per100g


class ProductNutrition(BaseModel):
    calories: float = 0
    protein: float = 0
    fat: float = 0
    carbs: float = 0
    sugar: float = 0
    fiber: float = 0
    sodium: float = 0

    def to_per100g(self) -> Per100g:
        return Per100g(
            kcal=self.calories,
            protein_g=self.protein,
            carbs_g=self.carbs,
            fat_g=self.fat,
            fiber_g=self.fiber,
            sugar_g=self.sugar,
            sodium_mg=self.sodium,
        )


class BarcodeProduct(BaseModel):
    name: str
    brand: str = ""
    barcode: str
    nutrition: ProductNutrition = Field(default_factory=ProductNutrition)
    image: Optional[str] = None
    source: str
    region: str = "International"
    serving_size: Optional[str] = None
    ingredients_text: str = ""
    ingredients_available: bool = False


class BarcodeLookupRequest(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=32)
    enable_global_search: bool = True


class BarcodeLookupResult(BaseModel):
    success: bool
    product: Optional[BarcodeProduct] = None
    search_scope: str = "global"
    cached: bool = False
    message: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)
