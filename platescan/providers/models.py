# -*- coding: utf-8 -*-
"""Providers — shared nutrition shapes."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Per100g(BaseModel):
    kcal: float = Field(0.0, ge=0)
    protein_g: float = Field(0.0, ge=0)
    carbs_g: float = Field(0.0, ge=0)
    fat_g: float = Field(0.0, ge=0)
    fiber_g: float = Field(0.0, ge=0)
    sugar_g: float = Field(0.0, ge=0)
    sodium_mg: float = Field(0.0, ge=0)

    def rounded(self) -> "Per100g":
        return Per100g(
            kcal=round(self.kcal),
            protein_g=round(self.protein_g, 1),
            carbs_g=round(self.carbs_g, 1),
            fat_g=round(self.fat_g, 1),
            fiber_g=round(self.fiber_g, 1),
            sugar_g=round(self.sugar_g, 1),
            sodium_mg=round(self.sodium_mg),
        )

    def is_empty(self) -> bool:
        return not any(
            (self.kcal, self.protein_g, self.carbs_g, self.fat_g, self.fiber_g, self.sugar_g, self.sodium_mg)
        )


def first_number(source: Dict[str, Any], *keys: str) -> Optional[float]:
    for key in keys:
        value = source.get(key)
        if value is None or isinstance(value, bool):
            continue
        try:
            return float(value)
        except (TypeError, ValueError):
            continue
    return None
