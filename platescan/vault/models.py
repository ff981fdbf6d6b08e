# -*- coding: utf-8 -*-
"""Nutrition Vault — Pydantic models."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..providers.models import Per100g


class PortionDef(BaseModel):
    label: str
    grams: float = Field(..., gt=0)


class VaultItemIn(BaseModel):
    canonical_key: Optional[str] = Field(None, max_length=256)
    provider: str = Field(..., min_length=1, max_length=64)
    provider_ref: Optional[str] = Field(None, max_length=128)
    name: str = Field(..., min_length=1, max_length=300)
    brand: Optional[str] = Field(None, max_length=200)
    class_id: Optional[str] = Field(None, max_length=64)
    confidence: Optional[float] = Field(None, ge=0, le=1)
    per100g: Per100g = Field(default_factory=Per100g)
    portion_defs: List[PortionDef] = Field(default_factory=list)
    flags: Dict[str, Any] = Field(default_factory=dict)
    region: str = Field("US", min_length=2, max_length=32)
    ingredients_text: Optional[str] = Field(None, max_length=10000)


class VaultItem(VaultItemIn):
    id: str
    canonical_key: str
    updated_at: str
    expires_at: str


class VaultSuggestion(BaseModel):
    id: str
    name: str
    brand: Optional[str] = None
    class_id: Optional[str] = None
    source: str = "vault"
    per100g: Per100g = Field(default_factory=Per100g)
    portion_defs: List[PortionDef] = Field(default_factory=list)
    confidence: Optional[float] = None
    provider: str
    provider_ref: Optional[str] = None
    is_generic: bool = False
    image_url: Optional[str] = None
    ingredients_text: Optional[str] = None
    ingredients_list: List[str] = Field(default_factory=list)
    score: Optional[float] = None


class VaultSearchRequest(BaseModel):
    q: str = Field("", max_length=200)
    max_results: int = Field(8, ge=1, le=50)
    region: str = Field("US", min_length=2, max_length=32)


class VaultSearchResponse(BaseModel):
    data: List[VaultSuggestion] = Field(default_factory=list)
