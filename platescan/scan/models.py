# -*- coding: utf-8 -*-
"""Scan — Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from ..health.models import HealthReport
from ..providers.models import Per100g


class ScanKind(str, Enum):
    single_product = "single_product"
    multiple_candidates = "multiple_candidates"
    meal = "meal"
    none = "none"


class ScanRequest(BaseModel):
    image_base64: Optional[str] = Field(None, description="Base64 photo, data-url prefix allowed")
    barcode: Optional[str] = Field(None, max_length=32)
    ocr_text: Optional[str] = Field(None, max_length=10000, description="Label text read on the device")
    text: Optional[str] = Field(None, max_length=1000, description="Typed or spoken product description")
    region: str = Field("US", min_length=2, max_length=32)
    enable_global_search: bool = True
    portion_grams: Optional[float] = Field(None, gt=0, le=2000, description="User-chosen portion")


class PortionDisplay(BaseModel):
    grams: float
    is_estimated: bool = True
    source: str
    confidence: float = 0
    display: Optional[str] = None


class ScanProduct(BaseModel):
    name: str
    brand: Optional[str] = None
    barcode: Optional[str] = None
    source: str
    per100g: Per100g = Field(default_factory=Per100g)
    serving_size: Optional[str] = None
    image_url: Optional[str] = None
    ingredients_text: Optional[str] = None
    similarity: Optional[float] = None
    portion: Optional[PortionDisplay] = None
    per_portion: Dict[str, float] = Field(default_factory=dict)


class ScanFood(BaseModel):
    name: str
    grams: float
    confidence: float = 0
    category: Optional[str] = None
    portion_source: Optional[str] = None
    portion_range: Optional[List[float]] = None
    vault_id: Optional[str] = None
    per_portion: Dict[str, float] = Field(default_factory=dict)


class TraceStep(BaseModel):
    step: str
    hit: bool = False
    ms: int = 0
    detail: Optional[str] = None


class ScanResult(BaseModel):
    kind: ScanKind
    product: Optional[ScanProduct] = None
    candidates: List[ScanProduct] = Field(default_factory=list)
    foods: List[ScanFood] = Field(default_factory=list)
    health: Optional[HealthReport] = None
    trace: List[TraceStep] = Field(default_factory=list)
