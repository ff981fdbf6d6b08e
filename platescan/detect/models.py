# -*- coding: utf-8 -*-
"""Detect — Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class DetectMode(str, Enum):
    GPT_ONLY = "GPT_ONLY"
    VISION_ONLY = "VISION_ONLY"
    HYBRID = "HYBRID"


class DetectedItem(BaseModel):
    name: str
    grams: float = Field(..., ge=0)
    confidence: float = Field(0.0, ge=0, le=1)
    source: str
    category: Optional[str] = None
    portion_source: Optional[str] = Field(None, description="count|area|base|heuristic")
    portion_range: Optional[List[float]] = None


class PlateInfo(BaseModel):
    area: float = 0.0
    confidence: float = 0.0


class DetectRequest(BaseModel):
    image_base64: str = Field(..., min_length=16, description="Base64 image, data-url prefix allowed")
    mode: Optional[DetectMode] = None


class DetectResponse(BaseModel):
    mode: DetectMode
    picked: str = Field(..., description="gpt|vision|none")
    items: List[DetectedItem] = Field(default_factory=list)
    plate: PlateInfo = Field(default_factory=PlateInfo)
    scores: dict = Field(default_factory=dict)
