# -*- coding: utf-8 -*-
"""Detect — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..auth.security import get_current_user
from ..config import settings
from ..ocr.vision import strip_data_url
from .models import DetectRequest, DetectResponse
from .router import detect_meal

router = APIRouter(prefix="/api/detect", tags=["Detect"])


def check_image_size(image_b64: str) -> None:
    approx_bytes = len(strip_data_url(image_b64)) * 3 // 4
    if approx_bytes > settings.max_image_bytes:
        raise HTTPException(status_code=413, detail="Image too large")


@router.post("/meal", response_model=DetectResponse, summary="Detect foods and portions in a meal photo")
def detect(request: DetectRequest, user: dict = Depends(get_current_user)):  # noqa: ARG001
    check_image_size(request.image_base64)
    return detect_meal(request.image_base64, request.mode)
