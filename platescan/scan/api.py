# -*- coding: utf-8 -*-
"""Scan — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..auth.security import get_current_user
from ..detect.api import check_image_size
from ..security.guards import enforce_rate_limit, require_safe_text
from ..security.rate_limit import api_limiter
from .models import ScanRequest, ScanResult
from .pipeline import run_scan

router = APIRouter(prefix="/api/scan", tags=["Scan"])


@router.post("", response_model=ScanResult, summary="Identify a product or meal from a photo, barcode or text")
def scan(request: ScanRequest, user: dict = Depends(get_current_user)):
    enforce_rate_limit(api_limiter, f"scan:{user['id']}", user_id=user["id"])
    if not (request.image_base64 or request.barcode or request.ocr_text or request.text):
        raise HTTPException(status_code=400, detail="Provide an image, barcode, ocr_text or text")
    if request.image_base64:
        check_image_size(request.image_base64)
    if request.text:
        request.text = require_safe_text(request.text, field="text", user_id=user["id"])
    return run_scan(request, entry=f"scan:{user['id']}")
