# -*- coding: utf-8 -*-
"""Health — API endpoints."""

from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException

from ..auth.security import get_current_user
from ..barcode.service import clean_barcode
from ..providers import openfoodfacts
from .models import HealthReport, HealthReportRequest
from .service import health_report, normalize_product

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/health", tags=["Health"])


@router.post("/report", response_model=HealthReport, summary="Health report for a product")
def report(request: HealthReportRequest, user: dict = Depends(get_current_user)):  # noqa: ARG001
    evidence = dict(request.evidence)
    product = request.product
    code = ""
    if product is None and request.barcode:
        try:
            code = clean_barcode(request.barcode)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        try:
            product = openfoodfacts.get_product(code)
        except httpx.HTTPError as exc:
            logger.warning("[HEALTH] OFF lookup failed for %s: %s", code, exc)
            raise HTTPException(status_code=502, detail="Product database unavailable") from exc
        evidence["barcode_hit"] = product is not None

    normalized = normalize_product(product, barcode=code) if product else None
    return health_report(normalized, evidence)
