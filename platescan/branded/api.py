# -*- coding: utf-8 -*-
"""Branded — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth.security import get_current_user
from ..security.guards import require_safe_text
from .models import BrandedMatchRequest, BrandedProductMatch
from .service import match_branded_product

router = APIRouter(prefix="/api/branded", tags=["Branded"])


@router.post("/match", response_model=BrandedProductMatch, summary="Match a branded product")
def match(request: BrandedMatchRequest, user: dict = Depends(get_current_user)):
    name = require_safe_text(request.product_name, field="product_name", user_id=user["id"], max_length=300)
    return match_branded_product(name, ocr_text=request.ocr_text, barcode=request.barcode)
