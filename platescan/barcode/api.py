# -*- coding: utf-8 -*-
"""Barcode — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from ..auth.security import get_current_user
from .models import BarcodeLookupRequest, BarcodeLookupResult
from .service import lookup_barcode

router = APIRouter(prefix="/api/barcode", tags=["Barcode"])


@router.post(
    "/lookup",
    response_model=BarcodeLookupResult,
    responses={404: {"model": BarcodeLookupResult}},
    summary="Look up a product by barcode",
)
def lookup(request: BarcodeLookupRequest, user: dict = Depends(get_current_user)):  # noqa: ARG001
    try:
        result = lookup_barcode(request.barcode, enable_global_search=request.enable_global_search)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not result.success:
        return JSONResponse(status_code=404, content=result.model_dump())
    return result
