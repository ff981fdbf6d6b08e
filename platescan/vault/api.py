# -*- coding: utf-8 -*-
"""Nutrition Vault — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..auth.security import get_current_user
from ..security.guards import require_safe_text
from .models import VaultItem, VaultItemIn, VaultSearchRequest, VaultSearchResponse
from .storage import get_item, search, upsert_item

router = APIRouter(prefix="/api/vault", tags=["Vault"])


@router.post("/search", response_model=VaultSearchResponse, summary="Prefix search over the Nutrition Vault")
def vault_search(request: VaultSearchRequest, user: dict = Depends(get_current_user)):
    q = request.q.strip()
    if q:
        q = require_safe_text(q, field="q", user_id=user["id"], max_length=200)
    return VaultSearchResponse(data=search(q, max_results=request.max_results, region=request.region))


@router.post("/items", response_model=VaultItem, summary="Insert or refresh a vault item")
def vault_upsert(request: VaultItemIn, user: dict = Depends(get_current_user)):
    require_safe_text(request.name, field="name", user_id=user["id"], max_length=300)
    return upsert_item(request)


@router.get("/items/{item_id}", response_model=VaultItem, summary="Get a vault item")
def vault_get(item_id: str, user: dict = Depends(get_current_user)):  # noqa: ARG001
    item = get_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Vault item not found")
    return item
