# -*- coding: utf-8 -*-
"""Security — API endpoints."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..auth.security import get_current_user
from .storage import list_security_events

router = APIRouter(prefix="/api/security", tags=["Security"])


class SecurityEvent(BaseModel):
    id: str
    user_id: str | None = None
    event_type: str
    severity: str
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: str


@router.get("/events", response_model=List[SecurityEvent], summary="Security events for the current user")
def events(
    limit: int = Query(default=50, ge=1, le=500),
    user: dict = Depends(get_current_user),
):
    return [SecurityEvent.model_validate(e) for e in list_security_events(user["id"], limit=limit)]
