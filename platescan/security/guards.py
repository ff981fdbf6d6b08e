# -*- coding: utf-8 -*-
"""Security — FastAPI-facing guards that reject input and record the event."""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException

from .rate_limit import RateLimiter
from .storage import (
    INVALID_UUID,
    RATE_LIMIT_EXCEEDED,
    SQL_INJECTION_ATTEMPT,
    XSS_ATTEMPT,
    log_security_event,
)
from .validation import check_safe_text, detect_sql_injection, is_valid_uuid


def require_uuid(value: str, *, field: str, user_id: Optional[str] = None) -> str:
    if not is_valid_uuid(value):
        log_security_event(
            INVALID_UUID,
            {"field": field, "value": str(value)[:64]},
            severity="medium",
            user_id=user_id,
        )
        raise HTTPException(status_code=400, detail=f"Invalid {field}")
    return value.strip()


def require_safe_text(value: str, *, field: str, user_id: Optional[str] = None, max_length: int = 1000) -> str:
    try:
        text = check_safe_text(value, max_length=max_length)
    except ValueError as exc:
        if str(exc) == "Invalid characters detected":
            log_security_event(XSS_ATTEMPT, {"field": field, "input": value[:100]}, severity="high", user_id=user_id)
        raise HTTPException(status_code=400, detail=f"{field}: {exc}") from exc
    if detect_sql_injection(text):
        log_security_event(
            SQL_INJECTION_ATTEMPT,
            {"field": field, "input": text[:100]},
            severity="high",
            user_id=user_id,
        )
        raise HTTPException(status_code=400, detail=f"{field}: Potentially dangerous input detected")
    return text


def enforce_rate_limit(limiter: RateLimiter, identifier: str, *, user_id: Optional[str] = None) -> None:
    if limiter.check(identifier):
        return
    log_security_event(
        RATE_LIMIT_EXCEEDED,
        {"identifier": identifier, "max_attempts": limiter.max_attempts},
        severity="medium",
        user_id=user_id,
    )
    raise HTTPException(status_code=429, detail="Too many attempts, try again later")
