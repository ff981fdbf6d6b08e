# -*- coding: utf-8 -*-
"""Security — event log storage."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings

logger = logging.getLogger(__name__)

INVALID_UUID = "invalid_uuid"
XSS_ATTEMPT = "xss_attempt"
SQL_INJECTION_ATTEMPT = "sql_injection_attempt"
RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
LOGIN_FAILED = "login_failed"

SEVERITIES = {"low", "medium", "high", "critical"}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def log_security_event(
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    *,
    severity: str = "low",
    user_id: Optional[str] = None,
) -> str:
    if severity not in SEVERITIES:
        raise ValueError(f"Unknown severity: {severity}")
    event_id = str(uuid4())
    payload = json.dumps(details or {}, ensure_ascii=False, default=str)
    logger.warning("[SECURITY] %s severity=%s user=%s details=%s", event_type, severity, user_id, payload[:200])
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            """
            INSERT INTO security_events (id, user_id, event_type, severity, details_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (event_id, user_id, event_type, severity, payload, _utc_now()),
        )
    return event_id


def list_security_events(user_id: str, *, limit: int = 50) -> List[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        rows = conn.execute(
            """
            SELECT id, user_id, event_type, severity, details_json, created_at
            FROM security_events WHERE user_id = ?
            ORDER BY created_at DESC LIMIT ?
            """,
            (user_id, int(limit)),
        ).fetchall()
    out: List[Dict[str, Any]] = []
    for row in rows:
        item = dict(row)
        try:
            item["details"] = json.loads(item.pop("details_json") or "{}")
        except json.JSONDecodeError:
            item["details"] = {}
        out.append(item)
    return out
