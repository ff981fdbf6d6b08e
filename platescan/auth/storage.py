# -*- coding: utf-8 -*-
"""Auth — user rows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from ..app_db import db_conn
from ..config import settings


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _fetch_one(sql: str, params: tuple) -> Optional[Dict[str, Any]]:
    with db_conn(settings.app_db_path) as conn:
        row = conn.execute(sql, params).fetchone()
    return dict(row) if row else None


def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return _fetch_one("SELECT * FROM users WHERE email = ?", (_normalize_email(email),))


def get_user_by_id(user_id: str) -> Optional[Dict[str, Any]]:
    return _fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))


def create_user(*, email: str, password_hash: str) -> Dict[str, Any]:
    row = {
        "id": str(uuid4()),
        "email": _normalize_email(email),
        "password_hash": password_hash,
        "created_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }
    with db_conn(settings.app_db_path) as conn:
        conn.execute(
            "INSERT INTO users (id, email, password_hash, created_at) VALUES (:id, :email, :password_hash, :created_at)",
            row,
        )
    return row
