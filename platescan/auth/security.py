# -*- coding: utf-8 -*-
"""Auth — password hashing, HS256 bearer tokens and FastAPI helpers."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

from ..config import settings
from .storage import get_user_by_id

TOKEN_COOKIE_NAME = "platescan_token"

_HASH_ALG = "sha256"
_HASH_ROUNDS = 200_000
_TOKEN_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64e(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64d(text: str) -> bytes:
    return base64.urlsafe_b64decode((text + "=" * (-len(text) % 4)).encode("ascii"))


def hash_password(password: str) -> str:
    salt = os.urandom(16)
    derived = hashlib.pbkdf2_hmac(_HASH_ALG, password.encode("utf-8"), salt, _HASH_ROUNDS)
    return f"pbkdf2_{_HASH_ALG}${_HASH_ROUNDS}${_b64e(salt)}${_b64e(derived)}"


def verify_password(password: str, stored: str) -> bool:
    try:
        scheme, rounds, salt, expected = stored.split("$", 3)
    except ValueError:
        return False
    if not scheme.startswith("pbkdf2_"):
        return False
    alg = scheme[len("pbkdf2_"):]
    actual = hashlib.pbkdf2_hmac(alg, password.encode("utf-8"), _b64d(salt), int(rounds))
    return hmac.compare_digest(actual, _b64d(expected))


def _sign(signing_input: bytes) -> str:
    return _b64e(hmac.new(settings.jwt_secret.encode("utf-8"), signing_input, hashlib.sha256).digest())


def create_access_token(*, user_id: str, email: str) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=int(settings.token_ttl_days))).timestamp()),
    }
    head = _b64e(json.dumps(_TOKEN_HEADER, separators=(",", ":")).encode("utf-8"))
    body = _b64e(json.dumps(claims, separators=(",", ":")).encode("utf-8"))
    return f"{head}.{body}.{_sign(f'{head}.{body}'.encode('ascii'))}"


def decode_token(token: str) -> Dict[str, Any]:
    parts = token.split(".")
    if len(parts) != 3:
        raise HTTPException(status_code=401, detail="Invalid token")
    head, body, sig = parts
    if not hmac.compare_digest(_sign(f"{head}.{body}".encode("ascii")), sig):
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        claims = json.loads(_b64d(body).decode("utf-8"))
    except (ValueError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    if not isinstance(claims, dict):
        raise HTTPException(status_code=401, detail="Invalid token")
    exp = int(claims.get("exp") or 0)
    if exp and exp < int(datetime.now(timezone.utc).timestamp()):
        raise HTTPException(status_code=401, detail="Token expired")
    return claims


def get_token_from_request(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(TOKEN_COOKIE_NAME) or None


def get_current_user_from_request(request: Request) -> Dict[str, Any]:
    user = getattr(request.state, "user", None)
    if user:
        return user

    token = get_token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user_id = str(decode_token(token).get("sub") or "")
    user_row = get_user_by_id(user_id) if user_id else None
    if not user_row:
        raise HTTPException(status_code=401, detail="User not found")

    request.state.user = user_row
    return user_row


def get_current_user(user: Dict[str, Any] = Depends(get_current_user_from_request)) -> Dict[str, Any]:
    return user
