# -*- coding: utf-8 -*-
"""Auth — API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response

from ..config import settings
from ..security.guards import enforce_rate_limit
from ..security.rate_limit import auth_limiter
from ..security.storage import LOGIN_FAILED, log_security_event
from .models import AuthResponse, LoginRequest, RegisterRequest, UserPublic
from .security import TOKEN_COOKIE_NAME, create_access_token, get_current_user, hash_password, verify_password
from .storage import create_user, get_user_by_email

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _user_public(row: dict) -> UserPublic:
    return UserPublic(id=row["id"], email=row["email"], created_at=row["created_at"])


def _issue(resp: Response, user: dict) -> AuthResponse:
    token = create_access_token(user_id=user["id"], email=user["email"])
    resp.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        httponly=True,
        secure=bool(settings.cookie_secure),
        samesite="lax",
        max_age=int(settings.token_ttl_days) * 86400,
        path="/",
    )
    return AuthResponse(user=_user_public(user), token=token)


@router.post("/register", response_model=AuthResponse, summary="Register a new user")
def register(request: RegisterRequest, response: Response):
    if get_user_by_email(request.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    user = create_user(email=request.email, password_hash=hash_password(request.password))
    return _issue(response, user)


@router.post("/login", response_model=AuthResponse, summary="Login")
def login(request: LoginRequest, response: Response):
    email = request.email.strip().lower()
    enforce_rate_limit(auth_limiter, f"login:{email}")
    user = get_user_by_email(email)
    if not user or not verify_password(request.password, user["password_hash"]):
        log_security_event(LOGIN_FAILED, {"email": email}, severity="low", user_id=user["id"] if user else None)
        raise HTTPException(status_code=401, detail="Invalid email or password")
    auth_limiter.reset(f"login:{email}")
    return _issue(response, user)


@router.post("/logout", summary="Logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE_NAME, path="/")
    return {"status": "ok"}


@router.get("/me", response_model=UserPublic, summary="Get current user")
def me(user: dict = Depends(get_current_user)):
    return _user_public(user)
