# -*- coding: utf-8 -*-
"""
PlateScan API

Photo-to-nutrition backend: barcode lookup, label matching, meal detection,
portion estimates, health scoring and meal logging.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .app_db import init_app_db
from .auth.api import router as auth_router
from .auth.security import get_current_user_from_request
from .barcode.api import router as barcode_router
from .branded.api import router as branded_router
from .config import settings
from .detect.api import router as detect_router
from .health.api import router as health_router
from .meals.api import router as meals_router
from .scan.api import router as scan_router
from .security.api import router as security_router
from .vault.api import router as vault_router

VERSION = "1.0.0"

app = FastAPI(
    title="PlateScan",
    description="Barcode, label and meal photo recognition with nutrition and health scoring",
    version=VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_origins != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup_init_db() -> None:
    init_app_db(settings.app_db_path)


# Ensure the app DB exists even when lifespan events are not triggered (e.g. some test clients).
init_app_db(settings.app_db_path)


_AUTH_EXEMPT_PREFIXES = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/logout",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
)


@app.middleware("http")
async def _auth_gate(request: Request, call_next):
    path = request.url.path
    if (
        path.startswith("/api")
        and request.method != "OPTIONS"
        and path != "/api/health"
        and not any(path.startswith(p) for p in _AUTH_EXEMPT_PREFIXES)
    ):
        try:
            user = get_current_user_from_request(request)
            request.state.user = user
        except HTTPException as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


app.include_router(auth_router)
app.include_router(security_router)
app.include_router(barcode_router)
app.include_router(branded_router)
app.include_router(vault_router)
app.include_router(detect_router)
app.include_router(scan_router)
app.include_router(health_router)
app.include_router(meals_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    host = os.environ.get("PLATESCAN_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("PLATESCAN_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("platescan.api:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    run()
