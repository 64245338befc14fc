# -*- coding: utf-8 -*-
"""catlog API

Daily cough / medication / soft-food log with cross-device sync.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .app_db import init_app_db
from .config import settings
from .logs.api import router as logs_router
from .security import check_api_key
from .sync.api import router as sync_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="catlog",
    description="Daily cough, medication and soft-food log for an asthmatic cat, with cross-device sync.",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup_init_db() -> None:
    init_app_db(settings.db_path)
    logger.info("Daily log database ready at %s", settings.db_path)


# Ensure the DB exists even when lifespan events are not triggered (e.g. some test clients).
init_app_db(settings.db_path)


_AUTH_EXEMPT_PREFIXES = (
    "/api/health",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
)


@app.middleware("http")
async def _api_key_gate(request: Request, call_next):
    path = request.url.path
    if path.startswith("/api") and not any(path.startswith(p) for p in _AUTH_EXEMPT_PREFIXES):
        try:
            check_api_key(request)
        except HTTPException as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


app.include_router(logs_router)
app.include_router(sync_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": app.version,
        "timestamp": datetime.now().isoformat(),
    }


@app.get("/", include_in_schema=False)
def root():
    return {"message": "catlog API", "docs": "/api/docs"}


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    host = os.environ.get("CATLOG_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("CATLOG_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    logging.basicConfig(level=os.environ.get("CATLOG_LOG_LEVEL") or "INFO")
    uvicorn.run("catlog.api:app", host=host, port=port, reload=False)
