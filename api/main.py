"""
Campaign Linkage API - Main application entry point.

Run with: python -m uvicorn api.main:app --reload --port 8001
"""
import logging
import sys

import psycopg2
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from matching.errors import LinkageError

from .config import ALLOWED_ORIGINS, AUTH_DISABLED, JWT_SECRET
from .middleware.auth import AuthMiddleware
from .middleware.logging import LoggingMiddleware
from .routers import alumni, members, system

_log = logging.getLogger("linkage_api")

app = FastAPI(
    title="Campaign Linkage API",
    version="1.0",
    description="Member/alumni record linkage and duplicate member merge",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)
app.add_middleware(AuthMiddleware)
app.add_middleware(LoggingMiddleware)


# ---------- Routers ----------
app.include_router(system.router)
app.include_router(alumni.router)
app.include_router(members.router)


@app.exception_handler(LinkageError)
async def handle_linkage_error(_request, exc: LinkageError):
    if exc.status_code >= 500:
        _log.error("%s: %s", type(exc).__name__, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
    )


@app.exception_handler(psycopg2.Error)
async def handle_db_error(_request, _exc):
    return JSONResponse(
        status_code=503,
        content={"detail": "Database unavailable"},
    )


# Auth startup checks
if AUTH_DISABLED:
    _log.warning(
        "DISABLE_AUTH=true -- authentication is DISABLED. "
        "All API endpoints are publicly accessible. "
        "Remove DISABLE_AUTH from .env to enforce authentication."
    )
elif not JWT_SECRET:
    _log.critical(
        "LINKAGE_JWT_SECRET is not set and DISABLE_AUTH is not true. "
        "Refusing to start without authentication configured. "
        "Either set LINKAGE_JWT_SECRET in .env (32+ chars) or set DISABLE_AUTH=true for development."
    )
    sys.exit(1)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
