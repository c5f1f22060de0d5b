"""FastAPI application: Overtime Tracking API."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from overtime_tool.config import get_settings
from overtime_tool.log import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name,
    description="Overtime submissions, approvals, earnings and master sheet.",
    version="1.0.0",
)

# CORS: OVERTIME_ALLOWED_ORIGINS="*" allows any origin
_origins_list = settings.origins
_allow_all = "*" in _origins_list

if _allow_all:
    ALLOWED_ORIGINS: list[str] = ["*"]
elif _origins_list:
    ALLOWED_ORIGINS = _origins_list
else:
    ALLOWED_ORIGINS = [
        "http://localhost:8080",
        "http://localhost:3000",
        "http://127.0.0.1:8080",
    ]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=not _allow_all,  # credentials not allowed with wildcard
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)

app.include_router(router)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
