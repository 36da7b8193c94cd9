"""
api/routes/health.py
--------------------
Health-check endpoint — used by load balancers, Docker health probes, etc.
"""
from __future__ import annotations

from fastapi import APIRouter

import config

router = APIRouter()


@router.get("/health", summary="Health check")
def health() -> dict:
    """Returns 200 OK when the service is running."""
    return {
        "status": "ok",
        "service": "trip-draft-wizard",
        "geo": "stub" if config.USE_STUB_GEO else "google",
        "autosave": config.AUTOSAVE_BACKEND,
    }
