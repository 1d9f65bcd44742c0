"""
Health check endpoints.
"""

import importlib.util
from datetime import datetime

from fastapi import APIRouter

from translit_probe import __version__
from translit_probe.cases import bundled_cases
from translit_probe.config import settings

router = APIRouter()


@router.get("")
async def health_check():
    """
    Basic health check endpoint.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "environment": settings.app_env,
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - verifies the runner has what it needs.
    """
    checks = {
        "api": True,
        "playwright_installed": importlib.util.find_spec("playwright") is not None,
        "target_configured": bool(settings.target_url),
        "cases_loaded": len(bundled_cases()) > 0,
    }

    all_ready = all(checks.values())

    return {
        "ready": all_ready,
        "checks": checks,
        "timestamp": datetime.utcnow().isoformat(),
    }
