"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from qa_dashboard import __version__
from qa_dashboard.routers.deps import get_settings

logger = logging.getLogger(__name__)
router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/health")
async def health_check():
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "service": "qa-dashboard-api",
        "version": __version__,
    }


@router.get("/health/ready")
async def readiness_check(request: Request):
    """Readiness probe: the run services exist and the test root is present."""
    app_settings = get_settings(request)
    checks = {
        "api": True,
        "orchestrator": hasattr(request.app.state, "orchestrator"),
        "run_slots": hasattr(request.app.state, "run_slots"),
        "tests_dir": app_settings.tests_dir.is_dir(),
    }

    return {
        "ready": all(checks.values()),
        "checks": checks,
        "timestamp": _now(),
    }


@router.get("/health/config")
async def config_check(request: Request):
    """Show non-sensitive configuration."""
    app_settings = get_settings(request)
    return {
        "environment": app_settings.ENVIRONMENT,
        "test_env": app_settings.TEST_ENV,
        "tests_dir": str(app_settings.tests_dir),
        "performance_tests_dir": str(app_settings.performance_tests_dir),
        "max_concurrent_runs": app_settings.MAX_CONCURRENT_RUNS,
        "save_run_logs": app_settings.SAVE_RUN_LOGS,
        "browser_headless": app_settings.BROWSER_HEADLESS,
    }
