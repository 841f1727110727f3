"""
QA Dashboard API - Test Discovery, Execution and QA Tooling

Endpoints:
- GET /api/tests - Discover test files
- POST /api/tests/run - Run one test file and relay its JSON results
- WS /ws - Live runs with streamed logs
- /performance, /api/k6-tests - k6 scripts
- /api/accessibility, /api/keyboard-tests - Browser checks
- /api/visual-tests - Screenshot baselines
- /api/jira - Jira lookups
- /api/behavior-analysis, /api/analyze-behavior - Behavior sessions
- /flows - Flow documents
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from qa_dashboard import __version__
from qa_dashboard.routers import (
    accessibility,
    behavior,
    flows,
    health,
    jira,
    live,
    performance,
    tests,
    visual_tests,
)
from qa_dashboard.services.orchestrator import RunOrchestrator
from qa_dashboard.services.run_pool import RunSlots
from qa_dashboard.utils.config import Settings, settings as default_settings
from qa_dashboard.utils.errors import register_exception_handlers
from qa_dashboard.utils.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings: Settings = app.state.settings
    logger.info(f"QA Dashboard API starting ({app_settings.ENVIRONMENT})")
    logger.info(f"Tests directory: {app_settings.tests_dir}")

    if not hasattr(app.state, "run_slots"):
        app.state.run_slots = RunSlots(app_settings.MAX_CONCURRENT_RUNS)
    if not hasattr(app.state, "orchestrator"):
        app.state.orchestrator = RunOrchestrator(app_settings)

    yield

    logger.info("QA Dashboard API shutting down...")
    for run in app.state.orchestrator.list_active():
        app.state.orchestrator.cancel(run["runId"], "Server shutting down")

    browser_manager = getattr(app.state, "browser_manager", None)
    if browser_manager is not None:
        await browser_manager.close_all()


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """Build the application; tests pass their own Settings."""
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="QA Dashboard API",
        description="Test discovery, execution and QA tooling",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    register_exception_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)")
        return response

    app.include_router(health.router, tags=["health"])
    app.include_router(tests.router, prefix="/api/tests", tags=["tests"])
    app.include_router(tests.legacy_router, tags=["tests"])
    app.include_router(performance.router, prefix="/performance", tags=["performance"])
    app.include_router(performance.k6_router, prefix="/api/k6-tests", tags=["performance"])
    app.include_router(accessibility.router, prefix="/api/accessibility", tags=["accessibility"])
    app.include_router(accessibility.keyboard_router, prefix="/api/keyboard-tests", tags=["accessibility"])
    app.include_router(visual_tests.router, prefix="/api/visual-tests", tags=["visual"])
    app.include_router(visual_tests.image_router, prefix="/api", tags=["visual"])
    app.include_router(jira.router, prefix="/api/jira", tags=["jira"])
    app.include_router(behavior.router, prefix="/api", tags=["behavior"])
    app.include_router(flows.router, prefix="/flows", tags=["flows"])
    app.include_router(live.router, tags=["live"])

    @app.get("/")
    async def root():
        return {
            "service": "QA Dashboard API",
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()


def run() -> None:
    """Console entry point."""
    setup_logging(default_settings)
    uvicorn.run(
        "qa_dashboard.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
    )


if __name__ == "__main__":
    run()
