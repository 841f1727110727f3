"""Accessors for services kept on ``app.state``."""

from starlette.requests import HTTPConnection

from qa_dashboard.services.browser_manager import BrowserManager
from qa_dashboard.services.orchestrator import RunOrchestrator
from qa_dashboard.services.results_store import RunLogStore
from qa_dashboard.services.run_pool import RunSlots
from qa_dashboard.utils.config import Settings, settings as default_settings


def get_settings(conn: HTTPConnection) -> Settings:
    if not hasattr(conn.app.state, "settings"):
        conn.app.state.settings = default_settings
    return conn.app.state.settings


def get_orchestrator(conn: HTTPConnection) -> RunOrchestrator:
    """Get or create the RunOrchestrator instance."""
    if not hasattr(conn.app.state, "orchestrator"):
        conn.app.state.orchestrator = RunOrchestrator(get_settings(conn))
    return conn.app.state.orchestrator


def get_run_slots(conn: HTTPConnection) -> RunSlots:
    if not hasattr(conn.app.state, "run_slots"):
        conn.app.state.run_slots = RunSlots(get_settings(conn).MAX_CONCURRENT_RUNS)
    return conn.app.state.run_slots


def get_run_logs(conn: HTTPConnection) -> RunLogStore:
    if not hasattr(conn.app.state, "run_logs"):
        conn.app.state.run_logs = RunLogStore(get_settings(conn).test_results_dir)
    return conn.app.state.run_logs


def get_browser_manager(conn: HTTPConnection) -> BrowserManager:
    """Get or create the shared BrowserManager."""
    if not hasattr(conn.app.state, "browser_manager"):
        app_settings = get_settings(conn)
        conn.app.state.browser_manager = BrowserManager(
            headless=app_settings.BROWSER_HEADLESS,
            timeout_ms=app_settings.PAGE_TIMEOUT_MS,
        )
    return conn.app.state.browser_manager
