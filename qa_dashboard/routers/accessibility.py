"""Accessibility scan and keyboard check endpoints."""

import logging

from fastapi import APIRouter, Request

from qa_dashboard.models.checks import AccessibilityRunRequest, KeyboardRunRequest
from qa_dashboard.routers.deps import get_browser_manager, get_settings
from qa_dashboard.services.accessibility import AccessibilityScanner
from qa_dashboard.services.browser_manager import VIEWPORTS
from qa_dashboard.services.keyboard_checks import TEST_CONFIGS, KeyboardChecker
from qa_dashboard.services.results_store import ResultStore
from qa_dashboard.utils.errors import ApiError, bad_request, not_found

logger = logging.getLogger(__name__)
router = APIRouter()
keyboard_router = APIRouter()


def get_accessibility_scanner(request: Request) -> AccessibilityScanner:
    """Get or create AccessibilityScanner instance."""
    if not hasattr(request.app.state, "accessibility_scanner"):
        app_settings = get_settings(request)
        request.app.state.accessibility_scanner = AccessibilityScanner(
            browser_manager=get_browser_manager(request),
            store=ResultStore(app_settings.results_dir / "accessibility"),
            axe_script_url=app_settings.AXE_SCRIPT_URL,
        )
    return request.app.state.accessibility_scanner


def get_keyboard_checker(request: Request) -> KeyboardChecker:
    """Get or create KeyboardChecker instance."""
    if not hasattr(request.app.state, "keyboard_checker"):
        request.app.state.keyboard_checker = KeyboardChecker(
            browser_manager=get_browser_manager(request),
            store=ResultStore(get_settings(request).results_dir / "keyboard-tests"),
        )
    return request.app.state.keyboard_checker


@router.post("/run")
async def run_accessibility_scan(request: Request, body: AccessibilityRunRequest):
    """Load a page and run axe-core against it."""
    if body.viewport.lower() not in VIEWPORTS:
        raise bad_request(
            f"Unknown viewport: {body.viewport}",
            details=f"Expected one of: {', '.join(VIEWPORTS)}",
        )

    scanner = get_accessibility_scanner(request)
    try:
        document = await scanner.run(body.screen_name, body.url, body.viewport.lower())
    except Exception as e:
        logger.error(f"Accessibility scan of {body.url} failed: {e}", exc_info=True)
        raise ApiError(500, "Failed to run accessibility test", details=str(e))

    return {"success": True, **document}


@router.get("/results/{test_id}")
def get_accessibility_result(request: Request, test_id: str):
    document = get_accessibility_scanner(request).get(test_id)
    if document is None:
        raise not_found("Test results not found")
    return {"success": True, **document}


@router.get("/list")
def list_accessibility_results(request: Request):
    tests = get_accessibility_scanner(request).list()
    return {"success": True, "count": len(tests), "tests": tests}


@keyboard_router.get("/configs")
def list_keyboard_checks():
    """Available keyboard checks."""
    return {
        "success": True,
        "tests": [{"id": test_id, **config} for test_id, config in TEST_CONFIGS.items()],
    }


@keyboard_router.post("/run")
async def run_keyboard_check(request: Request, body: KeyboardRunRequest):
    """Run one keyboard interaction check against a URL."""
    if body.test_id not in TEST_CONFIGS:
        raise bad_request(
            f"Invalid testId: {body.test_id}",
            details=f"Expected one of: {', '.join(TEST_CONFIGS)}",
        )

    try:
        result = await get_keyboard_checker(request).run(body.test_id, body.url)
    except Exception as e:
        logger.error(f"Keyboard check {body.test_id} on {body.url} failed: {e}", exc_info=True)
        raise ApiError(500, str(e) or "Keyboard test failed", testId=body.test_id)

    return {"success": True, **result.to_wire()}


@keyboard_router.get("/results")
def list_keyboard_results(request: Request):
    results = get_keyboard_checker(request).list_results()
    return {"success": True, "count": len(results), "results": results}
