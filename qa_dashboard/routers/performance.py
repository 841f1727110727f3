"""Performance (k6 and Playwright) test endpoints."""

import logging
from pathlib import Path

from fastapi import APIRouter, Request

from qa_dashboard.models.tests import K6RunRequest, PerformanceRunRequest, RunnerKind
from qa_dashboard.routers.deps import get_settings
from qa_dashboard.routers.tests import run_for_request
from qa_dashboard.services.scanner import TestScanner, is_performance_script
from qa_dashboard.utils.errors import ApiError, bad_request, not_found

logger = logging.getLogger(__name__)
router = APIRouter()
k6_router = APIRouter()


def _scan(request: Request):
    return TestScanner(is_performance_script).scan(get_settings(request).performance_tests_dir)


@router.get("/tests")
def list_performance_tests(request: Request):
    """Runnable scripts under the performance tests directory."""
    tests = [t.to_wire() for t in _scan(request)]
    return {
        "success": True,
        "count": len(tests),
        "tests": tests,
        "testsDir": str(get_settings(request).performance_tests_dir),
    }


@router.post("/run-test")
async def run_performance_test(request: Request, body: PerformanceRunRequest):
    """Run a script from the performance listing by its id."""
    descriptor = next((t for t in _scan(request) if t.id == body.test_id), None)
    if descriptor is None:
        raise not_found("Test not found", details=f"No performance test with id {body.test_id}")

    test_file = get_settings(request).performance_tests_dir / descriptor.path
    result = await run_for_request(
        request,
        descriptor.path,
        body.env,
        resolved_path=test_file,
        runner=descriptor.runner,
    )

    if result.aborted or not result.success:
        raise ApiError(
            500,
            "Failed to execute test",
            details=result.abort_reason or f"Runner exited with code {result.exit_code}",
            runId=result.run_id,
            testPath=str(test_file),
            stdout=result.output,
            stderr=result.error_output,
        )

    return {
        "success": True,
        "runId": result.run_id,
        "testId": body.test_id,
        "testType": result.runner.value,
        "results": result.parsed_results,
        "stdout": result.output,
        "stderr": result.error_output,
        "durationMs": result.duration_ms,
    }


@k6_router.post("/run")
async def run_k6_test(request: Request, body: K6RunRequest):
    """Run a k6 script looked up by name."""
    app_settings = get_settings(request)
    perf_dir = app_settings.performance_tests_dir
    name = Path(body.test_name)
    if name.is_absolute() or ".." in name.parts:
        raise bad_request("testName must be a path relative to the project", status="error")

    candidates = [
        (app_settings.project_root / body.test_name).resolve(),
        (perf_dir / body.test_name).resolve(),
        (perf_dir / "load" / "load-test.js").resolve(),
    ]

    test_file = next((c for c in candidates if c.is_file()), None)
    if test_file is None:
        raise not_found(
            f"Test file not found: {body.test_name}",
            searchedLocations=[str(c) for c in candidates],
            status="error",
        )

    logger.info(f"Using k6 script at: {test_file}")
    result = await run_for_request(
        request, body.test_name, body.env, resolved_path=test_file, runner=RunnerKind.K6
    )

    if result.aborted or not result.success:
        raise ApiError(
            500,
            result.abort_reason or f"k6 exited with code {result.exit_code}",
            runId=result.run_id,
            status="error",
            output=result.output or result.error_output,
            details=result.error_output,
        )

    return {
        "success": True,
        "runId": result.run_id,
        "status": "completed",
        "testPath": str(test_file),
        "output": result.output or result.error_output,
        "results": result.parsed_results,
    }
