"""Test discovery and test run endpoints."""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Query, Request

from qa_dashboard.models.tests import RunnerKind, RunResult, RunTestRequest
from qa_dashboard.routers.deps import (
    get_orchestrator,
    get_run_logs,
    get_run_slots,
    get_settings,
)
from qa_dashboard.services.orchestrator import CancelToken, RunnerError, TestNotFoundError
from qa_dashboard.services.scanner import TestScanner
from qa_dashboard.utils.errors import ApiError, not_found

logger = logging.getLogger(__name__)
router = APIRouter()
legacy_router = APIRouter()

ABORTED_BY_CLIENT = "Test execution was aborted by the client"


async def watch_disconnect(request: Request, token: CancelToken, interval: float) -> None:
    """Cancel the token once the HTTP client goes away."""
    while not token.cancelled:
        if await request.is_disconnected():
            logger.warning(f"Client disconnected from {request.url.path}")
            token.cancel(ABORTED_BY_CLIENT)
            return
        await asyncio.sleep(interval)


async def run_for_request(
    request: Request,
    test_path: str,
    env: Optional[str],
    resolved_path: Optional[Path] = None,
    runner: Optional[RunnerKind] = None,
) -> RunResult:
    """
    Run a test on behalf of an HTTP request.

    Takes a run slot (429 when none is free), kills the runner if the
    client disconnects and maps resolution/spawn failures to 404/500.
    """
    app_settings = get_settings(request)
    orchestrator = get_orchestrator(request)
    slots = get_run_slots(request)

    run_id = f"run-{uuid.uuid4().hex[:12]}"
    if not await slots.acquire(run_id, test_path):
        raise ApiError(
            429,
            "Too many concurrent test runs, try again later",
            maxConcurrent=slots.max_concurrent,
        )

    token = CancelToken()
    watcher = asyncio.create_task(
        watch_disconnect(request, token, app_settings.DISCONNECT_POLL_SECONDS)
    )
    try:
        return await orchestrator.run(
            test_path,
            env,
            cancel_token=token,
            run_id=run_id,
            resolved_path=resolved_path,
            runner=runner,
        )
    except TestNotFoundError as e:
        raise not_found(str(e), searchedLocations=e.searched_locations)
    except RunnerError as e:
        raise ApiError(500, str(e), testPath=test_path)
    finally:
        watcher.cancel()
        await slots.release(run_id)


def raise_for_failed_run(result: RunResult) -> None:
    """Turn an aborted or failed RunResult into a 500 error envelope."""
    if result.aborted:
        raise ApiError(
            500,
            result.abort_reason or ABORTED_BY_CLIENT,
            runId=result.run_id,
            testPath=result.test_path,
            env=result.env,
            output=result.output,
            stderr=result.error_output,
        )
    if not result.success:
        raise ApiError(
            500,
            f"Test failed with exit code {result.exit_code}",
            runId=result.run_id,
            testPath=result.test_path,
            env=result.env,
            exitCode=result.exit_code,
            results=result.parsed_results,
            output=result.output,
            stderr=result.error_output,
        )


def run_payload(result: RunResult) -> Dict[str, Any]:
    return {
        "success": True,
        "runId": result.run_id,
        "testPath": result.test_path,
        "env": result.env,
        "runner": result.runner.value,
        "resolvedPath": result.resolved_path,
        "exitCode": result.exit_code,
        "durationMs": result.duration_ms,
        "results": result.parsed_results,
        "output": result.output,
        "error": result.error_output or None,
    }


def _normalize_type(value: Optional[str]) -> str:
    return "".join((value or "").lower().split())


def group_by_category(tests: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for test in tests:
        grouped.setdefault(test["category"], []).append(test)
    return grouped


@router.get("")
def list_tests(
    request: Request,
    category: Optional[str] = Query(None, description="Filter by category"),
    test_type: Optional[str] = Query(None, alias="type", description="Filter by test type"),
):
    """Discover test files under the tests directory."""
    tests_dir = get_settings(request).tests_dir
    all_tests = [t.to_wire() for t in TestScanner().scan(tests_dir)]

    query_category = (category or "").lower()
    query_type = _normalize_type(test_type)
    filtered = [
        t for t in all_tests
        if (not query_category or t["category"].lower() == query_category)
        and (not query_type or t["type"] == query_type)
    ]
    categories = sorted({t["category"] for t in all_tests})

    response: Dict[str, Any] = {
        "success": True,
        "count": len(filtered),
        "totalTests": len(all_tests),
        "tests": filtered,
        "testsByCategory": group_by_category(filtered),
        "categories": categories,
        "testsDir": str(tests_dir),
        "filters": {"category": category or "all", "type": test_type or "all"},
    }

    if not filtered:
        help_lines = [
            "Check that test files exist in the expected location and match "
            "*.test.js, *.spec.js, *.test.ts or *.spec.ts"
        ]
        if not tests_dir.is_dir():
            help_lines.append(f"Tests directory does not exist: {tests_dir}")
        if category and query_category not in {c.lower() for c in categories}:
            help_lines.append(
                f"Category '{category}' not found. Available categories: {', '.join(categories)}"
            )
        if test_type and query_type not in {t["type"] for t in all_tests}:
            types = sorted({t["type"] for t in all_tests})
            help_lines.append(f"Test type '{test_type}' not found. Available types: {', '.join(types)}")
        response["warning"] = "No test files found"
        response["help"] = "\n".join(help_lines)

    return response


@router.post("/run")
async def run_test(request: Request, body: RunTestRequest):
    """Run one test file and return its result."""
    logger.info(f"Running test: {body.test_path} (env={body.env or 'default'})")
    result = await run_for_request(request, body.test_path, body.env)

    if get_settings(request).SAVE_RUN_LOGS and not result.aborted:
        get_run_logs(request).save_run(result)

    raise_for_failed_run(result)
    return run_payload(result)


@router.get("/runs")
async def list_runs(request: Request):
    """Runs in flight plus slot usage."""
    return {
        "success": True,
        "runs": get_orchestrator(request).list_active(),
        "slots": await get_run_slots(request).get_status(),
    }


@router.post("/runs/{run_id}/cancel")
async def cancel_run(request: Request, run_id: str):
    if not get_orchestrator(request).cancel(run_id):
        raise not_found(f"Run not found: {run_id}")
    return {"success": True, "runId": run_id, "cancelled": True}


@router.get("/results")
def list_results(request: Request):
    """Saved run logs, newest first."""
    runs = get_run_logs(request).list_runs()
    return {"success": True, "count": len(runs), "results": runs}


@router.get("/results/{run_id}")
def get_result(request: Request, run_id: str):
    run = get_run_logs(request).get_run(run_id)
    if run is None:
        raise not_found(f"Run results not found: {run_id}")
    return {"success": True, "result": run}


@legacy_router.get("/tests")
def legacy_list_tests(request: Request):
    """Older dashboard listing: tests grouped by category only."""
    tests = [t.to_wire() for t in TestScanner().scan(get_settings(request).tests_dir)]
    return {"success": True, "testsByCategory": group_by_category(tests)}
