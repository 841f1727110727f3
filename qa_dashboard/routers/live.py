"""
Live run channel over WebSocket.

Messages in both directions are ``{"event": ..., "data": {...}}``.

client -> server: ``run-test {filePath, env}``, ``cancel-test {runId}``
server -> client: ``run-started {runId, filePath}``,
``test-log {type: "log", stream, message}`` and one terminal
``test-status {runId, status: passed|failed|error, code?, error?}`` per run.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from qa_dashboard.routers.deps import get_orchestrator, get_run_slots, get_settings
from qa_dashboard.services.orchestrator import (
    CancelToken,
    RunnerError,
    TestNotFoundError,
    resolve_test_path,
)
from qa_dashboard.services.results_store import resolve_within

logger = logging.getLogger(__name__)
router = APIRouter()


class LiveChannel:
    """One client connection and the runs it started."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.connected = True
        self.tokens: Dict[str, CancelToken] = {}
        self.tasks: Dict[str, asyncio.Task] = {}
        self._send_lock = asyncio.Lock()

    async def send(self, event: str, data: Dict[str, Any]) -> None:
        if not self.connected:
            return
        async with self._send_lock:
            try:
                await self.websocket.send_json({"event": event, "data": data})
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info(f"Live channel closed while sending {event}: {e}")
                self.disconnect()

    async def status(self, run_id: Optional[str], status: str, **extra: Any) -> None:
        payload = {"runId": run_id, "status": status}
        payload.update({k: v for k, v in extra.items() if v is not None})
        await self.send("test-status", payload)

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        for run_id, token in self.tokens.items():
            logger.warning(f"[{run_id}] Live client disconnected, killing run")
            token.cancel("Client disconnected")


def _allowed(path: Path, roots) -> bool:
    return any(resolve_within(root, path) is not None for root in roots)


async def _run(channel: LiveChannel, run_id: str, file_path: str, env: Optional[str]) -> None:
    try:
        await _run_live(channel, run_id, file_path, env)
    except Exception as e:
        logger.exception(f"[{run_id}] Live run failed: {e}")
        await channel.status(run_id, "error", error=str(e))


async def _run_live(channel: LiveChannel, run_id: str, file_path: str, env: Optional[str]) -> None:
    app_settings = get_settings(channel.websocket)
    orchestrator = get_orchestrator(channel.websocket)
    slots = get_run_slots(channel.websocket)

    try:
        resolved = resolve_test_path(file_path, app_settings.project_root, app_settings.tests_dir)
    except TestNotFoundError as e:
        await channel.status(run_id, "error", error=str(e))
        return

    if not _allowed(resolved, (app_settings.project_root, app_settings.tests_dir)):
        await channel.status(run_id, "error", error="Access denied")
        return

    if not await slots.acquire(run_id, file_path):
        await channel.status(run_id, "error", error="Too many concurrent test runs, try again later")
        return

    token = CancelToken()
    channel.tokens[run_id] = token
    if not channel.connected:
        token.cancel("Client disconnected")

    async def forward(stream: str, line: str) -> None:
        await channel.send("test-log", {"type": "log", "runId": run_id, "stream": stream, "message": line})

    try:
        await channel.send("run-started", {"runId": run_id, "filePath": file_path})
        result = await orchestrator.run(
            file_path,
            env,
            on_output=forward,
            cancel_token=token,
            run_id=run_id,
            resolved_path=resolved,
        )
    except RunnerError as e:
        await channel.status(run_id, "error", error=str(e))
        return
    finally:
        channel.tokens.pop(run_id, None)
        await slots.release(run_id)

    if result.aborted:
        await channel.status(run_id, "error", code=result.exit_code, error=result.abort_reason)
    elif result.success:
        await channel.status(run_id, "passed", code=result.exit_code)
    else:
        await channel.status(run_id, "failed", code=result.exit_code)


async def _dispatch(channel: LiveChannel, message: Any) -> None:
    if not isinstance(message, dict):
        await channel.status(None, "error", error="Messages must be JSON objects")
        return

    event = message.get("event")
    data = message.get("data")
    if not isinstance(data, dict):
        data = {}

    if event == "run-test":
        file_path = data.get("filePath")
        if not file_path or not isinstance(file_path, str):
            await channel.status(None, "error", error="filePath is required")
            return
        run_id = f"run-{uuid.uuid4().hex[:12]}"
        logger.info(f"[{run_id}] Live run requested: {file_path}")
        task = asyncio.create_task(_run(channel, run_id, file_path, data.get("env")))
        channel.tasks[run_id] = task
        task.add_done_callback(lambda _: channel.tasks.pop(run_id, None))
    elif event == "cancel-test":
        token = channel.tokens.get(data.get("runId"))
        if token is None:
            await channel.status(data.get("runId"), "error", error="Run not found")
            return
        token.cancel("Cancelled by client")
    else:
        await channel.status(None, "error", error=f"Unknown event: {event}")


@router.websocket("/ws")
async def live_channel(websocket: WebSocket):
    """Start runs and stream their logs to the connected client."""
    await websocket.accept()
    channel = LiveChannel(websocket)
    logger.info("Live client connected")

    try:
        while channel.connected:
            try:
                message = await websocket.receive_json()
            except ValueError:
                await channel.status(None, "error", error="Invalid JSON message")
                continue
            await _dispatch(channel, message)
    except WebSocketDisconnect:
        logger.info("Live client disconnected")
    finally:
        channel.disconnect()
        pending = list(channel.tasks.values())
        results = await asyncio.gather(*pending, return_exceptions=True)
        for outcome in results:
            if isinstance(outcome, Exception):
                logger.error(f"Live run failed after disconnect: {outcome}")
