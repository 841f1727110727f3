"""
Run orchestrator.

Resolves a test identifier to a file on disk, spawns the matching runner
CLI (Playwright or k6), streams its output line by line and turns the
exit status plus any structured output into an immutable RunResult.
"""

import asyncio
import json
import logging
import os
import shlex
import signal
import tempfile
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from qa_dashboard.models.tests import RunnerKind, RunResult
from qa_dashboard.services.scanner import runner_for
from qa_dashboard.utils.config import Settings

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str, str], Awaitable[None]]

_TESTS_PREFIXES = ("./tests/", "tests/")

# Bytes per read from runner pipes; lines may be far longer than this.
_READ_CHUNK = 64 * 1024


class TestNotFoundError(Exception):
    """No candidate location for a test path exists on disk."""

    __test__ = False

    def __init__(self, test_path: str, searched_locations: List[str]):
        super().__init__(f"Test file not found: {test_path}")
        self.test_path = test_path
        self.searched_locations = searched_locations


class RunnerError(Exception):
    """The runner process could not be started."""


class CancelToken:
    """Cooperative cancellation flag shared between a run and its caller."""

    def __init__(self):
        self._event = asyncio.Event()
        self.reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "Cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class ActiveRun:
    run_id: str
    test_path: str
    env: str
    runner: RunnerKind
    token: CancelToken
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runId": self.run_id,
            "testPath": self.test_path,
            "env": self.env,
            "runner": self.runner.value,
            "startedAt": self.started_at.isoformat(),
        }


def _clean_test_path(test_path: str) -> str:
    cleaned = test_path
    for prefix in _TESTS_PREFIXES:
        if cleaned.startswith(prefix):
            cleaned = cleaned[len(prefix):]
            break
    return cleaned.lstrip("/")


def candidate_paths(test_path: str, project_root: Path, tests_dir: Path) -> List[Path]:
    """Ordered, de-duplicated locations where a test path may live."""
    normalized = test_path.replace("\\", "/")
    cleaned = _clean_test_path(normalized)

    candidates = [
        Path(normalized).resolve(),
        (project_root / cleaned).resolve(),
        (tests_dir / cleaned).resolve(),
        (tests_dir / Path(cleaned).name).resolve(),
    ]

    unique: List[Path] = []
    for candidate in candidates:
        if candidate not in unique:
            unique.append(candidate)
    return unique


def resolve_test_path(test_path: str, project_root: Path, tests_dir: Path) -> Path:
    """
    Find the file a test identifier refers to.

    Args:
        test_path: Identifier sent by the client (relative or absolute)
        project_root: Configured project root
        tests_dir: Configured tests directory

    Returns:
        The first candidate that exists on disk

    Raises:
        TestNotFoundError: when no candidate exists
    """
    if "\x00" in test_path:
        raise TestNotFoundError(test_path.replace("\x00", "\\0"), [])

    candidates = candidate_paths(test_path, project_root, tests_dir)
    for candidate in candidates:
        exists = candidate.is_file()
        logger.debug(f"Checking {candidate}: {'found' if exists else 'missing'}")
        if exists:
            return candidate

    raise TestNotFoundError(test_path, [str(c) for c in candidates])


def select_runner(path: Union[str, Path], base: Optional[Path] = None) -> RunnerKind:
    """Pick the runner from the path, relative to base when it lies inside it."""
    path = Path(path)
    if base is not None:
        try:
            path = path.relative_to(base)
        except ValueError:
            pass
    return runner_for(path.as_posix())


def parse_trailing_json(text: str) -> Optional[Any]:
    """Parse the last non-empty line of runner output as JSON, if it is JSON."""
    for line in reversed(text.splitlines()):
        line = line.strip()
        if not line:
            continue
        try:
            return json.loads(line)
        except ValueError:
            return None
    return None


def _read_json_file(path: Path) -> Optional[Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not parse runner output file {path}: {e}")
        return None


class RunOrchestrator:
    """Spawns runner processes and tracks the runs currently in flight."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._active: Dict[str, ActiveRun] = {}

    def build_command(self, runner: RunnerKind, test_file: Path, output_file: Path) -> List[str]:
        if runner == RunnerKind.K6:
            return shlex.split(self.settings.K6_COMMAND) + [
                "run", str(test_file), "--summary-export", str(output_file),
            ]
        return shlex.split(self.settings.PLAYWRIGHT_COMMAND) + [
            "test", str(test_file), "--reporter=json", "--workers=1",
        ]

    def build_env(self, env: str, output_file: Path) -> Dict[str, str]:
        base_url = self.settings.runner_base_url
        merged = dict(os.environ)
        merged.update({
            "TEST_ENV": env,
            "ENV": env,
            "NODE_ENV": "test",
            "BASE_URL": self.settings.BASE_URL or base_url,
            "PLAYWRIGHT_TEST_BASE_URL": base_url,
            "PLAYWRIGHT_JSON_OUTPUT_NAME": str(output_file),
        })
        return merged

    def list_active(self) -> List[Dict[str, Any]]:
        return [run.to_dict() for run in self._active.values()]

    def cancel(self, run_id: str, reason: str = "Cancelled by request") -> bool:
        """Signal an in-flight run to stop. Returns False if it is unknown."""
        active = self._active.get(run_id)
        if active is None:
            return False
        logger.info(f"[{run_id}] Cancelling run: {reason}")
        active.token.cancel(reason)
        return True

    async def run(
        self,
        test_path: str,
        env: Optional[str] = None,
        on_output: Optional[OutputCallback] = None,
        cancel_token: Optional[CancelToken] = None,
        run_id: Optional[str] = None,
        resolved_path: Optional[Path] = None,
        runner: Optional[RunnerKind] = None,
    ) -> RunResult:
        """
        Execute one test file and wait for its outcome.

        Args:
            test_path: Identifier sent by the client
            env: Environment name injected as TEST_ENV/ENV
            on_output: Awaited with (stream, line) for every output line
            cancel_token: Setting it kills the process and aborts the run
            run_id: Explicit id, generated when omitted
            resolved_path: Skip path resolution and run this file
            runner: Force a runner instead of selecting it from the path

        Returns:
            RunResult

        Raises:
            TestNotFoundError: the path could not be resolved
            RunnerError: the runner CLI could not be started
        """
        env = env or self.settings.TEST_ENV
        run_id = run_id or f"run-{uuid.uuid4().hex[:12]}"
        token = cancel_token or CancelToken()

        if resolved_path is None:
            resolved_path = resolve_test_path(
                test_path, self.settings.project_root, self.settings.tests_dir
            )
        runner = runner or select_runner(resolved_path, self.settings.project_root)

        active = ActiveRun(run_id=run_id, test_path=test_path, env=env, runner=runner, token=token)
        self._active[run_id] = active
        try:
            with tempfile.TemporaryDirectory(prefix=f"{run_id}-") as tmp:
                output_file = Path(tmp) / "results.json"
                return await self._execute(
                    active, resolved_path, output_file, on_output,
                )
        finally:
            self._active.pop(run_id, None)

    async def _execute(
        self,
        active: ActiveRun,
        test_file: Path,
        output_file: Path,
        on_output: Optional[OutputCallback],
    ) -> RunResult:
        run_id = active.run_id
        cmd = self.build_command(active.runner, test_file, output_file)
        logger.info(f"[{run_id}] Running {active.runner.value}: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(self.settings.project_root),
                env=self.build_env(active.env, output_file),
                start_new_session=(os.name == "posix"),
            )
        except OSError as e:
            raise RunnerError(f"Failed to start {active.runner.value} runner: {e}") from e

        stdout_lines: List[str] = []
        stderr_lines: List[str] = []

        async def _emit(raw: bytes, name: str, buf: List[str]) -> None:
            line = raw.decode("utf-8", errors="replace").rstrip("\r")
            buf.append(line)
            if on_output is not None:
                await on_output(name, line)

        async def _drain(stream: asyncio.StreamReader, name: str, buf: List[str]) -> None:
            pending = bytearray()
            while True:
                chunk = await stream.read(_READ_CHUNK)
                if not chunk:
                    break
                pending.extend(chunk)
                *complete, rest = bytes(pending).split(b"\n")
                pending = bytearray(rest)
                for raw in complete:
                    await _emit(raw, name, buf)
            if pending:
                await _emit(bytes(pending), name, buf)

        drains = asyncio.gather(
            _drain(proc.stdout, "stdout", stdout_lines),
            _drain(proc.stderr, "stderr", stderr_lines),
        )
        cancelled = asyncio.ensure_future(active.token.wait())
        exited = None

        try:
            done, _ = await asyncio.wait({drains, cancelled}, return_when=asyncio.FIRST_COMPLETED)
            aborted = drains not in done
            if not aborted:
                # re-raise any error from the output callback
                drains.result()
                # the runner may close its pipes and keep going
                exited = asyncio.ensure_future(proc.wait())
                done, _ = await asyncio.wait({exited, cancelled}, return_when=asyncio.FIRST_COMPLETED)
                aborted = exited not in done
            if aborted:
                logger.warning(f"[{run_id}] Aborting run: {active.token.reason}")
                drains.cancel()
                _kill(proc)
            exit_code = await proc.wait()
        finally:
            cancelled.cancel()
            if exited is not None:
                exited.cancel()
            if proc.returncode is None:
                _kill(proc)
                await proc.wait()

        if aborted and exit_code == 0:
            exit_code = -1

        output = "\n".join(stdout_lines)
        parsed = None
        if not aborted:
            if output_file.is_file() and output_file.stat().st_size > 0:
                parsed = _read_json_file(output_file)
            else:
                parsed = parse_trailing_json(output)

        completed_at = datetime.now(timezone.utc)
        result = RunResult(
            run_id=run_id,
            test_path=active.test_path,
            env=active.env,
            runner=active.runner,
            resolved_path=str(test_file),
            success=exit_code == 0,
            exit_code=exit_code,
            output=output,
            error_output="\n".join(stderr_lines),
            parsed_results=parsed,
            aborted=aborted,
            abort_reason=active.token.reason if aborted else None,
            started_at=active.started_at,
            completed_at=completed_at,
            duration_ms=int((completed_at - active.started_at).total_seconds() * 1000),
        )
        logger.info(
            f"[{run_id}] Finished: exit_code={exit_code} aborted={aborted} "
            f"duration={result.duration_ms}ms"
        )
        return result


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill the runner and anything it spawned (npx starts node children)."""
    if proc.returncode is not None:
        return
    try:
        if os.name == "posix":
            os.killpg(proc.pid, signal.SIGKILL)
        else:
            proc.kill()
    except ProcessLookupError:
        pass
