"""
JSON result storage.

Run logs, accessibility scans and keyboard checks are written as plain
JSON files under a directory per result kind.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from qa_dashboard.models.tests import RunResult

logger = logging.getLogger(__name__)


def file_timestamp(moment: Optional[datetime] = None) -> str:
    """ISO timestamp usable in a filename (no ':' or '.')."""
    moment = moment or datetime.now(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-%f")[:-3] + "Z"


def resolve_within(base: Path, candidate: Path) -> Optional[Path]:
    """Return the resolved candidate if it lies inside base, else None."""
    resolved = candidate.resolve()
    try:
        resolved.relative_to(base.resolve())
    except ValueError:
        logger.error(f"Path traversal attempt: {candidate}")
        return None
    return resolved


class ResultStore:
    """Reads and writes JSON documents in one directory."""

    def __init__(self, base_path: Path):
        self.base_path = Path(base_path)

    def save(self, filename: str, data: Dict[str, Any]) -> Path:
        self.base_path.mkdir(parents=True, exist_ok=True)
        file_path = self.base_path / filename
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)
        logger.info(f"Saved result: {file_path}")
        return file_path

    def load(self, filename: str) -> Optional[Dict[str, Any]]:
        file_path = resolve_within(self.base_path, self.base_path / filename)
        if file_path is None or not file_path.is_file():
            return None
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def find(self, suffix: str) -> Optional[Dict[str, Any]]:
        """Load the newest document whose filename ends with suffix."""
        for file_path in reversed(self._files()):
            if file_path.name.endswith(suffix):
                return self.load(file_path.name)
        return None

    def list_documents(self) -> List[Dict[str, Any]]:
        """All readable documents, newest filename first."""
        documents = []
        for file_path in reversed(self._files()):
            try:
                with open(file_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable result {file_path}: {e}")
                continue
            documents.append({"file": file_path.name, "data": data})
        return documents

    def _files(self) -> List[Path]:
        if not self.base_path.is_dir():
            return []
        return sorted(p for p in self.base_path.glob("*.json") if p.is_file())


class RunLogStore(ResultStore):
    """Run logs named run-<timestamp>-<runId>.json."""

    def save_run(self, result: RunResult) -> Path:
        filename = f"run-{file_timestamp(result.started_at)}-{result.run_id}.json"
        return self.save(filename, result.to_wire())

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        return self.find(f"-{run_id}.json")

    def list_runs(self) -> List[Dict[str, Any]]:
        summaries = []
        for entry in self.list_documents():
            data = entry["data"]
            summaries.append({
                "file": entry["file"],
                "runId": data.get("runId"),
                "testPath": data.get("testPath"),
                "env": data.get("env"),
                "success": data.get("success"),
                "exitCode": data.get("exitCode"),
                "startedAt": data.get("startedAt"),
                "durationMs": data.get("durationMs"),
            })
        return summaries
