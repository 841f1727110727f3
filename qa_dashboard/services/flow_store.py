"""Flow documents kept in memory and snapshotted to a JSON file."""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from qa_dashboard.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class FlowStore:
    """CRUD over arbitrary JSON flow objects keyed by a timestamp id."""

    def __init__(self, snapshot_path: Path):
        self.snapshot_path = Path(snapshot_path)
        self._flows: KeyValueStore[Dict[str, Any]] = KeyValueStore("flows")
        self._last_id = 0

    def load(self) -> int:
        """Load the snapshot file if there is one. Returns the flow count."""
        if not self.snapshot_path.is_file():
            return 0
        try:
            with open(self.snapshot_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load flows from {self.snapshot_path}: {e}")
            return 0
        if not isinstance(data, dict):
            logger.error(f"Ignoring flows snapshot {self.snapshot_path}: expected an object")
            return 0

        self._flows.clear()
        for flow_id, flow in data.items():
            self._flows.set(str(flow_id), flow)
        logger.info(f"Loaded {len(data)} flows from {self.snapshot_path}")
        return len(data)

    def save(self) -> None:
        self.snapshot_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.snapshot_path, "w", encoding="utf-8") as f:
            json.dump(self._flows.snapshot(), f, indent=2)

    def list(self) -> List[Dict[str, Any]]:
        return list(self._flows.values())

    def get(self, flow_id: str) -> Optional[Dict[str, Any]]:
        return self._flows.get(flow_id)

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        flow_id = self._next_id()
        flow = {**data, "id": flow_id}
        self._flows.set(flow_id, flow)
        self.save()
        logger.info(f"Created flow {flow_id}")
        return flow

    def update(self, flow_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if self._flows.get(flow_id) is None:
            return None
        flow = {**data, "id": flow_id}
        self._flows.set(flow_id, flow)
        self.save()
        return flow

    def delete(self, flow_id: str) -> bool:
        if not self._flows.delete(flow_id):
            return False
        self.save()
        logger.info(f"Deleted flow {flow_id}")
        return True

    def _next_id(self) -> str:
        # millisecond timestamps, bumped when two flows land in the same ms
        candidate = int(time.time() * 1000)
        if candidate <= self._last_id:
            candidate = self._last_id + 1
        while str(candidate) in self._flows:
            candidate += 1
        self._last_id = candidate
        return str(candidate)
