"""User behavior sessions and their summary analysis."""

import logging
from datetime import datetime, timezone
from numbers import Number
from typing import Any, Dict, List, Optional

from qa_dashboard.models.behavior import BehaviorSession
from qa_dashboard.services.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class BehaviorTracker:
    """Accumulates client-reported events per session."""

    def __init__(self, store: KeyValueStore[BehaviorSession]):
        self.store = store

    def record(self, session_id: str, events: List[Dict[str, Any]], is_unload: bool = False) -> BehaviorSession:
        session = self.store.get(session_id)
        now = _now()
        if session is None:
            session = BehaviorSession(id=session_id, start_time=now, last_updated=now)

        session = session.model_copy(update={
            "events": session.events + list(events),
            "last_updated": now,
            "end_time": now if is_unload else session.end_time,
        })
        self.store.set(session_id, session)

        logger.info(f"Processed {len(events)} events for session {session_id}")
        return session

    def get(self, session_id: str) -> Optional[BehaviorSession]:
        return self.store.get(session_id)


def analyze_events(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Summarize a list of interaction events.

    Duration is the span between the smallest and largest numeric
    ``timestamp`` (milliseconds), in seconds.
    """
    event_types: List[Any] = []
    event_counts: Dict[str, int] = {}
    for event in events:
        event_type = event.get("type") if isinstance(event, dict) else None
        if event_type not in event_types:
            event_types.append(event_type)
        key = str(event_type)
        event_counts[key] = event_counts.get(key, 0) + 1

    timestamps = sorted(
        e["timestamp"] for e in events
        if isinstance(e, dict)
        and isinstance(e.get("timestamp"), Number)
        and not isinstance(e.get("timestamp"), bool)
        and e["timestamp"]
    )
    duration = (timestamps[-1] - timestamps[0]) / 1000 if len(timestamps) > 1 else 0

    return {
        "eventTypes": event_types,
        "eventCounts": event_counts,
        "sessionDuration": duration,
        "totalEvents": len(events),
        "timestamp": _now(),
    }
