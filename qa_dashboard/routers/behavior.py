"""User behavior analytics endpoints."""

import logging

from fastapi import APIRouter, Request

from qa_dashboard.models.behavior import AnalyzeBehaviorRequest, BehaviorEventsRequest
from qa_dashboard.routers.deps import get_settings
from qa_dashboard.services.behavior import BehaviorTracker, analyze_events
from qa_dashboard.services.kv_store import KeyValueStore
from qa_dashboard.utils.errors import bad_request, not_found

logger = logging.getLogger(__name__)
router = APIRouter()


def get_behavior_tracker(request: Request) -> BehaviorTracker:
    """Get or create BehaviorTracker instance."""
    if not hasattr(request.app.state, "behavior_tracker"):
        app_settings = get_settings(request)
        store = KeyValueStore(
            "behavior-sessions",
            ttl_seconds=app_settings.SESSION_TTL_SECONDS,
            max_entries=app_settings.SESSION_MAX_ENTRIES,
        )
        request.app.state.behavior_tracker = BehaviorTracker(store)
    return request.app.state.behavior_tracker


@router.post("/behavior-analysis")
async def record_behavior(request: Request, body: BehaviorEventsRequest):
    """Append client events to a session; isUnload marks it ended."""
    get_behavior_tracker(request).record(body.session_id, body.events, body.is_unload)
    return {"success": True, "sessionId": body.session_id}


@router.post("/analyze-behavior")
async def analyze_behavior(request: Request, body: AnalyzeBehaviorRequest):
    if not body.session_id and body.events is None:
        raise bad_request("Session ID or events data is required")

    if body.session_id:
        session = get_behavior_tracker(request).get(body.session_id)
        if session is None:
            raise not_found("Session not found")
        events = session.events
    else:
        events = body.events

    if not events:
        raise bad_request("No events to analyze")

    return {"success": True, **analyze_events(events)}


@router.get("/session/{session_id}")
async def get_session(request: Request, session_id: str):
    session = get_behavior_tracker(request).get(session_id)
    if session is None:
        raise not_found("Session not found")
    return {"success": True, **session.to_wire()}
