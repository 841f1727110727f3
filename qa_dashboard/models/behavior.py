"""Models for user behavior sessions and Jira credentials."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from qa_dashboard.models.base import CamelModel


class BehaviorSession(CamelModel):
    """Interaction events reported by one browser session."""
    id: str
    events: List[Dict[str, Any]] = Field(default_factory=list)
    start_time: str
    last_updated: str
    end_time: Optional[str] = None


class BehaviorEventsRequest(CamelModel):
    session_id: str = Field(..., min_length=1)
    events: List[Dict[str, Any]]
    is_unload: bool = False


class AnalyzeBehaviorRequest(CamelModel):
    session_id: Optional[str] = None
    events: Optional[List[Dict[str, Any]]] = None


class JiraCredentials(CamelModel):
    domain: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    api_token: str = Field(..., min_length=1)
