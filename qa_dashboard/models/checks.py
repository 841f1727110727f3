"""Models for browser-driven checks: accessibility, keyboard and visual."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from qa_dashboard.models.base import CamelModel


class AccessibilityRunRequest(CamelModel):
    screen_name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    viewport: str = "desktop"


class KeyboardRunRequest(CamelModel):
    test_id: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class KeyboardResult(CamelModel):
    """Result document of one keyboard interaction check."""
    id: str
    test_id: str
    test_name: str
    url: str
    timestamp: str
    status: str = "running"
    passed: bool = False
    details: str = ""
    steps: List[Dict[str, Any]] = Field(default_factory=list)
    screenshots: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    focused_element: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class CaptureRequest(CamelModel):
    url: str = Field(..., min_length=1)
    test_name: str = Field(..., min_length=1)


class BaselineRequest(CamelModel):
    """Body of the compare and update-baseline endpoints."""
    test_name: str = Field(..., min_length=1)
    actual_path: str = Field(..., min_length=1)
