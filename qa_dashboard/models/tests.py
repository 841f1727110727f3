"""Models for test discovery and test runs."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import ConfigDict, Field, model_validator

from qa_dashboard.models.base import CamelModel


class TestType(str, Enum):
    """Classification of a discovered test file."""
    UNIT = "unit"
    INTEGRATION = "integration"
    E2E = "e2e"
    VISUAL = "visual"
    ACCESSIBILITY = "accessibility"
    PERFORMANCE = "performance"
    SECURITY = "security"
    SMOKE = "smoke"
    OTHER = "other"


class RunnerKind(str, Enum):
    """External CLI used to execute a test file."""
    PLAYWRIGHT = "playwright"
    K6 = "k6"


class TestDescriptor(CamelModel):
    """One discovered test file."""
    id: str = Field(..., description="Relative path with separators as '-' and no extension")
    name: str = Field(..., description="Human-readable label")
    path: str = Field(..., description="Path relative to the scanned root, forward slashes")
    type: TestType
    category: str = Field(..., description="First path segment under the root")
    runner: RunnerKind = RunnerKind.PLAYWRIGHT
    size: int = 0
    modified: Optional[datetime] = None


class RunResult(CamelModel):
    """Outcome of executing one test file. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    test_path: str
    env: str
    runner: RunnerKind
    resolved_path: Optional[str] = None
    success: bool
    exit_code: Optional[int] = None
    output: str = ""
    error_output: str = ""
    parsed_results: Optional[Any] = None
    aborted: bool = False
    abort_reason: Optional[str] = None
    started_at: datetime
    completed_at: datetime
    duration_ms: int = 0

    @model_validator(mode="after")
    def _success_follows_exit_code(self):
        if self.success != (self.exit_code == 0):
            raise ValueError("success must equal (exit_code == 0)")
        return self


class RunTestRequest(CamelModel):
    """Body of POST /api/tests/run."""
    test_path: str = Field(..., min_length=1)
    env: Optional[str] = None


class PerformanceRunRequest(CamelModel):
    """Body of POST /performance/run-test."""
    test_id: str = Field(..., min_length=1)
    env: Optional[str] = None


class K6RunRequest(CamelModel):
    """Body of POST /api/k6-tests/run."""
    test_name: str = Field(..., min_length=1)
    env: Optional[str] = None
