"""Data models for the QA Dashboard API."""

from qa_dashboard.models.base import CamelModel
from qa_dashboard.models.tests import (
    TestType,
    RunnerKind,
    TestDescriptor,
    RunResult,
    RunTestRequest,
    PerformanceRunRequest,
    K6RunRequest,
)
from qa_dashboard.models.checks import (
    AccessibilityRunRequest,
    KeyboardRunRequest,
    KeyboardResult,
    CaptureRequest,
    BaselineRequest,
)
from qa_dashboard.models.behavior import (
    BehaviorSession,
    BehaviorEventsRequest,
    AnalyzeBehaviorRequest,
    JiraCredentials,
)

__all__ = [
    'CamelModel',
    'TestType',
    'RunnerKind',
    'TestDescriptor',
    'RunResult',
    'RunTestRequest',
    'PerformanceRunRequest',
    'K6RunRequest',
    'AccessibilityRunRequest',
    'KeyboardRunRequest',
    'KeyboardResult',
    'CaptureRequest',
    'BaselineRequest',
    'BehaviorSession',
    'BehaviorEventsRequest',
    'AnalyzeBehaviorRequest',
    'JiraCredentials',
]
