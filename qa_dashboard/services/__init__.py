"""Services for the QA Dashboard API."""

from qa_dashboard.services.scanner import TestScanner
from qa_dashboard.services.orchestrator import RunOrchestrator, CancelToken
from qa_dashboard.services.run_pool import RunSlots
from qa_dashboard.services.results_store import ResultStore, RunLogStore
from qa_dashboard.services.kv_store import KeyValueStore
from qa_dashboard.services.flow_store import FlowStore
from qa_dashboard.services.behavior import BehaviorTracker
from qa_dashboard.services.browser_manager import BrowserManager
from qa_dashboard.services.accessibility import AccessibilityScanner
from qa_dashboard.services.keyboard_checks import KeyboardChecker
from qa_dashboard.services.visual_baselines import VisualBaselines
from qa_dashboard.services.jira_service import JiraService

__all__ = [
    "TestScanner",
    "RunOrchestrator",
    "CancelToken",
    "RunSlots",
    "ResultStore",
    "RunLogStore",
    "KeyValueStore",
    "FlowStore",
    "BehaviorTracker",
    "BrowserManager",
    "AccessibilityScanner",
    "KeyboardChecker",
    "VisualBaselines",
    "JiraService",
]
