"""API routers for the QA Dashboard."""

from qa_dashboard.routers import (
    accessibility,
    behavior,
    flows,
    health,
    jira,
    live,
    performance,
    tests,
    visual_tests,
)

__all__ = [
    'accessibility',
    'behavior',
    'flows',
    'health',
    'jira',
    'live',
    'performance',
    'tests',
    'visual_tests',
]
