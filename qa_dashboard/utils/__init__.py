"""Utility modules for the QA Dashboard API."""

from qa_dashboard.utils.config import Settings, settings
from qa_dashboard.utils.logging import setup_logging, redact_dict
from qa_dashboard.utils.errors import ApiError, register_exception_handlers

__all__ = [
    'Settings',
    'settings',
    'setup_logging',
    'redact_dict',
    'ApiError',
    'register_exception_handlers',
]
