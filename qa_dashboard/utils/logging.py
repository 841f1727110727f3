"""
Logging configuration with secret redaction.

Jira credentials travel in query strings and request bodies, so every
handler gets a RedactingFilter before anything reaches a stream or file.
"""

import re
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from qa_dashboard.utils.config import SECRET_PATTERNS, Settings


class RedactingFilter(logging.Filter):
    """Filter that redacts sensitive information from log records."""

    REDACTION_PATTERNS = [
        re.compile(pattern, re.IGNORECASE) for pattern in SECRET_PATTERNS
    ]

    VALUE_PATTERNS = [
        re.compile(r'Bearer\s+[A-Za-z0-9\-_\.=]+', re.IGNORECASE),
        re.compile(r'Basic\s+[A-Za-z0-9\+/=]+', re.IGNORECASE),
        re.compile(r'ATATT[A-Za-z0-9\-_=]+'),  # Atlassian API tokens
        re.compile(r'ghp_[A-Za-z0-9]+'),
        re.compile(r'sk-[A-Za-z0-9]+'),
        re.compile(r'eyJ[A-Za-z0-9\-_]+\.eyJ[A-Za-z0-9\-_]+'),  # JWTs
    ]

    REDACTED = "[REDACTED]"

    def filter(self, record: logging.LogRecord) -> bool:
        """Redact sensitive data from log record."""
        if isinstance(record.msg, str):
            record.msg = self._redact_string(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = redact_dict(record.args)
            else:
                record.args = tuple(
                    self._redact_string(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _redact_string(self, text: str) -> str:
        """Redact sensitive patterns from a string."""
        result = text

        for pattern in self.VALUE_PATTERNS:
            result = pattern.sub(self.REDACTED, result)

        # key=value, key: value and "key": "value" forms
        for pattern in self.REDACTION_PATTERNS:
            result = re.sub(
                rf'(\w*{pattern.pattern}\w*)(["\']?)\s*[=:]\s*["\']?([^"\'\s,&}}]+)["\']?',
                rf'\1\2={self.REDACTED}',
                result,
                flags=re.IGNORECASE
            )

        return result


class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    RESERVED = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'pathname', 'process', 'processName', 'relativeCreated',
        'stack_info', 'exc_info', 'exc_text', 'thread', 'threadName',
        'taskName', 'message', 'color_message',
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in self.RESERVED and not key.startswith("_"):
                log_data[key] = value

        return json.dumps(log_data, default=str)


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() == "json":
        return JSONFormatter()
    return logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def setup_logging(app_settings: Optional[Settings] = None) -> None:
    """Configure application logging."""
    if app_settings is None:
        from qa_dashboard.utils.config import settings as app_settings

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers.clear()

    formatter = _build_formatter(app_settings.LOG_FORMAT)
    redactor = RedactingFilter()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(redactor)
    root_logger.addHandler(handler)

    if app_settings.LOG_FILE:
        file_handler = logging.FileHandler(app_settings.LOG_FILE, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(redactor)
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def redact_dict(data: Dict[str, Any], keys_to_redact: Optional[list] = None) -> Dict[str, Any]:
    """Redact sensitive keys from a dictionary."""
    if keys_to_redact is None:
        keys_to_redact = SECRET_PATTERNS

    redacted = {}
    for key, value in data.items():
        should_redact = any(
            re.search(pattern, str(key), re.IGNORECASE)
            for pattern in keys_to_redact
        )

        if should_redact:
            redacted[key] = "[REDACTED]"
        elif isinstance(value, dict):
            redacted[key] = redact_dict(value, keys_to_redact)
        elif isinstance(value, list):
            redacted[key] = [
                redact_dict(item, keys_to_redact) if isinstance(item, dict) else item
                for item in value
            ]
        else:
            redacted[key] = value

    return redacted
