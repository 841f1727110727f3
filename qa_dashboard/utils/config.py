"""
Configuration settings for the QA Dashboard API.

All settings can be overridden via environment variables or a .env file.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        populate_by_name=True,
        extra="ignore",
    )

    # API Configuration
    HOST: str = Field(default="0.0.0.0", description="API host")
    PORT: int = Field(default=3005, description="API port")
    ENVIRONMENT: str = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "NODE_ENV"),
        description="Deployment environment",
    )
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:3005",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:3005",
        ],
        description="CORS allowed origins",
    )

    # Test environment passed to runners
    TEST_ENV: str = Field(default="qa", description="Default environment name for test runs")
    BASE_URL: Optional[str] = Field(default=None, description="Base URL override for runners")
    PLAYWRIGHT_TEST_BASE_URL: Optional[str] = Field(
        default=None,
        description="Playwright base URL override",
    )

    # Filesystem layout
    PROJECT_ROOT: str = Field(default=".", description="Project root used for path resolution")
    TESTS_DIR: Optional[str] = Field(default=None, description="Test root (default <root>/tests)")
    PERFORMANCE_TESTS_DIR: Optional[str] = Field(
        default=None,
        description="Performance test root (default <tests>/performance)",
    )
    TEST_RESULTS_DIR: Optional[str] = Field(default=None, description="Run log directory")
    RESULTS_DIR: Optional[str] = Field(default=None, description="Accessibility/keyboard results")
    VISUAL_TESTS_DIR: Optional[str] = Field(default=None, description="Visual baselines and diffs")
    FLOWS_FILE: Optional[str] = Field(default=None, description="Flow snapshot file")

    # Runners
    PLAYWRIGHT_COMMAND: str = Field(default="npx playwright", description="Playwright CLI prefix")
    K6_COMMAND: str = Field(default="k6", description="k6 CLI prefix")
    MAX_CONCURRENT_RUNS: int = Field(default=5, ge=1, description="Max concurrent test runs")
    DISCONNECT_POLL_SECONDS: float = Field(default=0.5, description="Client disconnect polling")
    SAVE_RUN_LOGS: bool = Field(default=True, description="Write run logs to TEST_RESULTS_DIR")

    # In-memory stores
    SESSION_TTL_SECONDS: int = Field(default=86400, description="Behavior session lifetime")
    SESSION_MAX_ENTRIES: int = Field(default=1000, description="Max behavior sessions kept")

    # Browser checks
    BROWSER_HEADLESS: bool = Field(default=True, description="Run browser checks headless")
    AXE_SCRIPT_URL: str = Field(
        default="https://cdnjs.cloudflare.com/ajax/libs/axe-core/4.10.2/axe.min.js",
        description="axe-core script injected for accessibility scans",
    )
    PAGE_TIMEOUT_MS: int = Field(default=30000, description="Navigation timeout")
    VISUAL_DIFF_THRESHOLD: float = Field(default=0.1, ge=0, le=1)
    VISUAL_MAX_DIFF_RATIO: float = Field(default=0.1, ge=0, le=1)

    # Jira
    JIRA_TIMEOUT_SECONDS: float = Field(default=30.0, description="Jira request timeout")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Log level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")
    LOG_FILE: Optional[str] = Field(default=None, description="Optional log file")

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    @property
    def project_root(self) -> Path:
        return Path(self.PROJECT_ROOT).resolve()

    def _dir(self, value: Optional[str], default: Path) -> Path:
        if value:
            return Path(value).resolve()
        return default

    @property
    def tests_dir(self) -> Path:
        return self._dir(self.TESTS_DIR, self.project_root / "tests")

    @property
    def performance_tests_dir(self) -> Path:
        return self._dir(self.PERFORMANCE_TESTS_DIR, self.tests_dir / "performance")

    @property
    def test_results_dir(self) -> Path:
        return self._dir(self.TEST_RESULTS_DIR, self.project_root / "test-results")

    @property
    def results_dir(self) -> Path:
        return self._dir(self.RESULTS_DIR, self.project_root / "results")

    @property
    def visual_tests_dir(self) -> Path:
        return self._dir(self.VISUAL_TESTS_DIR, self.project_root / "visual-tests")

    @property
    def flows_file(self) -> Path:
        return self._dir(self.FLOWS_FILE, self.project_root / "temp" / "flows.json")

    @property
    def runner_base_url(self) -> str:
        return self.PLAYWRIGHT_TEST_BASE_URL or self.BASE_URL or "http://localhost:3000"


settings = Settings()


# Secret patterns for redaction
SECRET_PATTERNS = [
    r"password",
    r"secret",
    r"token",
    r"api[_-]?key",
    r"authorization",
    r"credential",
    r"bearer",
    r"jwt",
]
