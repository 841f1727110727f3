"""Tests for settings and result storage helpers."""

from datetime import datetime, timezone

from qa_dashboard.services.results_store import ResultStore, file_timestamp, resolve_within
from qa_dashboard.utils.config import Settings


class TestSettings:
    """Tests for derived directories."""

    def test_defaults_under_project_root(self, tmp_path):
        """Should place every directory under the project root."""
        settings = Settings(PROJECT_ROOT=str(tmp_path))

        assert settings.tests_dir == tmp_path.resolve() / "tests"
        assert settings.performance_tests_dir == tmp_path.resolve() / "tests" / "performance"
        assert settings.flows_file == tmp_path.resolve() / "temp" / "flows.json"

    def test_overrides(self, tmp_path):
        """Should honour explicit directories."""
        settings = Settings(PROJECT_ROOT=str(tmp_path), TESTS_DIR=str(tmp_path / "specs"))

        assert settings.tests_dir == (tmp_path / "specs").resolve()

    def test_node_env_alias(self, monkeypatch):
        """Should read ENVIRONMENT from NODE_ENV."""
        monkeypatch.delenv("ENVIRONMENT", raising=False)
        monkeypatch.setenv("NODE_ENV", "production")

        settings = Settings()

        assert settings.ENVIRONMENT == "production"
        assert settings.is_development is False

    def test_runner_base_url(self):
        """Should prefer the Playwright base URL override."""
        settings = Settings(BASE_URL="http://a", PLAYWRIGHT_TEST_BASE_URL="http://b")

        assert settings.runner_base_url == "http://b"


class TestResultStore:
    """Tests for ResultStore helpers."""

    def test_file_timestamp(self):
        """Should produce a filename-safe ISO timestamp."""
        moment = datetime(2026, 10, 19, 12, 30, 45, 123456, tzinfo=timezone.utc)

        assert file_timestamp(moment) == "2026-10-19T12-30-45-123Z"

    def test_resolve_within(self, tmp_path):
        """Should reject paths escaping the base directory."""
        assert resolve_within(tmp_path, tmp_path / "a" / "b.json") is not None
        assert resolve_within(tmp_path, tmp_path / ".." / "b.json") is None

    def test_newest_first(self, tmp_path):
        """Should list and find documents newest filename first."""
        store = ResultStore(tmp_path)
        store.save("a-2026-01-01-x.json", {"n": 1})
        store.save("a-2026-02-01-y.json", {"n": 2})

        assert [d["data"]["n"] for d in store.list_documents()] == [2, 1]
        assert store.find("-x.json") == {"n": 1}
        assert store.load("../outside.json") is None
