"""Shared fixtures: a temporary project layout and an app bound to it."""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from qa_dashboard.main import create_app
from qa_dashboard.utils.config import Settings

FAKE_RUNNER = Path(__file__).parent / "fixtures" / "fake_runner.py"


def write(path: Path, content: str = "// test\n") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "project"
    (root / "tests").mkdir(parents=True)
    return root


@pytest.fixture
def app_settings(project_root):
    runner = f'"{sys.executable}" "{FAKE_RUNNER}"'
    return Settings(
        PROJECT_ROOT=str(project_root),
        PLAYWRIGHT_COMMAND=runner,
        K6_COMMAND=runner,
        DISCONNECT_POLL_SECONDS=0.05,
        ENVIRONMENT="test",
    )


@pytest.fixture
def app(app_settings):
    return create_app(app_settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def make_png(path: Path, size=(10, 10), color=(255, 255, 255), dots=()) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", size, color)
    for point in dots:
        image.putpixel(point, (0, 0, 0))
    image.save(path)
    return path
