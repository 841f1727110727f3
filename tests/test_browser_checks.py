"""Tests for the accessibility and keyboard endpoints with a fake browser."""

import pytest

from fakes import FakeBrowserManager, FakeElement, FakePage
from qa_dashboard.services.accessibility import AXE_RUN_SCRIPT
from qa_dashboard.services.keyboard_checks import FOCUSED_ELEMENT_SCRIPT, TEST_CONFIGS

AXE_RESULTS = {
    "violations": [{"id": "color-contrast"}],
    "passes": [{"id": "html-has-lang"}, {"id": "image-alt"}],
    "incomplete": [],
    "inapplicable": [{"id": "audio-caption"}],
}


@pytest.fixture
def browser_page():
    return FakePage(evaluations={
        AXE_RUN_SCRIPT: AXE_RESULTS,
        FOCUSED_ELEMENT_SCRIPT: {"tagName": "A", "isVisible": True, "hasFocusVisible": True},
    })


@pytest.fixture
def browser(app, browser_page):
    manager = FakeBrowserManager(browser_page)
    app.state.browser_manager = manager
    return manager


class TestAccessibilityApi:
    """Tests for /api/accessibility."""

    def test_run_and_fetch(self, client, browser, browser_page, project_root):
        """Should inject axe, store the result and serve it back."""
        response = client.post("/api/accessibility/run", json={
            "screenName": "Home Page",
            "url": "http://localhost:3000/",
            "viewport": "Mobile",
        })

        assert response.status_code == 200
        data = response.json()
        assert data["results"] == AXE_RESULTS
        assert data["viewport"] == "mobile"
        assert browser.viewports == ["mobile"]
        assert browser_page.visited == ["http://localhost:3000/"]
        assert browser_page.scripts and browser_page.scripts[0].endswith("axe.min.js")

        saved = list((project_root / "results" / "accessibility").glob("Home_Page-*.json"))
        assert len(saved) == 1

        fetched = client.get(f"/api/accessibility/results/{data['testId']}").json()
        assert fetched["screenName"] == "Home Page"

        [summary] = client.get("/api/accessibility/list").json()["tests"]
        assert summary["id"] == data["testId"]
        assert (summary["violations"], summary["passes"], summary["incomplete"], summary["inapplicable"]) == (1, 2, 0, 1)

    def test_unknown_viewport(self, client, browser):
        """Should reject unknown viewport names."""
        response = client.post("/api/accessibility/run", json={"screenName": "x", "url": "http://x", "viewport": "watch"})

        assert response.status_code == 400

    def test_browser_failure(self, app, client):
        """Should answer 500 when the page cannot be loaded."""
        app.state.browser_manager = FakeBrowserManager(FakePage(goto_error=RuntimeError("net::ERR_CONNECTION_REFUSED")))

        response = client.post("/api/accessibility/run", json={"screenName": "x", "url": "http://x"})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to run accessibility test"
        assert "ERR_CONNECTION_REFUSED" in response.json()["details"]

    def test_unknown_result(self, client, browser):
        """Should answer 404 for unknown scans."""
        assert client.get("/api/accessibility/results/nope").status_code == 404


class TestKeyboardApi:
    """Tests for /api/keyboard-tests."""

    def test_configs(self, client):
        """Should list the six checks."""
        tests = client.get("/api/keyboard-tests/configs").json()["tests"]

        assert [t["id"] for t in tests] == list(TEST_CONFIGS)
        assert len(tests) == 6

    def test_tab_navigation_passes(self, client, browser, browser_page, project_root):
        """Should complete when focus lands on a visibly focused element."""
        response = client.post("/api/keyboard-tests/run", json={"testId": "tab-navigation", "url": "http://app"})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert data["passed"] is True
        assert data["focusedElement"]["tagName"] == "A"
        assert "Tab" in browser_page.keyboard.pressed
        assert len(data["screenshots"]) == 2

        [stored] = client.get("/api/keyboard-tests/results").json()["results"]
        assert stored["id"] == data["id"]

    def test_tab_navigation_fails_without_elements(self, app, client):
        """Should report a failed check rather than an error."""
        app.state.browser_manager = FakeBrowserManager(FakePage(elements=[]))

        data = client.post("/api/keyboard-tests/run", json={"testId": "tab-navigation", "url": "http://app"}).json()

        assert data["status"] == "failed"
        assert data["passed"] is False
        assert data["details"] == "Test failed: No focusable elements found on the page"

    def test_focus_visible_warnings(self, app, client):
        """Should warn about elements without a focus indicator."""
        app.state.browser_manager = FakeBrowserManager(FakePage(elements=[FakeElement(shown=False)]))

        data = client.post("/api/keyboard-tests/run", json={"testId": "focus-visible", "url": "http://app"}).json()

        assert data["passed"] is True
        assert data["warnings"] == ["Focus indicator not visible on element 1"]

    def test_skip_links(self, client, browser, browser_page):
        """Should activate the first skip link."""
        data = client.post("/api/keyboard-tests/run", json={"testId": "skip-links", "url": "http://app"}).json()

        assert data["passed"] is True
        assert {"action": "tested_skip_link", "href": "#main"}.items() <= data["steps"][-1].items()
        assert browser_page.keyboard.pressed == ["Enter"]

    def test_unknown_check(self, client, browser):
        """Should reject unknown check ids."""
        response = client.post("/api/keyboard-tests/run", json={"testId": "mouse-only", "url": "http://app"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid testId: mouse-only"

    def test_browser_error(self, app, client, project_root):
        """Should save an error result and answer 500."""
        app.state.browser_manager = FakeBrowserManager(FakePage(goto_error=RuntimeError("page crashed")))

        response = client.post("/api/keyboard-tests/run", json={"testId": "keyboard-traps", "url": "http://app"})

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "page crashed", "testId": "keyboard-traps"}
        [stored] = client.get("/api/keyboard-tests/results").json()["results"]
        assert stored["status"] == "error"


class TestVisualCapture:
    """Tests for POST /api/visual-tests/capture."""

    def test_capture(self, client, browser, project_root):
        """Should write the screenshot under actual/."""
        data = client.post("/api/visual-tests/capture", json={"url": "http://app", "testName": "Home Page"}).json()

        assert data["success"] is True
        assert data["filename"].startswith("home_page_")
        assert (project_root / "visual-tests" / "actual" / data["filename"]).is_file()
