"""Tests for visual baselines and the image server."""

from conftest import make_png


def visual_dir(project_root):
    return project_root / "visual-tests"


class TestVisualApi:
    """Tests for /api/visual-tests and /api/image."""

    def test_first_compare_creates_baseline(self, client, project_root):
        """Should copy the first actual screenshot in as the baseline."""
        actual = make_png(visual_dir(project_root) / "actual" / "home_2026-10-19T10-00-00-000Z.png")

        response = client.post("/api/visual-tests/compare", json={"testName": "Home", "actualPath": str(actual)})

        assert response.status_code == 200
        data = response.json()
        assert data["isNewBaseline"] is True
        assert data["baselinePath"].endswith("baseline/home_baseline.png")

    def test_compare_against_baseline(self, client, project_root):
        """Should report a mismatch and a diff path."""
        root = visual_dir(project_root)
        (root / "baseline").mkdir(parents=True)
        (root / "actual").mkdir(parents=True)
        make_png(root / "baseline" / "home_2020-01-01T10-00-00-000Z.png")
        actual = make_png(root / "actual" / "home_2026-10-19T10-00-00-000Z.png", color=(0, 0, 0))

        data = client.post("/api/visual-tests/compare", json={"testName": "home", "actualPath": str(actual)}).json()

        assert data["isNewBaseline"] is False
        assert data["match"] is False
        assert data["diffPercentage"] == 100.0
        assert "/diffs/home_diff_" in data["diffPath"]

    def test_compare_size_mismatch(self, client, project_root):
        """Should answer 500 when the diff adapter fails."""
        root = visual_dir(project_root)
        (root / "baseline").mkdir(parents=True)
        make_png(root / "baseline" / "home_baseline.png", size=(5, 5))
        actual = make_png(root / "home-actual.png")

        response = client.post("/api/visual-tests/compare", json={"testName": "home", "actualPath": str(actual)})

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to compare images"

    def test_compare_outside_directory(self, client, tmp_path):
        """Should refuse images outside the visual-tests directory."""
        outside = make_png(tmp_path / "secret.png")

        response = client.post("/api/visual-tests/compare", json={"testName": "x", "actualPath": str(outside)})

        assert response.status_code == 403

    def test_update_and_list(self, client, project_root):
        """Should overwrite the fixed baseline and list it."""
        root = visual_dir(project_root)
        root.mkdir(parents=True)
        actual = make_png(root / "login-new.png")
        (root / "baseline").mkdir()
        make_png(root / "baseline" / "login_2020-01-01T10-00-00-000Z.png")

        updated = client.post("/api/visual-tests/update-baseline", json={"testName": "Login", "actualPath": str(actual)})
        assert updated.json()["success"] is True
        assert (root / "baseline" / "login_baseline.png").is_file()

        [test] = client.get("/api/visual-tests").json()["tests"]
        assert test["name"] == "login"
        assert test["baselineCount"] == 2
        assert test["runs"][0]["path"].endswith("login_baseline.png")
        assert test["lastRun"] == test["runs"][0]["timestamp"]

    def test_list_empty(self, client):
        """Should list nothing before any baseline exists."""
        assert client.get("/api/visual-tests").json() == {"success": True, "tests": []}

    def test_serves_image(self, client, project_root):
        """Should serve images with a content type and cache header."""
        image = make_png(visual_dir(project_root) / "shot.png")

        for url in ("/api/image", "/api/visual-tests/image"):
            response = client.get(url, params={"path": str(image)})
            assert response.status_code == 200
            assert response.headers["content-type"] == "image/png"
            assert "max-age" in response.headers["cache-control"]

    def test_image_errors(self, client, project_root, tmp_path):
        """Should answer 400, 403 and 404 for bad image requests."""
        visual_dir(project_root).mkdir(parents=True)

        assert client.get("/api/image").status_code == 400
        assert client.get("/api/image", params={"path": str(tmp_path / "x.png")}).status_code == 403
        missing = client.get("/api/image", params={"path": str(visual_dir(project_root) / "x.png")})
        assert missing.status_code == 404
