"""
Visual regression baselines.

Layout under the visual-tests directory::

    actual/    captured screenshots   <safe_name>_<timestamp>.png
    baseline/  reference screenshots  <safe_name>_<timestamp>.png | <safe_name>_baseline.png
    diffs/     diff images            <safe_name>_diff_<ms>.png

The most recent baseline of a test is the last matching filename in
lexicographic order.
"""

import logging
import re
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from qa_dashboard.services.browser_manager import BrowserManager
from qa_dashboard.services.image_comparison import compare_images
from qa_dashboard.services.results_store import file_timestamp, resolve_within

logger = logging.getLogger(__name__)

_TIMESTAMPED = re.compile(r"^(.+?)_(\d{4}-\d{2}-\d{2}T\d{2}-\d{2}-\d{2}-\d{3}Z)\.png$")
_FIXED = re.compile(r"^(.+?)_baseline\.png$")

IMAGE_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
}


def safe_name(test_name: str) -> str:
    return re.sub(r"[^a-z0-9]", "_", test_name, flags=re.IGNORECASE).lower()


def _parse_file_timestamp(value: str) -> datetime:
    return datetime.strptime(value, "%Y-%m-%dT%H-%M-%S-%fZ").replace(tzinfo=timezone.utc)


class VisualBaselines:
    """Captures screenshots and compares them against stored baselines."""

    def __init__(
        self,
        root: Path,
        browser_manager: Optional[BrowserManager] = None,
        threshold: float = 0.1,
        max_diff_ratio: float = 0.1,
    ):
        self.root = Path(root)
        self.browser_manager = browser_manager
        self.threshold = threshold
        self.max_diff_ratio = max_diff_ratio

    @property
    def baseline_dir(self) -> Path:
        return self.root / "baseline"

    @property
    def actual_dir(self) -> Path:
        return self.root / "actual"

    @property
    def diff_dir(self) -> Path:
        return self.root / "diffs"

    def ensure_dirs(self) -> None:
        for directory in (self.baseline_dir, self.actual_dir, self.diff_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def image_path(self, raw_path: str) -> Path:
        """
        Resolve a client-supplied image path inside the visual-tests directory.

        Raises:
            PermissionError: the path points outside the directory
            FileNotFoundError: the file does not exist
        """
        candidate = Path(raw_path)
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        resolved = resolve_within(self.root, candidate)
        if resolved is None:
            raise PermissionError(raw_path)
        if not resolved.is_file():
            raise FileNotFoundError(raw_path)
        return resolved

    def baselines_for(self, test_name: str) -> List[Path]:
        name = safe_name(test_name)
        if not self.baseline_dir.is_dir():
            return []
        matches = []
        for path in self.baseline_dir.glob("*.png"):
            for pattern in (_TIMESTAMPED, _FIXED):
                found = pattern.match(path.name)
                if found and found.group(1) == name:
                    matches.append(path)
                    break
        return sorted(matches, key=lambda p: p.name)

    async def capture(self, url: str, test_name: str) -> Dict[str, Any]:
        if self.browser_manager is None:
            raise RuntimeError("No browser configured for screenshot capture")

        self.ensure_dirs()
        filename = f"{safe_name(test_name)}_{file_timestamp()}.png"
        output_path = self.actual_dir / filename

        async with self.browser_manager.page("desktop") as page:
            await page.goto(url, wait_until="load")
            await page.screenshot(path=str(output_path), full_page=True)

        logger.info(f"Captured {url} for {test_name}: {output_path}")
        return {"path": str(output_path), "filename": filename}

    def compare(self, test_name: str, actual_path: str) -> Dict[str, Any]:
        """
        Compare an actual screenshot with the newest baseline.

        With no baseline yet, the actual image is copied in as the baseline.
        """
        actual = self.image_path(actual_path)
        self.ensure_dirs()
        name = safe_name(test_name)

        baselines = self.baselines_for(test_name)
        if not baselines:
            baseline_path = self.baseline_dir / f"{name}_baseline.png"
            shutil.copyfile(actual, baseline_path)
            logger.info(f"No baseline for {test_name}, created {baseline_path}")
            return {
                "success": True,
                "isNewBaseline": True,
                "baselinePath": str(baseline_path),
                "message": "No baseline found. Created new baseline.",
            }

        baseline_path = baselines[-1]
        diff_path = self.diff_dir / f"{name}_diff_{int(time.time() * 1000)}.png"
        result = compare_images(
            baseline_path,
            actual,
            diff_path,
            threshold=self.threshold,
            max_diff_pixel_ratio=self.max_diff_ratio,
        )
        if not result["success"]:
            return result

        return {
            "success": True,
            "isNewBaseline": False,
            "match": result["match"],
            "diffPercentage": result["diffPercentage"],
            "diffPath": result["diffPath"],
            "baselinePath": str(baseline_path),
            "actualPath": str(actual),
        }

    def update_baseline(self, test_name: str, actual_path: str) -> Dict[str, Any]:
        actual = self.image_path(actual_path)
        self.ensure_dirs()
        baseline_path = self.baseline_dir / f"{safe_name(test_name)}_baseline.png"
        shutil.copyfile(actual, baseline_path)
        logger.info(f"Updated baseline for {test_name}: {baseline_path}")
        return {
            "success": True,
            "baselinePath": str(baseline_path),
            "message": "Baseline image updated successfully",
        }

    def list_tests(self) -> List[Dict[str, Any]]:
        """Baselines grouped by test name, newest first within each group."""
        if not self.baseline_dir.is_dir():
            return []

        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for path in sorted(self.baseline_dir.glob("*.png")):
            timestamped = _TIMESTAMPED.match(path.name)
            fixed = _FIXED.match(path.name)
            if timestamped:
                name = timestamped.group(1)
                moment = _parse_file_timestamp(timestamped.group(2))
            elif fixed:
                name = fixed.group(1)
                moment = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
            else:
                continue
            grouped.setdefault(name, []).append({
                "name": name,
                "timestamp": moment,
                "path": str(path),
            })

        tests = []
        for name in sorted(grouped):
            runs = sorted(grouped[name], key=lambda r: r["timestamp"], reverse=True)
            tests.append({
                "name": name,
                "runs": [{**run, "timestamp": run["timestamp"].isoformat()} for run in runs],
                "lastRun": runs[0]["timestamp"].isoformat(),
                "baselineCount": len(runs),
            })
        return tests
