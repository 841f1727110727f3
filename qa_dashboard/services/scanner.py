"""
Filesystem test scanner.

Walks a test root depth-first, keeps files matching the test naming
conventions and classifies each one by type and category.
"""

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from qa_dashboard.models.tests import RunnerKind, TestDescriptor, TestType

logger = logging.getLogger(__name__)


EXCLUDED_DIRS = frozenset({
    "node_modules",
    ".git",
    "coverage",
    "__snapshots__",
    ".next",
    ".vscode",
})

TEST_SUFFIXES = (".test.js", ".spec.js", ".test.ts", ".spec.ts")

# (substrings, type) checked in order; first hit wins
TYPE_RULES = [
    (("visual",), TestType.VISUAL),
    (("accessibility", "a11y"), TestType.ACCESSIBILITY),
    (("smoke",), TestType.SMOKE),
    (("e2e", "end-to-end"), TestType.E2E),
    (("unit",), TestType.UNIT),
    (("integration",), TestType.INTEGRATION),
    (("performance",), TestType.PERFORMANCE),
    (("security",), TestType.SECURITY),
]

_EXTENSION_RE = re.compile(r"\.(js|ts)$")


def is_test_file(name: str) -> bool:
    """Loose naming heuristic for Playwright/Jest style test files."""
    if name.endswith(TEST_SUFFIXES):
        return True
    return name.endswith(".js") and (".test." in name or ".spec." in name)


def is_performance_script(name: str) -> bool:
    """k6 scripts are plain .js files; shared config modules are not runnable."""
    return name.endswith(".js") and "config" not in name.lower()


def classify_test_type(filename: str, rel_path: str, root_name: str = "") -> TestType:
    """
    Infer the test type from the file name and its relative path.

    Args:
        filename: Base name of the file
        rel_path: Path relative to the scanned root
        root_name: Name of the scanned root directory, used as a last hint

    Returns:
        The first matching TestType, or TestType.OTHER
    """
    haystack = f"{filename} {rel_path}".lower()

    for needles, test_type in TYPE_RULES:
        if any(needle in haystack for needle in needles):
            return test_type

    root_name = root_name.lower()
    for test_type in TestType:
        if test_type is not TestType.OTHER and test_type.value == root_name:
            return test_type

    return TestType.OTHER


def runner_for(rel_path: str) -> RunnerKind:
    """k6 for k6 scripts and plain .js files under a performance directory."""
    lowered = rel_path.lower()
    if "k6" in lowered:
        return RunnerKind.K6
    if lowered.endswith(".js") and "performance" in lowered and ".test." not in lowered and ".spec." not in lowered:
        return RunnerKind.K6
    return RunnerKind.PLAYWRIGHT


class TestScanner:
    """Builds TestDescriptors for every matching file below a root."""

    __test__ = False

    def __init__(self, matcher: Callable[[str], bool] = is_test_file):
        self.matcher = matcher

    def scan(self, root_dir: Union[str, Path]) -> List[TestDescriptor]:
        root = Path(root_dir)
        if not root.is_dir():
            logger.info(f"Test root does not exist: {root}")
            return []

        descriptors: List[TestDescriptor] = []
        seen_ids: Dict[str, int] = {}
        self._walk(root, root, descriptors, seen_ids)

        logger.info(f"Scanned {root}: {len(descriptors)} test files")
        return descriptors

    def _walk(
        self,
        root: Path,
        directory: Path,
        descriptors: List[TestDescriptor],
        seen_ids: Dict[str, int],
    ) -> None:
        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {directory}: {e}")
            return

        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                if entry.name in EXCLUDED_DIRS:
                    continue
                self._walk(root, Path(entry.path), descriptors, seen_ids)
            elif entry.is_file() and self.matcher(entry.name):
                descriptor = self._describe(root, Path(entry.path), seen_ids)
                if descriptor is not None:
                    descriptors.append(descriptor)

    def _describe(
        self,
        root: Path,
        file_path: Path,
        seen_ids: Dict[str, int],
    ) -> Optional[TestDescriptor]:
        rel_path = file_path.relative_to(root).as_posix()
        parts = rel_path.split("/")

        base_id = _EXTENSION_RE.sub("", rel_path.replace("/", "-"))
        test_id = base_id
        suffix = seen_ids.get(base_id, 1)
        while test_id in seen_ids:
            suffix += 1
            test_id = f"{base_id}-{suffix}"
        seen_ids[base_id] = suffix
        seen_ids.setdefault(test_id, 1)

        try:
            stat = file_path.stat()
        except OSError as e:
            logger.warning(f"Cannot stat {file_path}: {e}")
            return None

        return TestDescriptor(
            id=test_id,
            name=_EXTENSION_RE.sub("", file_path.name).replace("-", " "),
            path=rel_path,
            type=classify_test_type(file_path.name, rel_path, root.name),
            category=parts[0].lower() if len(parts) > 1 else "other",
            runner=runner_for(f"{root.name}/{rel_path}"),
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )
