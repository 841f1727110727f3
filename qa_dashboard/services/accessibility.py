"""Accessibility scans: axe-core injected into a Playwright page."""

import logging
import re
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from qa_dashboard.services.browser_manager import BrowserManager
from qa_dashboard.services.results_store import ResultStore, file_timestamp

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")

AXE_RUN_SCRIPT = "async () => await axe.run(document)"


class AccessibilityScanner:
    """Runs axe against a URL and keeps the raw result documents."""

    def __init__(self, browser_manager: BrowserManager, store: ResultStore, axe_script_url: str):
        self.browser_manager = browser_manager
        self.store = store
        self.axe_script_url = axe_script_url

    async def run(self, screen_name: str, url: str, viewport: str = "desktop") -> Dict[str, Any]:
        """
        Scan one page.

        Args:
            screen_name: Label for the screen under test
            url: Page to load
            viewport: desktop, tablet or mobile

        Returns:
            Stored document: testId, screenName, url, viewport, timestamp, results
        """
        test_id = str(uuid.uuid4())
        moment = datetime.now(timezone.utc)
        logger.info(f"Running accessibility scan for {screen_name} at {url} ({viewport})")

        async with self.browser_manager.page(viewport) as page:
            await page.goto(url, wait_until="load")
            await page.add_script_tag(url=self.axe_script_url)
            results = await page.evaluate(AXE_RUN_SCRIPT)

        document = {
            "testId": test_id,
            "screenName": screen_name,
            "url": url,
            "viewport": viewport,
            "timestamp": moment.isoformat().replace("+00:00", "Z"),
            "results": results,
        }
        safe_screen = _UNSAFE_CHARS.sub("_", screen_name)
        self.store.save(f"{safe_screen}-{file_timestamp(moment)}-{test_id}.json", document)

        violations = len((results or {}).get("violations", []))
        logger.info(f"Accessibility scan {test_id} finished with {violations} violations")
        return document

    def get(self, test_id: str) -> Optional[Dict[str, Any]]:
        return self.store.find(f"-{test_id}.json")

    def list(self) -> List[Dict[str, Any]]:
        summaries = []
        for entry in self.store.list_documents():
            content = entry["data"]
            results = content.get("results") or {}
            summaries.append({
                "id": content.get("testId") or entry["file"][:-len(".json")],
                "screenName": content.get("screenName"),
                "url": content.get("url"),
                "viewport": content.get("viewport"),
                "timestamp": content.get("timestamp"),
                "violations": len(results.get("violations") or []),
                "passes": len(results.get("passes") or []),
                "incomplete": len(results.get("incomplete") or []),
                "inapplicable": len(results.get("inapplicable") or []),
            })
        return summaries
