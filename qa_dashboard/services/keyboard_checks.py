"""
Keyboard interaction checks.

Six fixed checks driven through a real browser page. Each check appends
steps, screenshots and warnings to the result document; an assertion
failure raises KeyboardCheckFailed.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

from qa_dashboard.models.checks import KeyboardResult
from qa_dashboard.services.browser_manager import BrowserManager
from qa_dashboard.services.results_store import ResultStore, file_timestamp

logger = logging.getLogger(__name__)


TEST_CONFIGS: Dict[str, Dict[str, Any]] = {
    "tab-navigation": {
        "name": "Tab Navigation",
        "description": "Verify that all interactive elements are reachable using the Tab key",
        "keys": ["Tab", "Shift+Tab"],
    },
    "arrow-navigation": {
        "name": "Arrow Key Navigation",
        "description": "Verify that all focusable elements can be navigated using arrow keys",
        "keys": ["ArrowDown", "ArrowUp", "ArrowLeft", "ArrowRight"],
    },
    "enter-space-activation": {
        "name": "Enter/Space Activation",
        "description": "Verify that buttons and links can be activated with Enter/Space",
        "keys": ["Enter", " "],
    },
    "skip-links": {
        "name": "Skip Links",
        "description": "Verify that skip links are present and functional",
        "keys": ["Tab"],
    },
    "keyboard-traps": {
        "name": "No Keyboard Traps",
        "description": "Verify that there are no keyboard traps",
        "keys": ["Tab", "Shift+Tab", "Escape"],
    },
    "focus-visible": {
        "name": "Focus Visible",
        "description": "Verify that focus indicators are clearly visible",
        "keys": ["Tab"],
    },
}

FOCUSABLE_SELECTOR = "a[href], button, [tabindex], input, select, textarea, [contenteditable]"

FOCUSED_ELEMENT_SCRIPT = """() => {
    const el = document.activeElement;
    if (!el) return null;
    const style = window.getComputedStyle(el);
    return {
        tagName: el.tagName,
        id: el.id,
        className: String(el.className),
        hasFocusVisible: el.matches(':focus-visible'),
        outlineStyle: style.outlineStyle,
        outlineWidth: style.outlineWidth,
        boxShadow: style.boxShadow,
        isVisible: style.outlineStyle !== 'none' || style.outlineWidth !== '0px' || style.boxShadow !== 'none'
    };
}"""

ELEMENT_FOCUS_VISIBLE_SCRIPT = """el => {
    const style = window.getComputedStyle(el);
    return style.outlineStyle !== 'none' || style.outlineWidth !== '0px'
        || style.boxShadow !== 'none' || el.matches(':focus-visible');
}"""

ELEMENT_SHOWN_SCRIPT = """el => {
    const style = window.getComputedStyle(el);
    return style.display !== 'none' && style.visibility !== 'hidden';
}"""

FOCUS_INSIDE_SCRIPT = "el => el.contains(document.activeElement)"


class KeyboardCheckFailed(Exception):
    """A keyboard check found the page non-compliant."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class KeyboardChecker:
    """Runs one of TEST_CONFIGS against a URL and stores the result."""

    def __init__(self, browser_manager: BrowserManager, store: ResultStore):
        self.browser_manager = browser_manager
        self.store = store
        self.screenshots_dir = Path(store.base_path) / "screenshots"

    async def run(self, test_id: str, url: str) -> KeyboardResult:
        """
        Execute a check.

        Assertion failures produce a result with status "failed". Browser
        errors (navigation, crashed page) are saved with status "error"
        and re-raised.
        """
        if test_id not in TEST_CONFIGS:
            raise ValueError(f"Invalid testId: {test_id}")

        result = KeyboardResult(
            id=f"{test_id}-{int(time.time() * 1000)}",
            test_id=test_id,
            test_name=TEST_CONFIGS[test_id]["name"],
            url=url,
            timestamp=_now(),
        )
        check = getattr(self, "_check_" + test_id.replace("-", "_"))
        logger.info(f"Starting keyboard check {test_id} for {url}")

        try:
            async with self.browser_manager.page("desktop") as page:
                result.steps.append({"action": "navigate", "url": url, "timestamp": _now()})
                await page.goto(url, wait_until="domcontentloaded")
                await self._screenshot(page, result, "initial")

                result.steps.append({"action": "start_test", "testId": test_id, "timestamp": _now()})
                try:
                    await check(page, result)
                except KeyboardCheckFailed as e:
                    await self._screenshot(page, result, "failure")
                    result.status = "failed"
                    result.details = f"Test failed: {e}"
                    logger.warning(f"Keyboard check {result.id} failed: {e}")
                else:
                    result.status = "completed"
                    result.passed = True
                    result.details = f"Successfully completed {result.test_name} test"
        except Exception as e:
            result.status = "error"
            result.passed = False
            result.details = f"Error running test: {e}"
            result.error = str(e)
            self._save(result)
            raise

        self._save(result)
        return result

    def list_results(self) -> List[Dict[str, Any]]:
        return [entry["data"] for entry in self.store.list_documents()]

    def _save(self, result: KeyboardResult) -> None:
        self.store.save(f"{result.id}.json", result.to_wire())

    async def _screenshot(self, page, result: KeyboardResult, step: str) -> None:
        self.screenshots_dir.mkdir(parents=True, exist_ok=True)
        path = self.screenshots_dir / f"{result.id}-{step}-{file_timestamp()}.png"
        await page.screenshot(path=str(path), full_page=True)
        result.screenshots.append(str(path))

    async def _check_tab_navigation(self, page, result: KeyboardResult) -> None:
        elements = await page.query_selector_all(FOCUSABLE_SELECTOR)
        if not elements:
            raise KeyboardCheckFailed("No focusable elements found on the page")

        result.steps.append({
            "action": "tab_navigation",
            "elementsCount": len(elements),
            "timestamp": _now(),
        })
        await page.keyboard.press("Tab")
        await self._screenshot(page, result, "tab-focus")

        focused = await page.evaluate(FOCUSED_ELEMENT_SCRIPT)
        result.focused_element = focused
        if not focused or not (focused.get("isVisible") or focused.get("hasFocusVisible")):
            raise KeyboardCheckFailed("Focus indicator not visible on focused element")

    async def _check_arrow_navigation(self, page, result: KeyboardResult) -> None:
        before = await page.evaluate(FOCUSED_ELEMENT_SCRIPT)
        moved = 0
        for key in TEST_CONFIGS["arrow-navigation"]["keys"]:
            await page.keyboard.press(key)
            after = await page.evaluate(FOCUSED_ELEMENT_SCRIPT)
            if after != before:
                moved += 1
            before = after
            result.steps.append({"action": "arrow_key", "key": key, "timestamp": _now()})

        if moved == 0:
            result.warnings.append("Arrow keys did not move focus on this page")

    async def _check_enter_space_activation(self, page, result: KeyboardResult) -> None:
        buttons = await page.query_selector_all('button, [role="button"]')
        for button in buttons[:3]:
            for key, label in (("Enter", "Enter"), (" ", "Space")):
                await button.focus()
                await page.keyboard.press(key)
                result.steps.append({
                    "action": f"{label.lower()}_activation",
                    "element": "button",
                    "key": label,
                    "timestamp": _now(),
                })

        if not buttons:
            result.warnings.append("No buttons found on the page")
        await self._screenshot(page, result, "enter-space-test")

    async def _check_skip_links(self, page, result: KeyboardResult) -> None:
        links = await page.query_selector_all('a[href^="#"], a[href^="/#"]')
        result.steps.append({
            "action": "check_skip_links",
            "skipLinksCount": len(links),
            "timestamp": _now(),
        })
        if not links:
            result.warnings.append("No skip links found on the page")
            return

        await links[0].focus()
        await page.keyboard.press("Enter")
        await self._screenshot(page, result, "skip-link-activated")
        result.steps.append({
            "action": "tested_skip_link",
            "href": await links[0].get_attribute("href"),
            "timestamp": _now(),
        })

    async def _check_keyboard_traps(self, page, result: KeyboardResult) -> None:
        modals = await page.query_selector_all('[role="dialog"], [role="alertdialog"], .modal, .modal-dialog')
        result.steps.append({
            "action": "check_keyboard_traps",
            "modalsCount": len(modals),
            "timestamp": _now(),
        })

        for modal in modals:
            if not await modal.evaluate(ELEMENT_SHOWN_SCRIPT):
                continue
            await modal.focus()
            await page.keyboard.press("Tab")
            if not await modal.evaluate(FOCUS_INSIDE_SCRIPT):
                result.warnings.append("Focus is not properly trapped in modal dialog")
            await page.keyboard.press("Escape")
            await self._screenshot(page, result, "modal-keyboard-trap")

    async def _check_focus_visible(self, page, result: KeyboardResult) -> None:
        elements = await page.query_selector_all(FOCUSABLE_SELECTOR)
        result.steps.append({
            "action": "check_focus_visible",
            "elementsCount": len(elements),
            "timestamp": _now(),
        })

        for index, element in enumerate(elements[:5]):
            await element.focus()
            if not await element.evaluate(ELEMENT_FOCUS_VISIBLE_SCRIPT):
                result.warnings.append(f"Focus indicator not visible on element {index + 1}")
                await self._screenshot(page, result, f"focus-visible-issue-{index}")
                # one screenshot is enough
                break
