"""Browser manager sharing one Playwright browser across checks."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from playwright.async_api import Browser, Page, async_playwright

logger = logging.getLogger(__name__)


VIEWPORTS: Dict[str, Dict[str, int]] = {
    "desktop": {"width": 1280, "height": 800},
    "tablet": {"width": 768, "height": 1024},
    "mobile": {"width": 375, "height": 667},
}


def viewport_size(name: Optional[str]) -> Dict[str, int]:
    """Viewport dimensions for a named preset, desktop when unknown."""
    return VIEWPORTS.get((name or "desktop").lower(), VIEWPORTS["desktop"])


class BrowserManager:
    """Launches Chromium lazily and hands out one isolated context per check."""

    def __init__(self, headless: bool = True, timeout_ms: int = 30000):
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()

    async def initialize(self):
        """Initialize Playwright."""
        if self._playwright is None:
            self._playwright = await async_playwright().start()
            logger.info("Playwright initialized")

    async def get_browser(self) -> Browser:
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser

            await self.initialize()
            logger.info(f"Launching browser (headless={self.headless})")
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
            return self._browser

    @asynccontextmanager
    async def page(self, viewport: Optional[str] = None) -> AsyncIterator[Page]:
        """
        Open a page in a fresh context; the context is closed on exit.

        Args:
            viewport: Preset name (desktop, tablet, mobile)
        """
        browser = await self.get_browser()
        context = await browser.new_context(
            viewport=viewport_size(viewport),
            ignore_https_errors=True,
        )
        context.set_default_timeout(self.timeout_ms)
        try:
            yield await context.new_page()
        finally:
            await context.close()

    async def close_all(self) -> None:
        """Close the browser and stop Playwright."""
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
            logger.info("Browser closed")

        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
            logger.info("Playwright stopped")
