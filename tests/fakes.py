"""In-process stand-ins for the Playwright page API used by the browser checks."""

from contextlib import asynccontextmanager
from pathlib import Path


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    async def press(self, key):
        self.pressed.append(key)


class FakeElement:
    def __init__(self, shown=True, href="#main"):
        self.shown = shown
        self.href = href
        self.focused = 0

    async def focus(self):
        self.focused += 1

    async def evaluate(self, script):
        return self.shown

    async def get_attribute(self, name):
        return self.href if name == "href" else None


class FakePage:
    """Answers evaluate() from a script -> value map and records navigation."""

    def __init__(self, elements=None, evaluations=None, goto_error=None):
        self.elements = elements if elements is not None else [FakeElement()]
        self.evaluations = evaluations or {}
        self.goto_error = goto_error
        self.keyboard = FakeKeyboard()
        self.visited = []
        self.scripts = []

    async def goto(self, url, wait_until=None):
        if self.goto_error is not None:
            raise self.goto_error
        self.visited.append(url)

    async def add_script_tag(self, url=None, content=None):
        self.scripts.append(url)

    async def evaluate(self, script):
        return self.evaluations.get(script)

    async def query_selector_all(self, selector):
        return list(self.elements)

    async def screenshot(self, path=None, full_page=False):
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        Path(path).write_bytes(b"\x89PNG fake")


class FakeBrowserManager:
    def __init__(self, page):
        self._page = page
        self.viewports = []
        self.closed = False

    @asynccontextmanager
    async def page(self, viewport=None):
        self.viewports.append(viewport)
        yield self._page

    async def close_all(self):
        self.closed = True
