# stepflow/driver/playwright_session.py
from __future__ import annotations

"""Playwright driver session
----------------------------
Implements the DriverSession protocol on top of Playwright's sync API.
One browser, one context and one page per session; `open_session` closes
all of them when its `with` block exits.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

from playwright.sync_api import Locator, Page, sync_playwright

from stepflow.utils.config import Settings, get_settings
from stepflow.utils.logger import get_logger


class PlaywrightSession:
    """DriverSession backed by a Playwright Page."""

    def __init__(self, page: Page, settings: Optional[Settings] = None):
        self.page = page
        self.settings = settings or get_settings()

    def _locator(self, locator: str) -> Locator:
        # Flow selectors address the first match, like querySelector
        return self.page.locator(locator).first

    def goto(self, url: str, *, timeout_ms: int) -> None:
        self.page.goto(url, wait_until="networkidle", timeout=timeout_ms)

    def wait_for(self, locator: str, *, state: str, timeout_ms: int) -> None:
        self._locator(locator).wait_for(state=state, timeout=timeout_ms)

    def click(self, locator: str) -> None:
        self._locator(locator).click()

    def hover(self, locator: str) -> None:
        self._locator(locator).hover()

    def clear(self, locator: str) -> None:
        self._locator(locator).fill("")

    def type_text(self, locator: str, text: str, *, delay_ms: int = 0) -> None:
        self._locator(locator).press_sequentially(text, delay=delay_ms)

    def select_option(self, locator: str, value: str) -> None:
        self._locator(locator).select_option(value=value)

    def text_content(self, locator: str) -> str:
        return self._locator(locator).text_content() or ""

    def scroll_into_view(self, locator: str) -> None:
        self._locator(locator).evaluate(
            "el => el.scrollIntoView({behavior: 'smooth', block: 'center'})"
        )
        if self.settings.SCROLL_SETTLE_MS:
            self.page.wait_for_timeout(self.settings.SCROLL_SETTLE_MS)

    def screenshot(self, path: Path) -> None:
        self.page.screenshot(path=str(path), full_page=False)

    def press_key(self, key: str) -> None:
        self.page.keyboard.press(key)

    def evaluate(self, script: str) -> Any:
        return self.page.evaluate(script)

    def title(self) -> str:
        return self.page.title() or ""

    def content(self) -> str:
        return self.page.content()


@contextmanager
def open_session(*, headless: Optional[bool] = None, settings: Optional[Settings] = None) -> Iterator[PlaywrightSession]:
    """
    Launch a browser and yield a session on a fresh page.
    Launch failures propagate to the caller; the browser is closed on exit
    whether or not the block raised.
    """
    s = settings or get_settings()
    log = get_logger(__name__)
    with sync_playwright() as p:
        browser_type = getattr(p, s.BROWSER_TYPE.value)
        launch_kwargs = s.playwright_launch_kwargs(headless=headless)
        log.debug(f"Launching {s.BROWSER_TYPE.value} (headless={launch_kwargs['headless']})")
        browser = browser_type.launch(**launch_kwargs)
        try:
            context = browser.new_context(**s.playwright_context_kwargs())
            page = context.new_page()
            yield PlaywrightSession(page, settings=s)
        finally:
            browser.close()
            log.debug("Browser closed")
