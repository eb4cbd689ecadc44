"""Shared fixtures for stepflow unit tests."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

import pytest

from stepflow.utils.config import get_settings


# ---------------------------------------------------------------------------
# Fake driver session
# ---------------------------------------------------------------------------

class FakeSession:
    """In-memory DriverSession that records calls.

    `failures` maps a method name, or (method name, first argument), to the
    exception that call should raise. `texts` maps locators to text content.
    """

    def __init__(
        self,
        texts: Optional[dict[str, str]] = None,
        failures: Optional[dict[Any, BaseException]] = None,
        title: str = "Example Domain",
        content: str = "<html><body>" + "x" * 200 + "</body></html>",
    ):
        self.texts = texts or {}
        self.failures = failures or {}
        self._title = title
        self._content = content
        self.calls: list[tuple] = []
        self.closed = False

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        exc = self.failures.get((method, args[0] if args else None)) or self.failures.get(method)
        if exc is not None:
            raise exc

    def methods(self) -> list[str]:
        return [c[0] for c in self.calls]

    def goto(self, url, *, timeout_ms):
        self._record("goto", url, timeout_ms)

    def wait_for(self, locator, *, state, timeout_ms):
        self._record("wait_for", locator, state, timeout_ms)

    def click(self, locator):
        self._record("click", locator)

    def hover(self, locator):
        self._record("hover", locator)

    def clear(self, locator):
        self._record("clear", locator)

    def type_text(self, locator, text, *, delay_ms=0):
        self._record("type_text", locator, text)

    def select_option(self, locator, value):
        self._record("select_option", locator, value)

    def text_content(self, locator):
        self._record("text_content", locator)
        return self.texts.get(locator, "")

    def scroll_into_view(self, locator):
        self._record("scroll_into_view", locator)

    def screenshot(self, path):
        self._record("screenshot", path)
        Path(path).write_bytes(b"\x89PNG fake")

    def press_key(self, key):
        self._record("press_key", key)

    def evaluate(self, script):
        self._record("evaluate", script)
        return None

    def title(self):
        self._record("title")
        return self._title

    def content(self):
        self._record("content")
        return self._content


class FakeSessionFactory:
    """Callable matching SessionFactory; hands out one prepared session per `with`."""

    def __init__(self, session: Optional[FakeSession] = None, launch_error: Optional[BaseException] = None):
        self.session = session or FakeSession()
        self.launch_error = launch_error
        self.opened = 0
        self.headless_flags: list[bool] = []

    @contextmanager
    def __call__(self, *, headless: bool):
        self.headless_flags.append(headless)
        if self.launch_error is not None:
            raise self.launch_error
        self.opened += 1
        try:
            yield self.session
        finally:
            self.session.closed = True


class ListRecorder:
    def __init__(self, error: Optional[BaseException] = None):
        self.records = []
        self.error = error

    def record_run(self, record):
        if self.error is not None:
            raise self.error
        self.records.append(record)
        return len(self.records)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep history, screenshots and flow scaffolds inside tmp_path and disable pacing delays."""
    monkeypatch.setenv("HISTORY_DB", str(tmp_path / "history.db"))
    monkeypatch.setenv("SCREENSHOT_DIR", str(tmp_path / "screenshots"))
    monkeypatch.setenv("FLOWS_DIR", str(tmp_path / "flows"))
    monkeypatch.setenv("HUMANIZE", "false")
    monkeypatch.setenv("SCROLL_SETTLE_MS", "0")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def session_factory(fake_session: FakeSession) -> FakeSessionFactory:
    return FakeSessionFactory(fake_session)


@pytest.fixture
def recorder() -> ListRecorder:
    return ListRecorder()


@pytest.fixture
def login_flow() -> dict:
    return {
        "name": "Login",
        "baseUrl": "https://ex.com",
        "steps": [
            {"goto": "/login"},
            {"type": "#email", "text": "a@b.com"},
            {"click": "button[type=submit]"},
            {"verify": "h1", "contains": "Dashboard"},
        ],
    }


@pytest.fixture
def make_session():
    return FakeSession


@pytest.fixture
def make_factory():
    return FakeSessionFactory


@pytest.fixture
def make_recorder():
    return ListRecorder
