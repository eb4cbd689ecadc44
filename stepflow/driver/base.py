"""Driver capability contract.

The step executor only talks to the browser through this protocol. The
Playwright implementation lives in `stepflow.driver.playwright_session`; tests
substitute an in-memory fake.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DriverSession(Protocol):
    """One live browser page, owned by a single flow run.

    Locators are strings already passed through `resolve_selector`. Every
    call blocks until the driver answers and raises on timeout or when the
    element cannot be found.
    """

    def goto(self, url: str, *, timeout_ms: int) -> None: ...

    def wait_for(self, locator: str, *, state: str, timeout_ms: int) -> None: ...

    def click(self, locator: str) -> None: ...

    def hover(self, locator: str) -> None: ...

    def clear(self, locator: str) -> None: ...

    def type_text(self, locator: str, text: str, *, delay_ms: int = 0) -> None: ...

    def select_option(self, locator: str, value: str) -> None: ...

    def text_content(self, locator: str) -> str: ...

    def scroll_into_view(self, locator: str) -> None: ...

    def screenshot(self, path: Path) -> None: ...

    def press_key(self, key: str) -> None: ...

    def evaluate(self, script: str) -> Any: ...

    def title(self) -> str: ...

    def content(self) -> str: ...


class SessionFactory(Protocol):
    """Opens a session for the duration of a `with` block and closes it afterwards."""

    def __call__(self, *, headless: bool) -> AbstractContextManager[DriverSession]: ...
