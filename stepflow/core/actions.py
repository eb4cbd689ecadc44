# stepflow/core/actions.py
from __future__ import annotations

"""Step actions dispatcher
--------------------------
Maps typed flow steps to driver operations and converts every outcome,
including driver errors, into a timed StepOutcome.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from stepflow.capture.screenshot import ScreenshotManager
from stepflow.core.flow_loader import (
    ActionName,
    Step,
    StepClick,
    StepEvaluate,
    StepHover,
    StepMalformed,
    StepNavigate,
    StepPress,
    StepScreenshot,
    StepScroll,
    StepSelect,
    StepType,
    StepVerify,
    StepWait,
    StepWaitFor,
)
from stepflow.core.results import StepOutcome
from stepflow.driver.base import DriverSession
from stepflow.selectors.locator import resolve_selector
from stepflow.utils.config import Settings, get_settings
from stepflow.utils.logger import get_logger, log_with_context
from stepflow.utils.timing import JitterPolicy, Stopwatch, measure, sleep_ms

# Public API
__all__ = ["StepContext", "StepFailed", "execute_step", "resolve_url"]

VERIFY_SNIPPET_CHARS = 100


class StepFailed(Exception):
    """A step ran to completion but its check did not hold."""


@dataclass
class StepContext:
    """Everything a step needs besides the session and the step itself."""
    base_url: str
    screenshot_dir: Path
    settings: Settings = field(default_factory=get_settings)
    jitter: JitterPolicy = field(default_factory=JitterPolicy)

    def timeout(self, step: Step, default: int) -> int:
        return step.timeout_ms if step.timeout_ms is not None else default


# ------------- Helpers -------------

def resolve_url(target: str, base_url: str) -> str:
    """Prefix relative targets with the base URL; anything starting with http is absolute."""
    if target.startswith("http"):
        return target
    return f"{base_url}{target}"


# ------------- Step executors -------------

@measure("navigate")
def _do_navigate(session: DriverSession, step: StepNavigate, ctx: StepContext) -> None:
    url = resolve_url(step.url, ctx.base_url)
    session.goto(url, timeout_ms=ctx.timeout(step, ctx.settings.NAVIGATION_TIMEOUT_MS))


@measure("click")
def _do_click(session: DriverSession, step: StepClick, ctx: StepContext) -> None:
    loc = resolve_selector(step.selector)
    session.wait_for(loc, state="visible", timeout_ms=ctx.timeout(step, ctx.settings.ACTION_TIMEOUT_MS))
    sleep_ms(ctx.jitter.click_delay_ms())
    session.click(loc)


@measure("type")
def _do_type(session: DriverSession, step: StepType, ctx: StepContext) -> None:
    loc = resolve_selector(step.selector)
    session.wait_for(loc, state="visible", timeout_ms=ctx.timeout(step, ctx.settings.ACTION_TIMEOUT_MS))
    session.click(loc)
    session.clear(loc)
    # one key at a time so every keystroke gets its own random delay
    for ch in step.text:
        session.type_text(loc, ch, delay_ms=ctx.jitter.keystroke_delay_ms())


@measure("waitFor")
def _do_wait_for(session: DriverSession, step: StepWaitFor, ctx: StepContext) -> None:
    loc = resolve_selector(step.selector)
    session.wait_for(loc, state="visible", timeout_ms=ctx.timeout(step, ctx.settings.WAIT_FOR_TIMEOUT_MS))


@measure("screenshot")
def _do_screenshot(session: DriverSession, step: StepScreenshot, ctx: StepContext) -> Path:
    return ScreenshotManager(ctx.screenshot_dir).capture(session, step.label)


@measure("verify")
def _do_verify(session: DriverSession, step: StepVerify, ctx: StepContext) -> None:
    loc = resolve_selector(step.selector)
    session.wait_for(loc, state="attached", timeout_ms=ctx.timeout(step, ctx.settings.ACTION_TIMEOUT_MS))
    text = session.text_content(loc) or ""
    if step.expected.lower() not in text.lower():
        raise StepFailed(f'Expected "{step.expected}" but found "{text[:VERIFY_SNIPPET_CHARS]}"')


def _do_wait(session: DriverSession, step: StepWait, ctx: StepContext) -> None:
    sleep_ms(step.ms)


@measure("scroll")
def _do_scroll(session: DriverSession, step: StepScroll, ctx: StepContext) -> None:
    loc = resolve_selector(step.selector)
    session.wait_for(loc, state="attached", timeout_ms=ctx.timeout(step, ctx.settings.WAIT_FOR_TIMEOUT_MS))
    session.scroll_into_view(loc)


@measure("hover")
def _do_hover(session: DriverSession, step: StepHover, ctx: StepContext) -> None:
    loc = resolve_selector(step.selector)
    session.wait_for(loc, state="visible", timeout_ms=ctx.timeout(step, ctx.settings.ACTION_TIMEOUT_MS))
    session.hover(loc)


@measure("select")
def _do_select(session: DriverSession, step: StepSelect, ctx: StepContext) -> None:
    loc = resolve_selector(step.selector)
    session.wait_for(loc, state="attached", timeout_ms=ctx.timeout(step, ctx.settings.ACTION_TIMEOUT_MS))
    session.select_option(loc, step.value)


@measure("press")
def _do_press(session: DriverSession, step: StepPress, ctx: StepContext) -> None:
    session.press_key(step.key)


@measure("evaluate")
def _do_evaluate(session: DriverSession, step: StepEvaluate, ctx: StepContext) -> None:
    session.evaluate(step.script)


def _malformed_error(step: StepMalformed) -> str:
    if step.reason:
        return step.reason
    return f"Unknown step type: {json.dumps(step.raw, ensure_ascii=False, default=str)}"


# ------------- Dispatcher -------------

def _dispatch(session: DriverSession, step: Step, ctx: StepContext) -> Optional[Path]:
    """Run exactly one action. Returns the screenshot path for screenshot steps."""
    action = step.action

    if action == ActionName.navigate:
        _do_navigate(session, step, ctx)
    elif action == ActionName.click:
        _do_click(session, step, ctx)
    elif action == ActionName.type:
        _do_type(session, step, ctx)
    elif action == ActionName.wait_for:
        _do_wait_for(session, step, ctx)
    elif action == ActionName.screenshot:
        return _do_screenshot(session, step, ctx)
    elif action == ActionName.verify:
        _do_verify(session, step, ctx)
    elif action == ActionName.wait:
        _do_wait(session, step, ctx)
    elif action == ActionName.scroll:
        _do_scroll(session, step, ctx)
    elif action == ActionName.hover:
        _do_hover(session, step, ctx)
    elif action == ActionName.select:
        _do_select(session, step, ctx)
    elif action == ActionName.press:
        _do_press(session, step, ctx)
    elif action == ActionName.evaluate:
        _do_evaluate(session, step, ctx)
    else:
        raise StepFailed(_malformed_error(step) if isinstance(step, StepMalformed) else f"Unsupported action: {action}")
    return None


def execute_step(
    session: DriverSession,
    step: Step,
    base_url: str,
    screenshot_dir: Path | str,
    *,
    settings: Optional[Settings] = None,
    jitter: Optional[JitterPolicy] = None,
) -> StepOutcome:
    """
    Execute one step (navigate/click/type/verify/etc.) on the session.
    Always returns a StepOutcome; driver errors, failed checks and malformed
    steps come back as success=False with the error text.
    """
    s = settings or get_settings()
    ctx = StepContext(
        base_url=base_url,
        screenshot_dir=Path(screenshot_dir),
        settings=s,
        jitter=jitter if jitter is not None else JitterPolicy.from_settings(s),
    )
    return _execute(session, step, ctx)


def _execute(session: DriverSession, step: Step, ctx: StepContext) -> StepOutcome:
    log = log_with_context(get_logger(__name__), action=step.action.value)
    screenshot: Optional[Path] = None
    error: Optional[str] = None

    with Stopwatch() as sw:
        try:
            screenshot = _dispatch(session, step, ctx)
        except Exception as exc:
            error = str(exc)
        duration = sw.elapsed_ms()

    if error is not None:
        log.debug(f"Step failed: {error}")
        return StepOutcome(step=step, success=False, duration_ms=duration, error=error)
    return StepOutcome(
        step=step,
        success=True,
        duration_ms=duration,
        screenshot_path=str(screenshot) if screenshot else None,
    )
