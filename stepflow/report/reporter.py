# stepflow/report/reporter.py
from __future__ import annotations

"""Run reporting
----------------
Pure rendering of step outcomes and run results (rich markup strings and a
JSON-ready report dict), plus ConsoleReporter which prints them.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.markup import escape

from stepflow.core.flow_loader import (
    ActionName,
    Step,
    StepClick,
    StepHover,
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
from stepflow.core.results import BatchResult, RunResult, SmokeResult, StepOutcome

RULE = "─" * 50


def action_label(step: Step) -> str:
    """Human label for a step, derived from its action."""
    if isinstance(step, StepNavigate):
        return f"goto {step.url}"
    if isinstance(step, StepClick):
        return f'click "{step.selector}"'
    if isinstance(step, StepType):
        return f"type {step.selector}"
    if isinstance(step, StepWaitFor):
        return f"waitFor {step.selector}"
    if isinstance(step, StepScreenshot):
        return f'screenshot "{step.label}"'
    if isinstance(step, StepVerify):
        return f'verify {step.selector} contains "{step.expected}"'
    if isinstance(step, StepWait):
        ms = int(step.ms) if float(step.ms).is_integer() else step.ms
        return f"wait {ms}ms"
    if isinstance(step, StepScroll):
        return f"scroll {step.selector}"
    if isinstance(step, StepHover):
        return f"hover {step.selector}"
    if isinstance(step, StepSelect):
        return f"select {step.selector}"
    if isinstance(step, StepPress):
        return f"press {step.key}"
    if step.action == ActionName.evaluate:
        return "evaluate (custom JS)"
    return "unknown action"


def format_duration(ms: int) -> str:
    if ms < 1000:
        return f"{ms}ms"
    return f"{ms / 1000:.1f}s"


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ------------- Text rendering (rich markup) -------------

def render_header(name: str, base_url: str) -> str:
    return "\n".join([
        "",
        f"[bold]🧪 Testing: {escape(name)}[/bold]",
        f"[grey50]   Base URL: {escape(base_url)}[/grey50]",
        f"[bold]{RULE}[/bold]",
    ])


def render_step(outcome: StepOutcome, index: int) -> str:
    """One progress line (plus a detail line) for the outcome of step `index` (1-based)."""
    label = escape(f"{index}. {action_label(outcome.step)}")
    duration = format_duration(outcome.duration_ms)

    if outcome.success:
        if outcome.step.action == ActionName.screenshot:
            lines = [f"[cyan]  📸 {label}[/cyan]"]
            if outcome.screenshot_path:
                lines.append(f"[grey50]     → {escape(outcome.screenshot_path)}[/grey50]")
            return "\n".join(lines)
        return f"[green]  ✅ {label}[/green][grey50] ({duration})[/grey50]"

    lines = [f"[red]  ❌ {label}[/red][grey50] ({duration})[/grey50]"]
    if outcome.error:
        lines.append(f"[red]     Error: {escape(outcome.error)}[/red]")
    return "\n".join(lines)


def render_summary(result: RunResult) -> str:
    lines = ["", f"[bold]{RULE}[/bold]"]
    if result.failed == 0:
        lines.append(f"[bold green]\nResult: {result.passed}/{result.total} passed ✅[/bold green]")
    else:
        lines.append(
            f"[bold red]\nResult: {result.passed}/{result.total} passed, {result.failed} failed ❌[/bold red]"
        )
    lines.append(f"[grey50]Duration: {format_duration(result.duration_ms)}[/grey50]")
    if result.screenshots:
        lines.append(f"[grey50]Screenshots saved to: {escape(str(result.screenshot_dir))}/[/grey50]")
    lines.append("")
    return "\n".join(lines)


def render_smoke(result: SmokeResult) -> str:
    duration = format_duration(result.duration_ms)
    lines = ["", f"[bold]🔥 Smoke Test: {escape(result.url)}[/bold]", f"[bold]{RULE}[/bold]"]
    if result.success:
        lines.append(f"[green]  ✅ Page loaded successfully[/green][grey50] ({duration})[/grey50]")
        lines.append("[bold green]\nResult: PASSED ✅[/bold green]")
    else:
        lines.append(f"[red]  ❌ Page failed to load[/red][grey50] ({duration})[/grey50]")
        if result.error:
            lines.append(f"[red]     Error: {escape(result.error)}[/red]")
        lines.append("[bold red]\nResult: FAILED ❌[/bold red]")
    lines.append("")
    return "\n".join(lines)


def render_batch(batch: BatchResult) -> str:
    bar = "=" * 50
    attempted = batch.total_passed + batch.total_failed
    return "\n".join([
        "",
        bar,
        f"Total: {batch.total_passed}/{attempted} passed across {len(batch.results)} flows",
        bar,
        "",
    ])


# ------------- Structured report -------------

def build_report(result: RunResult, timestamp: Optional[str] = None) -> Dict[str, Any]:
    """Machine-readable report. Optional keys are omitted when empty."""
    steps = []
    for i, outcome in enumerate(result.steps, start=1):
        entry: Dict[str, Any] = {
            "index": i,
            "action": action_label(outcome.step),
            "success": outcome.success,
            "duration": outcome.duration_ms,
        }
        if outcome.error is not None:
            entry["error"] = outcome.error
        if outcome.screenshot_path is not None:
            entry["screenshot"] = outcome.screenshot_path
        steps.append(entry)

    return {
        "name": result.name,
        "baseUrl": result.base_url,
        "timestamp": timestamp or _iso_now(),
        "summary": {
            "passed": result.passed,
            "failed": result.failed,
            "total": result.total,
            "duration": result.duration_ms,
            "success": result.failed == 0,
        },
        "steps": steps,
    }


# ------------- Console output -------------

class ConsoleReporter:
    """Prints rendered output on a rich Console (stdout by default).

    `colorized=False` turns off colour on the default console.
    """

    def __init__(self, console: Optional[Console] = None, *, colorized: bool = True):
        self.console = console or Console(highlight=False, soft_wrap=True, no_color=not colorized)

    def header(self, name: str, base_url: str) -> None:
        self.console.print(render_header(name, base_url))

    def step(self, outcome: StepOutcome, index: int) -> None:
        self.console.print(render_step(outcome, index))

    def summary(self, result: RunResult) -> None:
        self.console.print(render_summary(result))

    def smoke(self, result: SmokeResult) -> None:
        self.console.print(render_smoke(result))

    def batch(self, batch: BatchResult) -> None:
        self.console.print(render_batch(batch))

    def json_report(self, result: RunResult) -> None:
        self.console.out(json.dumps(build_report(result), indent=2, ensure_ascii=False), highlight=False)

    def json_batch(self, results: List[RunResult]) -> None:
        reports = [build_report(r) for r in results]
        self.console.out(json.dumps(reports, indent=2, ensure_ascii=False), highlight=False)
