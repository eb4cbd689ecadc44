from __future__ import annotations

"""Flow engine
--------------
Opens one browser session per flow, runs its steps in order through the step
executor, applies the stop-on-failure policy, and hands the finished
RunResult to the run history and the console reporter.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from stepflow.core import actions
from stepflow.core.flow_loader import Flow, flow_from_dict, load_flow
from stepflow.core.results import BatchResult, RunResult, SmokeResult, StepOutcome
from stepflow.driver.base import SessionFactory
from stepflow.driver.playwright_session import open_session
from stepflow.report.reporter import ConsoleReporter
from stepflow.store.history import RunHistory, RunRecord, RunRecorder
from stepflow.utils.config import Settings, get_settings
from stepflow.utils.logger import get_logger, log_with_context
from stepflow.utils.timing import JitterPolicy, Stopwatch

SMOKE_TEST_NAME = "Smoke Test"
SMOKE_ERROR_MARKERS = (
    "502 Bad Gateway",
    "503 Service Unavailable",
    "500 Internal Server Error",
    "404 Not Found",
)


@dataclass
class RunOptions:
    base_url: Optional[str] = None
    screenshot_dir: Optional[Path] = None
    headless: Optional[bool] = None
    stop_on_failure: bool = False
    json_output: bool = False


def coerce_flow(source: Flow | Mapping[str, Any] | Path | str) -> Flow:
    """Accept an already-parsed flow, a raw mapping, or a path to a flow file."""
    if isinstance(source, Flow):
        return source
    if isinstance(source, Mapping):
        return flow_from_dict(dict(source))
    return load_flow(source)


class FlowRunner:
    """Runs flows against a live browser session and reports the results."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        session_factory: Optional[SessionFactory] = None,
        recorder: Optional[RunRecorder] = None,
        reporter: Optional[ConsoleReporter] = None,
        jitter: Optional[JitterPolicy] = None,
    ):
        self.settings = settings or get_settings()
        self.session_factory = session_factory or open_session
        if recorder is None and self.settings.RECORD_HISTORY:
            recorder = RunHistory(self.settings.HISTORY_DB)
        self.recorder = recorder
        self.reporter = reporter or ConsoleReporter(colorized=self.settings.COLORIZED_OUTPUT)
        self.jitter = jitter if jitter is not None else JitterPolicy.from_settings(self.settings)
        self.log = get_logger(__name__)

    # ---------- single flow ----------

    def run(self, flow_source: Flow | Mapping[str, Any] | Path | str, options: Optional[RunOptions] = None) -> RunResult:
        """Execute every step of a flow and return the aggregated RunResult.

        Raises only when the flow cannot be loaded or the browser session
        cannot be opened. Step failures are recorded as outcomes.
        """
        opts = options or RunOptions()
        result = self._run_one(flow_source, opts)
        if opts.json_output:
            self.reporter.json_report(result)
        return result

    def _run_one(self, flow_source: Flow | Mapping[str, Any] | Path | str, opts: RunOptions) -> RunResult:
        flow = coerce_flow(flow_source)
        s = self.settings

        base_url = opts.base_url or flow.base_url or ""
        screenshot_dir = Path(opts.screenshot_dir or s.SCREENSHOT_DIR)
        headless = s.HEADLESS if opts.headless is None else opts.headless
        screenshot_dir.mkdir(parents=True, exist_ok=True)

        log = log_with_context(self.log, flow=flow.name)
        log.info(f"Starting flow: {flow.name} (steps={len(flow.steps)}, base_url={base_url or '-'})")
        if not opts.json_output:
            self.reporter.header(flow.name, base_url)

        outcomes: list[StepOutcome] = []
        passed = 0
        failed = 0

        with Stopwatch() as sw:
            with self.session_factory(headless=headless) as session:
                for idx, step in enumerate(flow.steps, start=1):
                    step_log = log_with_context(log, step_index=idx, action=step.action.value)
                    outcome = actions.execute_step(
                        session, step, base_url, screenshot_dir, settings=s, jitter=self.jitter
                    )
                    outcomes.append(outcome)
                    if outcome.success:
                        passed += 1
                    else:
                        failed += 1
                        step_log.warning(f"Step {idx}/{len(flow.steps)} failed: {outcome.error}")

                    if not opts.json_output:
                        self.reporter.step(outcome, idx)

                    if not outcome.success and opts.stop_on_failure:
                        step_log.info(f"Stopping after failed step {idx}; {len(flow.steps) - idx} step(s) skipped")
                        break
            duration = sw.elapsed_ms()

        result = RunResult(
            name=flow.name,
            base_url=base_url,
            steps=tuple(outcomes),
            passed=passed,
            failed=failed,
            total=len(flow.steps),
            duration_ms=duration,
            screenshot_dir=screenshot_dir,
        )
        log.info(f"Finished flow: {flow.name} passed={passed} failed={failed} total={result.total} ({duration} ms)")

        self._record(RunRecord.now(
            flow_name=result.name,
            base_url=result.base_url,
            passed=result.passed,
            failed=result.failed,
            total=result.total,
            duration_ms=result.duration_ms,
        ))

        if not opts.json_output:
            self.reporter.summary(result)
        return result

    # ---------- several flows ----------

    def run_many(self, flow_sources: Iterable[Flow | Mapping[str, Any] | Path | str], options: Optional[RunOptions] = None) -> BatchResult:
        """Run flows one after another. Flows that fail to load or start are skipped and listed in `errors`."""
        opts = options or RunOptions()
        batch = BatchResult()
        for source in flow_sources:
            key = source.name if isinstance(source, Flow) else str(source)
            try:
                result = self._run_one(source, opts)
            except Exception as exc:
                self.log.error(f"Error running flow {key}: {exc}")
                batch.errors[key] = str(exc)
                continue
            batch.results.append(result)
            if result.failed > 0 and opts.stop_on_failure:
                break

        if opts.json_output:
            self.reporter.json_batch(batch.results)
        else:
            self.reporter.batch(batch)
        return batch

    # ---------- smoke test ----------

    def smoke(self, url: str, *, timeout_ms: Optional[int] = None, headless: Optional[bool] = None) -> SmokeResult:
        """Load one page and check it is neither an error page nor empty."""
        s = self.settings
        timeout = s.SMOKE_TIMEOUT_MS if timeout_ms is None else timeout_ms
        error: Optional[str] = None

        with Stopwatch() as sw:
            with self.session_factory(headless=s.HEADLESS if headless is None else headless) as session:
                try:
                    session.goto(url, timeout_ms=timeout)
                    title = session.title()
                    content = session.content()
                    if any(marker in content for marker in SMOKE_ERROR_MARKERS):
                        error = "Page returned an error status"
                    elif not title and len(content) < 100:
                        error = "Page appears to be empty"
                except Exception as exc:
                    error = str(exc) or exc.__class__.__name__
            duration = sw.elapsed_ms()

        result = SmokeResult(url=url, success=error is None, duration_ms=duration, error=error)
        self.reporter.smoke(result)
        self._record(RunRecord.now(
            flow_name=SMOKE_TEST_NAME,
            base_url=url,
            passed=1 if result.success else 0,
            failed=0 if result.success else 1,
            total=1,
            duration_ms=duration,
        ))
        return result

    # ---------- internals ----------

    def _record(self, record: RunRecord) -> None:
        if self.recorder is None:
            return
        try:
            self.recorder.record_run(record)
        except Exception as exc:
            self.log.warning(f"Could not record run for {record.flow_name!r}: {exc}")


def run_flow(flow: Flow | Mapping[str, Any] | Path | str, **options: Any) -> RunResult:
    return FlowRunner(settings=get_settings()).run(flow, RunOptions(**options))
