from __future__ import annotations

"""Command-line interface
------------------------
Commands to run/validate flows, smoke-test a URL, scaffold flows from
templates, browse run history and view effective config.
Thin wrapper around the loader and the flow runner.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import click

from stepflow.core.engine import FlowRunner, RunOptions
from stepflow.core.flow_loader import find_flow_files, load_flows_file
from stepflow.core.templates import TEMPLATE_DESCRIPTIONS, TEMPLATES, flow_filename, get_template
from stepflow.driver.playwright_session import open_session
from stepflow.report.reporter import ConsoleReporter
from stepflow.store.history import RunHistory
from stepflow.utils.config import get_settings
from stepflow.utils.logger import bind, set_log_level, unbind


# -------- helpers --------


def _echo_json(obj) -> None:
    click.echo(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _expand_targets(targets: List[str]) -> List[Path]:
    paths: List[Path] = []
    for t in targets:
        p = Path(t).resolve()
        if p.is_dir():
            paths.extend(find_flow_files(p, recursive=True))
        else:
            paths.append(p)
    return paths


def _expand_flow_sources(paths: List[Path]) -> list:
    """One entry per flow: multi-document YAML files contribute each of their flows."""
    sources: list = []
    for p in paths:
        try:
            flows = load_flows_file(p)
        except (OSError, ValueError):
            # run() reports the load error for this path
            sources.append(p)
            continue
        sources.extend(flows if len(flows) > 1 else [p])
    return sources


def _build_runner() -> FlowRunner:
    s = get_settings()
    return FlowRunner(settings=s, session_factory=open_session, reporter=ConsoleReporter(colorized=s.COLORIZED_OUTPUT))


# -------- CLI root --------


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Override LOG_LEVEL from settings",
)
@click.version_option(package_name="stepflow")
def cli(log_level: Optional[str]):
    """Run declarative browser test flows."""
    _ = get_settings()
    if log_level:
        set_log_level(log_level.upper())


# -------- commands --------


@cli.command("config")
def cmd_config():
    """Print effective configuration (after .env & env vars)."""
    s = get_settings()
    _echo_json({k: (v.value if hasattr(v, "value") else v) for k, v in s.model_dump().items()})


@cli.command("run")
@click.argument("flows", nargs=-1, required=True)
@click.option("-u", "--url", "base_url", default=None, help="Override base URL")
@click.option("--headless/--no-headless", default=None, help="Override HEADLESS from settings")
@click.option("--screenshot-dir", type=click.Path(file_okay=False), default=None, help="Screenshot directory")
@click.option("--stop-on-failure", is_flag=True, default=False, help="Stop a flow at its first failed step")
@click.option("--json", "json_output", is_flag=True, default=False, help="Print a JSON report instead of progress")
def cmd_run(
    flows: List[str],
    base_url: Optional[str],
    headless: Optional[bool],
    screenshot_dir: Optional[str],
    stop_on_failure: bool,
    json_output: bool,
):
    """
    Run one or more flow files (directories are searched for flows).

    Examples:
      stepflow run flows/login.json
      stepflow run flows/ --url http://localhost:3000 --stop-on-failure
    """
    paths = _expand_targets(flows)
    missing = [p for p in paths if not p.exists()]
    if missing:
        for p in missing:
            click.echo(f"❌ Test flow not found: {p}", err=True)
        sys.exit(1)
    if not paths:
        click.echo("No flows matched.", err=True)
        sys.exit(1)

    runner = _build_runner()
    options = RunOptions(
        base_url=base_url,
        screenshot_dir=Path(screenshot_dir) if screenshot_dir else None,
        headless=headless,
        stop_on_failure=stop_on_failure,
        json_output=json_output,
    )

    sources = _expand_flow_sources(paths)
    bind(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ"))
    try:
        if len(sources) == 1:
            try:
                result = runner.run(sources[0], options)
            except Exception as e:
                click.echo(f"\n❌ Error: {e}", err=True)
                sys.exit(1)
            ok = result.failed == 0
        else:
            batch = runner.run_many(sources, options)
            for key, err in batch.errors.items():
                click.echo(f"ERR {key} -> {err}", err=True)
            ok = batch.success
    finally:
        unbind("run_id")

    sys.exit(0 if ok else 1)


@cli.command("smoke")
@click.argument("url")
@click.option("--timeout", "timeout_ms", type=int, default=None, help="Navigation timeout in ms")
@click.option("--headless/--no-headless", default=None, help="Override HEADLESS from settings")
def cmd_smoke(url: str, timeout_ms: Optional[int], headless: Optional[bool]):
    """Quick smoke test: check that a page loads."""
    try:
        result = _build_runner().smoke(url, timeout_ms=timeout_ms, headless=headless)
    except Exception as e:
        click.echo(f"\n❌ Error: {e}", err=True)
        sys.exit(1)
    sys.exit(0 if result.success else 1)


@cli.command("validate")
@click.argument("targets", nargs=-1, required=False)
@click.option("--dir", "flows_dir", type=click.Path(file_okay=False, dir_okay=True, exists=True), help="Validate all flows under this directory")
@click.option("--recursive/--no-recursive", default=True, show_default=True)
def cmd_validate(targets: List[str], flows_dir: Optional[str], recursive: bool):
    """Validate flow files (JSON or YAML, multi-doc YAML supported)."""
    paths: list[Path] = []
    if targets:
        paths.extend(_expand_targets(targets))
    elif flows_dir:
        paths.extend(find_flow_files(Path(flows_dir), recursive=recursive))
    else:
        click.echo("Provide file(s) or --dir to validate.")
        sys.exit(2)

    ok = True
    for fp in paths:
        try:
            for flow in load_flows_file(fp):
                bad = flow.malformed_steps
                if bad:
                    ok = False
                    click.echo(f"ERR {fp}  ->  {flow.name}: {len(bad)} malformed step(s)")
                    for idx, step in bad:
                        click.echo(f"      step {idx}: {step.reason}")
                else:
                    click.echo(f"OK  {fp}  ->  {flow.name} ({len(flow.steps)} steps)")
        except Exception as e:
            ok = False
            click.echo(f"ERR {fp}  ->  {e}")

    sys.exit(0 if ok else 1)


@cli.command("templates")
def cmd_templates():
    """List available flow templates."""
    click.echo("\n📋 Available Test Templates")
    click.echo("─" * 50)
    for name in TEMPLATES:
        click.echo(f"  {name:<15} {TEMPLATE_DESCRIPTIONS.get(name, '')}")
    click.echo("")
    click.echo("Use: stepflow create <name> --template <template>")


@cli.command("create")
@click.argument("name")
@click.option("-t", "--template", "template_name", default="login", show_default=True, help="Template to use")
@click.option("-u", "--url", "base_url", default=None, help="Base URL for the flow")
@click.option("-o", "--output", type=click.Path(file_okay=False), default=None, help="Output directory (default: FLOWS_DIR)")
def cmd_create(name: str, template_name: str, base_url: Optional[str], output: Optional[str]):
    """Create a new flow file from a template."""
    flow = get_template(template_name, flow_name=name, base_url=base_url)
    if flow is None:
        click.echo(f"❌ Unknown template: {template_name}")
        click.echo(f"Available templates: {', '.join(TEMPLATES)}")
        sys.exit(1)

    out_dir = Path(output).resolve() if output else get_settings().FLOWS_DIR
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / flow_filename(name)
    out_path.write_text(json.dumps(flow, indent=2) + "\n", encoding="utf-8")
    click.echo(f"✅ Created test flow: {out_path}")
    click.echo("Edit the file to customize selectors and test data.")


@cli.command("history")
@click.option("-n", "--limit", type=int, default=10, show_default=True, help="Number of runs to show")
def cmd_history(limit: int):
    """Show recent test runs."""
    runs = RunHistory(get_settings().HISTORY_DB).recent_runs(limit)
    if not runs:
        click.echo("No test runs found")
        return

    click.echo("\n📋 Recent Test Runs")
    click.echo("─" * 60)
    for run in runs:
        icon = "✅" if run.failed == 0 else "❌"
        click.echo(f"{icon} {run.flow_name}")
        click.echo(f"   {run.base_url}")
        click.echo(f"   {run.passed}/{run.total} passed, {run.duration_ms}ms")
        click.echo(f"   {run.created_at}")
        click.echo("")


def main() -> None:
    cli(prog_name="stepflow")


if __name__ == "__main__":
    main()
