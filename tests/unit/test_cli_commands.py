import json
from pathlib import Path
import textwrap

import pytest
from click.testing import CliRunner

from stepflow import cli as cli_module
from stepflow.cli import cli


def write_login_flow(tmp_path: Path, flow: dict) -> Path:
    p = tmp_path / "login.json"
    p.write_text(json.dumps(flow), encoding="utf-8")
    return p


def write_multi_doc_yaml(tmp_path: Path) -> Path:
    y = textwrap.dedent(
        """
        name: Alpha
        baseUrl: https://demo.app
        steps:
          - goto: /alpha
        ---
        name: Beta
        steps:
          - goto: https://demo.app/beta
          - type: "#q"
        """
    )
    p = tmp_path / "demo.yaml"
    p.write_text(y, encoding="utf-8")
    return p


@pytest.fixture
def patched_browser(monkeypatch, make_session, make_factory):
    """Replace the Playwright session factory used by the CLI."""
    factory = make_factory(make_session(texts={"h1": "Dashboard"}))
    monkeypatch.setattr(cli_module, "open_session", factory)
    return factory


def test_cli_run_single_flow(tmp_path: Path, login_flow, patched_browser):
    fp = write_login_flow(tmp_path, login_flow)
    result = CliRunner().invoke(cli, ["run", str(fp)])
    assert result.exit_code == 0, result.output
    assert "Testing: Login" in result.output
    assert "Result: 4/4 passed" in result.output
    assert patched_browser.opened == 1


def test_cli_run_failure_exits_1(tmp_path: Path, login_flow, monkeypatch, make_session, make_factory):
    monkeypatch.setattr(cli_module, "open_session", make_factory(make_session(texts={"h1": "Sign in"})))
    fp = write_login_flow(tmp_path, login_flow)
    result = CliRunner().invoke(cli, ["run", str(fp)])
    assert result.exit_code == 1
    assert "1 failed" in result.output


def test_cli_run_url_override_and_json(tmp_path: Path, login_flow, patched_browser):
    fp = write_login_flow(tmp_path, login_flow)
    result = CliRunner().invoke(cli, ["run", str(fp), "--url", "http://localhost:3000", "--json"])
    assert result.exit_code == 0
    assert patched_browser.session.calls[0][1] == "http://localhost:3000/login"
    assert '"baseUrl": "http://localhost:3000"' in result.output


def test_cli_run_missing_file(tmp_path: Path, patched_browser):
    result = CliRunner().invoke(cli, ["run", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "Test flow not found" in result.output
    assert patched_browser.opened == 0


def test_cli_run_directory_runs_every_flow(tmp_path: Path, login_flow, patched_browser):
    flows = tmp_path / "flows"
    flows.mkdir()
    write_login_flow(flows, login_flow)
    (flows / "home.json").write_text(json.dumps({"name": "Home", "steps": [{"goto": "https://ex.com"}]}), encoding="utf-8")

    result = CliRunner().invoke(cli, ["run", str(flows)])
    assert result.exit_code == 0, result.output
    assert "Total: 5/5 passed across 2 flows" in result.output


def test_cli_run_launch_error(tmp_path: Path, login_flow, monkeypatch, make_factory):
    monkeypatch.setattr(cli_module, "open_session", make_factory(launch_error=RuntimeError("no browser")))
    fp = write_login_flow(tmp_path, login_flow)
    result = CliRunner().invoke(cli, ["run", str(fp)])
    assert result.exit_code == 1
    assert "no browser" in result.output


def test_cli_smoke(patched_browser):
    result = CliRunner().invoke(cli, ["smoke", "https://ex.com"])
    assert result.exit_code == 0
    assert "Result: PASSED" in result.output


def test_cli_validate_with_dir(tmp_path: Path):
    write_multi_doc_yaml(tmp_path)
    result = CliRunner().invoke(cli, ["validate", "--dir", str(tmp_path), "--no-recursive"])
    assert result.exit_code == 1
    assert result.output.count("OK  ") == 1
    assert "Beta: 1 malformed step(s)" in result.output
    assert "'type' step requires 'text'" in result.output


def test_cli_validate_ok(tmp_path: Path, login_flow):
    fp = write_login_flow(tmp_path, login_flow)
    result = CliRunner().invoke(cli, ["validate", str(fp)])
    assert result.exit_code == 0
    assert "Login (4 steps)" in result.output


def test_cli_validate_requires_target():
    result = CliRunner().invoke(cli, ["validate"])
    assert result.exit_code == 2


def test_cli_templates():
    result = CliRunner().invoke(cli, ["templates"])
    assert result.exit_code == 0
    for name in ("signup", "login", "checkout"):
        assert name in result.output


def test_cli_create_from_template(tmp_path: Path):
    out = tmp_path / "out"
    result = CliRunner().invoke(
        cli, ["create", "My Login Test", "-t", "login", "-u", "https://app.test", "-o", str(out)]
    )
    assert result.exit_code == 0, result.output
    created = out / "my-login-test.json"
    data = json.loads(created.read_text(encoding="utf-8"))
    assert data["name"] == "My Login Test"
    assert data["baseUrl"] == "https://app.test"
    assert data["steps"][0] == {"goto": "/login"}
    assert "Created test flow" in result.output


def test_cli_create_defaults_to_flows_dir(isolated_settings):
    result = CliRunner().invoke(cli, ["create", "checkout", "-t", "checkout"])
    assert result.exit_code == 0
    assert (isolated_settings.FLOWS_DIR / "checkout.json").exists()


def test_cli_create_unknown_template(tmp_path: Path):
    result = CliRunner().invoke(cli, ["create", "x", "-t", "nope", "-o", str(tmp_path)])
    assert result.exit_code == 1
    assert "Unknown template" in result.output


def test_cli_history_empty_then_filled(tmp_path: Path, login_flow, patched_browser):
    runner = CliRunner()
    result = runner.invoke(cli, ["history"])
    assert result.exit_code == 0
    assert "No test runs found" in result.output

    fp = write_login_flow(tmp_path, login_flow)
    runner.invoke(cli, ["run", str(fp)])
    result = runner.invoke(cli, ["history", "-n", "5"])
    assert "Login" in result.output
    assert "4/4 passed" in result.output


def test_cli_config_dumps_settings(isolated_settings):
    result = CliRunner().invoke(cli, ["config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["BROWSER_TYPE"] == "chromium"
    assert data["HUMANIZE"] is False


def test_cli_run_multi_doc_yaml_runs_every_document(tmp_path: Path, patched_browser):
    p = tmp_path / "pair.yaml"
    p.write_text(
        textwrap.dedent(
            """
            name: Alpha
            baseUrl: https://a.test
            steps:
              - goto: /alpha
            ---
            name: Beta
            baseUrl: https://a.test
            steps:
              - goto: /beta
            """
        ),
        encoding="utf-8",
    )
    result = CliRunner().invoke(cli, ["run", str(p)])
    assert result.exit_code == 0, result.output
    gotos = [c[1] for c in patched_browser.session.calls if c[0] == "goto"]
    assert gotos == ["https://a.test/alpha", "https://a.test/beta"]
    assert "Total: 2/2 passed across 2 flows" in result.output


def test_cli_run_several_flows_json_is_one_list(tmp_path: Path, login_flow, patched_browser):
    first = write_login_flow(tmp_path, login_flow)
    second = tmp_path / "home.json"
    second.write_text(json.dumps({"name": "Home", "steps": [{"goto": "https://ex.com"}]}), encoding="utf-8")

    result = CliRunner().invoke(cli, ["--log-level", "WARNING", "run", str(first), str(second), "--json"])
    assert result.exit_code == 0, result.output
    reports = json.loads(result.output)
    assert [r["name"] for r in reports] == ["Login", "Home"]
