import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from stepflow.capture.screenshot import ScreenshotManager
from stepflow.core.templates import TEMPLATES, flow_filename, get_template
from stepflow.core.flow_loader import flow_from_dict
from stepflow.utils.config import BrowserType, Settings, get_settings
from stepflow.utils.logger import JsonFormatter, bind, get_logger, log_with_context, unbind
from stepflow.utils.timing import JitterPolicy


# ---------- Settings ----------


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("BROWSER_TYPE", "firefox")
    monkeypatch.setenv("HEADLESS", "false")
    monkeypatch.setenv("ACTION_TIMEOUT_MS", "2500")
    get_settings.cache_clear()
    s = get_settings()
    assert s.BROWSER_TYPE is BrowserType.firefox
    assert s.HEADLESS is False
    assert s.ACTION_TIMEOUT_MS == 2500


def test_settings_paths_are_absolute(isolated_settings):
    assert isolated_settings.HISTORY_DB.is_absolute()
    assert isolated_settings.FLOWS_DIR.is_absolute()


def test_reversed_delay_range_is_rejected():
    with pytest.raises(ValueError):
        Settings(CLICK_DELAY_MIN_MS=500, CLICK_DELAY_MAX_MS=100)


def test_playwright_kwargs():
    s = Settings(HEADLESS=True, SLOW_MO=50, USER_AGENT="stepflow-test")
    assert s.playwright_launch_kwargs(headless=False) == {"headless": False, "slow_mo": 50}
    ctx = s.playwright_context_kwargs()
    assert ctx["viewport"] == {"width": 1920, "height": 1080}
    assert ctx["user_agent"] == "stepflow-test"


# ---------- Jitter ----------


def test_jitter_stays_in_range():
    policy = JitterPolicy(click_min_ms=10, click_max_ms=20, key_min_ms=1, key_max_ms=2)
    for _ in range(50):
        assert 10 <= policy.click_delay_ms() <= 20
        assert 1 <= policy.keystroke_delay_ms() <= 2


def test_disabled_jitter_is_zero():
    policy = JitterPolicy.disabled()
    assert policy.click_delay_ms() == 0
    assert policy.keystroke_delay_ms() == 0


def test_jitter_from_settings(isolated_settings):
    assert JitterPolicy.from_settings(isolated_settings).enabled is False


# ---------- Logging ----------


def test_log_with_context_merges_bound_values():
    bind(run_id="r1")
    try:
        log = log_with_context(get_logger("stepflow.test"), flow="Login")
        scoped = log_with_context(log, step_index=2)
        assert scoped.extra["extra"] == {"run_id": "r1", "flow": "Login", "step_index": 2}
    finally:
        unbind("run_id")


def test_json_formatter_includes_context():
    record = logging.LogRecord("stepflow.x", logging.INFO, __file__, 1, "hello %s", ("there",), None)
    record.extra = {"flow": "Login"}
    out = JsonFormatter().format(record)
    assert '"msg": "hello there"' in out
    assert '"flow": "Login"' in out


# ---------- Screenshots ----------


def test_screenshot_path_format(tmp_path: Path):
    moment = datetime(2026, 10, 18, 9, 30, 12, 345000, tzinfo=timezone.utc)
    path = ScreenshotManager(tmp_path).build_path("login complete", now=moment)
    assert path == tmp_path / "login_complete-2026-10-18T09-30-12-345Z.png"


def test_screenshot_capture_creates_directory(tmp_path: Path, fake_session):
    target = tmp_path / "a" / "b"
    path = ScreenshotManager(target).capture(fake_session, "home")
    assert path.exists() and path.parent == target


# ---------- Templates ----------


@pytest.mark.parametrize("name", sorted(TEMPLATES))
def test_templates_are_valid_flows(name):
    flow = flow_from_dict(get_template(name))
    assert flow.malformed_steps == []


def test_get_template_returns_copy():
    t = get_template("login", flow_name="Mine")
    t["steps"].clear()
    assert TEMPLATES["login"]["steps"]
    assert TEMPLATES["login"]["name"] == "Login Flow"


def test_unknown_template():
    assert get_template("nope") is None


def test_flow_filename():
    assert flow_filename("  My Login  Test ") == "my-login-test.json"
