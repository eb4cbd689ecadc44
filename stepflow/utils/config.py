# stepflow/utils/config.py
from __future__ import annotations

import functools
from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class BrowserType(str, Enum):
    chromium = "chromium"
    firefox = "firefox"
    webkit = "webkit"


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _default_history_db() -> Path:
    return Path.home() / ".stepflow" / "history.db"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Central configuration for stepflow.

    Values load in this order of precedence:
      1) Environment variables
      2) .env file in project root
      3) Defaults below
    """

    # ---- Browser configuration ----
    HEADLESS: bool = Field(default=True, description="Run the browser headless")
    BROWSER_TYPE: BrowserType = Field(default=BrowserType.chromium, description="Playwright browser")
    VIEWPORT_WIDTH: int = Field(default=1920, ge=320, le=7680)
    VIEWPORT_HEIGHT: int = Field(default=1080, ge=320, le=4320)
    SLOW_MO: int = Field(default=0, ge=0, description="Slow down actions (ms) for debugging")
    USER_AGENT: Optional[str] = Field(default=None)

    # ---- Paths ----
    SCREENSHOT_DIR: Path = Field(default=Path("./screenshots"))
    FLOWS_DIR: Path = Field(default=Path("./flows"))

    # ---- Step timeouts (used when a step has no explicit timeout) ----
    NAVIGATION_TIMEOUT_MS: int = Field(default=30000, ge=0)
    ACTION_TIMEOUT_MS: int = Field(default=10000, ge=0)
    WAIT_FOR_TIMEOUT_MS: int = Field(default=30000, ge=0)
    SMOKE_TIMEOUT_MS: int = Field(default=30000, ge=0)

    # ---- Humanized pacing ----
    HUMANIZE: bool = Field(default=True, description="Randomized click/keystroke delays")
    CLICK_DELAY_MIN_MS: int = Field(default=100, ge=0)
    CLICK_DELAY_MAX_MS: int = Field(default=300, ge=0)
    KEY_DELAY_MIN_MS: int = Field(default=50, ge=0)
    KEY_DELAY_MAX_MS: int = Field(default=150, ge=0)
    SCROLL_SETTLE_MS: int = Field(default=500, ge=0)

    # ---- Run history ----
    RECORD_HISTORY: bool = Field(default=True)
    HISTORY_DB: Path = Field(default_factory=_default_history_db)

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.INFO)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./stepflow.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # ignore unknown envs to keep things flexible
    )

    @field_validator("SCREENSHOT_DIR", "FLOWS_DIR", "HISTORY_DB", "LOG_FILE", mode="before")
    @classmethod
    def _coerce_to_path(cls, v):
        if isinstance(v, Path):
            return v
        return Path(str(v)).expanduser() if v is not None else v

    @field_validator("FLOWS_DIR", "LOG_FILE", "HISTORY_DB", mode="after")
    @classmethod
    def _absolutize(cls, v: Path):
        return v if v.is_absolute() else Path.cwd() / v

    @model_validator(mode="after")
    def _ordered_delay_ranges(self) -> "Settings":
        # A reversed range would make random.randint raise later on
        if self.CLICK_DELAY_MAX_MS < self.CLICK_DELAY_MIN_MS:
            raise ValueError("CLICK_DELAY_MAX_MS must be >= CLICK_DELAY_MIN_MS")
        if self.KEY_DELAY_MAX_MS < self.KEY_DELAY_MIN_MS:
            raise ValueError("KEY_DELAY_MAX_MS must be >= KEY_DELAY_MIN_MS")
        return self

    # Convenience: Playwright launch options dict
    def playwright_launch_kwargs(self, headless: Optional[bool] = None) -> dict:
        return {
            "headless": self.HEADLESS if headless is None else headless,
            "slow_mo": self.SLOW_MO,
        }

    # Convenience: Playwright new_context kwargs
    def playwright_context_kwargs(self) -> dict:
        viewport = {"width": self.VIEWPORT_WIDTH, "height": self.VIEWPORT_HEIGHT}
        ctx = {"viewport": viewport}
        if self.USER_AGENT:
            ctx["user_agent"] = self.USER_AGENT
        return ctx


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    return Settings()
