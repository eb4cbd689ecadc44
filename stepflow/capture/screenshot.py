# stepflow/capture/screenshot.py
from __future__ import annotations

"""Screenshot utilities
----------------------
Builds timestamped, filesystem-safe screenshot paths inside a run's
screenshot directory and asks the driver session to write the image.
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from stepflow.driver.base import DriverSession
from stepflow.utils.logger import get_logger


class ScreenshotManager:
    """
    Centralized screenshot helper.
    - Produces `<label>-<timestamp>.png` file names.
    - Timestamps carry milliseconds and are always UTC.
    """

    ext = "png"

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)
        self.log = get_logger(__name__)

    def capture(self, session: DriverSession, label: str, *, now: Optional[datetime] = None) -> Path:
        out_path = self.build_path(label, now=now)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        session.screenshot(out_path)
        self.log.debug(f"Saved screenshot: {out_path}")
        return out_path

    def build_path(self, label: str, *, now: Optional[datetime] = None) -> Path:
        safe = "".join(ch if ch.isalnum() or ch in ("-", "_") else "_" for ch in label) or "screenshot"
        return self.directory / f"{safe}-{self._ts(now)}.{self.ext}"

    @staticmethod
    def _ts(now: Optional[datetime] = None) -> str:
        # 2026-10-18T09-30-12-345Z
        moment = now or datetime.now(timezone.utc)
        iso = moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return iso.replace(":", "-").replace(".", "-")
