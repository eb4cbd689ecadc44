"""
Capture package for stepflow.
Handles screenshot naming and capture.
"""

from .screenshot import ScreenshotManager

__all__ = [
    "ScreenshotManager",
]
