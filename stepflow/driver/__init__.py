"""
Driver package
--------------
Capability protocol for browser sessions. The Playwright implementation
lives in `stepflow.driver.playwright_session`.
"""

from .base import DriverSession, SessionFactory

__all__ = [
    "DriverSession",
    "SessionFactory",
]
