"""
Report package
--------------
Renders step progress, run summaries and structured JSON reports.
"""

from .reporter import (
    ConsoleReporter,
    action_label,
    build_report,
    format_duration,
    render_step,
    render_summary,
)

__all__ = [
    "ConsoleReporter",
    "action_label",
    "build_report",
    "format_duration",
    "render_step",
    "render_summary",
]
