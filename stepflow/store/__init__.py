"""
Store package
-------------
Persistence of completed run summaries.
"""

from .history import RunHistory, RunRecord, RunRecorder

__all__ = [
    "RunHistory",
    "RunRecord",
    "RunRecorder",
]
