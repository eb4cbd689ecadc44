# stepflow/core/results.py
from __future__ import annotations

"""Run result types
-------------------
Immutable records produced by the step executor and the flow runner.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from stepflow.core.flow_loader import Step


@dataclass(frozen=True)
class StepOutcome:
    """Result of executing one step."""
    step: Step
    success: bool
    duration_ms: int
    error: Optional[str] = None
    screenshot_path: Optional[str] = None


@dataclass(frozen=True)
class RunResult:
    """
    Aggregated result of one flow run.

    `total` is the number of steps declared by the flow. When the run stopped
    on a failure, `passed + failed` (the steps actually attempted) is smaller.
    """
    name: str
    base_url: str
    steps: tuple[StepOutcome, ...]
    passed: int
    failed: int
    total: int
    duration_ms: int
    screenshot_dir: Path

    @property
    def attempted(self) -> int:
        return self.passed + self.failed

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def screenshots(self) -> list[str]:
        return [o.screenshot_path for o in self.steps if o.screenshot_path]


@dataclass(frozen=True)
class SmokeResult:
    url: str
    success: bool
    duration_ms: int
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Results of several flows run one after another."""
    results: list[RunResult] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def total_passed(self) -> int:
        return sum(r.passed for r in self.results)

    @property
    def total_failed(self) -> int:
        return sum(r.failed for r in self.results)

    @property
    def success(self) -> bool:
        return not self.errors and self.total_failed == 0
