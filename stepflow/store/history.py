# stepflow/store/history.py
from __future__ import annotations

"""Run history
--------------
SQLite-backed record of completed runs (one row per flow run or smoke test).
"""

import sqlite3
from contextlib import closing, contextmanager
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Protocol

from stepflow.utils.logger import get_logger


@dataclass(frozen=True)
class RunRecord:
    flow_name: str
    base_url: str
    passed: int
    failed: int
    total: int
    duration_ms: int
    created_at: str
    id: Optional[int] = None

    @classmethod
    def now(cls, **fields) -> "RunRecord":
        created = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return cls(created_at=created, **fields)


class RunRecorder(Protocol):
    def record_run(self, record: RunRecord) -> Optional[int]: ...


_SCHEMA = """
CREATE TABLE IF NOT EXISTS test_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    flow_name TEXT NOT NULL,
    base_url TEXT NOT NULL,
    passed INTEGER DEFAULT 0,
    failed INTEGER DEFAULT 0,
    total INTEGER DEFAULT 0,
    duration_ms INTEGER DEFAULT 0,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_tests_flow ON test_runs(flow_name);
"""


class RunHistory:
    """Run recorder and reader over a single SQLite file."""

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self.log = get_logger(__name__)
        self._initialized = False

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if not self._initialized:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(sqlite3.connect(self.db_path)) as conn:
            conn.row_factory = sqlite3.Row
            if not self._initialized:
                conn.executescript(_SCHEMA)
                self._initialized = True
            with conn:
                yield conn

    def record_run(self, record: RunRecord) -> int:
        data = asdict(record)
        data.pop("id")
        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO test_runs (flow_name, base_url, passed, failed, total, duration_ms, created_at)
                VALUES (:flow_name, :base_url, :passed, :failed, :total, :duration_ms, :created_at)
                """,
                data,
            )
            row_id = int(cur.lastrowid)
        self.log.debug(f"Recorded run #{row_id} for flow {record.flow_name!r}")
        return row_id

    def recent_runs(self, limit: int = 20) -> list[RunRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM test_runs ORDER BY created_at DESC, id DESC LIMIT ?",
                (max(0, limit),),
            ).fetchall()
        return [RunRecord(**dict(row)) for row in rows]
