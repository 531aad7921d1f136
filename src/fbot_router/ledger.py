# ABOUTME: Persistent usage history for routed model calls
# ABOUTME: Stores each reported call in SQLite and answers cost breakdown queries

"""
F-Bot Usage Ledger.

The CostMeter only knows running totals for the current process. The
ledger keeps every reported call so that costs survive restarts and can
be broken down by model and task type:
- SQLite storage for usage history
- Spend since a point in time
- Breakdown by model and by task type
"""

import sqlite3
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

DB_PATH = Path.home() / ".fbot" / "usage.db"

SCHEMA = """
CREATE TABLE IF NOT EXISTS usage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    model TEXT NOT NULL,
    task_type TEXT,
    input_tokens INTEGER NOT NULL,
    output_tokens INTEGER NOT NULL,
    cost REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_usage_timestamp ON usage(timestamp);
"""


@dataclass
class UsageRecord:
    """One row of usage history."""

    timestamp: str
    model: str
    task_type: str | None
    input_tokens: int
    output_tokens: int
    cost: float


@dataclass
class CostBreakdown:
    """Spend grouped by model and by task type."""

    by_model: dict[str, float] = field(default_factory=dict)
    by_task_type: dict[str, float] = field(default_factory=dict)
    total: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "by_model": dict(self.by_model),
            "by_task_type": dict(self.by_task_type),
            "total": self.total,
        }


def _stamp(moment: datetime) -> str:
    return moment.isoformat(sep=" ", timespec="seconds")


class UsageLedger:
    """SQLite-backed log of every reported model call."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or DB_PATH
        self._ensure_db()

    def _ensure_db(self) -> None:
        """Ensure database exists with schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path) as conn:
            conn.executescript(SCHEMA)

    def record_usage(
        self,
        model: str,
        input_tokens: int,
        output_tokens: int,
        cost: float,
        task_type: str | None = None,
        timestamp: datetime | None = None,
    ) -> None:
        """Record a model call."""
        moment = timestamp or datetime.now()
        with sqlite3.connect(self.db_path) as conn:
            conn.execute(
                """
                INSERT INTO usage (timestamp, model, task_type, input_tokens, output_tokens, cost)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (_stamp(moment), model, task_type, input_tokens, output_tokens, cost),
            )

    def get_spent(self, since: datetime | None = None) -> float:
        """Total cost recorded since `since` (all time if None)."""
        query = "SELECT COALESCE(SUM(cost), 0) FROM usage"
        params: tuple[str, ...] = ()
        if since is not None:
            query += " WHERE timestamp >= ?"
            params = (_stamp(since),)
        with sqlite3.connect(self.db_path) as conn:
            result = conn.execute(query, params).fetchone()
            return result[0] if result else 0.0

    def get_breakdown(self, since: datetime | None = None) -> CostBreakdown:
        """Group spend since `since` by model and by task type."""
        where = ""
        params: tuple[str, ...] = ()
        if since is not None:
            where = " WHERE timestamp >= ?"
            params = (_stamp(since),)

        breakdown = CostBreakdown()
        with sqlite3.connect(self.db_path) as conn:
            for model, cost in conn.execute(
                f"SELECT model, SUM(cost) FROM usage{where} GROUP BY model ORDER BY model", params
            ):
                breakdown.by_model[model] = cost
            for task_type, cost in conn.execute(
                f"SELECT COALESCE(task_type, 'unknown'), SUM(cost) FROM usage{where} "
                "GROUP BY COALESCE(task_type, 'unknown') ORDER BY 1",
                params,
            ):
                breakdown.by_task_type[task_type] = cost

        breakdown.total = sum(breakdown.by_model.values())
        return breakdown

    def recent(self, limit: int = 10) -> list[UsageRecord]:
        """Most recent calls, newest first."""
        with sqlite3.connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT timestamp, model, task_type, input_tokens, output_tokens, cost
                FROM usage
                ORDER BY timestamp DESC, id DESC
                LIMIT ?
                """,
                (limit,),
            ).fetchall()
        return [UsageRecord(*row) for row in rows]
