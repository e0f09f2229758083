from __future__ import annotations

import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

LOGGER = logging.getLogger("flowbench.benchmark.report")

PAGE_SIZE = 100
START_TOLERANCE_S = 5.0
RECORD_COLUMNS = ["id", "started_at", "real_time"]


def _timestamp(value: Any) -> float:
    if isinstance(value, datetime):
        return value.timestamp()
    return float(value)


class BenchmarkReport:
    """Summarises execution plans persisted since the benchmark started."""

    def __init__(
        self,
        started_at: float,
        persistence: Any,
        ended_at: float | None = None,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._started_at = started_at
        self._ended_at = time.time() if ended_at is None else ended_at
        self._persistence = persistence
        self._page_size = page_size
        self._plans: pd.DataFrame | None = None

    @property
    def duration(self) -> float:
        return self._ended_at - self._started_at

    def load_execution_plans(self) -> pd.DataFrame:
        """Collect plans newest-first until one started before the tolerance window."""
        threshold = self._started_at - START_TOLERANCE_S
        rows: list[dict[str, Any]] = []
        page = 0
        while True:
            plans = self._persistence.find_execution_plans(
                page=page, per_page=self._page_size, order_by="started_at", desc=True
            )
            if not plans:
                break
            for plan in plans:
                started_at = _timestamp(plan.started_at)
                if started_at < threshold:
                    return self._build_dataframe(rows)
                rows.append(
                    {
                        "id": plan.id,
                        "started_at": started_at,
                        "real_time": float(plan.real_time),
                    }
                )
            page += 1
        return self._build_dataframe(rows)

    def plans(self) -> pd.DataFrame:
        if self._plans is None:
            self._plans = self.load_execution_plans()
        return self._plans

    def summary(self) -> list[tuple[str, Any]]:
        plans = self.plans()
        if plans.empty:
            LOGGER.warning("No plans found, probably something went wrong")
            return [
                ("plans", 0),
                ("duration", self.duration),
                ("max_realtime", None),
                ("min_realtime", None),
                ("med_realtime", None),
            ]
        by_real_time = plans["real_time"].sort_values(kind="stable").reset_index(drop=True)
        return [
            ("plans", len(by_real_time)),
            ("duration", self.duration),
            ("max_realtime", by_real_time.iloc[-1]),
            ("min_realtime", by_real_time.iloc[0]),
            # upper-middle element for even counts, not an averaged median
            ("med_realtime", by_real_time.iloc[len(by_real_time) // 2]),
        ]

    def report(self) -> list[tuple[str, Any]]:
        rows = self.summary()
        for label, value in rows:
            print(format_row(label, value))
        return rows

    def save(self, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        csv_path = output_dir / "execution_plans.csv"
        self.plans().to_csv(csv_path, index=False)
        LOGGER.info("Saved %d execution plans to %s", len(self.plans()), csv_path)
        return csv_path

    @staticmethod
    def _build_dataframe(rows: list[dict[str, Any]]) -> pd.DataFrame:
        if not rows:
            return pd.DataFrame(columns=RECORD_COLUMNS)
        return pd.DataFrame(rows, columns=RECORD_COLUMNS)


def format_row(label: str, value: Any) -> str:
    if value is None:
        value = "n/a"
    elif isinstance(value, float):
        value = f"{value:.6f}"
    return f"| {label:<20} | {str(value):<20} |"
