from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

from .. import engine
from .actions import RootWorkItem
from .config import BenchmarkConfig
from .tracker import CompletionTracker

LOGGER = logging.getLogger("flowbench.benchmark.load")


@dataclass
class LoadStatistics:
    triggered: int
    started_at: float
    triggered_at: float
    finished_at: float

    @property
    def trigger_duration_s(self) -> float:
        return max(self.triggered_at - self.started_at, 0.0)

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    @property
    def triggers_per_second(self) -> float:
        if self.trigger_duration_s == 0:
            return 0.0
        return self.triggered / self.trigger_duration_s


class BenchmarkLoadGenerator:
    """Triggers ``plans_count`` root work items and waits for all of them to finish."""

    def __init__(self, config: BenchmarkConfig, world: Any) -> None:
        self._config = config
        self._world = world
        self._tracker = CompletionTracker(config.plans_count)

    @property
    def tracker(self) -> CompletionTracker:
        return self._tracker

    def run(self) -> LoadStatistics:
        options = self._config.action_options()
        started_at = time.time()
        for _ in range(self._config.plans_count):
            execution = self._world.trigger(RootWorkItem, options)
            engine.on_finished(execution, self._on_finished)
        triggered_at = time.time()
        LOGGER.info(
            "Triggered %d plans in %.2fs, waiting for completion",
            self._config.plans_count,
            triggered_at - started_at,
        )
        self._tracker.wait()
        return LoadStatistics(
            triggered=self._config.plans_count,
            started_at=started_at,
            triggered_at=triggered_at,
            finished_at=time.time(),
        )

    def _on_finished(self) -> None:
        pending = self._tracker.count_down()
        LOGGER.debug("Pending %d", pending)
