"""Shared pytest fixtures and engine fakes for flowbench.

Provides:
- ``FakeContext``: records what a work item asks of the engine
- ``FakeWorld``: a synchronous stand-in for an engine world that drives
  triggered work items to completion
- ``FakePersistence``: paginated execution plan storage
"""

from __future__ import annotations

import itertools
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any

import pytest

from flowbench.benchmarks import actions
from flowbench.benchmarks.actions import WorkItemState
from flowbench.benchmarks.config import BenchmarkConfig


class FakeContext:
    """ActionContext double that records every engine interaction."""

    def __init__(self, input: dict[str, Any] | None = None, execution_id: str = "plan-1") -> None:
        self.execution_id = execution_id
        self.input = dict(input or {})
        self.output: dict[str, Any] = {}
        self.planned: list[tuple[type, dict[str, Any]]] = []
        self.planned_self = False
        self.events: list[tuple[float, str]] = []
        self.suspensions = 0

    def plan_action(self, action_type: type, **params: Any) -> None:
        self.planned.append((action_type, params))

    def plan_self(self) -> None:
        self.planned_self = True

    def schedule_event(self, delay_seconds: float, event: str) -> None:
        self.events.append((delay_seconds, event))

    def suspend(self) -> None:
        self.suspensions += 1


@dataclass
class ExecutionPlanRecord:
    id: str
    started_at: float
    real_time: float


class FakePersistence:
    def __init__(self, records: list[ExecutionPlanRecord] | None = None) -> None:
        self.records = list(records or [])
        self.requested_pages: list[int] = []

    def find_execution_plans(
        self, page: int, per_page: int, order_by: str, desc: bool
    ) -> list[ExecutionPlanRecord]:
        self.requested_pages.append(page)
        ordered = sorted(self.records, key=lambda record: getattr(record, order_by), reverse=desc)
        return ordered[page * per_page : (page + 1) * per_page]


class FakeExecution:
    def __init__(self, execution_id: str) -> None:
        self.id = execution_id
        self.finished: Future = Future()


class FakeCoordinator:
    def __init__(self, worlds: list[str] | None = None) -> None:
        self.worlds = list(worlds or [])

    def find_worlds(self, active_only: bool = False) -> list[str]:
        return list(self.worlds)


class FakeWorld:
    """Synchronous engine world: plans, runs and finishes every triggered tree."""

    def __init__(self, world_id: str = "world-1", started_at: float = 1_000.0) -> None:
        self.id = world_id
        self.persistence = FakePersistence()
        self.coordinator = FakeCoordinator()
        self.roots: list[FakeContext] = []
        self.sub_items: list[FakeContext] = []
        self.terminate_calls = 0
        self._ids = itertools.count(1)
        self._started_at = started_at

    def trigger(self, action_type: type, params: dict[str, Any]) -> FakeExecution:
        execution = FakeExecution(f"plan-{next(self._ids)}")
        root_ctx = FakeContext(params, execution_id=execution.id)
        root = action_type()
        root.plan(root_ctx, **params)
        self.roots.append(root_ctx)
        for sub_type, sub_params in root_ctx.planned:
            self.sub_items.append(self._drive(sub_type, sub_params, execution.id))
        assert root.run(root_ctx) is WorkItemState.COMPLETED
        self.persistence.records.append(
            ExecutionPlanRecord(
                id=execution.id,
                started_at=self._started_at + len(self.roots),
                real_time=float(len(self.roots)),
            )
        )
        execution.finished.set_result(execution.id)
        return execution

    def terminate(self) -> Future:
        self.terminate_calls += 1
        future: Future = Future()
        future.set_result(True)
        return future

    @staticmethod
    def _drive(action_type: type, params: dict[str, Any], execution_id: str) -> FakeContext:
        ctx = FakeContext(params, execution_id=execution_id)
        item = action_type()
        state = item.run(ctx)
        while state is WorkItemState.SUSPENDED:
            _delay, event = ctx.events[-1]
            state = item.run(ctx, event)
        assert state is WorkItemState.FINALIZING
        assert item.finalize(ctx) is WorkItemState.COMPLETED
        return ctx


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Record work item sleeps instead of blocking."""
    recorded: list[float] = []
    monkeypatch.setattr(actions.time, "sleep", recorded.append)
    return recorded


@pytest.fixture
def fake_world() -> FakeWorld:
    return FakeWorld()


@pytest.fixture
def config() -> BenchmarkConfig:
    return BenchmarkConfig(
        connection_string="sqlite:///benchmark.db",
        plans_count=3,
        sub_actions_count=2,
        max_iterations=2,
        step_duration=0.1,
        ping_interval=0.1,
    )
