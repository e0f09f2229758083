from __future__ import annotations

import enum
import logging
import random
import time
from typing import Any, Mapping, MutableMapping, Protocol

LOGGER = logging.getLogger("flowbench.benchmark.actions")

WAKE_EVENT = "event"


class WorkItemState(str, enum.Enum):
    CREATED = "created"
    RUNNING = "running"
    SUSPENDED = "suspended"
    FINALIZING = "finalizing"
    COMPLETED = "completed"


class ActionContext(Protocol):
    """What the engine hands to a work item on every invocation."""

    execution_id: str
    input: Mapping[str, Any]
    output: MutableMapping[str, Any]

    def plan_action(self, action_type: type, **params: Any) -> None:
        ...

    def plan_self(self) -> None:
        ...

    def schedule_event(self, delay_seconds: float, event: str) -> None:
        ...

    def suspend(self) -> None:
        ...


class RootWorkItem:
    """Top-level action fanning out identical sub work items."""

    def plan(
        self,
        ctx: ActionContext,
        sub_actions_count: int = 2,
        step_duration: float = 0.5,
        step_duration_range: tuple[float, float] | None = None,
        ping_interval: float = 0.5,
        max_iterations: int = 2,
    ) -> None:
        LOGGER.debug("Planning action: %s", ctx.execution_id)
        for _ in range(sub_actions_count):
            ctx.plan_action(
                SubWorkItem,
                step_duration=step_duration,
                step_duration_range=step_duration_range,
                ping_interval=ping_interval,
                max_iterations=max_iterations,
            )
        ctx.plan_self()

    def run(self, ctx: ActionContext, event: Any = None) -> WorkItemState:
        LOGGER.debug("Running action: %s", ctx.execution_id)
        return WorkItemState.COMPLETED


class SubWorkItem:
    """Child action simulating bounded asynchronous work.

    Every invocation bumps ``output["iteration"]``. Below ``max_iterations``
    it sleeps one step, asks the engine clock for a wake event and suspends;
    at the bound it hands over to :meth:`finalize`, which sleeps one more
    step. ``max_iterations = k`` therefore means ``k - 1`` suspend/resume
    cycles.
    """

    def run(self, ctx: ActionContext, event: Any = None) -> WorkItemState:
        iteration = ctx.output.get("iteration", 0) + 1
        ctx.output["iteration"] = iteration
        if iteration < self.max_iterations(ctx):
            time.sleep(self.step_duration(ctx))
            ctx.schedule_event(self.ping_interval(ctx), WAKE_EVENT)
            ctx.suspend()
            return WorkItemState.SUSPENDED
        return WorkItemState.FINALIZING

    def finalize(self, ctx: ActionContext) -> WorkItemState:
        time.sleep(self.step_duration(ctx))
        return WorkItemState.COMPLETED

    @staticmethod
    def max_iterations(ctx: ActionContext) -> int:
        return int(ctx.input["max_iterations"])

    @staticmethod
    def ping_interval(ctx: ActionContext) -> float:
        return float(ctx.input["ping_interval"])

    @staticmethod
    def step_duration(ctx: ActionContext) -> float:
        # A configured range wins over the fixed value and is re-sampled on each call.
        duration_range = ctx.input.get("step_duration_range")
        if duration_range:
            low, high = duration_range
            return random.uniform(low, high)
        return float(ctx.input["step_duration"])


__all__ = ["ActionContext", "RootWorkItem", "SubWorkItem", "WAKE_EVENT", "WorkItemState"]
