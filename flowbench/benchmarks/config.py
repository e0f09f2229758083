from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

DEFAULT_ENGINE = "taskengine"


def default_connection_string() -> str:
    pg_user = "foreman" if os.environ.get("USER") == "foreman" else "postgres"
    return f"postgres://{pg_user}@/flowbench_benchmark"


@dataclass(frozen=True)
class BenchmarkConfig:
    """Settings shared by every role of a single benchmark run."""

    connection_string: str
    observer_only: bool = False
    executor_only: bool = False
    client_only: bool = False
    plans_count: int = 100
    executors_count: int = 1
    clients_count: int = 1
    sub_actions_count: int = 2
    step_duration: float = 0.5
    step_duration_range: tuple[float, float] | None = None
    ping_interval: float = 0.5
    max_iterations: int = 2
    verbose: bool = False
    engine: str = DEFAULT_ENGINE
    telemetry_host: str | None = None
    output_dir: str | None = None

    def __post_init__(self) -> None:
        for name in ("plans_count", "executors_count", "clients_count", "max_iterations"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")
        if self.sub_actions_count < 0:
            raise ValueError("sub_actions_count must be >= 0")
        if self.step_duration < 0 or self.ping_interval < 0:
            raise ValueError("step_duration and ping_interval must be >= 0")
        if self.step_duration_range is not None:
            low, high = self.step_duration_range
            if low < 0 or low > high:
                raise ValueError("step_duration_range must satisfy 0 <= low <= high")
        if sum((self.observer_only, self.executor_only, self.client_only)) > 1:
            raise ValueError("Only one of observer/executor/client modes can be selected")

    @property
    def role(self) -> str:
        if self.observer_only:
            return "observer"
        if self.executor_only:
            return "executor"
        if self.client_only:
            return "client"
        return "full"

    def action_options(self) -> dict[str, Any]:
        return {
            "sub_actions_count": self.sub_actions_count,
            "step_duration": self.step_duration,
            "step_duration_range": self.step_duration_range,
            "ping_interval": self.ping_interval,
            "max_iterations": self.max_iterations,
        }


def parse_duration_range(value: str | None) -> tuple[float, float] | None:
    """Parse ``"LOW:HIGH"`` into a ``(low, high)`` tuple of seconds."""

    if not value:
        return None
    low, sep, high = value.partition(":")
    if not sep:
        raise ValueError(f"Invalid duration range {value!r}, expected LOW:HIGH")
    return float(low), float(high)
