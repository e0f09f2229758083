"""Boundary between the harness and the task-execution engine under test.

The engine is an importable module (``taskengine`` unless configured
otherwise) exposing ``create_world(config: WorldConfig)``. The returned world
is expected to provide:

* ``id``
* ``trigger(action_type, params)`` returning an execution whose ``finished``
  attribute accepts a one-shot completion callback
* ``coordinator.find_worlds(active_only)``
* ``persistence.find_execution_plans(page=, per_page=, order_by=, desc=)``
* ``terminate()`` returning a future or awaitable

Work item classes from :mod:`flowbench.benchmarks.actions` are passed to
``trigger`` as-is; the engine drives their ``plan``/``run``/``finalize``
methods with an ``ActionContext``. Its ``schedule_event(delay_seconds,
event)`` must deliver ``event`` back to the suspended action after the delay,
typically through the engine's own clock.
"""

from __future__ import annotations

import asyncio
import contextlib
import importlib
import inspect
import logging
import threading
import time
from dataclasses import dataclass
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable, Iterator

if TYPE_CHECKING:
    from .benchmarks.config import BenchmarkConfig

LOGGER = logging.getLogger("flowbench.engine")

CONNECT_TIMEOUT_S = 60.0
DATABASE_CONNECTOR = "database"


class EngineUnavailableError(Exception):
    """Raised when the engine module cannot be loaded or reached."""


@dataclass(frozen=True)
class WorldConfig:
    persistence_url: str
    logger: logging.Logger
    executor: bool
    connector: str = DATABASE_CONNECTOR
    telemetry: str | None = None
    auto_rescue: bool = False
    auto_execute: bool = False
    exit_on_terminate: bool = True


def load_engine(name: str) -> ModuleType:
    try:
        module = importlib.import_module(name)
    except ImportError as exc:
        raise EngineUnavailableError(
            f"Engine module {name!r} is not importable ({exc}). Install the engine "
            "version you want to benchmark, or point FLOWBENCH_ENGINE (--engine) at "
            "an importable module providing create_world()."
        ) from exc
    if not hasattr(module, "create_world"):
        raise EngineUnavailableError(f"Engine module {name!r} has no create_world()")
    return module


def world_config(config: BenchmarkConfig, executor: bool, exit_on_terminate: bool = True) -> WorldConfig:
    world_logger = logging.getLogger("flowbench.engine.world")
    world_logger.setLevel(logging.DEBUG if config.verbose else logging.WARNING)
    return WorldConfig(
        persistence_url=config.connection_string,
        logger=world_logger,
        executor=executor,
        telemetry=config.telemetry_host,
        exit_on_terminate=exit_on_terminate,
    )


def create_world(
    config: BenchmarkConfig,
    executor: bool,
    exit_on_terminate: bool = True,
    engine: ModuleType | None = None,
) -> Any:
    engine = engine or load_engine(config.engine)
    settings = world_config(config, executor=executor, exit_on_terminate=exit_on_terminate)

    backoff = 1.0
    max_backoff = 10.0
    deadline = time.time() + CONNECT_TIMEOUT_S

    while True:
        try:
            return engine.create_world(settings)
        except ConnectionError as exc:
            if time.time() >= deadline:
                raise EngineUnavailableError(
                    f"failed to connect to {config.connection_string} within "
                    f"{CONNECT_TIMEOUT_S:.0f} seconds"
                ) from exc
            LOGGER.debug("engine not reachable (%s), retrying in %.1fs", exc, backoff)
            time.sleep(backoff)
            backoff = min(backoff * 1.5, max_backoff)


def create_client(config: BenchmarkConfig, engine: ModuleType | None = None) -> Any:
    return create_world(config, executor=False, exit_on_terminate=False, engine=engine)


def resolve(pending: Any) -> Any:
    """Wait for a future-like or awaitable value returned by the engine."""

    if pending is None:
        return None
    if inspect.isawaitable(pending):
        async def _await() -> Any:
            return await pending

        return asyncio.run(_await())
    if hasattr(pending, "result"):
        return pending.result()
    if hasattr(pending, "wait"):
        return pending.wait()
    return pending


def terminate(world: Any) -> None:
    LOGGER.debug("Terminating world %s", getattr(world, "id", "<unknown>"))
    resolve(world.terminate())
    LOGGER.debug("World %s termination finished", getattr(world, "id", "<unknown>"))


@contextlib.contextmanager
def with_client(config: BenchmarkConfig, engine: ModuleType | None = None) -> Iterator[Any]:
    client = create_client(config, engine=engine)
    try:
        yield client
    finally:
        terminate(client)


def on_finished(execution: Any, callback: Callable[[], None]) -> None:
    """Register ``callback`` to run once when the execution tree finishes.

    Engines expose completion either future-style (``add_done_callback``) or
    through ``on_completion``/``on_fulfillment`` hooks. ``on_fulfillment`` is
    only used as a last resort since it may skip failed trees.
    """

    finished = execution.finished
    fired = threading.Event()
    lock = threading.Lock()

    def fire_once(*_args: Any, **_kwargs: Any) -> None:
        with lock:
            if fired.is_set():
                return
            fired.set()
        callback()

    if hasattr(finished, "add_done_callback"):
        finished.add_done_callback(fire_once)
    elif hasattr(finished, "on_completion"):
        finished.on_completion(fire_once)
    elif hasattr(finished, "on_fulfillment"):
        LOGGER.warning(
            "engine only offers on_fulfillment, failed executions may never be counted"
        )
        finished.on_fulfillment(fire_once)
    else:
        raise EngineUnavailableError(
            f"{type(finished).__name__} exposes no completion callback registration"
        )


__all__ = [
    "EngineUnavailableError",
    "WorldConfig",
    "create_client",
    "create_world",
    "load_engine",
    "on_finished",
    "resolve",
    "terminate",
    "with_client",
]
