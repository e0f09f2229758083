from __future__ import annotations

import atexit
import logging
import os
import signal
import threading
from typing import Any, Callable

from . import engine
from .benchmarks.config import BenchmarkConfig
from .benchmarks.load import BenchmarkLoadGenerator
from .logs import setup_logging

LOGGER = logging.getLogger("flowbench.roles")

FORCED_EXIT_CODE = 130


class ShutdownHandler:
    """Terminates a world once on SIGINT; a second SIGINT exits immediately."""

    def __init__(self, world: Any, exit: Callable[[int], None] = os._exit) -> None:
        self._world = world
        self._exit = exit
        self._lock = threading.Lock()
        self._interrupted = False
        self._terminating = False
        self._terminated = threading.Event()

    @property
    def terminated(self) -> bool:
        return self._terminated.is_set()

    def install(self) -> None:
        signal.signal(signal.SIGINT, self.handle_signal)
        atexit.register(self.terminate)

    def handle_signal(self, signum: int, frame: Any) -> None:
        with self._lock:
            already_interrupted = self._interrupted
            self._interrupted = True
        if already_interrupted:
            LOGGER.warning("Interrupted again during shutdown, exiting immediately")
            self._exit(FORCED_EXIT_CODE)
            return
        LOGGER.info("Interrupt received, shutting down")
        threading.Thread(target=self.terminate, name="graceful-shutdown", daemon=True).start()

    def terminate(self) -> None:
        with self._lock:
            if self._terminating:
                return
            self._terminating = True
        try:
            engine.terminate(self._world)
        finally:
            self._terminated.set()

    def wait(self, poll_interval: float = 0.5) -> None:
        while not self._terminated.wait(poll_interval):
            pass


def prepare_database(config: BenchmarkConfig) -> None:
    setup_logging(config.verbose)
    # Creating a client world runs the engine's schema preparation.
    with engine.with_client(config):
        LOGGER.info("Database %s prepared", config.connection_string)


def _run_service(config: BenchmarkConfig, executor: bool, role: str) -> None:
    setup_logging(config.verbose)
    world = engine.create_world(config, executor=executor)
    handler = ShutdownHandler(world)
    handler.install()
    LOGGER.info("%s %s started", role, world.id)
    handler.wait()


def run_observer(config: BenchmarkConfig) -> None:
    _run_service(config, executor=False, role="Observer")


def run_executor(config: BenchmarkConfig) -> None:
    _run_service(config, executor=True, role="Executor")


def run_client(config: BenchmarkConfig) -> None:
    setup_logging(config.verbose)
    world = engine.create_client(config)
    handler = ShutdownHandler(world)
    handler.install()
    try:
        stats = BenchmarkLoadGenerator(config, world).run()
        LOGGER.info(
            "Client finished %d plans in %.2fs (%.1f triggers/s)",
            stats.triggered,
            stats.duration_s,
            stats.triggers_per_second,
        )
    finally:
        handler.terminate()
