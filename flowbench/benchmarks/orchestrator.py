from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, ContextManager

from .. import engine, roles
from .barrier import wait_for
from .charts import render_realtime_chart
from .config import BenchmarkConfig
from .processes import RoleProcess, ServiceGroup
from .report import BenchmarkReport

LOGGER = logging.getLogger("flowbench.benchmark")

EXECUTORS_TIMEOUT_S = 60.0
CLIENT_JOIN_TIMEOUT_S = 5.0


class Benchmark:
    """Runs every role of a benchmark and reports on the executed plans."""

    def __init__(
        self,
        config: BenchmarkConfig,
        process_factory: Callable[..., RoleProcess] = RoleProcess,
        client_factory: Callable[[BenchmarkConfig], ContextManager[Any]] = engine.with_client,
    ) -> None:
        self.config = config
        self._process_factory = process_factory
        self._client_factory = client_factory
        self._services = ServiceGroup(process_factory=process_factory)
        self._clients: list[RoleProcess] = []
        self.started_at: float | None = None
        self.ended_at: float | None = None

    @property
    def services(self) -> list[RoleProcess]:
        return self._services.services

    def run(self) -> int:
        print("The benchmark is starting…")
        try:
            with self._services:
                try:
                    self.fork_client("db-prep", roles.prepare_database)
                    self.wait_for_clients()
                    self._services.spawn("observer", roles.run_observer, self.config)
                    for idx in range(self.config.executors_count):
                        self._services.spawn(f"executor-{idx}", roles.run_executor, self.config)
                    self.wait_for_executors()
                    self.started_at = time.time()
                    for idx in range(self.config.clients_count):
                        self.fork_client(f"client-{idx}", roles.run_client)
                    self.wait_for_clients()
                    self.ended_at = time.time()
                    self.report()
                finally:
                    self.stop_clients()
        except KeyboardInterrupt:
            LOGGER.exception("Interrupted")
            return 1
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Unexpected error: %s", exc)
            return 1
        return 0

    def fork_client(self, name: str, target: Callable[[BenchmarkConfig], None]) -> RoleProcess:
        handle = self._process_factory(name, target, (self.config,), service=False)
        handle.start()
        self._clients.append(handle)
        return handle

    def wait_for_clients(self) -> None:
        for handle in self._clients:
            exitcode = handle.join()
            if exitcode != 0:
                LOGGER.warning("%s exited with status %s", handle.name, exitcode)
        self._clients = []

    def stop_clients(self) -> None:
        """Interrupt and reap clients left behind by a failed run."""
        for handle in self._clients:
            if handle.joined:
                continue
            handle.request_stop()
            if handle.join(CLIENT_JOIN_TIMEOUT_S) is None:
                LOGGER.warning("%s did not stop, killing it", handle.name)
                handle.kill()
                handle.join()
        self._clients = []

    def wait_for_executors(self) -> None:
        expected = self.config.executors_count
        LOGGER.debug("waiting for executors")
        with self._client_factory(self.config) as client:

            def executors_ready() -> bool:
                current = len(client.coordinator.find_worlds(True))
                if current == expected:
                    return True
                LOGGER.debug(
                    "executors not ready (expected %d, currently %d)", expected, current
                )
                return False

            wait_for("executors", executors_ready, timeout=EXECUTORS_TIMEOUT_S)

    def report(self) -> BenchmarkReport:
        with self._client_factory(self.config) as client:
            report = BenchmarkReport(self.started_at, client.persistence, ended_at=self.ended_at)
            report.report()
            if self.config.output_dir:
                output_dir = Path(self.config.output_dir)
                report.save(output_dir)
                render_realtime_chart(report.plans(), output_dir)
        return report
