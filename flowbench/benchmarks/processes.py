from __future__ import annotations

import contextlib
import logging
import multiprocessing
import os
import signal
from typing import Any, Callable, List, Sequence

from .errors import ProcessSpawnError

LOGGER = logging.getLogger("flowbench.benchmark.processes")

SERVICE_JOIN_TIMEOUT_S = 30.0


def _run_detached(target: Callable[..., Any], args: Sequence[Any]) -> None:
    # multiprocessing only replaces sys.stdin; fd 0 still points at the terminal.
    devnull = os.open(os.devnull, os.O_RDONLY)
    try:
        os.dup2(devnull, 0)
    finally:
        os.close(devnull)
    target(*args)


class RoleProcess:
    """Forked process running one benchmark role.

    Service roles run until interrupted; client roles exit on their own and
    are only joined.
    """

    def __init__(
        self,
        name: str,
        target: Callable[..., Any],
        args: Sequence[Any] = (),
        service: bool = False,
    ) -> None:
        self.name = name
        self.service = service
        self._target = target
        self._args = tuple(args)
        self._process: multiprocessing.process.BaseProcess | None = None
        self._interrupted = False
        self._joined = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def exitcode(self) -> int | None:
        return self._process.exitcode if self._process else None

    @property
    def joined(self) -> bool:
        return self._joined

    def start(self) -> "RoleProcess":
        context = multiprocessing.get_context("fork")
        process = context.Process(
            target=_run_detached, args=(self._target, self._args), name=self.name
        )
        try:
            process.start()
        except OSError as exc:
            raise ProcessSpawnError(f"failed to fork {self.name}: {exc}") from exc
        self._process = process
        LOGGER.debug("Started %s (pid %s)", self.name, process.pid)
        return self

    def is_alive(self) -> bool:
        return bool(self._process and self._process.is_alive())

    def request_stop(self) -> None:
        """Send SIGINT once; the role shuts itself down gracefully."""
        if self._interrupted or self._process is None:
            return
        self._interrupted = True
        if self._process.exitcode is not None:
            return
        with contextlib.suppress(ProcessLookupError):
            os.kill(self._process.pid, signal.SIGINT)

    def kill(self) -> None:
        if self._process is not None and self._process.exitcode is None:
            self._process.kill()

    def join(self, timeout: float | None = None) -> int | None:
        if self._process is None or self._joined:
            return self.exitcode
        self._process.join(timeout)
        if self._process.exitcode is not None:
            self._joined = True
            LOGGER.debug("%s exited with %s", self.name, self._process.exitcode)
        return self._process.exitcode


class ServiceGroup(contextlib.AbstractContextManager):
    """Owns service-role processes and interrupts/joins each of them on exit."""

    def __init__(
        self,
        join_timeout: float = SERVICE_JOIN_TIMEOUT_S,
        process_factory: Callable[..., RoleProcess] = RoleProcess,
    ) -> None:
        self._join_timeout = join_timeout
        self._process_factory = process_factory
        self._services: List[RoleProcess] = []

    @property
    def services(self) -> list[RoleProcess]:
        return list(self._services)

    def spawn(self, name: str, target: Callable[..., Any], *args: Any) -> RoleProcess:
        handle = self._process_factory(name, target, args, service=True)
        handle.start()
        self._services.append(handle)
        return handle

    def stop_all(self) -> None:
        if self._services:
            LOGGER.info("Stopping %d service process(es)", len(self._services))
        for handle in self._services:
            if handle.joined:
                continue
            handle.request_stop()
            if handle.join(self._join_timeout) is None:
                LOGGER.warning(
                    "%s did not stop within %.0fs, killing it", handle.name, self._join_timeout
                )
                handle.kill()
                handle.join()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop_all()
