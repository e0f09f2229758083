"""Tests for flowbench/roles.py: role entry points and shutdown handling."""

from __future__ import annotations

import contextlib
import signal
import threading
from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest

from flowbench import roles
from flowbench.roles import FORCED_EXIT_CODE, ShutdownHandler


class BlockingWorld:
    """World whose termination only completes once released."""

    id = "world-7"

    def __init__(self) -> None:
        self.terminate_calls = 0
        self.release = threading.Event()

    def terminate(self) -> Future:
        self.terminate_calls += 1
        self.release.wait(5)
        future: Future = Future()
        future.set_result(True)
        return future


def test_first_interrupt_terminates_gracefully_once():
    world = BlockingWorld()
    exit_codes = []
    handler = ShutdownHandler(world, exit=exit_codes.append)

    handler.handle_signal(signal.SIGINT, None)
    world.release.set()
    handler.wait(poll_interval=0.05)
    handler.terminate()

    assert handler.terminated
    assert world.terminate_calls == 1
    assert exit_codes == []


def test_second_interrupt_forces_exit_without_repeating_shutdown():
    world = BlockingWorld()
    exit_codes = []
    handler = ShutdownHandler(world, exit=exit_codes.append)

    handler.handle_signal(signal.SIGINT, None)
    handler.handle_signal(signal.SIGINT, None)
    world.release.set()
    handler.wait(poll_interval=0.05)

    assert exit_codes == [FORCED_EXIT_CODE]
    assert world.terminate_calls == 1


def test_install_registers_signal_and_atexit(monkeypatch):
    registered_signals = {}
    registered_atexit = []
    monkeypatch.setattr(roles.signal, "signal", lambda signum, handler: registered_signals.update({signum: handler}))
    monkeypatch.setattr(roles.atexit, "register", registered_atexit.append)
    handler = ShutdownHandler(MagicMock())

    handler.install()

    assert registered_signals == {signal.SIGINT: handler.handle_signal}
    assert registered_atexit == [handler.terminate]


@pytest.fixture
def no_signal_install(monkeypatch):
    monkeypatch.setattr(ShutdownHandler, "install", lambda self: None)
    monkeypatch.setattr(roles, "setup_logging", lambda verbose: None)


def test_run_client_triggers_plans_and_terminates(config, fake_world, sleeps, monkeypatch, no_signal_install):
    monkeypatch.setattr(roles.engine, "create_client", lambda _config: fake_world)

    roles.run_client(config)

    assert len(fake_world.roots) == config.plans_count
    assert fake_world.terminate_calls == 1


@pytest.mark.parametrize(
    ("entry_point", "executor"),
    [(roles.run_executor, True), (roles.run_observer, False)],
)
def test_service_roles_block_until_terminated(config, fake_world, monkeypatch, no_signal_install, entry_point, executor):
    created = []

    def create_world(_config, executor):
        created.append(executor)
        return fake_world

    original_wait = ShutdownHandler.wait

    def wait(self, poll_interval=0.5):
        # simulate the orchestrator interrupting the service
        self.handle_signal(signal.SIGINT, None)
        original_wait(self, poll_interval=0.01)

    monkeypatch.setattr(roles.engine, "create_world", create_world)
    monkeypatch.setattr(ShutdownHandler, "wait", wait)

    entry_point(config)

    assert created == [executor]
    assert fake_world.terminate_calls == 1


def test_prepare_database_opens_and_closes_client(config, monkeypatch):
    opened = []

    @contextlib.contextmanager
    def with_client(_config):
        opened.append("open")
        yield MagicMock()
        opened.append("closed")

    monkeypatch.setattr(roles, "setup_logging", lambda verbose: None)
    monkeypatch.setattr(roles.engine, "with_client", with_client)

    roles.prepare_database(config)

    assert opened == ["open", "closed"]
