from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys

from .. import roles
from ..logs import setup_logging
from .config import (
    DEFAULT_ENGINE,
    BenchmarkConfig,
    default_connection_string,
    parse_duration_range,
)
from .orchestrator import Benchmark

LOGGER = logging.getLogger("flowbench.benchmark.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    defaults = BenchmarkConfig(connection_string=default_connection_string())
    parser = argparse.ArgumentParser(
        prog="flowbench", description="Task engine benchmark harness"
    )
    parser.add_argument(
        "-c",
        "--connection-string",
        default=os.environ.get("DB_CONN_STRING", defaults.connection_string),
        help="Database connection string (default: $DB_CONN_STRING or %(default)s)",
    )
    roles_group = parser.add_mutually_exclusive_group()
    roles_group.add_argument("-O", "--observer", action="store_true", help="Run only observer")
    roles_group.add_argument("-E", "--executor", action="store_true", help="Run only executor")
    roles_group.add_argument("-C", "--client", action="store_true", help="Run only client")
    parser.add_argument(
        "-e",
        "--executors-count",
        type=int,
        default=defaults.executors_count,
        help="Number of executors to run (default %(default)s)",
    )
    parser.add_argument(
        "-n",
        "--clients-count",
        type=int,
        default=defaults.clients_count,
        help="Number of clients to run (default %(default)s)",
    )
    parser.add_argument(
        "-p",
        "--plans-count",
        type=int,
        default=defaults.plans_count,
        help="Number of plans each client triggers (default %(default)s)",
    )
    parser.add_argument(
        "-s",
        "--sub-actions-count",
        type=int,
        default=defaults.sub_actions_count,
        help="Number of sub-actions in main action (default %(default)s)",
    )
    parser.add_argument(
        "-d",
        "--step-duration",
        type=float,
        default=defaults.step_duration,
        help="Duration of a single step in seconds (default %(default)s)",
    )
    parser.add_argument(
        "--step-duration-range",
        default=None,
        help="Sample each step duration uniformly from LOW:HIGH seconds",
    )
    parser.add_argument(
        "-i",
        "--ping-interval",
        type=float,
        default=defaults.ping_interval,
        help="Interval between two action events in seconds (default %(default)s)",
    )
    parser.add_argument(
        "-m",
        "--max-iterations",
        type=int,
        default=defaults.max_iterations,
        help="How many events to distribute per action (default %(default)s)",
    )
    parser.add_argument(
        "--engine",
        default=os.environ.get("FLOWBENCH_ENGINE", DEFAULT_ENGINE),
        help="Importable module providing create_world() (default %(default)s)",
    )
    parser.add_argument(
        "--telemetry-host",
        default=os.environ.get("TELEMETRY_STATSD_HOST"),
        help="StatsD host handed to the engine telemetry adapter",
    )
    parser.add_argument(
        "--output-dir",
        default=os.environ.get("BENCHMARK_OUTPUT_DIR"),
        help="Directory to store benchmark artefacts (CSV and charts)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the resolved configuration without running anything",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Be verbose")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> BenchmarkConfig:
    return BenchmarkConfig(
        connection_string=args.connection_string,
        observer_only=args.observer,
        executor_only=args.executor,
        client_only=args.client,
        plans_count=args.plans_count,
        executors_count=args.executors_count,
        clients_count=args.clients_count,
        sub_actions_count=args.sub_actions_count,
        step_duration=args.step_duration,
        step_duration_range=parse_duration_range(args.step_duration_range),
        ping_interval=args.ping_interval,
        max_iterations=args.max_iterations,
        verbose=args.verbose,
        engine=args.engine,
        telemetry_host=args.telemetry_host,
        output_dir=args.output_dir,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        config = config_from_args(args)
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    if args.dry_run:
        _print_config(config)
        return 0

    LOGGER.info("Benchmarking engine %s against %s", config.engine, config.connection_string)
    if config.role == "observer":
        roles.run_observer(config)
    elif config.role == "executor":
        roles.run_executor(config)
    elif config.role == "client":
        roles.run_client(config)
    else:
        return Benchmark(config).run()
    return 0


def _print_config(config: BenchmarkConfig) -> None:
    print(f"Role: {config.role}")
    for field in dataclasses.fields(config):
        print(f"  {field.name}: {getattr(config, field.name)}")


if __name__ == "__main__":
    sys.exit(main())
