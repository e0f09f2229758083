"""
Benchmarking harness for task-execution engines.

This package forks the observer, executor and client roles of a benchmark
run, drives suspend/resume workloads through the engine under test and
summarises the latency of the execution plans it persisted.
"""

from .main import main

__all__ = ["main"]
