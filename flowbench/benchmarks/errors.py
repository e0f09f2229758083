from __future__ import annotations


class RunError(Exception):
    """Raised when a benchmark run cannot proceed."""


class WaitTimeoutError(RunError):
    """Raised when a barrier predicate is not satisfied in time."""

    def __init__(self, description: str, timeout: float | None = None) -> None:
        self.description = description
        self.timeout = timeout
        message = f"Waiting for {description} failed"
        if timeout is not None:
            message = f"{message} after {timeout:.1f}s"
        super().__init__(message)


class ProcessSpawnError(RunError):
    """Raised when a role process cannot be forked."""


__all__ = ["RunError", "WaitTimeoutError", "ProcessSpawnError"]
