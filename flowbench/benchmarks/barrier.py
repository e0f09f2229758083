from __future__ import annotations

import logging
import time
from typing import Callable

from .errors import WaitTimeoutError

LOGGER = logging.getLogger("flowbench.benchmark.barrier")

DEFAULT_TIMEOUT_S = 60.0
POLL_INTERVAL_S = 0.5


def wait_for(
    description: str,
    predicate: Callable[[], bool],
    timeout: float = DEFAULT_TIMEOUT_S,
    interval: float = POLL_INTERVAL_S,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Block until ``predicate`` returns true, probing every ``interval`` seconds.

    Raises :class:`WaitTimeoutError` once more than ``timeout`` seconds have
    elapsed without the predicate holding.
    """

    started_at = clock()
    LOGGER.debug("waiting for %s (timeout %.1fs)", description, timeout)
    while not predicate():
        if clock() - started_at > timeout:
            raise WaitTimeoutError(description, timeout)
        sleep(interval)
    LOGGER.debug("%s ready after %.2fs", description, clock() - started_at)
