"""Optimistic-concurrency retry helpers."""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from iotdb_operator.errors import ConflictError


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Backoff:
    """Retry schedule: `steps` attempts, waiting `duration` (scaled by `factor`) between them."""
    steps: int = 5
    duration: float = 0.01
    factor: float = 1.0
    jitter: float = 0.1

    def delays(self):
        """Yield the wait before each retry (steps - 1 values)."""
        delay = self.duration
        for _ in range(self.steps - 1):
            yield delay + (random.uniform(0, delay * self.jitter) if self.jitter else 0)
            delay *= self.factor


DEFAULT_BACKOFF = Backoff()


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    backoff: Backoff = DEFAULT_BACKOFF,
) -> T:
    """Run operation, re-running it when it raises ConflictError.

    The whole operation is retried so it should re-read whatever it writes.
    After the last attempt the ConflictError propagates.
    """
    delays = backoff.delays()
    attempt = 1
    while True:
        try:
            return await operation()
        except ConflictError as e:
            delay = next(delays, None)
            if delay is None:
                logger.warning(f"Giving up after {attempt} conflicting attempts: {e}")
                raise
            logger.debug(f"Conflict on attempt {attempt}, retrying in {delay:.3f}s: {e}")
            attempt += 1
            await asyncio.sleep(delay)
