"""Deadlines and the fixed-interval poll used by waits that cannot long-poll."""

from __future__ import annotations

import math
import time
from typing import Callable, TypeVar

from loguru import logger

from .errors import WaitTimeoutError

log = logger

T = TypeVar('T')


class Deadline:
    """
    A point in time after which a wait gives up.

    ``timeout=None`` means wait forever. The clock is injectable so tests
    can drive time without sleeping.

    Example:
        >>> ticks = iter([0.0, 4.0, 11.0])
        >>> deadline = Deadline(10, clock=lambda: next(ticks))
        >>> deadline.expired
        False
        >>> deadline.expired
        True
    """

    def __init__(self, timeout: float | None = None, *, clock: Callable[[], float] = time.monotonic):
        self.timeout = timeout
        self.clock = clock
        self.start = clock()

    def elapsed(self) -> float:
        return self.clock() - self.start

    def remaining(self) -> float | None:
        if self.timeout is None:
            return None
        return max(0.0, self.timeout - self.elapsed())

    @property
    def expired(self) -> bool:
        return self.timeout is not None and self.elapsed() >= self.timeout

    def check(self, what: str) -> None:
        if self.expired:
            raise WaitTimeoutError(f'Timed out after {self.timeout}s waiting for {what}')

    def poll_seconds(self, cap: int) -> int:
        """Per-call wait for a long-poll, never past the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return cap
        return max(1, min(cap, int(math.ceil(remaining))))


def poll_until(
    check: Callable[[], T | None],
    *,
    interval: float,
    deadline: Deadline,
    what: str,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``check`` every ``interval`` seconds until it returns non-None."""
    while True:
        result = check()
        if result is not None:
            return result
        deadline.check(what)
        log.debug('Still waiting for {} ({:.1f}s elapsed)', what, deadline.elapsed())
        sleep(interval)
