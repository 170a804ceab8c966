"""Bounded retries with exponential backoff for language-model calls."""
from __future__ import annotations

import random
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Tuple, Type, TypeVar

from jobmatch.log import get_logger

log = get_logger(__name__)

R = TypeVar("R")


def backoff_delay(attempt: int, base_delay: float, backoff_factor: float, max_delay: float) -> float:
    """Delay before retry number *attempt* (1-based), without jitter."""
    return min(base_delay * (backoff_factor ** (attempt - 1)), max_delay)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently a transient failure is retried.

    Defaults are short: the caller is a ranking request with a per-call
    timeout, and a degraded fallback is always available.
    """

    max_attempts: int = 2
    base_delay: float = 0.5
    max_delay: float = 2.0
    backoff_factor: float = 2.0
    jitter: bool = True
    retryable: Tuple[Type[BaseException], ...] = (Exception,)
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False, repr=False)

    def delay(self, attempt: int) -> float:
        pause = backoff_delay(attempt, self.base_delay, self.backoff_factor, self.max_delay)
        return pause * (0.5 + random.random()) if self.jitter else pause

    def run(self, label: str, fn: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """Call *fn*; retryable errors are retried, the last one is re-raised."""
        attempts = max(self.max_attempts, 1)
        attempt = 1
        while True:
            try:
                return fn(*args, **kwargs)
            except self.retryable as exc:
                if attempt >= attempts:
                    log.warning("%s still failing after %d attempt(s): %s", label, attempts, exc)
                    raise
                pause = self.delay(attempt)
                log.info(
                    "%s hit %s (attempt %d/%d); retrying in %.2fs",
                    label, exc.__class__.__name__, attempt, attempts, pause,
                )
                self.sleep(pause)
                attempt += 1
