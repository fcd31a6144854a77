import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, TypeVar

from receiptscan.receipt.errors import ModelAPIError

logger = logging.getLogger("receiptscan")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 5
    retry_statuses: frozenset[int] = field(default_factory=lambda: frozenset({500, 503}))

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got: {self.max_attempts}")

    def should_retry(self, exc: Exception, attempt: int) -> bool:
        """*attempt* is the 0-based index of the attempt that just failed."""
        if attempt >= self.max_attempts - 1:
            return False
        return isinstance(exc, ModelAPIError) and exc.status_code in self.retry_statuses

    @staticmethod
    def backoff(attempt: int, jitter: Callable[[float, float], float] = random.uniform) -> float:
        return 1 + jitter(0, 2 * 2**attempt)


def call_with_retry(
    fn: Callable[[], T],
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    jitter: Callable[[float, float], float] = random.uniform,
) -> T:
    """Call *fn*, retrying transient model API errors with jittered exponential backoff.

    Anything that isn't retryable, including the last attempt's error, is re-raised as is.
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            if not policy.should_retry(exc, attempt):
                raise
            delay = policy.backoff(attempt, jitter)
            logger.warning(
                f"Model returned status {exc.status_code}, retrying after {delay:.1f}s",
                extra={"extra_data": {"attempt": attempt + 1, "status": exc.status_code, "delay_s": delay}},
            )
            sleep(delay)
            attempt += 1
