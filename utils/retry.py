"""
Retry policy for rate-limited sources.

Only errors listed in `retry_on` are retried (by default the explicit
rate-limit signal, HTTP 429). Anything else is re-raised on the first
attempt. The wait before retry n is `n * backoff_seconds`, or the provider's
Retry-After hint when that is longer, capped at `max_delay`.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple, Type

from models.errors import CollectionError, RateLimitError

logger = logging.getLogger(__name__)


class RetryError(CollectionError):
    """Raised when every attempt hit a retryable error."""

    def __init__(self, message: str, attempts: int, last_exception: Optional[Exception] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_exception = last_exception


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 5.0
    max_delay: float = 60.0
    retry_on: Tuple[Type[Exception], ...] = (RateLimitError,)
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def single_attempt(cls) -> "RetryPolicy":
        return cls(max_attempts=1, retry_on=())

    def delay_for(self, attempt: int, error: Optional[Exception] = None) -> float:
        delay = attempt * self.backoff_seconds
        retry_after = getattr(error, "retry_after", None)
        if retry_after:
            delay = max(delay, float(retry_after))
        return min(delay, self.max_delay)

    def call(self, func: Callable[[], Any], label: str = "") -> Any:
        """Invoke `func` until it succeeds, hits a non-retryable error, or attempts run out."""
        label = label or getattr(func, "__name__", "call")
        last_exception: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return func()
            except self.retry_on as e:
                last_exception = e
                if attempt >= self.max_attempts:
                    break
                delay = self.delay_for(attempt, e)
                logger.warning(
                    f"⏳ {label}: {e} (attempt {attempt}/{self.max_attempts}), "
                    f"waiting {delay:.0f}s"
                )
                self.sleep(delay)

        logger.error(f"{label}: giving up after {self.max_attempts} attempts: {last_exception}")
        raise RetryError(
            f"{label}: still failing after {self.max_attempts} attempts ({last_exception})",
            attempts=self.max_attempts,
            last_exception=last_exception,
        )
