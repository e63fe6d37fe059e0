"""Retry with exponential backoff and full jitter for provider calls."""

from __future__ import annotations

import logging
import random
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from projectdesk.exceptions import ProviderError, RateLimitError, TransientProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Message fragments that mark a generic provider error as transient
RETRYABLE_PATTERNS = re.compile(
    r"rate limit|too many times|too many requests|unavailable|timed out|quota|\b429\b|\b5\d\d\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff policy; delays in milliseconds."""

    attempts: int = 5
    base_delay_ms: int = 250
    max_delay_ms: int = 5000

    def delay_for(self, attempt: int) -> float:
        """Full-jitter delay in seconds before retry number ``attempt`` (1-based)."""
        cap = min(self.base_delay_ms * (2 ** (attempt - 1)), self.max_delay_ms)
        return random.random() * cap / 1000.0


def is_retryable(error: BaseException) -> bool:
    """Transient errors, plus provider errors whose text looks transient."""
    if isinstance(error, TransientProviderError):
        return True
    if isinstance(error, (ProviderError, OSError)):
        return bool(RETRYABLE_PATTERNS.search(str(error)))
    return False


def is_rate_limited(error: BaseException) -> bool:
    """Rejections where the provider did not perform the call."""
    if isinstance(error, RateLimitError):
        return True
    text = str(error)
    return bool(re.search(r"rate limit|too many|\b429\b|quota", text, re.IGNORECASE))


def call_with_backoff(
    func: Callable[..., T],
    *args: Any,
    policy: RetryPolicy | None = None,
    retry_on: Callable[[BaseException], bool] = is_retryable,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """Call ``func`` and retry it while ``retry_on`` says the error is transient.

    Args:
        func: Callable to invoke.
        policy: Backoff policy (defaults to 5 attempts, 250ms base, 5s cap).
        retry_on: Predicate deciding whether an error is worth retrying.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The callable's result.

    Raises:
        The last error once attempts are exhausted, or any non-retryable error.
    """
    policy = policy or RetryPolicy()
    name = getattr(func, "__qualname__", repr(func))
    attempt = 1
    while True:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if attempt >= policy.attempts or not retry_on(e):
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"{name} failed (attempt {attempt}/{policy.attempts}): {e}; retrying in {delay:.2f}s"
            )
            sleep(delay)
            attempt += 1
