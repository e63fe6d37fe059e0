"""Provider proxy that wraps every call in the backoff policy."""

from __future__ import annotations

import functools
from typing import Any

from projectdesk.retry import RetryPolicy, call_with_backoff, is_rate_limited, is_retryable

# Calls that create something new. A retry after an ambiguous failure could
# duplicate the result, so these only retry when the provider rejected the
# call outright.
CREATING_METHODS = frozenset({"create", "copy", "upload", "create_all_day_event", "send"})


class RetryingProvider:
    """Wraps a provider so each public method call goes through ``call_with_backoff``.

    Attribute access other than method calls passes straight through.
    """

    def __init__(self, target: Any, policy: RetryPolicy):
        self._target = target
        self._policy = policy

    @property
    def wrapped(self) -> Any:
        return self._target

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self._target, name)
        if name.startswith("_") or not callable(attr):
            return attr
        retry_on = is_rate_limited if name in CREATING_METHODS else is_retryable

        @functools.wraps(attr)
        def call(*args: Any, **kwargs: Any) -> Any:
            return call_with_backoff(attr, *args, policy=self._policy, retry_on=retry_on, **kwargs)

        return call
