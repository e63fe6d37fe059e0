"""Tests for backoff, the retrying provider proxy and the workspace lock."""

import threading

import pytest

from projectdesk.exceptions import (
    LockTimeoutError,
    ProviderError,
    RateLimitError,
    TransientProviderError,
)
from projectdesk.locking import WorkspaceLock
from projectdesk.providers.retrying import RetryingProvider
from projectdesk.retry import (
    RetryPolicy,
    call_with_backoff,
    is_rate_limited,
    is_retryable,
)

NO_WAIT = RetryPolicy(attempts=3, base_delay_ms=0, max_delay_ms=0)


class Flaky:
    """Fails a set number of times, then succeeds."""

    def __init__(self, failures, error):
        self.failures = failures
        self.error = error
        self.calls = 0
        self.label = "flaky"

    def fetch(self, value):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value

    def create(self, parent_id, name):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return f"{parent_id}/{name}"


class TestClassification:
    """Tests for retryable error detection."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (TransientProviderError("flaky"), True),
            (RateLimitError("slow down"), True),
            (ProviderError("Service unavailable"), True),
            (ProviderError("HTTP 503 from upstream"), True),
            (ProviderError("Service invoked too many times for one day"), True),
            (ProviderError("No such folder: abc"), False),
            (OSError("Connection timed out"), True),
            (ValueError("rate limit"), False),
        ],
    )
    def test_is_retryable(self, error, expected):
        assert is_retryable(error) is expected

    def test_is_rate_limited(self):
        assert is_rate_limited(RateLimitError("x"))
        assert is_rate_limited(ProviderError("Quota exceeded"))
        assert not is_rate_limited(TransientProviderError("Service unavailable"))

    def test_delay_is_capped(self):
        policy = RetryPolicy(attempts=10, base_delay_ms=250, max_delay_ms=1000)
        for attempt in range(1, 10):
            assert 0 <= policy.delay_for(attempt) <= 1.0


class TestCallWithBackoff:
    """Tests for the retry loop."""

    def test_retries_until_success(self):
        flaky = Flaky(2, TransientProviderError("try again"))
        sleeps = []
        assert call_with_backoff(flaky.fetch, "ok", policy=NO_WAIT, sleep=sleeps.append) == "ok"
        assert flaky.calls == 3
        assert len(sleeps) == 2

    def test_gives_up_after_attempts(self):
        flaky = Flaky(5, TransientProviderError("try again"))
        with pytest.raises(TransientProviderError):
            call_with_backoff(flaky.fetch, "ok", policy=NO_WAIT, sleep=lambda s: None)
        assert flaky.calls == 3

    def test_permanent_error_not_retried(self):
        flaky = Flaky(1, ProviderError("No such folder: abc"))
        with pytest.raises(ProviderError):
            call_with_backoff(flaky.fetch, "ok", policy=NO_WAIT, sleep=lambda s: None)
        assert flaky.calls == 1


class TestRetryingProvider:
    """Tests for the provider proxy."""

    def test_reads_retry_on_transient_errors(self):
        target = Flaky(2, TransientProviderError("Service unavailable"))
        proxy = RetryingProvider(target, NO_WAIT)
        assert proxy.fetch("x") == "x"
        assert target.calls == 3

    def test_creating_calls_retry_only_when_rejected(self):
        target = Flaky(1, TransientProviderError("Service unavailable"))
        proxy = RetryingProvider(target, NO_WAIT)
        with pytest.raises(TransientProviderError):
            proxy.create("root", "Folder")
        assert target.calls == 1

        limited = Flaky(1, RateLimitError("Rate limit exceeded"))
        assert RetryingProvider(limited, NO_WAIT).create("root", "Folder") == "root/Folder"
        assert limited.calls == 2

    def test_attributes_pass_through(self):
        target = Flaky(0, None)
        proxy = RetryingProvider(target, NO_WAIT)
        assert proxy.label == "flaky"
        assert proxy.wrapped is target


class TestWorkspaceLock:
    """Tests for the workspace file lock."""

    def test_acquire_and_release(self, tmp_path):
        lock = WorkspaceLock(tmp_path / "ws.lock")
        with lock.hold(timeout=1):
            assert lock.is_held
        assert not lock.is_held

    def test_second_holder_times_out(self, tmp_path):
        path = tmp_path / "ws.lock"
        with WorkspaceLock(path).hold(timeout=1):
            with pytest.raises(LockTimeoutError):
                WorkspaceLock(path, poll_interval=0.01).acquire(timeout=0.05)

    def test_waiter_gets_lock_after_release(self, tmp_path):
        path = tmp_path / "ws.lock"
        first = WorkspaceLock(path)
        first.acquire(timeout=1)
        timer = threading.Timer(0.1, first.release)
        timer.start()
        second = WorkspaceLock(path, poll_interval=0.01)
        try:
            second.acquire(timeout=5)
            assert second.is_held
        finally:
            second.release()
            timer.join()

    def test_released_on_error(self, tmp_path):
        lock = WorkspaceLock(tmp_path / "ws.lock")
        with pytest.raises(RuntimeError):
            with lock.hold(timeout=1):
                raise RuntimeError("boom")
        assert not lock.is_held

    def test_double_acquire_is_an_error(self, tmp_path):
        lock = WorkspaceLock(tmp_path / "ws.lock")
        with lock.hold(timeout=1):
            with pytest.raises(RuntimeError):
                lock.acquire(timeout=0)
