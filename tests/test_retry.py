"""
Retry policy tests. Sleep is injected, so schedules are asserted without waiting.
"""

import pytest

from models.errors import PermanentSourceError, RateLimitError, TransientSourceError
from tests.conftest import SleepRecorder
from utils.retry import RetryError, RetryPolicy


class Scripted:
    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class TestRetryPolicy:
    def test_linear_backoff_then_give_up(self):
        sleep = SleepRecorder()
        func = Scripted(RateLimitError(), RateLimitError(), RateLimitError())
        policy = RetryPolicy(max_attempts=3, backoff_seconds=5.0, sleep=sleep)

        with pytest.raises(RetryError) as exc:
            policy.call(func, label="social/Apple")

        assert func.calls == 3
        assert sleep.calls == [5.0, 10.0]
        assert exc.value.attempts == 3
        assert isinstance(exc.value.last_exception, RateLimitError)

    def test_recovers_after_rate_limit(self):
        sleep = SleepRecorder()
        func = Scripted(RateLimitError(), {"data": []})
        policy = RetryPolicy(sleep=sleep)

        assert policy.call(func) == {"data": []}
        assert func.calls == 2
        assert sleep.calls == [5.0]

    @pytest.mark.parametrize("error", [
        PermanentSourceError(403, "forbidden"),
        TransientSourceError(502, "bad gateway"),
        KeyError("boom"),
    ])
    def test_other_errors_are_not_retried(self, error):
        sleep = SleepRecorder()
        func = Scripted(error, {"never": "reached"})

        with pytest.raises(type(error)):
            RetryPolicy(sleep=sleep).call(func)

        assert func.calls == 1
        assert sleep.calls == []

    def test_retry_after_hint_extends_wait(self):
        sleep = SleepRecorder()
        func = Scripted(RateLimitError(retry_after=12), "ok")
        RetryPolicy(sleep=sleep).call(func)
        assert sleep.calls == [12.0]

    def test_wait_is_capped(self):
        policy = RetryPolicy(backoff_seconds=50.0, max_delay=60.0)
        assert policy.delay_for(2) == 60.0

    def test_single_attempt_policy(self):
        func = Scripted(RateLimitError())
        with pytest.raises(RateLimitError):
            RetryPolicy.single_attempt().call(func)
        assert func.calls == 1
