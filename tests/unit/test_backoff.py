"""Test retry policy for outbound provider calls"""

from types import SimpleNamespace
import asyncio
import warnings

import pytest

from learning_assistant.rag.backoff import RetryPolicy, build_wait, call_with_retry


class Flaky:
    """Raises the given errors in turn, then returns 'ok'"""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


def fast_policy(**overrides) -> RetryPolicy:
    values = dict(max_attempts=3, base_delay=0, max_delay=0, multiplier=2, jitter=0, timeout=1)
    values.update(overrides)
    return RetryPolicy(**values)


@pytest.mark.asyncio
async def test_transient_errors_are_retried(status_error):
    func = Flaky(status_error("Service Unavailable", 503), asyncio.TimeoutError())
    result = await call_with_retry(func, fast_policy())
    assert result == "ok"
    assert func.calls == 3


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts(status_error):
    func = Flaky(*[status_error("Bad Gateway", 502) for _ in range(5)])
    with pytest.raises(Exception, match="Bad Gateway"):
        await call_with_retry(func, fast_policy(max_attempts=2))
    assert func.calls == 2


@pytest.mark.asyncio
async def test_spent_quota_is_not_retried():
    func = Flaky(Exception("You exceeded your current quota"))
    with pytest.raises(Exception, match="quota"):
        await call_with_retry(func, fast_policy())
    assert func.calls == 1


@pytest.mark.asyncio
async def test_rate_limit_retried_only_when_enabled(status_error):
    func = Flaky(status_error("Too Many Requests", 429))
    assert await call_with_retry(func, fast_policy(retry_rate_limited=True)) == "ok"
    assert func.calls == 2

    func = Flaky(status_error("Too Many Requests", 429))
    with pytest.raises(Exception):
        await call_with_retry(func, fast_policy(retry_rate_limited=False))
    assert func.calls == 1


@pytest.mark.asyncio
async def test_fatal_errors_are_not_retried():
    func = Flaky(ValueError("invalid request"))
    with pytest.raises(ValueError):
        await call_with_retry(func, fast_policy())
    assert func.calls == 1


@pytest.mark.asyncio
async def test_slow_attempt_times_out_and_is_retried():
    calls = []

    async def slow_then_fast():
        calls.append(1)
        if len(calls) == 1:
            await asyncio.sleep(1)
        return "ok"

    assert await call_with_retry(slow_then_fast, fast_policy(timeout=0.05)) == "ok"
    assert len(calls) == 2


def test_delay_grows_exponentially_up_to_cap():
    policy = RetryPolicy(base_delay=1, max_delay=5, multiplier=2)
    assert [policy.delay_for_attempt(n) for n in (1, 2, 3, 4)] == [1, 2, 4, 5]


def test_wait_follows_policy_schedule_without_warnings():
    policy = RetryPolicy(base_delay=1, max_delay=5, multiplier=2, jitter=0)

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        wait = build_wait(policy)

    delays = [wait(SimpleNamespace(attempt_number=n)) for n in (1, 2, 3, 4)]
    assert delays == [policy.delay_for_attempt(n) for n in (1, 2, 3, 4)] == [1, 2, 4, 5]


def test_jitter_adds_bounded_random_delay():
    policy = RetryPolicy(base_delay=1, max_delay=5, multiplier=2, jitter=0.5)
    wait = build_wait(policy)

    for _ in range(20):
        assert 2 <= wait(SimpleNamespace(attempt_number=2)) <= 2.5
