"""Resilient call executor"""
import asyncio
from unittest.mock import AsyncMock

import pytest

from surgecast.core.exceptions import ProviderError
from surgecast.core.retry import (
    FailureKind,
    RetryExecutor,
    RetryPolicy,
    classify_failure,
    retry_hint,
)


def flaky(failures, error_factory, value="ok"):
    """Closure that fails `failures` times before succeeding"""
    calls = {"count": 0}

    async def call():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise error_factory()
        return value

    return call, calls


@pytest.mark.parametrize(
    "exc, kind",
    [
        (ProviderError("limited", status_code=429), FailureKind.RATE_LIMIT),
        (ProviderError("timeout", status_code=408), FailureKind.TIMEOUT),
        (ProviderError("bad gateway", status_code=502), FailureKind.SERVER_ERROR),
        (ProviderError("forbidden", status_code=403), FailureKind.FATAL),
        (ProviderError("quota exceeded for this key"), FailureKind.RATE_LIMIT),
        (ProviderError("RESOURCE EXHAUSTED"), FailureKind.RATE_LIMIT),
        (TimeoutError("slow"), FailureKind.TIMEOUT),
        (ConnectionError("reset"), FailureKind.TRANSPORT),
        (RuntimeError("request timed out"), FailureKind.TIMEOUT),
        (ValueError("bad input"), FailureKind.FATAL),
    ],
)
def test_classify_failure(exc, kind):
    assert classify_failure(exc) is kind


def test_status_wins_over_message():
    assert classify_failure(ProviderError("rate limit mentioned", status_code=400)) is FailureKind.FATAL


def test_retry_hint_from_attribute_and_details():
    assert retry_hint(ProviderError("x", retry_after=7)) == 7.0

    details = {
        "error": {
            "details": [
                {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "51s"},
            ]
        }
    }
    assert retry_hint(ProviderError("x", details=details)) == 51.0
    assert retry_hint(ProviderError("x")) is None


@pytest.mark.parametrize("failures", [0, 1, 3])
async def test_succeeds_after_n_failures(failures):
    executor = RetryExecutor(RetryPolicy(max_retries=3), sleep=AsyncMock(), jitter=lambda a, b: 0.0)
    call, calls = flaky(failures, lambda: TimeoutError("slow"))

    assert await executor.execute(call) == "ok"
    assert calls["count"] == failures + 1


async def test_raises_last_failure_when_retries_exhausted():
    sleep = AsyncMock()
    executor = RetryExecutor(RetryPolicy(max_retries=2), sleep=sleep, jitter=lambda a, b: 0.0)
    call, calls = flaky(5, lambda: ProviderError("unavailable", status_code=503))

    with pytest.raises(ProviderError) as info:
        await executor.execute(call)

    assert info.value.status_code == 503
    assert calls["count"] == 3
    assert sleep.await_count == 2


async def test_fatal_failure_is_not_retried():
    sleep = AsyncMock()
    executor = RetryExecutor(RetryPolicy(max_retries=4), sleep=sleep)
    call, calls = flaky(1, lambda: ProviderError("unauthorized", status_code=401))

    with pytest.raises(ProviderError):
        await executor.execute(call)

    assert calls["count"] == 1
    sleep.assert_not_awaited()


async def test_delays_grow_exponentially_and_are_capped():
    sleep = AsyncMock()
    policy = RetryPolicy(max_retries=4, initial_delay=2, max_delay=10, backoff_multiplier=2, max_jitter=2)
    executor = RetryExecutor(policy, sleep=sleep, jitter=lambda a, b: 0.0)
    call, _ = flaky(4, lambda: ConnectionError("reset"))

    await executor.execute(call)

    assert [c.args[0] for c in sleep.await_args_list] == [2, 4, 8, 10]


async def test_rate_limit_factor_and_jitter():
    sleep = AsyncMock()
    policy = RetryPolicy(max_retries=1, initial_delay=2, rate_limit_factor=1.5, max_jitter=2)
    executor = RetryExecutor(policy, sleep=sleep, jitter=lambda a, b: b)
    call, _ = flaky(1, lambda: ProviderError("slow down", status_code=429))

    await executor.execute(call)

    assert sleep.await_args.args[0] == pytest.approx(2 * 1.5 + 2)


async def test_provider_hint_preferred_but_clamped():
    sleep = AsyncMock()
    policy = RetryPolicy(max_retries=2, initial_delay=2, max_delay=60)
    executor = RetryExecutor(policy, sleep=sleep, jitter=lambda a, b: 0.0)

    errors = iter([
        ProviderError("limited", status_code=429, retry_after=30),
        ProviderError("limited", status_code=429, retry_after=600),
    ])
    call, _ = flaky(2, lambda: next(errors))

    await executor.execute(call)

    assert [c.args[0] for c in sleep.await_args_list] == [30, 60]


async def test_per_call_policy_overrides_default():
    executor = RetryExecutor(RetryPolicy(max_retries=5), sleep=AsyncMock(), jitter=lambda a, b: 0.0)
    call, calls = flaky(3, lambda: TimeoutError("slow"))

    with pytest.raises(TimeoutError):
        await executor.execute(call, policy=RetryPolicy(max_retries=1))

    assert calls["count"] == 2


async def test_backoff_sleep_is_cancellable():
    executor = RetryExecutor(RetryPolicy(max_retries=3, initial_delay=30, max_jitter=0))
    call, _ = flaky(10, lambda: TimeoutError("slow"))

    task = asyncio.create_task(executor.execute(call))
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
