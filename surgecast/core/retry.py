"""
SurgeCast Resilient Call Executor

Bounded retry with exponential backoff, jitter and provider retry hints
"""

import asyncio
import random
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from .config import RetrySettings
from .logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKERS = ("429", "quota", "rate limit", "resource exhausted", "too many requests")
TIMEOUT_MARKERS = ("timeout", "timed out")


class FailureKind(str, Enum):
    """Failure classification"""

    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    FATAL = "fatal"

    @property
    def retryable(self) -> bool:
        return self is not FailureKind.FATAL


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters"""

    max_retries: int = 4
    initial_delay: float = 2.0
    max_delay: float = 60.0
    backoff_multiplier: float = 2.0
    rate_limit_factor: float = 1.5
    max_jitter: float = 2.0

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> "RetryPolicy":
        return cls(
            max_retries=settings.max_retries,
            initial_delay=settings.initial_delay,
            max_delay=settings.max_delay,
            backoff_multiplier=settings.backoff_multiplier,
            rate_limit_factor=settings.rate_limit_factor,
            max_jitter=settings.max_jitter,
        )


def _status_code(exc: BaseException) -> Optional[int]:
    """HTTP status carried by an exception or its response"""
    for attr in ("status_code", "status"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value

    response = getattr(exc, "response", None)
    if response is not None:
        value = getattr(response, "status_code", None)
        if isinstance(value, int):
            return value

    return None


def classify_failure(exc: BaseException) -> FailureKind:
    """
    Classify a failure as retryable or not

    An HTTP status decides on its own when present; otherwise builtin
    timeout/connection types and message markers are used.
    """
    status = _status_code(exc)
    if status is not None:
        if status == 429:
            return FailureKind.RATE_LIMIT
        if status == 408:
            return FailureKind.TIMEOUT
        if 500 <= status < 600:
            return FailureKind.SERVER_ERROR
        return FailureKind.FATAL

    message = str(exc).lower()

    if any(marker in message for marker in RATE_LIMIT_MARKERS):
        return FailureKind.RATE_LIMIT
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError)):
        return FailureKind.TIMEOUT
    if isinstance(exc, ConnectionError):
        return FailureKind.TRANSPORT
    if any(marker in message for marker in TIMEOUT_MARKERS):
        return FailureKind.TIMEOUT

    return FailureKind.FATAL


def _parse_seconds(value: Any) -> Optional[float]:
    """Parse 51, "51", "51s" or "1.5s" into seconds"""
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*s?\s*", value)
        if match:
            return float(match.group(1))
    return None


def _iter_details(details: Any) -> Iterable[dict]:
    if isinstance(details, dict):
        inner = details.get("error", details)
        if isinstance(inner, dict):
            details = inner.get("details", [])
        else:
            details = inner
    if isinstance(details, list):
        for item in details:
            if isinstance(item, dict):
                yield item


def retry_hint(exc: BaseException) -> Optional[float]:
    """
    Provider-supplied retry delay in seconds

    Reads a `retry_after` attribute, or a google.rpc.RetryInfo entry
    (`{"@type": ".../google.rpc.RetryInfo", "retryDelay": "51s"}`) in `details`.
    """
    hint = _parse_seconds(getattr(exc, "retry_after", None))
    if hint is not None:
        return hint

    for detail in _iter_details(getattr(exc, "details", None)):
        if str(detail.get("@type", "")).endswith("RetryInfo"):
            hint = _parse_seconds(detail.get("retryDelay"))
            if hint is not None:
                return hint

    return None


class RetryExecutor:
    """
    Runs an async closure with bounded retries

    Carries no knowledge of what the closure does.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._jitter = jitter

    def next_delay(
        self,
        exc: BaseException,
        kind: FailureKind,
        current: float,
        policy: Optional[RetryPolicy] = None,
    ) -> float:
        """Delay before the next attempt"""
        policy = policy or self.policy

        delay = retry_hint(exc)
        if delay is None:
            delay = current
            if kind is FailureKind.RATE_LIMIT:
                delay *= policy.rate_limit_factor

        delay += self._jitter(0.0, policy.max_jitter)
        return min(delay, policy.max_delay)

    async def execute(
        self,
        call: Callable[[], Awaitable[T]],
        policy: Optional[RetryPolicy] = None,
        label: str = "external call",
    ) -> T:
        """
        Call `call()` until it succeeds or retries are exhausted

        Args:
            call: zero-argument coroutine factory
            policy: overrides the executor policy
            label: name used in log lines

        Returns:
            the closure's result

        Raises:
            the first non-retryable failure, or the last failure once
            `max_retries` retries have been spent
        """
        policy = policy or self.policy
        delay = policy.initial_delay
        attempt = 0

        while True:
            try:
                return await call()
            except Exception as e:
                kind = classify_failure(e)

                if not kind.retryable:
                    logger.debug(f"{label}: non-retryable failure ({type(e).__name__}): {e}")
                    raise

                if attempt >= policy.max_retries:
                    logger.error(f"{label}: giving up after {attempt + 1} attempts: {e}")
                    raise

                wait = self.next_delay(e, kind, delay, policy)
                attempt += 1
                logger.warning(
                    f"{label}: {kind.value} (attempt {attempt}/{policy.max_retries}): {e}. "
                    f"Retrying in {wait:.1f}s"
                )
                await self._sleep(wait)

                # Exponential backoff for the next attempt
                delay = min(delay * policy.backoff_multiplier, policy.max_delay)
