"""Retry policy for outbound provider calls"""

from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar
import asyncio
import logging

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from learning_assistant.config import settings
from learning_assistant.rag.error_classifier import ErrorClass, classify_error, is_rate_limited

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff with jitter for transient upstream failures"""

    max_attempts: int = settings.RETRY_MAX_ATTEMPTS
    base_delay: float = settings.RETRY_BASE_DELAY_SECONDS
    max_delay: float = settings.RETRY_MAX_DELAY_SECONDS
    multiplier: float = settings.RETRY_BACKOFF_MULTIPLIER
    jitter: float = settings.RETRY_JITTER_SECONDS
    timeout: float = settings.PROVIDER_TIMEOUT_SECONDS
    retry_rate_limited: bool = settings.RETRY_RATE_LIMITED

    def should_retry(self, err: BaseException) -> bool:
        """
        Decide whether an error is worth another attempt

        Transient errors (timeouts, 502/503) are always retried. A 429 is
        retried only when ``retry_rate_limited`` is set; spent quotas
        ("quota", "RESOURCE_EXHAUSTED") never are.
        """
        error_class = classify_error(err)
        if error_class == ErrorClass.TRANSIENT:
            return True
        if error_class == ErrorClass.QUOTA and self.retry_rate_limited:
            return is_rate_limited(err)
        return False

    def delay_for_attempt(self, attempt: int) -> float:
        """Upper bound of the backoff delay after ``attempt`` failures, without jitter"""
        return min(self.base_delay * (self.multiplier ** (attempt - 1)), self.max_delay)


def build_wait(policy: RetryPolicy):
    """Capped exponential delay plus up to ``policy.jitter`` seconds of random jitter"""
    return wait_exponential(
        multiplier=policy.base_delay,
        max=policy.max_delay,
        exp_base=policy.multiplier,
    ) + wait_random(0, policy.jitter)


def _log_before_sleep(label: str, policy: RetryPolicy):
    def before_sleep(retry_state: RetryCallState) -> None:
        err = retry_state.outcome.exception() if retry_state.outcome else None
        sleep = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            f"{label} failed (attempt {retry_state.attempt_number}/{policy.max_attempts}): "
            f"{err}; retrying in {sleep:.2f}s"
        )
    return before_sleep


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    label: str = "provider call"
) -> T:
    """
    Run an async provider call under the retry policy

    Each attempt is bounded by ``policy.timeout``. When attempts run out the
    last error is raised unchanged.

    Args:
        func: Zero-argument coroutine factory performing one attempt
        policy: Retry policy to apply
        label: Name used in log messages

    Returns:
        Result of the first successful attempt
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, policy.max_attempts)),
        wait=build_wait(policy),
        retry=retry_if_exception(policy.should_retry),
        before_sleep=_log_before_sleep(label, policy),
        reraise=True,
    )

    async for attempt in retrying:
        with attempt:
            result = await asyncio.wait_for(func(), timeout=policy.timeout)
    return result
