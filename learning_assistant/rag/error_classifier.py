"""Classification of upstream provider errors

The string signatures below mirror what the upstream APIs actually return
(OpenAI/Groq/OpenRouter 429 bodies, Gemini ``RESOURCE_EXHAUSTED``). Keep them
in one place so the heuristic can be swapped without touching callers.
"""

import asyncio
import enum
from typing import Optional

import httpx

from learning_assistant.exceptions import (
    AllProvidersFailedError,
    QuotaExceededError,
    TransientUpstreamError,
)


class ErrorClass(str, enum.Enum):
    """Error classes understood by the retry and fallback layers"""
    QUOTA = "quota"
    TRANSIENT = "transient"
    FATAL = "fatal"


QUOTA_SIGNATURES = ("quota", "429", "RESOURCE_EXHAUSTED", "rate limit")
RATE_LIMIT_SIGNATURES = ("429", "rate limit", "rate limited", "too many requests")
TRANSIENT_STATUS_CODES = (502, 503, 504)
TRANSIENT_SIGNATURES = ("timeout", "timed out", "502", "503", "bad gateway", "service unavailable")


def _status_code(err: BaseException) -> Optional[int]:
    """Extract an HTTP status code from SDK exceptions when present"""
    for attr in ("status_code", "code", "status"):
        value = getattr(err, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(err, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    return None


def classify_error(err: BaseException) -> ErrorClass:
    """
    Classify an exception raised by a provider call

    Args:
        err: Exception raised by the upstream call

    Returns:
        ErrorClass.QUOTA, ErrorClass.TRANSIENT or ErrorClass.FATAL
    """
    if isinstance(err, QuotaExceededError):
        return ErrorClass.QUOTA
    if isinstance(err, AllProvidersFailedError):
        return ErrorClass.QUOTA if err.is_quota else ErrorClass.FATAL
    if isinstance(err, TransientUpstreamError):
        return ErrorClass.TRANSIENT

    status = _status_code(err)
    message = str(err)
    lowered = message.lower()

    if status == 429 or "RESOURCE_EXHAUSTED" in message:
        return ErrorClass.QUOTA
    if any(signature.lower() in lowered for signature in QUOTA_SIGNATURES):
        return ErrorClass.QUOTA

    if isinstance(err, (asyncio.TimeoutError, TimeoutError, httpx.TimeoutException)):
        return ErrorClass.TRANSIENT
    if status in TRANSIENT_STATUS_CODES:
        return ErrorClass.TRANSIENT
    if any(signature in lowered for signature in TRANSIENT_SIGNATURES):
        return ErrorClass.TRANSIENT

    return ErrorClass.FATAL


def is_rate_limited(err: BaseException) -> bool:
    """True for short-lived rate limiting (429), as opposed to a spent quota"""
    if _status_code(err) == 429:
        return True
    lowered = str(err).lower()
    return any(signature in lowered for signature in RATE_LIMIT_SIGNATURES)


def is_quota_error(err: BaseException) -> bool:
    return classify_error(err) == ErrorClass.QUOTA
