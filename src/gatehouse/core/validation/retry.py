"""Retry policy helpers: fault categorization and backoff delays."""

from __future__ import annotations

import asyncio

import httpx

from gatehouse.core.exceptions import ValidatorFault
from gatehouse.core.validation.models import BackoffStrategy, RetryPolicy


def fault_category(exc: BaseException) -> str:
    """
    Map an exception raised by a check to a retry category.

    ValidatorFault carries its own category; timeouts map to "timeout",
    connection and transport failures to "network"; everything else is
    "internal" and is never retried by the default policies.
    """
    if isinstance(exc, ValidatorFault):
        return exc.category
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return "timeout"
    if isinstance(exc, (ConnectionError, httpx.TransportError)):
        return "network"
    return "internal"


def is_retryable(exc: BaseException, policy: RetryPolicy) -> bool:
    return fault_category(exc) in policy.retryable_errors


def retry_delay(policy: RetryPolicy, attempt: int) -> float:
    """
    Seconds to wait before retry number *attempt* (1-based).

    linear: base × attempt;  exponential: base × 2^(attempt-1);  fixed: base.
    Always capped at ``max_delay_seconds``.
    """
    base = policy.base_delay_seconds
    if policy.backoff_strategy == BackoffStrategy.LINEAR:
        delay = base * attempt
    elif policy.backoff_strategy == BackoffStrategy.EXPONENTIAL:
        delay = base * (2 ** max(0, attempt - 1))
    else:
        delay = base
    return min(delay, policy.max_delay_seconds)
