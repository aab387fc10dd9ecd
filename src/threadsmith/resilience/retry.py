"""Resilient external-call decorator built on tenacity.

Transient failures of the content generator are retried with exponential
backoff and jitter.  Once the attempts are exhausted the last exception is
logged and converted into ``ExternalCallFailure``; the orchestrator counts
that as one failed generation attempt.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from threadsmith.domain.errors import ExternalCallFailure

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])

DEFAULT_ATTEMPTS = 3


def _api_name_of(retry_state: RetryCallState) -> str:
    if retry_state.fn is None:
        return "unknown"
    return getattr(retry_state.fn, "_api_name", "unknown")


def raise_external_call_failure(retry_state: RetryCallState) -> Any:
    """Log the final failure and raise ``ExternalCallFailure`` from it.

    Args:
        retry_state: Tenacity retry state with attempt info and exception.

    Raises:
        ExternalCallFailure: Always.
    """
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    api_name = _api_name_of(retry_state)

    logger.error(
        "external_call_failed",
        api_name=api_name,
        attempts=retry_state.attempt_number,
        exception=str(exception),
    )
    raise ExternalCallFailure(
        api_name, f"failed after {retry_state.attempt_number} attempts: {exception}"
    ) from exception


def _before_sleep_log(retry_state: RetryCallState) -> None:
    """Log a warning before each retry attempt."""
    logger.warning(
        "external_call_retrying",
        api_name=_api_name_of(retry_state),
        attempt=retry_state.attempt_number,
        wait=retry_state.next_action.sleep if retry_state.next_action else 0,
    )


def resilient_api_call(
    api_name: str,
    *,
    attempts: int = DEFAULT_ATTEMPTS,
    wait: wait_base | None = None,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
) -> Callable[[F], F]:
    """Create a retry decorator for a synchronous external call.

    Defaults:
    - 3 attempts maximum
    - Exponential backoff with jitter (1s initial, 30s max, 5s jitter)
    - Warning log before each retry
    - ``ExternalCallFailure`` raised after exhaustion

    Exceptions outside *retry_on* propagate immediately without retrying.

    Args:
        api_name: Human-readable name for the call (used in logs and errors).
        attempts: Maximum number of attempts, including the first.
        wait: Tenacity wait strategy; overrides the default backoff.
        retry_on: Exception types considered transient.

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def decorator(func: F) -> F:
        func._api_name = api_name  # type: ignore[attr-defined]

        wrapped = retry(
            stop=stop_after_attempt(attempts),
            wait=wait if wait is not None else wait_exponential_jitter(initial=1, max=30, jitter=5),
            retry=retry_if_exception_type(retry_on),
            before_sleep=_before_sleep_log,
            retry_error_callback=raise_external_call_failure,
        )(func)

        return wrapped  # type: ignore[return-value]

    return decorator
