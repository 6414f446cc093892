"""Resilience – TenacityRetryPolicy for transient storage failures."""
from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import tenacity

from mp_eventstore.kernel.errors import BaseError
from mp_eventstore.observability.logging import get_logger

T = TypeVar("T")

log = get_logger(__name__)


def is_retryable(exc: BaseException) -> bool:
    """True for library errors flagged ``retryable`` (storage unreachable)."""
    return isinstance(exc, BaseError) and exc.retryable


def _log_before_sleep(state: tenacity.RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome is not None else None
    log.warning(
        "retry.sleeping",
        attempt=state.attempt_number,
        sleep_s=round(state.next_action.sleep, 3) if state.next_action is not None else None,
        error=type(exc).__name__ if exc is not None else None,
    )


class TenacityRetryPolicy:
    """Exponential backoff around an async storage call.

    Only retryable errors are retried by default: conflicts, duplicates
    and undecodable events propagate on the first attempt since running
    the same call again cannot change their outcome.

    Parameters
    ----------
    max_attempts:
        Attempts including the first call.
    initial_wait, max_wait:
        Bounds in seconds of the jittered exponential wait between attempts.
    retry_on:
        Predicate deciding whether an exception is retried
        (default :func:`is_retryable`).
    **kwargs:
        Forwarded to :class:`tenacity.AsyncRetrying`.

    Example
    -------
    ::

        policy = TenacityRetryPolicy(max_attempts=5)
        events = await policy.execute_async(lambda: cursor.next_batch(0))
    """

    def __init__(
        self,
        max_attempts: int = 5,
        initial_wait: float = 0.2,
        max_wait: float = 5.0,
        retry_on: Callable[[BaseException], bool] = is_retryable,
        **kwargs: Any,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._max_attempts = max_attempts
        self._wait = tenacity.wait_random_exponential(multiplier=initial_wait, max=max_wait)
        self._retry_on = retry_on
        kwargs.setdefault("before_sleep", _log_before_sleep)
        self._extra_kwargs = kwargs

    @classmethod
    def for_exceptions(cls, *exc_types: type[BaseException], **kwargs: Any) -> "TenacityRetryPolicy":
        """Retry only on instances of *exc_types*, whatever their ``retryable`` flag."""
        return cls(retry_on=lambda exc: isinstance(exc, exc_types), **kwargs)

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def _retrying(self) -> tenacity.AsyncRetrying:
        return tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=tenacity.retry_if_exception(self._retry_on),
            reraise=True,
            **self._extra_kwargs,
        )

    async def execute_async(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await *func*, calling it again after each retryable failure."""
        async for attempt in self._retrying():
            with attempt:
                result = await func()
        return result  # type: ignore[return-value]


__all__ = ["TenacityRetryPolicy", "is_retryable"]
