"""Unit tests for TenacityRetryPolicy."""

from __future__ import annotations

import asyncio

import pytest

from mp_eventstore.application.event_sourcing import (
    OptimisticConcurrencyError,
    StorageUnavailableError,
)
from mp_eventstore.kernel.errors import ConnectionError as StoreConnectionError
from mp_eventstore.resilience.retry import TenacityRetryPolicy, is_retryable


def _fast(attempts: int = 3) -> TenacityRetryPolicy:
    return TenacityRetryPolicy(max_attempts=attempts, initial_wait=0, max_wait=0)


class Flaky:
    def __init__(self, failures: int, exc: BaseException) -> None:
        self.calls = 0
        self._failures = failures
        self._exc = exc

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self._failures:
            raise self._exc
        return "ok"


class TestIsRetryable:
    def test_storage_unavailable_is_retryable(self) -> None:
        assert is_retryable(StorageUnavailableError())
        assert is_retryable(StoreConnectionError("db"))

    def test_conflict_is_not(self) -> None:
        assert not is_retryable(OptimisticConcurrencyError("t", "a", 1, 2))

    def test_foreign_exception_is_not(self) -> None:
        assert not is_retryable(OSError("disk"))


class TestRetryPolicy:
    def test_succeeds_on_first_try(self) -> None:
        op = Flaky(0, StorageUnavailableError())
        assert asyncio.run(_fast().execute_async(op)) == "ok"
        assert op.calls == 1

    def test_retries_retryable_error_then_succeeds(self) -> None:
        op = Flaky(2, StorageUnavailableError())
        assert asyncio.run(_fast(3).execute_async(op)) == "ok"
        assert op.calls == 3

    def test_non_retryable_propagates_immediately(self) -> None:
        op = Flaky(1, OptimisticConcurrencyError("t", "a", 1, 2))
        with pytest.raises(OptimisticConcurrencyError):
            asyncio.run(_fast(5).execute_async(op))
        assert op.calls == 1

    def test_exhausts_and_reraises_original(self) -> None:
        op = Flaky(10, StorageUnavailableError("down"))
        with pytest.raises(StorageUnavailableError):
            asyncio.run(_fast(2).execute_async(op))
        assert op.calls == 2

    def test_max_attempts(self) -> None:
        assert _fast(4).max_attempts == 4
        with pytest.raises(ValueError):
            TenacityRetryPolicy(max_attempts=0)


class TestForExceptions:
    def test_retries_listed_type(self) -> None:
        op = Flaky(2, ValueError("flaky"))
        policy = TenacityRetryPolicy.for_exceptions(ValueError, max_attempts=3, initial_wait=0, max_wait=0)
        assert asyncio.run(policy.execute_async(op)) == "ok"
        assert op.calls == 3

    def test_unlisted_type_propagates(self) -> None:
        op = Flaky(1, StorageUnavailableError())
        policy = TenacityRetryPolicy.for_exceptions(ValueError, max_attempts=3, initial_wait=0, max_wait=0)
        with pytest.raises(StorageUnavailableError):
            asyncio.run(policy.execute_async(op))
        assert op.calls == 1


class TestPublicReExports:
    def test_importable_from_package(self) -> None:
        from mp_eventstore.resilience import TenacityRetryPolicy as Exported

        assert Exported is TenacityRetryPolicy
