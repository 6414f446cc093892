"""Unit tests for identifier value objects."""

from __future__ import annotations

import dataclasses

import pytest

from mp_eventstore.kernel.errors import ValidationError
from mp_eventstore.kernel.types import (
    MAX_TENANT_ID_LENGTH,
    CorrelationId,
    EntityId,
    TenantId,
    uuid7_str,
)


class TestEntityId:
    def test_generate_is_unique(self) -> None:
        assert EntityId.generate() != EntityId.generate()

    def test_str(self) -> None:
        assert str(EntityId("order-1")) == "order-1"

    def test_blank_rejected(self) -> None:
        with pytest.raises(ValidationError):
            EntityId("  ")

    def test_frozen(self) -> None:
        eid = EntityId("x")
        with pytest.raises(dataclasses.FrozenInstanceError):
            eid.value = "y"  # type: ignore[misc]


class TestTenantId:
    @pytest.mark.parametrize("value", ["acme", "tenant_1", "A-B-c", "x" * MAX_TENANT_ID_LENGTH])
    def test_valid(self, value: str) -> None:
        assert TenantId(value).value == value

    @pytest.mark.parametrize(
        "value",
        ["", "   ", "acme corp", "acme/evil", "ten'ant", "x" * (MAX_TENANT_ID_LENGTH + 1), "é", "acme\n", "\nacme"],
    )
    def test_invalid_rejected_not_rewritten(self, value: str) -> None:
        with pytest.raises(ValidationError):
            TenantId(value)

    def test_of_accepts_existing(self) -> None:
        tid = TenantId("acme")
        assert TenantId.of(tid) is tid
        assert TenantId.of("acme") == tid

    def test_of_rejects_non_string(self) -> None:
        with pytest.raises(ValidationError):
            TenantId.of(42)  # type: ignore[arg-type]


class TestUuid7:
    def test_version_nibble(self) -> None:
        value = uuid7_str()
        assert len(value) == 36
        assert value[14] == "7"

    def test_correlation_id_generate(self) -> None:
        assert len(CorrelationId.generate().value) == 36
