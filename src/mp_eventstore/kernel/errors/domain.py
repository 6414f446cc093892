"""Domain errors – invariant, validation and tenancy violations."""

from __future__ import annotations

from typing import Any

from mp_eventstore.kernel.errors.base import BaseError


class DomainError(BaseError):
    """Raised when a domain rule / invariant is violated."""

    default_code = "domain_error"


class ValidationError(DomainError):
    """Input data does not meet validation rules.

    ``errors`` is a list of field-level validation failures.
    """

    default_code = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, Any]] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.errors: list[dict[str, Any]] = errors or []

    def to_dict(self) -> dict[str, Any]:
        base = super().to_dict()
        base["errors"] = self.errors
        return base


class ConflictError(DomainError):
    """The operation conflicts with existing state."""

    default_code = "conflict"


class TenantError(DomainError):
    """Tenant isolation could not be guaranteed for the current unit of work.

    Never retried: the caller has to fix how the tenant is established.
    """

    default_code = "tenant_error"


class MissingTenantError(TenantError):
    """An operation that requires a tenant ran without one."""

    default_code = "missing_tenant"

    def __init__(self, operation: str = "operation", **kwargs: Any) -> None:
        super().__init__(
            f"Tenant context is required during {operation} but was not found",
            **kwargs,
        )
        self.operation = operation


class TenantMismatchError(TenantError):
    """The tenant passed to an operation differs from the active tenant context."""

    default_code = "tenant_mismatch"

    def __init__(
        self,
        requested: str,
        active: str,
        operation: str = "operation",
        **kwargs: Any,
    ) -> None:
        super().__init__(
            f"Tenant '{requested}' does not match active tenant '{active}' during {operation}",
            detail={"requested": requested, "active": active, "operation": operation},
            **kwargs,
        )
        self.requested = requested
        self.active = active
        self.operation = operation


__all__ = [
    "ConflictError",
    "DomainError",
    "MissingTenantError",
    "TenantError",
    "TenantMismatchError",
    "ValidationError",
]
