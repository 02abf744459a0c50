"""
Operation results (``sourcing_kernel.domain.results``).

Responsibility
--------------
The request/response envelope at the service boundary.  Every public
service operation returns an ``OperationResult``; domain and persistence
exceptions are translated into a tagged failure instead of propagating,
so callers branch on ``status`` (or ``error.code``) rather than on
message text.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects, no I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from sourcing_kernel.exceptions import (
    KIND_BUSINESS_RULE,
    KIND_COLLABORATOR,
    KIND_PERMISSION,
    KIND_STATE_CONFLICT,
    KIND_VALIDATION,
    SourcingKernelError,
)

T = TypeVar("T")


class OperationStatus(str, Enum):
    """Outcome of a service operation."""

    SUCCEEDED = "succeeded"
    VALIDATION_FAILED = "validation_failed"
    STATE_CONFLICT = "state_conflict"
    PERMISSION_DENIED = "permission_denied"
    BUSINESS_RULE_VIOLATED = "business_rule_violated"
    COLLABORATOR_FAILED = "collaborator_failed"


_STATUS_BY_KIND: dict[str, OperationStatus] = {
    KIND_VALIDATION: OperationStatus.VALIDATION_FAILED,
    KIND_STATE_CONFLICT: OperationStatus.STATE_CONFLICT,
    KIND_PERMISSION: OperationStatus.PERMISSION_DENIED,
    KIND_BUSINESS_RULE: OperationStatus.BUSINESS_RULE_VIOLATED,
    KIND_COLLABORATOR: OperationStatus.COLLABORATOR_FAILED,
}


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Result of a service operation: a value on success, a typed error otherwise."""

    status: OperationStatus
    value: T | None = None
    error: SourcingKernelError | None = None

    @property
    def is_success(self) -> bool:
        return self.status == OperationStatus.SUCCEEDED

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    @property
    def error_context(self) -> dict[str, Any]:
        return self.error.context if self.error is not None else {}

    @property
    def is_retryable(self) -> bool:
        return self.error is not None and self.error.retryable

    @classmethod
    def ok(cls, value: T) -> OperationResult[T]:
        return cls(status=OperationStatus.SUCCEEDED, value=value)

    @classmethod
    def fail(cls, error: SourcingKernelError) -> OperationResult[T]:
        return cls(status=_STATUS_BY_KIND[error.kind], error=error)
