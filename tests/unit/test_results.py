"""
Tests for the error taxonomy and the OperationResult envelope.
"""

from uuid import uuid4

import pytest

from sourcing_kernel.domain.results import OperationResult, OperationStatus
from sourcing_kernel.exceptions import (
    CollaboratorError,
    ConcurrentModificationError,
    CreditLimitBelowBalanceError,
    DuplicateQuoteError,
    EntityNotFoundError,
    ImmutabilityViolationError,
    InsufficientCreditError,
    InvalidAmountError,
    InvalidMarginError,
    InvalidQuoteLineError,
    InvalidStatusTransitionError,
    PermissionDeniedError,
    QuoteNotAvailableError,
)


@pytest.mark.parametrize("error, code, status", [
    (InvalidMarginError("150"), "INVALID_MARGIN", OperationStatus.VALIDATION_FAILED),
    (InvalidAmountError("amount", "-1", "must not be negative"), "INVALID_AMOUNT", OperationStatus.VALIDATION_FAILED),
    (InvalidQuoteLineError(0, "bad"), "INVALID_QUOTE_LINE", OperationStatus.VALIDATION_FAILED),
    (EntityNotFoundError("Quote", "q1"), "ENTITY_NOT_FOUND", OperationStatus.VALIDATION_FAILED),
    (QuoteNotAvailableError("q1", "ACCEPTED"), "QUOTE_NOT_AVAILABLE", OperationStatus.STATE_CONFLICT),
    (InvalidStatusTransitionError("Order", "o1", "SHIPPED", "COMPLETED"), "INVALID_STATUS_TRANSITION", OperationStatus.STATE_CONFLICT),
    (DuplicateQuoteError("q1", "PENDING_ADMIN", "custom"), "DUPLICATE_QUOTE", OperationStatus.STATE_CONFLICT),
    (ConcurrentModificationError("Quote", "q1", "SENT_TO_CLIENT"), "CONCURRENT_MODIFICATION", OperationStatus.STATE_CONFLICT),
    (PermissionDeniedError("a1", "accept quote"), "PERMISSION_DENIED", OperationStatus.PERMISSION_DENIED),
    (CreditLimitBelowBalanceError("c1", "100", "50", "75"), "CREDIT_LIMIT_BELOW_BALANCE", OperationStatus.BUSINESS_RULE_VIOLATED),
    (InsufficientCreditError("c1", "500", "100"), "INSUFFICIENT_CREDIT", OperationStatus.BUSINESS_RULE_VIOLATED),
    (ImmutabilityViolationError("Order", "o1", "frozen"), "IMMUTABILITY_VIOLATION", OperationStatus.BUSINESS_RULE_VIOLATED),
    (CollaboratorError("persistence", "gone"), "COLLABORATOR_FAILURE", OperationStatus.COLLABORATOR_FAILED),
])
def test_failure_status_follows_error_kind(error, code, status):
    result = OperationResult.fail(error)
    assert not result.is_success
    assert result.status == status
    assert result.error_code == code
    assert result.value is None


def test_ok():
    result = OperationResult.ok(42)
    assert result.is_success
    assert result.value == 42
    assert result.error_code is None
    assert result.error_context == {}
    assert not result.is_retryable


def test_only_collaborator_failures_are_retryable():
    assert OperationResult.fail(CollaboratorError("persistence", "timeout")).is_retryable
    assert not OperationResult.fail(PermissionDeniedError("a", "x")).is_retryable


def test_error_context_carries_structured_fields():
    client_id = uuid4()
    context = InsufficientCreditError(client_id, "500.00", "120.00").context
    assert context["code"] == "INSUFFICIENT_CREDIT"
    assert context["kind"] == "BUSINESS_RULE"
    assert context["client_id"] == str(client_id)
    assert context["required"] == "500.00"
    assert context["available"] == "120.00"


def test_state_conflict_context():
    context = InvalidStatusTransitionError("Order", "o1", "SHIPPED", "COMPLETED").context
    assert context["current_state"] == "SHIPPED"
    assert context["attempted_state"] == "COMPLETED"
