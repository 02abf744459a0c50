"""
Typed Exception Hierarchy for the Sourcing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the pricing and lifecycle core must branch on *what* went wrong
without parsing message strings.  Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. A KIND class attribute (one of five taxonomy buckets, see below)
  4. Structured DATA as attributes, exported through ``context``

The presentation layer turns (kind, code, context) into localized text.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SourcingKernelError (base)
    |
    +-- ValidationError                      kind=VALIDATION
    |   +-- InvalidMarginError
    |   +-- InvalidAmountError
    |   +-- InvalidQuoteLineError
    |   +-- EntityNotFoundError
    |
    +-- StateConflictError                   kind=STATE_CONFLICT
    |   +-- QuoteNotAvailableError
    |   +-- InvalidStatusTransitionError
    |   +-- DuplicateQuoteError
    |   +-- ConcurrentModificationError
    |
    +-- PermissionDeniedError                kind=PERMISSION
    |
    +-- BusinessRuleError                    kind=BUSINESS_RULE
    |   +-- CreditLimitBelowBalanceError
    |   +-- InsufficientCreditError
    |   +-- ImmutabilityViolationError
    |
    +-- CollaboratorError                    kind=COLLABORATOR

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind            | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_MARGIN              | Margin not finite or outside [0, 100]
                | INVALID_AMOUNT              | Amount not finite / negative / zero
                | INVALID_QUOTE_LINE          | Quoted line has bad price or quantity
                | ENTITY_NOT_FOUND            | Referenced id does not exist
----------------|-----------------------------|-----------------------------------------
State conflict  | QUOTE_NOT_AVAILABLE         | Accepting a quote not SENT_TO_CLIENT
                | INVALID_STATUS_TRANSITION   | Transition not in the workflow table
                | DUPLICATE_QUOTE             | (RFQ, supplier) already has a quote
                | CONCURRENT_MODIFICATION     | Compare-and-swap lost a race
----------------|-----------------------------|-----------------------------------------
Permission      | PERMISSION_DENIED           | Actor lacks the right for the operation
----------------|-----------------------------|-----------------------------------------
Business rule   | CREDIT_LIMIT_BELOW_BALANCE  | Decrease pushes limit under balance/zero
                | INSUFFICIENT_CREDIT         | Order amount exceeds available credit
                | IMMUTABILITY_VIOLATION      | Modifying a frozen record
----------------|-----------------------------|-----------------------------------------
Collaborator    | COLLABORATOR_FAILURE        | Persistence/identity dependency failed

===============================================================================
HANDLING PATTERNS
===============================================================================

Services never let these escape; they return ``OperationResult`` (see
``sourcing_kernel.domain.results``).  Inside the kernel, raise the most
specific class and let the service boundary translate it:

    try:
        order = self._transition(order_id, target)
    except StateConflictError as e:
        log.warning("order_transition_rejected", extra=e.context)
        raise

Only ``CollaboratorError`` is worth retrying with backoff.
===============================================================================
"""

from typing import Any

KIND_VALIDATION = "VALIDATION"
KIND_STATE_CONFLICT = "STATE_CONFLICT"
KIND_PERMISSION = "PERMISSION"
KIND_BUSINESS_RULE = "BUSINESS_RULE"
KIND_COLLABORATOR = "COLLABORATOR"


class SourcingKernelError(Exception):
    """
    Base exception for all sourcing kernel errors.

    All subclasses must have ``code`` and ``kind`` class attributes.
    """

    code: str = "SOURCING_KERNEL_ERROR"
    kind: str = KIND_VALIDATION
    retryable: bool = False

    @property
    def context(self) -> dict[str, Any]:
        """Structured attributes of this error, suitable for logs and APIs."""
        ctx: dict[str, Any] = {"code": self.code, "kind": self.kind}
        for key, val in vars(self).items():
            if not key.startswith("_"):
                ctx[key] = val
        return ctx


# Validation


class ValidationError(SourcingKernelError):
    """Malformed input, caught before any write."""

    code: str = "VALIDATION_ERROR"
    kind: str = KIND_VALIDATION

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidMarginError(ValidationError):
    """Margin percentage is not finite or outside [0, 100]."""

    code: str = "INVALID_MARGIN"

    def __init__(self, value: Any):
        self.value = str(value)
        super().__init__(
            f"Margin must be a finite percentage between 0 and 100, got {value!r}",
            field="margin_percent",
        )


class InvalidAmountError(ValidationError):
    """Monetary amount is not acceptable for the operation."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: Any, reason: str):
        self.value = str(value)
        self.reason = reason
        super().__init__(f"Invalid {field} {value!r}: {reason}", field=field)


class InvalidQuoteLineError(ValidationError):
    """A quoted line item carries a bad price, quantity or lead time."""

    code: str = "INVALID_QUOTE_LINE"

    def __init__(self, line_index: int | None, reason: str):
        self.line_index = line_index
        self.reason = reason
        where = f"line {line_index}" if line_index is not None else "quote"
        super().__init__(f"Invalid quote {where}: {reason}", field="line_items")


class EntityNotFoundError(ValidationError):
    """Referenced entity does not exist."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


# State conflicts


class StateConflictError(SourcingKernelError):
    """Entity is not in the state required for the requested operation."""

    code: str = "STATE_CONFLICT"
    kind: str = KIND_STATE_CONFLICT

    def __init__(
        self,
        entity_type: str,
        entity_id: Any,
        current_state: str | None,
        attempted_state: str | None,
        message: str | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        self.current_state = current_state
        self.attempted_state = attempted_state
        super().__init__(
            message
            or f"{entity_type} {entity_id} is {current_state}; cannot move to {attempted_state}"
        )


class QuoteNotAvailableError(StateConflictError):
    """Quote is not in SENT_TO_CLIENT and cannot be accepted."""

    code: str = "QUOTE_NOT_AVAILABLE"

    def __init__(self, quote_id: Any, current_state: str, reason: str | None = None):
        self.reason = reason or f"status {current_state}"
        super().__init__(
            "Quote",
            quote_id,
            current_state,
            "ACCEPTED",
            message=f"Quote {quote_id} is not available for acceptance ({self.reason})",
        )


class InvalidStatusTransitionError(StateConflictError):
    """Requested transition is not in the workflow's adjacency table."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity_type: str, entity_id: Any, current_state: str, attempted_state: str):
        super().__init__(
            entity_type,
            entity_id,
            current_state,
            attempted_state,
            message=(
                f"Invalid status transition for {entity_type} {entity_id}: "
                f"{current_state} -> {attempted_state}"
            ),
        )


class DuplicateQuoteError(StateConflictError):
    """The (RFQ, supplier) pair already holds a quote that cannot be overridden."""

    code: str = "DUPLICATE_QUOTE"

    def __init__(self, quote_id: Any, current_state: str, quote_type: str):
        self.quote_type = quote_type
        super().__init__(
            "Quote",
            quote_id,
            current_state,
            None,
            message=(
                f"Supplier already has a {quote_type} quote {quote_id} "
                f"({current_state}) for this RFQ"
            ),
        )


class ConcurrentModificationError(StateConflictError):
    """A guarded update found the row no longer in the expected state."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: Any, expected_state: str | None):
        super().__init__(
            entity_type,
            entity_id,
            expected_state,
            None,
            message=(
                f"{entity_type} {entity_id} was modified by another transaction "
                f"(expected {expected_state})"
            ),
        )


# Permission


class PermissionDeniedError(SourcingKernelError):
    """Actor lacks the right to perform the operation."""

    code: str = "PERMISSION_DENIED"
    kind: str = KIND_PERMISSION

    def __init__(self, actor_id: Any, action: str, entity_id: Any | None = None):
        self.actor_id = str(actor_id)
        self.action = action
        self.entity_id = str(entity_id) if entity_id is not None else None
        super().__init__(f"Actor {actor_id} is not permitted to {action}")


# Business rules


class BusinessRuleError(SourcingKernelError):
    """Operation would violate a domain invariant not captured by state alone."""

    code: str = "BUSINESS_RULE_VIOLATION"
    kind: str = KIND_BUSINESS_RULE


class CreditLimitBelowBalanceError(BusinessRuleError):
    """A decrease would push the limit negative or under committed balance."""

    code: str = "CREDIT_LIMIT_BELOW_BALANCE"

    def __init__(self, client_id: Any, current_limit: str, requested_limit: str, balance: str):
        self.client_id = str(client_id)
        self.current_limit = current_limit
        self.requested_limit = requested_limit
        self.balance = balance
        super().__init__(
            f"Credit limit for client {client_id} cannot drop to {requested_limit} "
            f"(current {current_limit}, committed balance {balance})"
        )


class InsufficientCreditError(BusinessRuleError):
    """Order amount exceeds the client's available credit."""

    code: str = "INSUFFICIENT_CREDIT"

    def __init__(self, client_id: Any, required: str, available: str):
        self.client_id = str(client_id)
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credit for client {client_id}. "
            f"Required: {required}, Available: {available}"
        )


class ImmutabilityViolationError(BusinessRuleError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Collaborators


class CollaboratorError(SourcingKernelError):
    """An external dependency (persistence, identity) failed."""

    code: str = "COLLABORATOR_FAILURE"
    kind: str = KIND_COLLABORATOR
    retryable: bool = True

    def __init__(self, collaborator: str, detail: str):
        self.collaborator = collaborator
        self.detail = detail
        super().__init__(f"{collaborator} failure: {detail}")
