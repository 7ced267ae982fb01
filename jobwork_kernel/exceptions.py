"""
Typed Exception Hierarchy for the Job-Work Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Dispatch and receipt screens must show the operator exactly what went wrong
and let them correct it. Parsing error strings for that is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, UI-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - RIGHT way:
    try:
        recorder.record_receipt(move_id, 60, today)
    except OverReceiptError as e:
        form.show_error(e.code, max_allowed=e.quantity_outstanding)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from JobworkError:

    JobworkError (base)
    |
    +-- ValidationError                 (recoverable by the caller)
    |   +-- InvalidProcessTypeError
    |   +-- InvalidQuantityError
    |   +-- InvalidReturnDateError
    |   +-- RemarksTooLongError
    |   +-- OverReceiptError
    |   +-- QcRequiredError
    |   +-- InvalidQcOutcomeError
    |   +-- InvalidRejectedQuantityError
    |
    +-- PartnerError
    |   +-- PartnerNotFoundError
    |   +-- PartnerInactiveError
    |
    +-- MoveError
    |   +-- MoveNotFoundError
    |   +-- MoveVoidedError
    |   +-- MoveAlreadyCompleteError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |   +-- QuantityLockedError
    |   +-- ReceiptImmutableError
    |
    +-- InvariantViolationError         (fatal, never retried)

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                      | When Raised
----------------|---------------------------|-------------------------------------------
Validation      | INVALID_PROCESS_TYPE      | Partner does not offer the process
                | INVALID_QUANTITY          | Quantity <= 0
                | INVALID_RETURN_DATE       | Expected return before dispatch
                | REMARKS_TOO_LONG          | Remarks exceed configured length
                | OVER_RECEIPT              | Receipts would exceed quantity sent
                | QC_REQUIRED               | Partner requires QC outcome on return
                | INVALID_QC_OUTCOME        | QC outcome not pass / fail / pending
                | INVALID_REJECTED_QUANTITY | Rejected < 0 or more than received
----------------|---------------------------|-------------------------------------------
Partner         | PARTNER_NOT_FOUND         | Partner id unknown
                | PARTNER_INACTIVE          | Partner deactivated
----------------|---------------------------|-------------------------------------------
Move            | MOVE_NOT_FOUND            | Move id unknown
                | MOVE_VOIDED               | Move was voided
                | MOVE_ALREADY_COMPLETE     | Voiding a fully received move
----------------|---------------------------|-------------------------------------------
Immutability    | IMMUTABILITY_VIOLATION    | Move deleted or un-voided
                | QUANTITY_LOCKED           | quantity_sent edited after receipts
                | RECEIPT_IMMUTABLE         | Receipt updated or deleted
----------------|---------------------------|-------------------------------------------
Invariant       | INVARIANT_VIOLATION       | Status regressed / outstanding negative

===============================================================================
HANDLING POLICY
===============================================================================

ValidationError, PartnerError and MoveError are expected conditions. The
write services catch them and hand back typed result objects so the form
layer can render them. InvariantViolationError is never caught by the
kernel: it means the ledger is corrupt and must reach an operator.
"""


class JobworkError(Exception):
    """
    Base exception for all job-work kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "JOBWORK_ERROR"


# Validation exceptions


class ValidationError(JobworkError):
    """Base exception for input rejected at the write boundary."""

    code: str = "VALIDATION_ERROR"


class InvalidProcessTypeError(ValidationError):
    """Partner does not support the requested process type."""

    code: str = "INVALID_PROCESS_TYPE"

    def __init__(self, partner_id: str, process_type: str, supported: tuple[str, ...]):
        self.partner_id = partner_id
        self.process_type = process_type
        self.supported = supported
        super().__init__(
            f"Partner {partner_id} does not support process '{process_type}' "
            f"(supported: {', '.join(supported) or 'none'})"
        )


class InvalidQuantityError(ValidationError):
    """Quantity must be a positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, field: str = "quantity_sent"):
        self.quantity = quantity
        self.field = field
        super().__init__(f"{field} must be a positive integer, got {quantity!r}")


class InvalidReturnDateError(ValidationError):
    """Expected return date precedes the dispatch date."""

    code: str = "INVALID_RETURN_DATE"

    def __init__(self, dispatch_date: str, expected_return_date: str):
        self.dispatch_date = dispatch_date
        self.expected_return_date = expected_return_date
        super().__init__(
            f"Expected return date {expected_return_date} is before "
            f"dispatch date {dispatch_date}"
        )


class RemarksTooLongError(ValidationError):
    """Remarks exceed the configured maximum length."""

    code: str = "REMARKS_TOO_LONG"

    def __init__(self, length: int, max_length: int):
        self.length = length
        self.max_length = max_length
        super().__init__(f"Remarks are {length} characters, maximum is {max_length}")


class OverReceiptError(ValidationError):
    """
    Receipt would push cumulative received quantity past quantity sent.

    The receipt is rejected; the move and its prior receipts are untouched.
    """

    code: str = "OVER_RECEIPT"

    def __init__(
        self,
        move_id: str,
        quantity_sent: int,
        quantity_received: int,
        quantity_attempted: int,
    ):
        self.move_id = move_id
        self.quantity_sent = quantity_sent
        self.quantity_received = quantity_received
        self.quantity_attempted = quantity_attempted
        self.quantity_outstanding = quantity_sent - quantity_received
        super().__init__(
            f"Receipt of {quantity_attempted} on move {move_id} exceeds "
            f"outstanding quantity {self.quantity_outstanding} "
            f"(sent {quantity_sent}, received {quantity_received})"
        )


class QcRequiredError(ValidationError):
    """Partner requires a QC outcome on every return."""

    code: str = "QC_REQUIRED"

    def __init__(self, move_id: str, partner_id: str):
        self.move_id = move_id
        self.partner_id = partner_id
        super().__init__(
            f"Partner {partner_id} requires a QC outcome for receipts "
            f"against move {move_id}"
        )


class InvalidQcOutcomeError(ValidationError):
    """QC outcome is not one of pass, fail, pending."""

    code: str = "INVALID_QC_OUTCOME"

    def __init__(self, qc_outcome: object, allowed: tuple[str, ...]):
        self.qc_outcome = qc_outcome
        self.allowed = allowed
        super().__init__(
            f"QC outcome {qc_outcome!r} is not one of {', '.join(allowed)}"
        )


class InvalidRejectedQuantityError(ValidationError):
    """Rejected pieces must be between 0 and the pieces in the return."""

    code: str = "INVALID_REJECTED_QUANTITY"

    def __init__(self, quantity_rejected: object, quantity_received: int):
        self.quantity_rejected = quantity_rejected
        self.quantity_received = quantity_received
        super().__init__(
            f"quantity_rejected must be an integer between 0 and "
            f"{quantity_received}, got {quantity_rejected!r}"
        )


# Partner exceptions


class PartnerError(JobworkError):
    """Base exception for partner directory errors."""

    code: str = "PARTNER_ERROR"


class PartnerNotFoundError(PartnerError):
    """Partner with given ID was not found."""

    code: str = "PARTNER_NOT_FOUND"

    def __init__(self, partner_id: str):
        self.partner_id = partner_id
        super().__init__(f"Partner not found: {partner_id}")


class PartnerInactiveError(PartnerError):
    """Partner is deactivated and cannot receive new moves."""

    code: str = "PARTNER_INACTIVE"

    def __init__(self, partner_id: str):
        self.partner_id = partner_id
        super().__init__(f"Partner {partner_id} is inactive")


# Move exceptions


class MoveError(JobworkError):
    """Base exception for move lifecycle errors."""

    code: str = "MOVE_ERROR"


class MoveNotFoundError(MoveError):
    """Move with given ID was not found."""

    code: str = "MOVE_NOT_FOUND"

    def __init__(self, move_id: str):
        self.move_id = move_id
        super().__init__(f"Move not found: {move_id}")


class MoveVoidedError(MoveError):
    """Move has been voided and accepts no further activity."""

    code: str = "MOVE_VOIDED"

    def __init__(self, move_id: str):
        self.move_id = move_id
        super().__init__(f"Move {move_id} is voided")


class MoveAlreadyCompleteError(MoveError):
    """A fully received move cannot be voided."""

    code: str = "MOVE_ALREADY_COMPLETE"

    def __init__(self, move_id: str):
        self.move_id = move_id
        super().__init__(f"Move {move_id} is fully received and cannot be voided")


# Immutability exceptions


class ImmutabilityError(JobworkError):
    """Base exception for attempts to rewrite recorded history."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete a record the ledger treats as history."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class QuantityLockedError(ImmutabilityError):
    """quantity_sent cannot change once receipts exist against the move."""

    code: str = "QUANTITY_LOCKED"

    def __init__(self, move_id: str, old_quantity: int, new_quantity: int):
        self.move_id = move_id
        self.old_quantity = old_quantity
        self.new_quantity = new_quantity
        super().__init__(
            f"quantity_sent of move {move_id} is locked by existing receipts "
            f"({old_quantity} -> {new_quantity} rejected)"
        )


class ReceiptImmutableError(ImmutabilityError):
    """Receipts are append-only; corrections are new records."""

    code: str = "RECEIPT_IMMUTABLE"

    def __init__(self, receipt_id: str, operation: str):
        self.receipt_id = receipt_id
        self.operation = operation
        super().__init__(f"Receipt {receipt_id} is immutable ({operation} rejected)")


# Invariant exceptions


class InvariantViolationError(JobworkError):
    """
    An internal ledger invariant no longer holds.

    Raised when a move's status would move backward or its outstanding
    quantity went negative. Indicates a bug or concurrent-write corruption;
    it is surfaced, never repaired.
    """

    code: str = "INVARIANT_VIOLATION"

    def __init__(self, invariant: str, move_id: str, detail: str):
        self.invariant = invariant
        self.move_id = move_id
        self.detail = detail
        super().__init__(f"Invariant {invariant} violated on move {move_id}: {detail}")
