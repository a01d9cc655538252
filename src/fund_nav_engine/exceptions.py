"""Error hierarchy for the Fund NAV Engine.

Every engine error inherits from FundNavEngineError and falls into one of
four kinds callers can branch on: ValidationError, StateConflictError,
NotFoundError and ConsistencyError. Each carries a stable error_code, an
HTTP-style status_code and a context dict for structured responses.
"""

from typing import Any
from uuid import UUID


class FundNavEngineError(Exception):
    """Base exception for all engine errors."""

    error_code: str = "FNE_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    @property
    def kind(self) -> str:
        """The stable error kind this error belongs to."""
        for klass in type(self).__mro__:
            if klass in _KINDS:
                return klass.__name__
        return FundNavEngineError.__name__

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "kind": self.kind,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(FundNavEngineError):
    """Malformed or out-of-range input."""

    error_code = "VALIDATION_ERROR"
    status_code = 422


class InvalidAmountError(ValidationError):
    """Raised when a monetary amount or share quantity is out of range."""

    error_code = "INVALID_AMOUNT"

    def __init__(self, field: str, value: object, reason: str) -> None:
        super().__init__(
            f"Invalid {field} '{value}': {reason}",
            context={"field": field, "value": str(value), "reason": reason},
        )


class InsufficientSharesError(ValidationError):
    """Raised when an account does not hold enough shares."""

    error_code = "INSUFFICIENT_SHARES"

    def __init__(
        self, account_id: UUID | str, required: str, available: str
    ) -> None:
        super().__init__(
            f"Insufficient shares: required {required}, available {available}",
            context={
                "account_id": str(account_id),
                "required": required,
                "available": available,
            },
        )


class MinimumInvestmentError(ValidationError):
    """Raised when an initial subscription is below the share class minimum."""

    error_code = "MINIMUM_INVESTMENT"

    def __init__(self, amount: str, minimum: str) -> None:
        super().__init__(
            f"Initial subscription {amount} is below the minimum investment {minimum}",
            context={"amount": amount, "minimum": minimum},
        )


class CommitmentExceededError(ValidationError):
    """Raised when a contribution would draw more than the unfunded commitment."""

    error_code = "COMMITMENT_EXCEEDED"

    def __init__(self, account_id: UUID | str, amount: str, available: str) -> None:
        super().__init__(
            f"Contribution {amount} exceeds the unfunded commitment {available}",
            context={
                "account_id": str(account_id),
                "amount": amount,
                "available": available,
            },
        )


# =============================================================================
# State Conflict Errors
# =============================================================================


class StateConflictError(FundNavEngineError):
    """Attempted transition from an invalid state."""

    error_code = "STATE_CONFLICT"
    status_code = 409


class InvalidTransitionError(StateConflictError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    error_code = "INVALID_TRANSITION"

    def __init__(
        self, record: str, record_id: UUID | str, current: str, action: str
    ) -> None:
        super().__init__(
            f"Cannot {action} {record} {record_id} in status '{current}'",
            context={
                "record": record,
                "record_id": str(record_id),
                "status": current,
                "action": action,
            },
        )


# =============================================================================
# Not Found Errors
# =============================================================================


class NotFoundError(FundNavEngineError):
    """Referenced record is absent."""

    error_code = "NOT_FOUND"
    status_code = 404

    record: str = "Record"

    def __init__(self, record_id: UUID | str) -> None:
        super().__init__(
            f"{self.record} not found: {record_id}",
            context={"record_id": str(record_id)},
        )


class FundNotFoundError(NotFoundError):
    error_code = "FUND_NOT_FOUND"
    record = "Fund"


class ShareClassNotFoundError(NotFoundError):
    error_code = "SHARE_CLASS_NOT_FOUND"
    record = "Share class"


class NAVCalculationNotFoundError(NotFoundError):
    error_code = "NAV_CALCULATION_NOT_FOUND"
    record = "NAV calculation"


class CapitalAccountNotFoundError(NotFoundError):
    error_code = "CAPITAL_ACCOUNT_NOT_FOUND"
    record = "Capital account"


class RedemptionRequestNotFoundError(NotFoundError):
    error_code = "REDEMPTION_REQUEST_NOT_FOUND"
    record = "Redemption request"


class TransactionNotFoundError(NotFoundError):
    error_code = "TRANSACTION_NOT_FOUND"
    record = "Transaction"


class DistributionNotFoundError(NotFoundError):
    error_code = "DISTRIBUTION_NOT_FOUND"
    record = "Distribution"


class ApprovedNAVNotFoundError(NotFoundError):
    """Raised when pricing needs an approved NAV and none exists."""

    error_code = "APPROVED_NAV_NOT_FOUND"

    def __init__(self, fund_id: UUID | str, share_class_id: UUID | None) -> None:
        FundNavEngineError.__init__(
            self,
            f"No approved NAV for fund {fund_id}"
            + (f" share class {share_class_id}" if share_class_id else ""),
            context={
                "fund_id": str(fund_id),
                "share_class_id": str(share_class_id) if share_class_id else None,
            },
        )


# =============================================================================
# Consistency Errors
# =============================================================================


class ConsistencyError(FundNavEngineError):
    """An atomic multi-row operation failed and was rolled back."""

    error_code = "CONSISTENCY_ERROR"
    status_code = 500


class ConcurrentModificationError(ConsistencyError):
    """Raised when a row changed between read and conditional write."""

    error_code = "CONCURRENT_MODIFICATION"
    status_code = 409

    def __init__(self, record: str, record_id: UUID | str) -> None:
        super().__init__(
            f"{record} {record_id} was modified concurrently; no changes were applied",
            context={"record": record, "record_id": str(record_id)},
        )


_KINDS = (ValidationError, StateConflictError, NotFoundError, ConsistencyError)
