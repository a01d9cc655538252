"""Tests for the error hierarchy."""

from uuid import uuid4

import pytest

from fund_nav_engine.exceptions import (
    ApprovedNAVNotFoundError,
    ConcurrentModificationError,
    ConsistencyError,
    FundNavEngineError,
    FundNotFoundError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)


class TestErrorKinds:
    @pytest.mark.parametrize(
        ("error", "kind", "status_code"),
        [
            (InvalidAmountError("amount", "-1", "must not be negative"), "ValidationError", 422),
            (InsufficientSharesError(uuid4(), "10", "5"), "ValidationError", 422),
            (InvalidTransitionError("NAV calculation", uuid4(), "draft", "approve"), "StateConflictError", 409),
            (FundNotFoundError(uuid4()), "NotFoundError", 404),
            (ApprovedNAVNotFoundError(uuid4(), None), "NotFoundError", 404),
            (ConcurrentModificationError("Capital account", uuid4()), "ConsistencyError", 409),
            (ConsistencyError("rolled back"), "ConsistencyError", 500),
        ],
    )
    def test_kind_and_status(self, error: FundNavEngineError, kind: str, status_code: int):
        assert error.kind == kind
        assert error.status_code == status_code

    def test_base_error_has_its_own_kind(self):
        assert FundNavEngineError("boom").kind == "FundNavEngineError"

    def test_subclasses_are_catchable_by_kind(self):
        with pytest.raises(StateConflictError):
            raise InvalidTransitionError("redemption request", uuid4(), "completed", "process")
        with pytest.raises(NotFoundError):
            raise FundNotFoundError(uuid4())
        with pytest.raises(ValidationError):
            raise InvalidAmountError("shares", "0", "must be positive")


class TestToDict:
    def test_not_found_payload(self):
        fund_id = uuid4()
        payload = FundNotFoundError(fund_id).to_dict()

        assert payload == {
            "error": "FUND_NOT_FOUND",
            "kind": "NotFoundError",
            "message": f"Fund not found: {fund_id}",
            "context": {"record_id": str(fund_id)},
        }

    def test_transition_payload(self):
        payload = InvalidTransitionError("NAV calculation", "n-1", "rejected", "approve").to_dict()

        assert payload["error"] == "INVALID_TRANSITION"
        assert payload["message"] == "Cannot approve NAV calculation n-1 in status 'rejected'"
        assert payload["context"]["status"] == "rejected"

    def test_approved_nav_message_names_share_class(self):
        fund_id, share_class_id = uuid4(), uuid4()
        error = ApprovedNAVNotFoundError(fund_id, share_class_id)

        assert str(share_class_id) in error.message
        assert error.context["share_class_id"] == str(share_class_id)
