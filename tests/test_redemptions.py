"""Tests for the redemption workflow."""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from conftest import approve_nav

from fund_nav_engine.container import Container
from fund_nav_engine.domain.capital import CapitalAccount
from fund_nav_engine.domain.funds import Fund
from fund_nav_engine.domain.redemptions import RedemptionRequest
from fund_nav_engine.domain.value_objects import (
    CapitalAccountStatus,
    RedemptionStatus,
    RedemptionType,
    ReviewDecision,
    TransactionType,
)
from fund_nav_engine.exceptions import (
    ApprovedNAVNotFoundError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)


@pytest.fixture
def funded_account(
    container: Container, fund: Fund, account: CapitalAccount, actor_id: UUID
) -> CapitalAccount:
    """Account holding 1,000 shares with an approved NAV of 9.5000."""
    container.ledger_service.record_transaction(
        account.id,
        TransactionType.SUBSCRIPTION,
        Decimal("9500"),
        shares=Decimal("1000"),
        transaction_date=date(2024, 1, 15),
    )
    approve_nav(container, fund, date(2024, 1, 31), actor_id)
    return container.ledger_service.get_account(account.id)


def full_request(container: Container, account: CapitalAccount) -> RedemptionRequest:
    return container.redemption_service.create_redemption_request(
        account.id, RedemptionType.FULL, date(2024, 2, 15), reason="Rebalancing"
    )


class TestRedemptionRequest:
    def test_request_number_format(self):
        request = RedemptionRequest(
            fund_id=uuid4(),
            capital_account_id=uuid4(),
            redemption_type=RedemptionType.PARTIAL,
            shares_requested=Decimal("1"),
            amount_requested=Decimal("1"),
            redemption_date=date(2024, 1, 1),
        )
        assert request.request_number.startswith("RDM-")
        assert len(request.request_number) == 14

    def test_rejected_row_needs_a_reason(self):
        with pytest.raises(ValidationError):
            RedemptionRequest(
                fund_id=uuid4(),
                capital_account_id=uuid4(),
                redemption_type=RedemptionType.FULL,
                shares_requested=Decimal("1"),
                amount_requested=Decimal("1"),
                redemption_date=date(2024, 1, 1),
                status=RedemptionStatus.REJECTED,
            )


class TestCreateRedemptionRequest:
    def test_full_request_takes_whole_balance(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)

        assert request.status == RedemptionStatus.REQUESTED
        assert request.shares_requested == Decimal("1000")
        assert request.amount_requested == Decimal("9500.00")
        assert request.currency == "USD"

    def test_partial_request(self, container: Container, funded_account: CapitalAccount):
        request = container.redemption_service.create_redemption_request(
            funded_account.id,
            RedemptionType.PARTIAL,
            date(2024, 2, 15),
            shares=Decimal("250"),
        )

        assert request.shares_requested == Decimal("250")
        assert request.amount_requested == Decimal("2375.00")

    def test_partial_request_needs_positive_shares(
        self, container: Container, funded_account: CapitalAccount
    ):
        with pytest.raises(InvalidAmountError):
            container.redemption_service.create_redemption_request(
                funded_account.id,
                RedemptionType.PARTIAL,
                date(2024, 2, 15),
                shares=Decimal("0"),
            )

    def test_partial_request_beyond_balance(
        self, container: Container, funded_account: CapitalAccount
    ):
        with pytest.raises(InsufficientSharesError):
            container.redemption_service.create_redemption_request(
                funded_account.id,
                RedemptionType.PARTIAL,
                date(2024, 2, 15),
                shares=Decimal("1000.0001"),
            )

    def test_full_request_on_empty_account(
        self, container: Container, account: CapitalAccount
    ):
        with pytest.raises(InvalidAmountError):
            full_request(container, account)

    def test_pricing_needs_an_approved_nav(
        self, container: Container, account: CapitalAccount
    ):
        container.ledger_service.record_transaction(
            account.id,
            TransactionType.SUBSCRIPTION,
            Decimal("9500"),
            shares=Decimal("1000"),
        )

        with pytest.raises(NotFoundError) as exc_info:
            full_request(container, account)
        assert isinstance(exc_info.value, ApprovedNAVNotFoundError)

    def test_explicit_amount_skips_pricing(
        self, container: Container, account: CapitalAccount
    ):
        container.ledger_service.record_transaction(
            account.id,
            TransactionType.SUBSCRIPTION,
            Decimal("9500"),
            shares=Decimal("1000"),
        )

        request = container.redemption_service.create_redemption_request(
            account.id,
            RedemptionType.PARTIAL,
            date(2024, 2, 15),
            shares=Decimal("100"),
            amount=Decimal("950"),
        )

        assert request.amount_requested == Decimal("950")


class TestReviewRedemption:
    def test_approve_defaults_from_request_and_nav(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)
        reviewer = uuid4()

        reviewed = container.redemption_service.review_redemption(
            request.id, ReviewDecision.APPROVE, reviewer_id=reviewer
        )

        assert reviewed.status == RedemptionStatus.APPROVED
        assert reviewed.shares_approved == Decimal("1000")
        assert reviewed.redemption_price == Decimal("9.5000")
        assert reviewed.amount_approved == Decimal("9500.00")
        assert reviewed.approved_by == reviewer

    def test_reviewer_may_grant_less(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)

        reviewed = container.redemption_service.review_redemption(
            request.id,
            ReviewDecision.APPROVE,
            shares_approved=Decimal("400"),
            price=Decimal("9.40"),
        )

        assert reviewed.shares_requested == Decimal("1000")
        assert reviewed.shares_approved == Decimal("400")
        assert reviewed.amount_approved == Decimal("3760.00")

    def test_reject_requires_a_reason(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)

        with pytest.raises(ValidationError):
            container.redemption_service.review_redemption(
                request.id, ReviewDecision.REJECT, rejection_reason="   "
            )

        stored = container.redemption_service.get_request(request.id)
        assert stored.status == RedemptionStatus.REQUESTED

    def test_reject_with_reason(self, container: Container, funded_account: CapitalAccount):
        request = full_request(container, funded_account)

        reviewed = container.redemption_service.review_redemption(
            request.id, ReviewDecision.REJECT, rejection_reason="Lock-up period"
        )

        assert reviewed.status == RedemptionStatus.REJECTED
        stored = container.redemption_service.get_request(request.id)
        assert stored.rejection_reason == "Lock-up period"

    def test_second_review_is_a_state_conflict(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)
        container.redemption_service.review_redemption(request.id, ReviewDecision.APPROVE)

        with pytest.raises(InvalidTransitionError):
            container.redemption_service.review_redemption(
                request.id, ReviewDecision.REJECT, rejection_reason="Changed mind"
            )


class TestProcessRedemption:
    def test_full_redemption_settles_the_account(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)
        container.redemption_service.review_redemption(request.id, ReviewDecision.APPROVE)

        txn = container.redemption_service.process_redemption(
            request.id, settlement_date=date(2024, 2, 20)
        )

        account = container.ledger_service.get_account(funded_account.id)
        assert account.shares_owned == Decimal("0")
        assert account.capital_returned == Decimal("9500.00")
        assert account.status == CapitalAccountStatus.REDEEMED

        assert txn.transaction_type == TransactionType.REDEMPTION
        assert txn.shares == Decimal("1000")
        assert txn.amount == Decimal("9500.00")
        assert txn.reference_number == request.request_number

        completed = container.redemption_service.get_request(request.id)
        assert completed.status == RedemptionStatus.COMPLETED
        assert completed.transaction_id == txn.id
        assert completed.settlement_date == date(2024, 2, 20)
        assert completed.settlement_amount == Decimal("9500.00")

    def test_processing_twice_is_a_state_conflict(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)
        container.redemption_service.review_redemption(request.id, ReviewDecision.APPROVE)
        container.redemption_service.process_redemption(request.id)

        with pytest.raises(StateConflictError):
            container.redemption_service.process_redemption(request.id)

        assert len(container.ledger_service.list_transactions(funded_account.id)) == 2

    def test_unapproved_request_cannot_be_processed(
        self, container: Container, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)

        with pytest.raises(StateConflictError):
            container.redemption_service.process_redemption(request.id)

    def test_ledger_failure_rolls_back_the_request(
        self, container: Container, funded_account: CapitalAccount
    ):
        first = full_request(container, funded_account)
        second = full_request(container, funded_account)
        container.redemption_service.review_redemption(first.id, ReviewDecision.APPROVE)
        container.redemption_service.review_redemption(second.id, ReviewDecision.APPROVE)
        container.redemption_service.process_redemption(first.id)

        # The account is now redeemed; the second settlement cannot apply.
        with pytest.raises(StateConflictError):
            container.redemption_service.process_redemption(second.id)

        stored = container.redemption_service.get_request(second.id)
        assert stored.status == RedemptionStatus.APPROVED
        assert stored.transaction_id is None

    def test_listing_by_status(
        self, container: Container, fund: Fund, funded_account: CapitalAccount
    ):
        request = full_request(container, funded_account)
        container.redemption_service.review_redemption(request.id, ReviewDecision.APPROVE)

        approved = container.redemption_service.list_requests(
            fund.id, RedemptionStatus.APPROVED
        )
        pending = container.redemption_service.list_requests(
            fund.id, RedemptionStatus.REQUESTED
        )

        assert [r.id for r in approved] == [request.id]
        assert pending == []
        assert [
            r.id
            for r in container.redemption_service.list_account_requests(funded_account.id)
        ] == [request.id]
