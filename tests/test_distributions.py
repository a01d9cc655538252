"""Tests for the distribution workflow."""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from fund_nav_engine.container import Container
from fund_nav_engine.domain.capital import CapitalAccount
from fund_nav_engine.domain.distributions import Distribution
from fund_nav_engine.domain.funds import Fund, ShareClass
from fund_nav_engine.domain.value_objects import (
    AllocationStatus,
    CapitalAccountStatus,
    DistributionStatus,
    DistributionType,
    TransactionType,
)
from fund_nav_engine.exceptions import (
    ConsistencyError,
    DistributionNotFoundError,
    InvalidTransitionError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)


def subscribe(
    container: Container, account: CapitalAccount, shares: str, amount: str
) -> None:
    container.ledger_service.record_transaction(
        account.id,
        TransactionType.SUBSCRIPTION,
        Decimal(amount),
        shares=Decimal(shares),
        transaction_date=date(2024, 1, 15),
    )


@pytest.fixture
def holders(
    container: Container,
    fund: Fund,
    share_class: ShareClass,
    account: CapitalAccount,
) -> tuple[CapitalAccount, CapitalAccount]:
    """1,000 unclassed shares and 2,000 Class A shares; one empty account."""
    class_a = container.fund_service.open_capital_account(
        fund.id, uuid4(), "INV-0002", share_class_id=share_class.id
    )
    container.fund_service.open_capital_account(fund.id, uuid4(), "INV-0003")
    subscribe(container, account, shares="1000", amount="9500")
    subscribe(container, class_a, shares="2000", amount="19000")
    return (
        container.ledger_service.get_account(account.id),
        container.ledger_service.get_account(class_a.id),
    )


def declare(
    container: Container,
    fund: Fund,
    amount_per_share: str = "0.125",
    share_class_id: UUID | None = None,
) -> Distribution:
    return container.distribution_service.create_distribution(
        fund.id,
        Decimal(amount_per_share),
        record_date=date(2024, 3, 31),
        payment_date=date(2024, 4, 15),
        share_class_id=share_class_id,
    )


class TestDistribution:
    def test_distribution_number_format(self):
        distribution = Distribution(
            fund_id=uuid4(),
            amount_per_share=Decimal("1"),
            record_date=date(2024, 3, 31),
            payment_date=date(2024, 4, 15),
        )
        assert distribution.distribution_number.startswith("DIST-")
        assert distribution.distribution_number[5:].isdigit()
        assert len(distribution.distribution_number) == 13
        assert distribution.distribution_type == DistributionType.DIVIDEND

    def test_amount_per_share_must_be_positive(self):
        with pytest.raises(ValidationError):
            Distribution(
                fund_id=uuid4(),
                amount_per_share=Decimal("0"),
                record_date=date(2024, 3, 31),
                payment_date=date(2024, 4, 15),
            )

    def test_payment_cannot_precede_record_date(self):
        with pytest.raises(ValidationError):
            Distribution(
                fund_id=uuid4(),
                amount_per_share=Decimal("1"),
                record_date=date(2024, 3, 31),
                payment_date=date(2024, 3, 30),
            )

    def test_completed_distribution_cannot_be_cancelled(self):
        distribution = Distribution(
            fund_id=uuid4(),
            amount_per_share=Decimal("1"),
            record_date=date(2024, 3, 31),
            payment_date=date(2024, 4, 15),
            status=DistributionStatus.COMPLETED,
        )
        with pytest.raises(InvalidTransitionError):
            distribution.cancel()


class TestCreateDistribution:
    def test_allocates_to_every_holder(
        self, container: Container, fund: Fund, holders
    ):
        unclassed, class_a = holders

        distribution = declare(container, fund)

        assert distribution.status == DistributionStatus.PENDING
        assert distribution.total_shares == Decimal("3000")
        assert distribution.total_amount == Decimal("375.00")
        assert distribution.currency == "USD"

        allocations = {
            a.capital_account_id: a
            for a in container.distribution_service.get_allocations(distribution.id)
        }
        assert set(allocations) == {unclassed.id, class_a.id}
        assert allocations[unclassed.id].allocation_amount == Decimal("125.00")
        assert allocations[class_a.id].allocation_amount == Decimal("250.00")
        assert allocations[class_a.id].shares_held == Decimal("2000")
        assert all(a.status == AllocationStatus.PENDING for a in allocations.values())

    def test_share_class_filter(
        self, container: Container, fund: Fund, share_class: ShareClass, holders
    ):
        _, class_a = holders

        distribution = declare(container, fund, share_class_id=share_class.id)

        allocations = container.distribution_service.get_allocations(distribution.id)
        assert [a.capital_account_id for a in allocations] == [class_a.id]
        assert distribution.total_amount == Decimal("250.00")

    def test_allocations_round_to_cents(
        self, container: Container, fund: Fund, holders
    ):
        distribution = declare(container, fund, amount_per_share="0.333333")

        amounts = sorted(
            a.allocation_amount
            for a in container.distribution_service.get_allocations(distribution.id)
        )
        assert amounts == [Decimal("333.33"), Decimal("666.67")]
        assert distribution.total_amount == Decimal("1000.00")

    def test_needs_a_holder(self, container: Container, fund: Fund, account):
        with pytest.raises(ValidationError):
            declare(container, fund)
        assert container.distribution_service.list_distributions(fund.id) == []

    def test_share_class_from_another_fund(
        self, container: Container, fund: Fund, holders
    ):
        other = container.fund_service.create_fund("OTH", "Other Fund")
        foreign = container.fund_service.add_share_class(
            other.id, class_code="B", class_name="Class B"
        )
        with pytest.raises(ValidationError):
            declare(container, fund, share_class_id=foreign.id)

    def test_unknown_fund(self, container: Container):
        with pytest.raises(NotFoundError):
            container.distribution_service.create_distribution(
                uuid4(), Decimal("1"), date(2024, 3, 31), date(2024, 4, 15)
            )


class TestProcessDistribution:
    def test_pays_each_allocation(
        self, container: Container, fund: Fund, holders, actor_id: UUID
    ):
        unclassed, class_a = holders
        distribution = declare(container, fund)
        container.distribution_service.approve_distribution(distribution.id, actor_id)

        transactions = container.distribution_service.process_distribution(
            distribution.id
        )

        assert len(transactions) == 2
        for txn in transactions:
            assert txn.transaction_type == TransactionType.DISTRIBUTION
            assert txn.shares == Decimal("0")
            assert txn.transaction_date == date(2024, 4, 15)
            assert txn.reference_number == distribution.distribution_number
            assert txn.created_by == actor_id

        stored = container.distribution_service.get_distribution(distribution.id)
        assert stored.status == DistributionStatus.COMPLETED
        assert stored.approved_by == actor_id

        allocations = container.distribution_service.get_allocations(distribution.id)
        assert all(a.status == AllocationStatus.PAID for a in allocations)
        assert {a.transaction_id for a in allocations} == {t.id for t in transactions}

        paid = container.ledger_service.get_account(class_a.id)
        assert paid.capital_returned == Decimal("250.00")
        assert paid.shares_owned == Decimal("2000")
        assert paid.version == class_a.version + 1

    def test_pending_distribution_cannot_be_processed(
        self, container: Container, fund: Fund, holders
    ):
        distribution = declare(container, fund)

        with pytest.raises(StateConflictError):
            container.distribution_service.process_distribution(distribution.id)

    def test_second_process_is_rejected(
        self, container: Container, fund: Fund, holders
    ):
        unclassed, _ = holders
        distribution = declare(container, fund)
        container.distribution_service.approve_distribution(distribution.id)
        container.distribution_service.process_distribution(distribution.id)

        with pytest.raises(InvalidTransitionError):
            container.distribution_service.process_distribution(distribution.id)

        history = container.ledger_service.list_transactions(unclassed.id)
        assert sum(t.transaction_type == TransactionType.DISTRIBUTION for t in history) == 1

    def test_failed_posting_rolls_back_every_payment(
        self, container: Container, fund: Fund, holders, monkeypatch
    ):
        unclassed, class_a = holders
        distribution = declare(container, fund)
        container.distribution_service.approve_distribution(distribution.id)

        record = container.ledger_service.record_transaction
        calls = []

        def fail_second_posting(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise ConsistencyError("ledger write failed")
            return record(*args, **kwargs)

        monkeypatch.setattr(
            container.ledger_service, "record_transaction", fail_second_posting
        )

        with pytest.raises(ConsistencyError):
            container.distribution_service.process_distribution(distribution.id)

        stored = container.distribution_service.get_distribution(distribution.id)
        assert stored.status == DistributionStatus.APPROVED
        allocations = container.distribution_service.get_allocations(distribution.id)
        assert all(a.status == AllocationStatus.PENDING for a in allocations)
        for holder in holders:
            assert container.ledger_service.get_account(holder.id).capital_returned == 0
            assert all(
                t.transaction_type == TransactionType.SUBSCRIPTION
                for t in container.ledger_service.list_transactions(holder.id)
            )

    def test_account_redeemed_after_record_date_is_still_paid(
        self, container: Container, fund: Fund, holders
    ):
        unclassed, _ = holders
        distribution = declare(container, fund)
        container.ledger_service.record_transaction(
            unclassed.id,
            TransactionType.REDEMPTION,
            Decimal("9500"),
            shares=Decimal("1000"),
            transaction_date=date(2024, 4, 1),
        )
        container.distribution_service.approve_distribution(distribution.id)

        container.distribution_service.process_distribution(distribution.id)

        paid = container.ledger_service.get_account(unclassed.id)
        assert paid.status == CapitalAccountStatus.REDEEMED
        assert paid.capital_returned == Decimal("9625.00")


class TestCancelDistribution:
    def test_cancels_allocations(self, container: Container, fund: Fund, holders):
        distribution = declare(container, fund)
        container.distribution_service.approve_distribution(distribution.id)

        cancelled = container.distribution_service.cancel_distribution(distribution.id)

        assert cancelled.status == DistributionStatus.CANCELLED
        allocations = container.distribution_service.get_allocations(distribution.id)
        assert all(a.status == AllocationStatus.CANCELLED for a in allocations)
        with pytest.raises(StateConflictError):
            container.distribution_service.process_distribution(distribution.id)

    def test_listing_by_status(self, container: Container, fund: Fund, holders):
        kept = declare(container, fund)
        dropped = declare(container, fund, amount_per_share="0.5")
        container.distribution_service.cancel_distribution(dropped.id)

        pending = container.distribution_service.list_distributions(
            fund.id, DistributionStatus.PENDING
        )
        assert [d.id for d in pending] == [kept.id]
        assert len(container.distribution_service.list_distributions(fund.id)) == 2

    def test_unknown_distribution(self, container: Container):
        with pytest.raises(DistributionNotFoundError):
            container.distribution_service.cancel_distribution(uuid4())
