"""Tests for the capital account ledger."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fund_nav_engine.container import Container
from fund_nav_engine.domain.capital import CapitalAccount, Transaction
from fund_nav_engine.domain.funds import Fund
from fund_nav_engine.domain.value_objects import (
    CapitalAccountStatus,
    TransactionStatus,
    TransactionType,
)
from fund_nav_engine.exceptions import (
    CapitalAccountNotFoundError,
    CommitmentExceededError,
    ConcurrentModificationError,
    InsufficientSharesError,
    InvalidAmountError,
    MinimumInvestmentError,
    StateConflictError,
    TransactionNotFoundError,
    ValidationError,
)


def subscribe(
    container: Container,
    account: CapitalAccount,
    amount: str = "1000000",
    shares: str = "100000",
    on: date = date(2024, 1, 15),
) -> Transaction:
    return container.ledger_service.record_transaction(
        account.id,
        TransactionType.SUBSCRIPTION,
        Decimal(amount),
        shares=Decimal(shares),
        transaction_date=on,
    )


class TestCapitalAccountApply:
    def test_transaction_for_another_account_is_rejected(self, account: CapitalAccount):
        txn = Transaction(
            fund_id=account.fund_id,
            capital_account_id=uuid4(),
            transaction_type=TransactionType.SUBSCRIPTION,
            amount=Decimal("100"),
            transaction_date=date(2024, 1, 1),
        )
        with pytest.raises(ValidationError):
            account.apply(txn)

    def test_negative_amount_is_rejected(self, account: CapitalAccount):
        with pytest.raises(InvalidAmountError):
            Transaction(
                fund_id=account.fund_id,
                capital_account_id=account.id,
                transaction_type=TransactionType.SUBSCRIPTION,
                amount=Decimal("-1"),
                transaction_date=date(2024, 1, 1),
            )

    def test_settled_transaction_defaults_settlement_date(self, account: CapitalAccount):
        txn = Transaction(
            fund_id=account.fund_id,
            capital_account_id=account.id,
            transaction_type=TransactionType.DISTRIBUTION,
            amount=Decimal("50"),
            transaction_date=date(2024, 5, 1),
        )
        assert txn.status == TransactionStatus.SETTLED
        assert txn.settlement_date == date(2024, 5, 1)

    def test_cash_only_redemption_keeps_an_empty_account_active(
        self, account: CapitalAccount
    ):
        txn = Transaction(
            fund_id=account.fund_id,
            capital_account_id=account.id,
            transaction_type=TransactionType.REDEMPTION,
            amount=Decimal("25"),
            transaction_date=date(2024, 5, 1),
        )

        account.apply(txn)

        assert account.shares_owned == Decimal("0")
        assert account.capital_returned == Decimal("25")
        assert account.status == CapitalAccountStatus.ACTIVE


class TestRecordTransaction:
    def test_subscription_increases_balances(
        self, container: Container, account: CapitalAccount
    ):
        txn = subscribe(container, account)

        stored = container.ledger_service.get_account(account.id)
        assert stored.shares_owned == Decimal("100000")
        assert stored.capital_contributed == Decimal("1000000")
        assert stored.version == 1
        assert txn.price_per_share == Decimal("10")
        assert txn.currency == "USD"
        assert txn.status == TransactionStatus.SETTLED

    def test_each_write_bumps_the_version(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account)
        subscribe(container, account, amount="500000", shares="50000")

        stored = container.ledger_service.get_account(account.id)
        assert stored.version == 2
        assert stored.shares_owned == Decimal("150000")

    def test_distribution_leaves_shares_alone(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account)
        container.ledger_service.record_transaction(
            account.id, TransactionType.DISTRIBUTION, Decimal("25000")
        )

        stored = container.ledger_service.get_account(account.id)
        assert stored.shares_owned == Decimal("100000")
        assert stored.capital_returned == Decimal("25000")

    def test_redemption_beyond_balance_is_rejected(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account)

        with pytest.raises(InsufficientSharesError):
            container.ledger_service.record_transaction(
                account.id,
                TransactionType.REDEMPTION,
                Decimal("2000000"),
                shares=Decimal("100001"),
            )

        stored = container.ledger_service.get_account(account.id)
        assert stored.shares_owned == Decimal("100000")
        assert len(container.ledger_service.list_transactions(account.id)) == 1

    def test_full_redemption_marks_account_redeemed(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account)
        container.ledger_service.record_transaction(
            account.id,
            TransactionType.REDEMPTION,
            Decimal("1100000"),
            shares=Decimal("100000"),
        )

        stored = container.ledger_service.get_account(account.id)
        assert stored.shares_owned == Decimal("0")
        assert stored.capital_returned == Decimal("1100000")
        assert stored.status == CapitalAccountStatus.REDEEMED

    def test_new_subscription_reactivates_redeemed_account(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account)
        container.ledger_service.record_transaction(
            account.id,
            TransactionType.REDEMPTION,
            Decimal("1000000"),
            shares=Decimal("100000"),
        )
        subscribe(container, account, amount="200000", shares="20000")

        stored = container.ledger_service.get_account(account.id)
        assert stored.status == CapitalAccountStatus.ACTIVE
        assert stored.shares_owned == Decimal("20000")

    def test_redeemed_account_cannot_redeem_again(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account)
        container.ledger_service.record_transaction(
            account.id,
            TransactionType.REDEMPTION,
            Decimal("1000000"),
            shares=Decimal("100000"),
        )

        with pytest.raises(StateConflictError):
            container.ledger_service.record_transaction(
                account.id, TransactionType.REDEMPTION, Decimal("0"), shares=Decimal("0")
            )

    def test_closed_fund_refuses_subscriptions(
        self, container: Container, fund: Fund, account: CapitalAccount
    ):
        container.fund_service.close_fund(fund.id)

        with pytest.raises(StateConflictError):
            subscribe(container, account)

    def test_unknown_account(self, container: Container):
        with pytest.raises(CapitalAccountNotFoundError):
            container.ledger_service.record_transaction(
                uuid4(), TransactionType.SUBSCRIPTION, Decimal("1")
            )

    def test_unknown_transaction(self, container: Container):
        with pytest.raises(TransactionNotFoundError):
            container.ledger_service.get_transaction(uuid4())

    def test_transactions_filter_by_date(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account, on=date(2024, 1, 15))
        later = subscribe(container, account, on=date(2024, 6, 15))

        txns = container.ledger_service.list_transactions(
            account.id, start_date=date(2024, 6, 1)
        )

        assert [t.id for t in txns] == [later.id]


class TestMinimumInvestment:
    def test_initial_subscription_below_minimum(
        self, container: Container, fund: Fund
    ):
        share_class = container.fund_service.add_share_class(
            fund.id,
            class_code="I",
            class_name="Institutional",
            minimum_investment=Decimal("1000000"),
        )
        account = container.fund_service.open_capital_account(
            fund.id, uuid4(), "INV-0100", share_class_id=share_class.id
        )

        with pytest.raises(MinimumInvestmentError):
            subscribe(container, account, amount="999999.99")

    def test_top_ups_are_not_checked(self, container: Container, fund: Fund):
        institutional = container.fund_service.add_share_class(
            fund.id,
            class_code="I2",
            class_name="Institutional II",
            minimum_investment=Decimal("1000000"),
        )
        account = container.fund_service.open_capital_account(
            fund.id, uuid4(), "INV-0101", share_class_id=institutional.id
        )
        subscribe(container, account, amount="1000000")

        subscribe(container, account, amount="1000", shares="100")

        stored = container.ledger_service.get_account(account.id)
        assert stored.capital_contributed == Decimal("1001000")


class TestCommitment:
    def test_contributions_draw_down_the_commitment(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account, amount="4000000", shares="400000")

        stored = container.ledger_service.get_account(account.id)
        assert stored.unfunded_commitment == Decimal("6000000")

    def test_contribution_beyond_the_commitment_is_refused(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account, amount="9000000", shares="900000")

        with pytest.raises(CommitmentExceededError) as exc_info:
            subscribe(container, account, amount="1000000.01", shares="100000")
        assert exc_info.value.context["available"] == "1000000"

        stored = container.ledger_service.get_account(account.id)
        assert stored.capital_contributed == Decimal("9000000")
        assert len(container.ledger_service.list_transactions(account.id)) == 1

    def test_exact_remaining_commitment_is_accepted(
        self, container: Container, account: CapitalAccount
    ):
        subscribe(container, account, amount="9000000", shares="900000")
        subscribe(container, account, amount="1000000", shares="100000")

        stored = container.ledger_service.get_account(account.id)
        assert stored.unfunded_commitment == Decimal("0")

    def test_uncommitted_account_is_open_ended(
        self, container: Container, fund: Fund
    ):
        account = container.fund_service.open_capital_account(
            fund.id, uuid4(), "INV-0200"
        )
        subscribe(container, account, amount="50000000", shares="5000000")

        stored = container.ledger_service.get_account(account.id)
        assert stored.unfunded_commitment is None
        assert stored.capital_contributed == Decimal("50000000")


class TestOptimisticLocking:
    def test_stale_version_write_is_refused(
        self, container: Container, account: CapitalAccount
    ):
        stale = container.ledger_service.get_account(account.id)
        subscribe(container, account)

        stale.shares_owned = Decimal("1")
        with pytest.raises(ConcurrentModificationError):
            container.capital_account_repo.update(stale, stale.version)

        stored = container.ledger_service.get_account(account.id)
        assert stored.shares_owned == Decimal("100000")
