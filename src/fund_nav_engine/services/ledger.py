"""Capital account ledger: records investor transactions and keeps balances."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.domain.capital import CapitalAccount, Transaction
from fund_nav_engine.domain.value_objects import (
    ZERO,
    TransactionStatus,
    TransactionType,
    to_decimal,
)
from fund_nav_engine.exceptions import (
    CapitalAccountNotFoundError,
    FundNotFoundError,
    MinimumInvestmentError,
    StateConflictError,
    TransactionNotFoundError,
)
from fund_nav_engine.logging_config import get_logger
from fund_nav_engine.repositories.interfaces import (
    CapitalAccountRepository,
    FundRepository,
    ShareClassRepository,
    TransactionalStore,
    TransactionRepository,
)
from fund_nav_engine.services.interfaces import CapitalLedgerService

logger = get_logger(__name__)


class CapitalLedgerServiceImpl(CapitalLedgerService):
    """Append-only ledger over capital accounts.

    Each transaction insert and the matching balance update happen in one
    atomic unit. The balance write is conditional on the account version
    read in that unit, so concurrent writers cannot lose an update.
    """

    def __init__(
        self,
        store: TransactionalStore,
        capital_account_repo: CapitalAccountRepository,
        transaction_repo: TransactionRepository,
        fund_repo: FundRepository,
        share_class_repo: ShareClassRepository,
    ) -> None:
        self._store = store
        self._capital_account_repo = capital_account_repo
        self._transaction_repo = transaction_repo
        self._fund_repo = fund_repo
        self._share_class_repo = share_class_repo

    def _check_minimum_investment(self, account: CapitalAccount, amount: Decimal) -> None:
        if account.share_class_id is None or account.capital_contributed > ZERO:
            return
        share_class = self._share_class_repo.get(account.share_class_id)
        if share_class is None or amount >= share_class.minimum_investment:
            return
        raise MinimumInvestmentError(str(amount), str(share_class.minimum_investment))

    def record_transaction(
        self,
        account_id: UUID,
        transaction_type: TransactionType,
        amount: Decimal,
        shares: Decimal | None = None,
        price_per_share: Decimal | None = None,
        transaction_date: date | None = None,
        actor_id: UUID | None = None,
        description: str | None = None,
        nav_calculation_id: UUID | None = None,
        reference_number: str | None = None,
    ) -> Transaction:
        """Record a settled transaction and apply it to the account.

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: On negative inputs, a redemption larger than the
                share balance, an initial subscription below the minimum
                or a subscription beyond the unfunded commitment
            StateConflictError: If the account or fund cannot take the entry
            ConsistencyError: If the account changed underneath this write
        """
        transaction_type = TransactionType(transaction_type)
        amount = to_decimal(amount, "amount")
        shares = ZERO if shares is None else to_decimal(shares, "shares")
        if price_per_share is None:
            price_per_share = amount / shares if shares > ZERO else ZERO
        else:
            price_per_share = to_decimal(price_per_share, "price_per_share")

        with self._store.transaction():
            account = self._capital_account_repo.get(account_id)
            if account is None:
                raise CapitalAccountNotFoundError(account_id)
            fund = self._fund_repo.get(account.fund_id)
            if fund is None:
                raise FundNotFoundError(account.fund_id)
            if transaction_type == TransactionType.SUBSCRIPTION:
                if not fund.is_active:
                    raise StateConflictError(
                        f"Fund {fund.code} is closed to subscriptions",
                        context={"fund_id": str(fund.id)},
                    )
                self._check_minimum_investment(account, amount)

            txn = Transaction(
                fund_id=account.fund_id,
                capital_account_id=account.id,
                transaction_type=transaction_type,
                amount=amount,
                transaction_date=transaction_date or date.today(),
                shares=shares,
                price_per_share=price_per_share,
                currency=fund.base_currency,
                status=TransactionStatus.SETTLED,
                reference_number=reference_number,
                description=description,
                nav_calculation_id=nav_calculation_id,
                created_by=actor_id,
            )
            expected_version = account.version
            account.apply(txn)
            self._transaction_repo.add(txn)
            self._capital_account_repo.update(account, expected_version)

        logger.info(
            "transaction_recorded",
            transaction_id=str(txn.id),
            account_id=str(account.id),
            transaction_type=txn.transaction_type.value,
            amount=str(txn.amount),
            shares=str(txn.shares),
            shares_owned=str(account.shares_owned),
        )
        return txn

    def get_account(self, account_id: UUID) -> CapitalAccount:
        account = self._capital_account_repo.get(account_id)
        if account is None:
            raise CapitalAccountNotFoundError(account_id)
        return account

    def get_transaction(self, txn_id: UUID) -> Transaction:
        txn = self._transaction_repo.get(txn_id)
        if txn is None:
            raise TransactionNotFoundError(txn_id)
        return txn

    def list_transactions(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Transaction]:
        self.get_account(account_id)
        return list(
            self._transaction_repo.list_by_account(account_id, start_date, end_date)
        )
