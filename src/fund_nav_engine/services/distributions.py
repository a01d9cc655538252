"""Distribution workflow: declare, approve, pay out."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.domain.capital import Transaction
from fund_nav_engine.domain.distributions import Distribution, DistributionAllocation
from fund_nav_engine.domain.value_objects import (
    ZERO,
    AllocationStatus,
    DistributionStatus,
    DistributionType,
    TransactionType,
    round_money,
)
from fund_nav_engine.exceptions import (
    DistributionNotFoundError,
    FundNotFoundError,
    ShareClassNotFoundError,
    ValidationError,
)
from fund_nav_engine.logging_config import LogContext, get_logger
from fund_nav_engine.repositories.interfaces import (
    CapitalAccountRepository,
    DistributionRepository,
    FundRepository,
    ShareClassRepository,
    TransactionalStore,
)
from fund_nav_engine.services.interfaces import (
    CapitalLedgerService,
    DistributionService,
)

logger = get_logger(__name__)


class DistributionServiceImpl(DistributionService):
    def __init__(
        self,
        store: TransactionalStore,
        distribution_repo: DistributionRepository,
        capital_account_repo: CapitalAccountRepository,
        fund_repo: FundRepository,
        share_class_repo: ShareClassRepository,
        ledger_service: CapitalLedgerService,
        money_places: int = 2,
    ) -> None:
        self._store = store
        self._distribution_repo = distribution_repo
        self._capital_account_repo = capital_account_repo
        self._fund_repo = fund_repo
        self._share_class_repo = share_class_repo
        self._ledger_service = ledger_service
        self._money_places = money_places

    def _get_distribution(self, distribution_id: UUID) -> Distribution:
        distribution = self._distribution_repo.get(distribution_id)
        if distribution is None:
            raise DistributionNotFoundError(distribution_id)
        return distribution

    def create_distribution(
        self,
        fund_id: UUID,
        amount_per_share: Decimal,
        record_date: date,
        payment_date: date,
        distribution_type: DistributionType = DistributionType.DIVIDEND,
        share_class_id: UUID | None = None,
        description: str | None = None,
        notes: str | None = None,
        created_by: UUID | None = None,
    ) -> Distribution:
        """Declare a distribution and allocate it across current holders.

        Every active account in the fund (or in the given share class) that
        holds shares gets shares_owned x amount_per_share, rounded to money
        precision. The distribution total is the sum of those allocations.

        Raises:
            NotFoundError: If the fund or share class does not exist
            ValidationError: If the share class belongs to another fund, or
                no account holds shares
        """
        fund = self._fund_repo.get(fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        if share_class_id is not None:
            share_class = self._share_class_repo.get(share_class_id)
            if share_class is None:
                raise ShareClassNotFoundError(share_class_id)
            if share_class.fund_id != fund.id:
                raise ValidationError(
                    f"Share class {share_class_id} does not belong to fund {fund_id}"
                )

        distribution = Distribution(
            fund_id=fund.id,
            amount_per_share=amount_per_share,
            record_date=record_date,
            payment_date=payment_date,
            share_class_id=share_class_id,
            distribution_type=distribution_type,
            currency=fund.base_currency,
            description=description,
            notes=notes,
            created_by=created_by,
        )

        with self._store.transaction():
            holders = [
                account
                for account in self._capital_account_repo.list_by_fund(fund.id)
                if account.is_active
                and account.shares_owned > ZERO
                and (share_class_id is None or account.share_class_id == share_class_id)
            ]
            if not holders:
                raise ValidationError(
                    f"No active capital account in fund {fund.code} holds shares"
                )
            allocations = [
                DistributionAllocation(
                    distribution_id=distribution.id,
                    capital_account_id=account.id,
                    shares_held=account.shares_owned,
                    allocation_amount=round_money(
                        account.shares_owned * distribution.amount_per_share,
                        self._money_places,
                    ),
                )
                for account in holders
            ]
            distribution.total_shares = sum((a.shares_held for a in allocations), ZERO)
            distribution.total_amount = sum(
                (a.allocation_amount for a in allocations), ZERO
            )
            self._distribution_repo.add(distribution, allocations)

        logger.info(
            "distribution_created",
            distribution_id=str(distribution.id),
            distribution_number=distribution.distribution_number,
            fund_id=str(fund.id),
            accounts=len(allocations),
            total_amount=str(distribution.total_amount),
        )
        return distribution

    def approve_distribution(
        self, distribution_id: UUID, approver_id: UUID | None = None
    ) -> Distribution:
        with self._store.transaction():
            distribution = self._get_distribution(distribution_id)
            distribution.approve(approver_id)
            self._distribution_repo.update(distribution, DistributionStatus.PENDING)
        logger.info(
            "distribution_approved",
            distribution_id=str(distribution.id),
            approved_by=str(approver_id) if approver_id else None,
        )
        return distribution

    def process_distribution(self, distribution_id: UUID) -> list[Transaction]:
        """Pay out an approved distribution.

        Posts one settled distribution transaction per pending allocation,
        dated on the payment date, and completes the distribution. Either
        every allocation is paid or nothing is.

        Raises:
            StateConflictError: If the distribution is not approved
        """
        with LogContext(distribution_id=str(distribution_id)), self._store.transaction():
            logger.info("processing_distribution")
            distribution = self._get_distribution(distribution_id)
            distribution.start_processing()
            self._distribution_repo.update(distribution, DistributionStatus.APPROVED)

            transactions = []
            for allocation in self._distribution_repo.get_allocations(distribution.id):
                if allocation.status != AllocationStatus.PENDING:
                    continue
                txn = self._ledger_service.record_transaction(
                    allocation.capital_account_id,
                    TransactionType.DISTRIBUTION,
                    amount=allocation.allocation_amount,
                    shares=ZERO,
                    transaction_date=distribution.payment_date,
                    actor_id=distribution.approved_by,
                    description=f"Distribution {distribution.distribution_number}",
                    reference_number=distribution.distribution_number,
                )
                allocation.mark_paid(txn.id)
                self._distribution_repo.update_allocation(allocation)
                transactions.append(txn)

            distribution.complete()
            self._distribution_repo.update(distribution, DistributionStatus.PROCESSING)

        logger.info(
            "distribution_processed",
            distribution_id=str(distribution.id),
            distribution_number=distribution.distribution_number,
            transactions=len(transactions),
            total_amount=str(distribution.total_amount),
        )
        return transactions

    def cancel_distribution(self, distribution_id: UUID) -> Distribution:
        with self._store.transaction():
            distribution = self._get_distribution(distribution_id)
            expected = distribution.status
            distribution.cancel()
            for allocation in self._distribution_repo.get_allocations(distribution.id):
                allocation.cancel()
                self._distribution_repo.update_allocation(allocation)
            self._distribution_repo.update(distribution, expected)
        logger.info("distribution_cancelled", distribution_id=str(distribution.id))
        return distribution

    def get_distribution(self, distribution_id: UUID) -> Distribution:
        return self._get_distribution(distribution_id)

    def get_allocations(self, distribution_id: UUID) -> list[DistributionAllocation]:
        self._get_distribution(distribution_id)
        return self._distribution_repo.get_allocations(distribution_id)

    def list_distributions(
        self, fund_id: UUID, status: DistributionStatus | None = None
    ) -> list[Distribution]:
        return list(self._distribution_repo.list_by_fund(fund_id, status))
