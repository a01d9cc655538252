from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.domain.capital import CapitalAccount, Transaction
from fund_nav_engine.domain.distributions import Distribution, DistributionAllocation
from fund_nav_engine.domain.exchange_rates import ExchangeRate
from fund_nav_engine.domain.funds import FeeStructure, Fund, ShareClass
from fund_nav_engine.domain.nav import NAVCalculation, NAVLineItem
from fund_nav_engine.domain.performance import PerformanceMetric
from fund_nav_engine.domain.redemptions import RedemptionRequest
from fund_nav_engine.domain.value_objects import (
    DistributionStatus,
    NAVStatus,
    PeriodType,
    RedemptionStatus,
    TransactionType,
)


class TransactionalStore(ABC):
    """A backing store able to run several writes as one atomic unit."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[object]:
        """Open an atomic unit; commit on normal exit, roll back on error.

        Units nest: an inner unit joins the outer one.
        """


class FundRepository(ABC):
    @abstractmethod
    def add(self, fund: Fund) -> None:
        pass

    @abstractmethod
    def get(self, fund_id: UUID) -> Fund | None:
        pass

    @abstractmethod
    def get_by_code(self, code: str) -> Fund | None:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[Fund]:
        pass

    @abstractmethod
    def update(self, fund: Fund) -> None:
        pass


class ShareClassRepository(ABC):
    @abstractmethod
    def add(self, share_class: ShareClass) -> None:
        pass

    @abstractmethod
    def get(self, share_class_id: UUID) -> ShareClass | None:
        pass

    @abstractmethod
    def list_by_fund(self, fund_id: UUID) -> Iterable[ShareClass]:
        pass


class FeeStructureRepository(ABC):
    @abstractmethod
    def add(self, fee_structure: FeeStructure) -> None:
        pass

    @abstractmethod
    def get(self, fee_structure_id: UUID) -> FeeStructure | None:
        pass

    @abstractmethod
    def list_by_key(
        self, fund_id: UUID, share_class_id: UUID | None
    ) -> Iterable[FeeStructure]:
        pass

    @abstractmethod
    def list_active(
        self, fund_id: UUID, share_class_id: UUID | None, as_of: date
    ) -> Iterable[FeeStructure]:
        pass


class NAVCalculationRepository(ABC):
    @abstractmethod
    def add(self, calculation: NAVCalculation, line_items: list[NAVLineItem]) -> None:
        pass

    @abstractmethod
    def get(self, calculation_id: UUID) -> NAVCalculation | None:
        pass

    @abstractmethod
    def get_line_items(self, calculation_id: UUID) -> list[NAVLineItem]:
        pass

    @abstractmethod
    def max_version(
        self, fund_id: UUID, share_class_id: UUID | None, valuation_date: date
    ) -> int:
        pass

    @abstractmethod
    def update_status(
        self, calculation: NAVCalculation, expected_status: NAVStatus
    ) -> None:
        """Persist a status change only if the stored status still matches."""

    @abstractmethod
    def supersede_approved(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        valuation_date: date,
        exclude_id: UUID,
    ) -> list[UUID]:
        pass

    @abstractmethod
    def list_by_key(
        self, fund_id: UUID, share_class_id: UUID | None, valuation_date: date
    ) -> Iterable[NAVCalculation]:
        pass

    @abstractmethod
    def get_latest_approved(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        on_or_before: date | None = None,
        strictly_before: date | None = None,
    ) -> NAVCalculation | None:
        pass

    @abstractmethod
    def list_approved(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Iterable[NAVCalculation]:
        pass

    @abstractmethod
    def list_for_review(self, fund_id: UUID) -> Iterable[NAVCalculation]:
        pass

    @abstractmethod
    def peak_approved_nav(
        self, fund_id: UUID, share_class_id: UUID | None, before: date
    ) -> Decimal | None:
        pass


class CapitalAccountRepository(ABC):
    @abstractmethod
    def add(self, account: CapitalAccount) -> None:
        pass

    @abstractmethod
    def get(self, account_id: UUID) -> CapitalAccount | None:
        pass

    @abstractmethod
    def get_by_account_number(self, account_number: str) -> CapitalAccount | None:
        pass

    @abstractmethod
    def list_by_fund(self, fund_id: UUID) -> Iterable[CapitalAccount]:
        pass

    @abstractmethod
    def update(self, account: CapitalAccount, expected_version: int) -> None:
        """Write balances only if the stored version still equals expected_version."""


class TransactionRepository(ABC):
    @abstractmethod
    def add(self, txn: Transaction) -> None:
        pass

    @abstractmethod
    def get(self, txn_id: UUID) -> Transaction | None:
        pass

    @abstractmethod
    def list_by_account(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Iterable[Transaction]:
        pass

    @abstractmethod
    def list_by_fund(
        self,
        fund_id: UUID,
        share_class_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        transaction_types: Iterable[TransactionType] | None = None,
    ) -> Iterable[Transaction]:
        pass


class RedemptionRequestRepository(ABC):
    @abstractmethod
    def add(self, request: RedemptionRequest) -> None:
        pass

    @abstractmethod
    def get(self, request_id: UUID) -> RedemptionRequest | None:
        pass

    @abstractmethod
    def update(
        self, request: RedemptionRequest, expected_status: RedemptionStatus
    ) -> None:
        pass

    @abstractmethod
    def list_by_fund(
        self, fund_id: UUID, status: RedemptionStatus | None = None
    ) -> Iterable[RedemptionRequest]:
        pass

    @abstractmethod
    def list_by_account(self, account_id: UUID) -> Iterable[RedemptionRequest]:
        pass


class DistributionRepository(ABC):
    @abstractmethod
    def add(
        self, distribution: Distribution, allocations: list[DistributionAllocation]
    ) -> None:
        pass

    @abstractmethod
    def get(self, distribution_id: UUID) -> Distribution | None:
        pass

    @abstractmethod
    def get_allocations(self, distribution_id: UUID) -> list[DistributionAllocation]:
        pass

    @abstractmethod
    def update(
        self, distribution: Distribution, expected_status: DistributionStatus
    ) -> None:
        pass

    @abstractmethod
    def update_allocation(self, allocation: DistributionAllocation) -> None:
        pass

    @abstractmethod
    def list_by_fund(
        self, fund_id: UUID, status: DistributionStatus | None = None
    ) -> Iterable[Distribution]:
        pass


class PerformanceMetricRepository(ABC):
    @abstractmethod
    def add(self, metric: PerformanceMetric) -> None:
        pass

    @abstractmethod
    def list_by_fund(
        self, fund_id: UUID, period_type: PeriodType | None = None
    ) -> Iterable[PerformanceMetric]:
        pass


class ExchangeRateRepository(ABC):
    @abstractmethod
    def add(self, rate: ExchangeRate) -> None:
        pass

    @abstractmethod
    def get_latest_rate(
        self, from_currency: str, to_currency: str, as_of: date
    ) -> ExchangeRate | None:
        pass
