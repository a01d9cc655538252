from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass
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
    ZERO,
    DistributionStatus,
    DistributionType,
    PeriodType,
    RedemptionStatus,
    RedemptionType,
    ReviewDecision,
    TransactionType,
)


@dataclass(frozen=True)
class FeeAccrual:
    management_fee: Decimal = ZERO
    performance_fee: Decimal = ZERO

    @property
    def total_fees(self) -> Decimal:
        return self.management_fee + self.performance_fee

    def as_dict(self) -> dict[str, str]:
        return {
            "management_fee": str(self.management_fee),
            "performance_fee": str(self.performance_fee),
            "total_fees": str(self.total_fees),
        }


class FeeCalculator(ABC):
    @abstractmethod
    def compute(
        self,
        structures: Iterable[FeeStructure],
        current_nav: Decimal,
        previous_nav: Decimal,
        high_water_mark: Decimal | None = None,
    ) -> FeeAccrual:
        pass

    @abstractmethod
    def calculate(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        as_of: date,
        current_nav: Decimal,
        previous_nav: Decimal,
        high_water_mark: Decimal | None = None,
    ) -> FeeAccrual:
        pass


class CurrencyService(ABC):
    @abstractmethod
    def add_rate(self, rate: ExchangeRate) -> None:
        pass

    @abstractmethod
    def get_rate(
        self, from_currency: str, to_currency: str, as_of: date
    ) -> Decimal | None:
        pass


class FundService(ABC):
    @abstractmethod
    def create_fund(
        self,
        code: str,
        name: str,
        base_currency: str = "USD",
        inception_date: date | None = None,
        fund_type: str = "hedge",
        nav_frequency: str = "monthly",
        total_commitments: Decimal = ZERO,
    ) -> Fund:
        pass

    @abstractmethod
    def get_fund(self, fund_id: UUID) -> Fund:
        pass

    @abstractmethod
    def list_funds(self) -> list[Fund]:
        pass

    @abstractmethod
    def close_fund(self, fund_id: UUID) -> Fund:
        pass

    @abstractmethod
    def add_share_class(
        self,
        fund_id: UUID,
        class_code: str,
        class_name: str,
        currency: str | None = None,
        management_fee_rate: Decimal = ZERO,
        performance_fee_rate: Decimal = ZERO,
        hurdle_rate: Decimal = ZERO,
        high_water_mark: bool = True,
        price_precision: int | None = None,
        minimum_investment: Decimal = ZERO,
    ) -> ShareClass:
        pass

    @abstractmethod
    def get_share_class(self, share_class_id: UUID) -> ShareClass:
        pass

    @abstractmethod
    def list_share_classes(self, fund_id: UUID) -> list[ShareClass]:
        pass

    @abstractmethod
    def add_fee_structure(
        self,
        fund_id: UUID,
        fee_type: str,
        rate: Decimal,
        effective_from: date,
        share_class_id: UUID | None = None,
        frequency: str = "monthly",
        hurdle_rate: Decimal = ZERO,
        effective_to: date | None = None,
    ) -> FeeStructure:
        pass

    @abstractmethod
    def list_fee_structures(
        self, fund_id: UUID, share_class_id: UUID | None = None
    ) -> list[FeeStructure]:
        pass

    @abstractmethod
    def open_capital_account(
        self,
        fund_id: UUID,
        investor_id: UUID,
        account_number: str,
        share_class_id: UUID | None = None,
        commitment_amount: Decimal = ZERO,
        inception_date: date | None = None,
    ) -> CapitalAccount:
        pass

    @abstractmethod
    def list_capital_accounts(self, fund_id: UUID) -> list[CapitalAccount]:
        pass


class NAVService(ABC):
    @abstractmethod
    def calculate_nav(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        valuation_date: date,
        line_items: list[NAVLineItem],
        total_shares: Decimal,
        actor_id: UUID,
        notes: str | None = None,
    ) -> NAVCalculation:
        pass

    @abstractmethod
    def submit_nav(self, calculation_id: UUID, actor_id: UUID | None = None) -> NAVCalculation:
        pass

    @abstractmethod
    def approve_nav(self, calculation_id: UUID, approver_id: UUID) -> NAVCalculation:
        pass

    @abstractmethod
    def reject_nav(
        self, calculation_id: UUID, actor_id: UUID | None = None, note: str | None = None
    ) -> NAVCalculation:
        pass

    @abstractmethod
    def get_nav(self, calculation_id: UUID) -> NAVCalculation:
        pass

    @abstractmethod
    def get_line_items(self, calculation_id: UUID) -> list[NAVLineItem]:
        pass

    @abstractmethod
    def get_latest_nav(
        self, fund_id: UUID, share_class_id: UUID | None = None
    ) -> NAVCalculation | None:
        pass

    @abstractmethod
    def get_nav_history(
        self,
        fund_id: UUID,
        share_class_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[NAVCalculation]:
        pass

    @abstractmethod
    def list_for_review(self, fund_id: UUID) -> list[NAVCalculation]:
        pass


class CapitalLedgerService(ABC):
    @abstractmethod
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
        pass

    @abstractmethod
    def get_account(self, account_id: UUID) -> CapitalAccount:
        pass

    @abstractmethod
    def get_transaction(self, txn_id: UUID) -> Transaction:
        pass

    @abstractmethod
    def list_transactions(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Transaction]:
        pass


class RedemptionService(ABC):
    @abstractmethod
    def create_redemption_request(
        self,
        account_id: UUID,
        redemption_type: RedemptionType,
        redemption_date: date,
        shares: Decimal | None = None,
        amount: Decimal | None = None,
        reason: str | None = None,
        requested_by: UUID | None = None,
    ) -> RedemptionRequest:
        pass

    @abstractmethod
    def review_redemption(
        self,
        request_id: UUID,
        decision: ReviewDecision,
        reviewer_id: UUID | None = None,
        shares_approved: Decimal | None = None,
        amount_approved: Decimal | None = None,
        price: Decimal | None = None,
        rejection_reason: str | None = None,
    ) -> RedemptionRequest:
        pass

    @abstractmethod
    def process_redemption(
        self, request_id: UUID, settlement_date: date | None = None
    ) -> Transaction:
        pass

    @abstractmethod
    def get_request(self, request_id: UUID) -> RedemptionRequest:
        pass

    @abstractmethod
    def list_requests(
        self, fund_id: UUID, status: RedemptionStatus | None = None
    ) -> list[RedemptionRequest]:
        pass


class DistributionService(ABC):
    @abstractmethod
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
        pass

    @abstractmethod
    def approve_distribution(
        self, distribution_id: UUID, approver_id: UUID | None = None
    ) -> Distribution:
        pass

    @abstractmethod
    def process_distribution(self, distribution_id: UUID) -> list[Transaction]:
        pass

    @abstractmethod
    def cancel_distribution(self, distribution_id: UUID) -> Distribution:
        pass

    @abstractmethod
    def get_distribution(self, distribution_id: UUID) -> Distribution:
        pass

    @abstractmethod
    def get_allocations(self, distribution_id: UUID) -> list[DistributionAllocation]:
        pass

    @abstractmethod
    def list_distributions(
        self, fund_id: UUID, status: DistributionStatus | None = None
    ) -> list[Distribution]:
        pass


class PerformanceService(ABC):
    @abstractmethod
    def calculate_performance(
        self,
        fund_id: UUID,
        period_type: PeriodType,
        as_of_date: date,
        share_class_id: UUID | None = None,
        capital_account_id: UUID | None = None,
    ) -> PerformanceMetric:
        pass

    @abstractmethod
    def list_metrics(
        self, fund_id: UUID, period_type: PeriodType | None = None
    ) -> list[PerformanceMetric]:
        pass

    @abstractmethod
    def get_latest_metric(
        self, fund_id: UUID, period_type: PeriodType | None = None
    ) -> PerformanceMetric | None:
        pass
