"""Period returns and capital multiples (DPI, RVPI, TVPI, MOIC)."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.domain.capital import Transaction
from fund_nav_engine.domain.performance import PerformanceMetric, period_bounds
from fund_nav_engine.domain.value_objects import (
    ZERO,
    PeriodType,
    TransactionStatus,
    TransactionType,
    quantize,
    round_money,
)
from fund_nav_engine.exceptions import (
    CapitalAccountNotFoundError,
    FundNotFoundError,
    ValidationError,
)
from fund_nav_engine.logging_config import get_logger
from fund_nav_engine.repositories.interfaces import (
    CapitalAccountRepository,
    FundRepository,
    NAVCalculationRepository,
    PerformanceMetricRepository,
    TransactionRepository,
)
from fund_nav_engine.services.interfaces import PerformanceService

logger = get_logger(__name__)

HUNDRED = Decimal("100")
ONE = Decimal("1")


@dataclass(frozen=True)
class CashFlows:
    contributions: Decimal = ZERO
    distributions: Decimal = ZERO

    @classmethod
    def from_transactions(cls, transactions: Iterable[Transaction]) -> "CashFlows":
        contributions = ZERO
        distributions = ZERO
        for txn in transactions:
            if txn.status != TransactionStatus.SETTLED:
                continue
            if txn.is_contribution:
                contributions += txn.amount
            elif txn.is_distribution:
                distributions += txn.amount
        return cls(contributions, distributions)


def multiples(
    lifetime_contributions: Decimal,
    lifetime_distributions: Decimal,
    ending_value: Decimal,
) -> tuple[Decimal, Decimal, Decimal, Decimal]:
    """Return (dpi, rvpi, tvpi, moic) against paid-in capital.

    With no contributions the divisor is 1. MOIC is reported equal to TVPI.
    """
    paid_in = lifetime_contributions if lifetime_contributions != ZERO else ONE
    dpi = lifetime_distributions / paid_in
    rvpi = ending_value / paid_in
    tvpi = dpi + rvpi
    return dpi, rvpi, tvpi, tvpi


def period_return(
    beginning_value: Decimal,
    ending_value: Decimal,
    contributions: Decimal,
    distributions: Decimal,
) -> tuple[Decimal, Decimal]:
    amount = ending_value + distributions - beginning_value - contributions
    if beginning_value == ZERO:
        return amount, ZERO
    return amount, amount / beginning_value * HUNDRED


class PerformanceServiceImpl(PerformanceService):
    def __init__(
        self,
        fund_repo: FundRepository,
        nav_repo: NAVCalculationRepository,
        transaction_repo: TransactionRepository,
        capital_account_repo: CapitalAccountRepository,
        metric_repo: PerformanceMetricRepository,
        money_places: int = 2,
        ratio_places: int = 4,
    ) -> None:
        self._fund_repo = fund_repo
        self._nav_repo = nav_repo
        self._transaction_repo = transaction_repo
        self._capital_account_repo = capital_account_repo
        self._metric_repo = metric_repo
        self._money_places = money_places
        self._ratio_places = ratio_places

    def _fund_value(
        self, fund_id: UUID, share_class_id: UUID | None, as_of: date
    ) -> tuple[Decimal, UUID | None]:
        nav = self._nav_repo.get_latest_approved(
            fund_id, share_class_id, on_or_before=as_of
        )
        if nav is None:
            return ZERO, None
        return nav.net_asset_value, nav.id

    def _account_value(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        transactions: list[Transaction],
        as_of: date,
    ) -> tuple[Decimal, UUID | None]:
        nav = self._nav_repo.get_latest_approved(
            fund_id, share_class_id, on_or_before=as_of
        )
        if nav is None:
            return ZERO, None
        shares = sum(
            (
                txn.signed_shares
                for txn in transactions
                if txn.transaction_date <= as_of
                and txn.status == TransactionStatus.SETTLED
            ),
            ZERO,
        )
        return shares * nav.nav_per_share, nav.id

    def calculate_performance(
        self,
        fund_id: UUID,
        period_type: PeriodType,
        as_of_date: date,
        share_class_id: UUID | None = None,
        capital_account_id: UUID | None = None,
    ) -> PerformanceMetric:
        """Compute and store one performance run for a fund or an account.

        Beginning and ending values come from the latest approved NAV at or
        before each period bound. Flows are in-period; the multiples use
        lifetime flows up to the period end. Calendar periods report the last
        one closed before as_of_date and are stamped with its end date.
        Every run appends a new row.
        """
        period_type = PeriodType(period_type)
        fund = self._fund_repo.get(fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        bounds = period_bounds(period_type, as_of_date, fund.inception_date)

        if capital_account_id is not None:
            account = self._capital_account_repo.get(capital_account_id)
            if account is None:
                raise CapitalAccountNotFoundError(capital_account_id)
            if account.fund_id != fund.id:
                raise ValidationError(
                    f"Capital account {capital_account_id} does not belong to fund {fund_id}"
                )
            if share_class_id is None:
                share_class_id = account.share_class_id
            history = list(
                self._transaction_repo.list_by_account(account.id, end_date=bounds.end)
            )
            beginning, beginning_nav_id = self._account_value(
                fund.id, share_class_id, history, bounds.start
            )
            ending, ending_nav_id = self._account_value(
                fund.id, share_class_id, history, bounds.end
            )
        else:
            history = list(
                self._transaction_repo.list_by_fund(
                    fund.id,
                    share_class_id=share_class_id,
                    end_date=bounds.end,
                    transaction_types=(
                        TransactionType.SUBSCRIPTION,
                        TransactionType.REDEMPTION,
                        TransactionType.DISTRIBUTION,
                    ),
                )
            )
            beginning, beginning_nav_id = self._fund_value(
                fund.id, share_class_id, bounds.start
            )
            ending, ending_nav_id = self._fund_value(fund.id, share_class_id, bounds.end)

        in_period = CashFlows.from_transactions(
            txn for txn in history if bounds.contains(txn.transaction_date)
        )
        lifetime = CashFlows.from_transactions(history)

        return_amount, return_percent = period_return(
            beginning, ending, in_period.contributions, in_period.distributions
        )
        dpi, rvpi, tvpi, moic = multiples(
            lifetime.contributions, lifetime.distributions, ending
        )

        metric = PerformanceMetric(
            fund_id=fund.id,
            share_class_id=share_class_id,
            capital_account_id=capital_account_id,
            period_type=period_type,
            period_start=bounds.start,
            metric_date=bounds.end,
            beginning_nav=round_money(beginning, self._money_places),
            ending_nav=round_money(ending, self._money_places),
            net_contributions=round_money(in_period.contributions, self._money_places),
            net_distributions=round_money(in_period.distributions, self._money_places),
            total_return_amount=round_money(return_amount, self._money_places),
            total_return_percent=quantize(return_percent, self._ratio_places),
            dpi=quantize(dpi, self._ratio_places),
            rvpi=quantize(rvpi, self._ratio_places),
            tvpi=quantize(tvpi, self._ratio_places),
            moic=quantize(moic, self._ratio_places),
            calculation_notes={
                "period_start": bounds.start.isoformat(),
                "period_end": bounds.end.isoformat(),
                "beginning_nav_id": str(beginning_nav_id) if beginning_nav_id else None,
                "ending_nav_id": str(ending_nav_id) if ending_nav_id else None,
                "lifetime_contributions": str(lifetime.contributions),
                "lifetime_distributions": str(lifetime.distributions),
                "transaction_count": len(history),
            },
        )
        self._metric_repo.add(metric)
        logger.info(
            "performance_calculated",
            metric_id=str(metric.id),
            fund_id=str(fund.id),
            capital_account_id=str(capital_account_id) if capital_account_id else None,
            period_type=period_type.value,
            metric_date=bounds.end.isoformat(),
            tvpi=str(metric.tvpi),
        )
        return metric

    def list_metrics(
        self, fund_id: UUID, period_type: PeriodType | None = None
    ) -> list[PerformanceMetric]:
        return list(self._metric_repo.list_by_fund(fund_id, period_type))

    def get_latest_metric(
        self, fund_id: UUID, period_type: PeriodType | None = None
    ) -> PerformanceMetric | None:
        metrics = self.list_metrics(fund_id, period_type)
        return metrics[0] if metrics else None
