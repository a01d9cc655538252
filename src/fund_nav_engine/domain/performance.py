from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from dateutil.relativedelta import relativedelta

from fund_nav_engine.domain.value_objects import ZERO, PeriodType
from fund_nav_engine.exceptions import ValidationError


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class PeriodBounds:
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"Period start {self.start} is after period end {self.end}"
            )

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def period_bounds(
    period_type: PeriodType, as_of_date: date, inception_date: date | None = None
) -> PeriodBounds:
    """Derive the reporting window for a performance run.

    Monthly, quarterly and yearly runs cover the last calendar period that
    closed before as_of_date; a run on 2024-03-15 reports February, Q4 2023
    or calendar 2023. Inception-to-date runs from the inception date up to
    as_of_date itself.

    Raises:
        ValidationError: If an inception-to-date run has no inception date
    """
    period_type = PeriodType(period_type)
    month_start = as_of_date.replace(day=1)
    if period_type == PeriodType.MONTHLY:
        end = month_start - relativedelta(days=1)
        start = end.replace(day=1)
    elif period_type == PeriodType.QUARTERLY:
        quarter_start = month_start - relativedelta(
            months=(as_of_date.month - 1) % 3
        )
        end = quarter_start - relativedelta(days=1)
        start = quarter_start - relativedelta(months=3)
    elif period_type == PeriodType.YEARLY:
        start = date(as_of_date.year - 1, 1, 1)
        end = date(as_of_date.year - 1, 12, 31)
    else:
        if inception_date is None:
            raise ValidationError("Inception-to-date periods need an inception date")
        start = min(inception_date, as_of_date)
        end = as_of_date
    return PeriodBounds(start=start, end=end)


@dataclass
class PerformanceMetric:
    """One performance calculation run.

    Rows form an append-only log; re-running a period adds a new row.
    """

    fund_id: UUID
    period_type: PeriodType
    metric_date: date
    period_start: date
    id: UUID = field(default_factory=uuid4)
    share_class_id: UUID | None = None
    capital_account_id: UUID | None = None
    beginning_nav: Decimal = ZERO
    ending_nav: Decimal = ZERO
    net_contributions: Decimal = ZERO
    net_distributions: Decimal = ZERO
    total_return_amount: Decimal = ZERO
    total_return_percent: Decimal = ZERO
    dpi: Decimal = ZERO
    rvpi: Decimal = ZERO
    tvpi: Decimal = ZERO
    moic: Decimal = ZERO
    calculation_notes: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.period_type = PeriodType(self.period_type)
