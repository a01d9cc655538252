from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from fund_nav_engine.domain.value_objects import (
    ZERO,
    AccrualFrequency,
    FeeStructureStatus,
    FeeType,
    FundStatus,
    ShareClassStatus,
    normalize_currency,
    require_non_negative,
    require_rate,
    to_decimal,
)
from fund_nav_engine.exceptions import ValidationError


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Fund:
    code: str
    name: str
    id: UUID = field(default_factory=uuid4)
    base_currency: str = "USD"
    status: FundStatus = FundStatus.ACTIVE
    inception_date: date = field(default_factory=date.today)
    fund_type: str = "hedge"
    nav_frequency: str = "monthly"
    total_commitments: Decimal = ZERO
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.code = self.code.strip()
        self.name = self.name.strip()
        if not self.code:
            raise ValidationError("Fund code is required")
        if not self.name:
            raise ValidationError("Fund name is required")
        self.base_currency = normalize_currency(self.base_currency)
        self.status = FundStatus(self.status)
        self.total_commitments = require_non_negative(
            to_decimal(self.total_commitments, "total_commitments"),
            "total_commitments",
        )

    @property
    def is_active(self) -> bool:
        return self.status == FundStatus.ACTIVE

    def close(self) -> None:
        self.status = FundStatus.CLOSED
        self.updated_at = _utc_now()


@dataclass
class ShareClass:
    fund_id: UUID
    class_code: str
    class_name: str
    id: UUID = field(default_factory=uuid4)
    currency: str = "USD"
    management_fee_rate: Decimal = ZERO
    performance_fee_rate: Decimal = ZERO
    hurdle_rate: Decimal = ZERO
    high_water_mark: bool = True
    price_precision: int = 4
    minimum_investment: Decimal = ZERO
    status: ShareClassStatus = ShareClassStatus.ACTIVE
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.class_code = self.class_code.strip()
        if not self.class_code:
            raise ValidationError("Share class code is required")
        self.currency = normalize_currency(self.currency)
        self.management_fee_rate = require_rate(
            to_decimal(self.management_fee_rate, "management_fee_rate"),
            "management_fee_rate",
        )
        self.performance_fee_rate = require_rate(
            to_decimal(self.performance_fee_rate, "performance_fee_rate"),
            "performance_fee_rate",
        )
        self.hurdle_rate = require_rate(
            to_decimal(self.hurdle_rate, "hurdle_rate"), "hurdle_rate"
        )
        if not 0 <= self.price_precision <= 10:
            raise ValidationError(
                f"Price precision must be between 0 and 10, got {self.price_precision}"
            )
        self.minimum_investment = require_non_negative(
            to_decimal(self.minimum_investment, "minimum_investment"),
            "minimum_investment",
        )
        self.status = ShareClassStatus(self.status)


@dataclass
class FeeStructure:
    fund_id: UUID
    fee_type: FeeType
    rate: Decimal
    effective_from: date
    id: UUID = field(default_factory=uuid4)
    share_class_id: UUID | None = None
    frequency: AccrualFrequency | str = AccrualFrequency.MONTHLY
    hurdle_rate: Decimal = ZERO
    effective_to: date | None = None
    status: FeeStructureStatus = FeeStructureStatus.ACTIVE
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.fee_type = FeeType(self.fee_type)
        self.rate = require_rate(to_decimal(self.rate, "rate"), "rate")
        self.hurdle_rate = require_rate(
            to_decimal(self.hurdle_rate, "hurdle_rate"), "hurdle_rate"
        )
        # Unrecognized frequencies are kept as text and accrue monthly.
        try:
            self.frequency = AccrualFrequency(self.frequency)
        except ValueError:
            self.frequency = str(self.frequency)
        self.status = FeeStructureStatus(self.status)
        if self.effective_to is not None and self.effective_to < self.effective_from:
            raise ValidationError(
                f"Fee structure effective_to {self.effective_to} is before "
                f"effective_from {self.effective_from}"
            )

    def is_active_on(self, as_of: date) -> bool:
        if self.status != FeeStructureStatus.ACTIVE:
            return False
        if self.effective_from > as_of:
            return False
        return self.effective_to is None or self.effective_to >= as_of
