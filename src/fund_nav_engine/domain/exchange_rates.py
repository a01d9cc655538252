from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from fund_nav_engine.domain.value_objects import ZERO, normalize_currency, to_decimal
from fund_nav_engine.exceptions import InvalidAmountError, ValidationError


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class ExchangeRate:
    from_currency: str
    to_currency: str
    rate: Decimal
    rate_date: date
    id: UUID = field(default_factory=uuid4)
    source: str = "manual"
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.from_currency = normalize_currency(self.from_currency)
        self.to_currency = normalize_currency(self.to_currency)
        if self.from_currency == self.to_currency:
            raise ValidationError(
                f"Exchange rate needs two different currencies, got {self.from_currency}"
            )
        self.rate = to_decimal(self.rate, "rate")
        if self.rate <= ZERO:
            raise InvalidAmountError("rate", self.rate, "must be positive")

    @property
    def inverse_rate(self) -> Decimal:
        return Decimal("1") / self.rate

    def convert(self, amount: Decimal) -> Decimal:
        return amount * self.rate
