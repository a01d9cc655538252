from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from fund_nav_engine.domain.value_objects import (
    ZERO,
    LineItemKind,
    LineItemSource,
    NAVStatus,
    normalize_currency,
    quantize,
    to_decimal,
)
from fund_nav_engine.exceptions import (
    InvalidAmountError,
    InvalidTransitionError,
    ValidationError,
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class NAVLineItem:
    kind: LineItemKind
    category: str
    description: str
    quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    amount: Decimal | None = None
    currency: str = "USD"
    fx_rate: Decimal | None = None
    id: UUID = field(default_factory=uuid4)
    nav_calculation_id: UUID | None = None
    source: LineItemSource = LineItemSource.MANUAL
    sort_order: int = 0

    def __post_init__(self) -> None:
        self.kind = LineItemKind(self.kind)
        self.source = LineItemSource(self.source)
        self.category = self.category.strip()
        if not self.category:
            raise ValidationError("Line item category is required")
        self.currency = normalize_currency(self.currency)
        self.quantity = to_decimal(self.quantity, "quantity")
        self.unit_price = to_decimal(self.unit_price, "unit_price")
        if self.amount is None:
            self.amount = self.quantity * self.unit_price
        else:
            self.amount = to_decimal(self.amount, "amount")
        if self.fx_rate is not None:
            self.fx_rate = to_decimal(self.fx_rate, "fx_rate")
            if self.fx_rate <= ZERO:
                raise InvalidAmountError("fx_rate", self.fx_rate, "must be positive")

    @property
    def effective_fx_rate(self) -> Decimal:
        return self.fx_rate if self.fx_rate is not None else Decimal("1")

    @property
    def base_currency_amount(self) -> Decimal:
        return self.amount * self.effective_fx_rate


@dataclass
class NAVCalculation:
    """A versioned valuation of a fund, or one of its share classes, on a date.

    Rows are never edited after approval; corrections are new versions. The
    status moves draft -> pending_approval -> approved -> superseded, with
    rejected reachable from draft or pending_approval.
    """

    fund_id: UUID
    valuation_date: date
    total_assets: Decimal
    total_liabilities: Decimal
    total_shares_outstanding: Decimal
    created_by: UUID
    id: UUID = field(default_factory=uuid4)
    share_class_id: UUID | None = None
    version: int = 1
    status: NAVStatus = NAVStatus.DRAFT
    net_asset_value: Decimal = field(init=False)
    nav_per_share: Decimal = field(init=False)
    price_precision: int = 4
    management_fee_accrued: Decimal = ZERO
    performance_fee_accrued: Decimal = ZERO
    notes: str | None = None
    rejection_note: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    calculation_data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.status = NAVStatus(self.status)
        self.total_assets = to_decimal(self.total_assets, "total_assets")
        self.total_liabilities = to_decimal(self.total_liabilities, "total_liabilities")
        self.total_shares_outstanding = to_decimal(
            self.total_shares_outstanding, "total_shares_outstanding"
        )
        if self.total_shares_outstanding < ZERO:
            raise InvalidAmountError(
                "total_shares",
                self.total_shares_outstanding,
                "shares outstanding must not be negative",
            )
        if self.version < 1:
            raise ValidationError(f"NAV version must be positive, got {self.version}")
        self.net_asset_value = self.total_assets - self.total_liabilities
        if self.total_shares_outstanding > ZERO:
            self.nav_per_share = quantize(
                self.net_asset_value / self.total_shares_outstanding,
                self.price_precision,
            )
        else:
            self.nav_per_share = quantize(ZERO, self.price_precision)

    @property
    def key(self) -> tuple[UUID, UUID | None, date]:
        return (self.fund_id, self.share_class_id, self.valuation_date)

    @property
    def total_fees(self) -> Decimal:
        return self.management_fee_accrued + self.performance_fee_accrued

    @property
    def is_approved(self) -> bool:
        return self.status == NAVStatus.APPROVED

    def _require(self, allowed: set[NAVStatus], action: str) -> None:
        if self.status not in allowed:
            raise InvalidTransitionError(
                "NAV calculation", self.id, self.status.value, action
            )

    def submit(self) -> None:
        self._require({NAVStatus.DRAFT}, "submit")
        self.status = NAVStatus.PENDING_APPROVAL

    def approve(self, approver_id: UUID, at: datetime | None = None) -> None:
        self._require({NAVStatus.PENDING_APPROVAL}, "approve")
        self.status = NAVStatus.APPROVED
        self.approved_by = approver_id
        self.approved_at = at or _utc_now()

    def reject(self, note: str | None = None) -> None:
        self._require({NAVStatus.DRAFT, NAVStatus.PENDING_APPROVAL}, "reject")
        self.status = NAVStatus.REJECTED
        self.rejection_note = note.strip() if note and note.strip() else None

    def supersede(self) -> None:
        self._require({NAVStatus.APPROVED}, "supersede")
        self.status = NAVStatus.SUPERSEDED
