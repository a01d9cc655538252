from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from fund_nav_engine.domain.value_objects import (
    ZERO,
    AllocationStatus,
    DistributionStatus,
    DistributionType,
    normalize_currency,
    require_non_negative,
    to_decimal,
)
from fund_nav_engine.exceptions import InvalidTransitionError, ValidationError


def _utc_now() -> datetime:
    return datetime.now(UTC)


def generate_distribution_number() -> str:
    """Return a 'DIST-' reference with eight digits."""
    return f"DIST-{uuid4().int % 100_000_000:08d}"


@dataclass
class Distribution:
    """A per-share payout declared for a fund or one of its share classes.

    pending -> approved -> processing -> completed. Pending and approved
    distributions can be cancelled.
    """

    fund_id: UUID
    amount_per_share: Decimal
    record_date: date
    payment_date: date
    id: UUID = field(default_factory=uuid4)
    share_class_id: UUID | None = None
    distribution_number: str = field(default_factory=generate_distribution_number)
    distribution_type: DistributionType = DistributionType.DIVIDEND
    total_shares: Decimal = ZERO
    total_amount: Decimal = ZERO
    currency: str = "USD"
    status: DistributionStatus = DistributionStatus.PENDING
    description: str | None = None
    notes: str | None = None
    created_by: UUID | None = None
    approved_by: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.distribution_type = DistributionType(self.distribution_type)
        self.status = DistributionStatus(self.status)
        self.currency = normalize_currency(self.currency)
        self.amount_per_share = to_decimal(self.amount_per_share, "amount_per_share")
        if self.amount_per_share <= ZERO:
            raise ValidationError("Amount per share must be positive")
        self.total_shares = require_non_negative(
            to_decimal(self.total_shares, "total_shares"), "total_shares"
        )
        self.total_amount = require_non_negative(
            to_decimal(self.total_amount, "total_amount"), "total_amount"
        )
        if self.payment_date < self.record_date:
            raise ValidationError(
                f"Payment date {self.payment_date} is before record date {self.record_date}"
            )

    def _require(self, allowed: tuple[DistributionStatus, ...], action: str) -> None:
        if self.status not in allowed:
            raise InvalidTransitionError(
                "distribution", self.id, self.status.value, action
            )

    def approve(self, approver_id: UUID | None = None) -> None:
        self._require((DistributionStatus.PENDING,), "approve")
        self.approved_by = approver_id
        self.status = DistributionStatus.APPROVED
        self.updated_at = _utc_now()

    def start_processing(self) -> None:
        self._require((DistributionStatus.APPROVED,), "process")
        self.status = DistributionStatus.PROCESSING
        self.updated_at = _utc_now()

    def complete(self) -> None:
        self._require((DistributionStatus.PROCESSING,), "complete")
        self.status = DistributionStatus.COMPLETED
        self.updated_at = _utc_now()

    def cancel(self) -> None:
        self._require(
            (DistributionStatus.PENDING, DistributionStatus.APPROVED), "cancel"
        )
        self.status = DistributionStatus.CANCELLED
        self.updated_at = _utc_now()


@dataclass
class DistributionAllocation:
    """One capital account's share of a distribution, fixed at creation."""

    distribution_id: UUID
    capital_account_id: UUID
    shares_held: Decimal
    allocation_amount: Decimal
    id: UUID = field(default_factory=uuid4)
    status: AllocationStatus = AllocationStatus.PENDING
    transaction_id: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.status = AllocationStatus(self.status)
        self.shares_held = require_non_negative(
            to_decimal(self.shares_held, "shares_held"), "shares_held"
        )
        self.allocation_amount = require_non_negative(
            to_decimal(self.allocation_amount, "allocation_amount"),
            "allocation_amount",
        )

    def mark_paid(self, transaction_id: UUID) -> None:
        if self.status != AllocationStatus.PENDING:
            raise InvalidTransitionError(
                "distribution allocation", self.id, self.status.value, "pay"
            )
        self.transaction_id = transaction_id
        self.status = AllocationStatus.PAID

    def cancel(self) -> None:
        if self.status == AllocationStatus.PENDING:
            self.status = AllocationStatus.CANCELLED
