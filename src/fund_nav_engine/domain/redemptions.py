from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from fund_nav_engine.domain.value_objects import (
    ZERO,
    RedemptionStatus,
    RedemptionType,
    normalize_currency,
    require_non_negative,
    to_decimal,
)
from fund_nav_engine.exceptions import InvalidTransitionError, ValidationError


def _utc_now() -> datetime:
    return datetime.now(UTC)


def generate_request_number() -> str:
    """Return an 'RDM-' reference built from ten base-36 characters."""
    value = uuid4().int
    digits = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    chars = []
    for _ in range(10):
        value, remainder = divmod(value, 36)
        chars.append(digits[remainder])
    return "RDM-" + "".join(reversed(chars))


@dataclass
class RedemptionRequest:
    """An investor's request to redeem shares.

    requested -> approved | rejected; approved -> processing -> completed.
    The requested and approved figures are kept apart so a reviewer can
    grant less than was asked for.
    """

    fund_id: UUID
    capital_account_id: UUID
    redemption_type: RedemptionType
    shares_requested: Decimal
    amount_requested: Decimal
    redemption_date: date
    id: UUID = field(default_factory=uuid4)
    request_number: str = field(default_factory=generate_request_number)
    request_date: date = field(default_factory=date.today)
    status: RedemptionStatus = RedemptionStatus.REQUESTED
    currency: str = "USD"
    reason: str | None = None
    requested_by: UUID | None = None
    shares_approved: Decimal | None = None
    amount_approved: Decimal | None = None
    redemption_price: Decimal | None = None
    reviewed_by: UUID | None = None
    approved_by: UUID | None = None
    rejection_reason: str | None = None
    settlement_date: date | None = None
    settlement_amount: Decimal | None = None
    transaction_id: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.redemption_type = RedemptionType(self.redemption_type)
        self.status = RedemptionStatus(self.status)
        self.currency = normalize_currency(self.currency)
        self.shares_requested = require_non_negative(
            to_decimal(self.shares_requested, "shares_requested"), "shares_requested"
        )
        self.amount_requested = require_non_negative(
            to_decimal(self.amount_requested, "amount_requested"), "amount_requested"
        )
        for name in (
            "shares_approved",
            "amount_approved",
            "redemption_price",
            "settlement_amount",
        ):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, require_non_negative(to_decimal(value, name), name))
        if self.status == RedemptionStatus.REJECTED and not self.rejection_reason:
            raise ValidationError("A rejected redemption request needs a rejection reason")

    @property
    def is_terminal(self) -> bool:
        return self.status in (RedemptionStatus.REJECTED, RedemptionStatus.COMPLETED)

    def _require(self, allowed: RedemptionStatus, action: str) -> None:
        if self.status != allowed:
            raise InvalidTransitionError(
                "redemption request", self.id, self.status.value, action
            )

    def approve(
        self,
        shares: Decimal,
        amount: Decimal,
        price: Decimal,
        reviewer_id: UUID | None = None,
    ) -> None:
        self._require(RedemptionStatus.REQUESTED, "approve")
        if shares <= ZERO:
            raise ValidationError("Approved shares must be positive")
        self.shares_approved = require_non_negative(shares, "shares_approved")
        self.amount_approved = require_non_negative(amount, "amount_approved")
        self.redemption_price = require_non_negative(price, "redemption_price")
        self.reviewed_by = reviewer_id
        self.approved_by = reviewer_id
        self.status = RedemptionStatus.APPROVED
        self.updated_at = _utc_now()

    def reject(self, reason: str | None, reviewer_id: UUID | None = None) -> None:
        self._require(RedemptionStatus.REQUESTED, "reject")
        if reason is None or not reason.strip():
            raise ValidationError("A rejection reason is required")
        self.rejection_reason = reason.strip()
        self.reviewed_by = reviewer_id
        self.status = RedemptionStatus.REJECTED
        self.updated_at = _utc_now()

    def start_processing(self) -> None:
        self._require(RedemptionStatus.APPROVED, "process")
        self.status = RedemptionStatus.PROCESSING
        self.updated_at = _utc_now()

    def complete(self, transaction_id: UUID, settlement_date: date) -> None:
        self._require(RedemptionStatus.PROCESSING, "complete")
        self.transaction_id = transaction_id
        self.settlement_date = settlement_date
        self.settlement_amount = self.amount_approved
        self.status = RedemptionStatus.COMPLETED
        self.updated_at = _utc_now()
