from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from fund_nav_engine.domain.value_objects import (
    ZERO,
    CapitalAccountStatus,
    TransactionStatus,
    TransactionType,
    normalize_currency,
    require_non_negative,
    to_decimal,
)
from fund_nav_engine.exceptions import (
    CommitmentExceededError,
    InsufficientSharesError,
    StateConflictError,
    ValidationError,
)


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class Transaction:
    """A ledger entry against one capital account.

    Append-only: once settled only the status may change.
    """

    fund_id: UUID
    capital_account_id: UUID
    transaction_type: TransactionType
    amount: Decimal
    transaction_date: date
    id: UUID = field(default_factory=uuid4)
    shares: Decimal = ZERO
    price_per_share: Decimal = ZERO
    currency: str = "USD"
    status: TransactionStatus = TransactionStatus.SETTLED
    settlement_date: date | None = None
    reference_number: str | None = None
    description: str | None = None
    nav_calculation_id: UUID | None = None
    created_by: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.transaction_type = TransactionType(self.transaction_type)
        self.status = TransactionStatus(self.status)
        self.currency = normalize_currency(self.currency)
        self.amount = require_non_negative(to_decimal(self.amount, "amount"), "amount")
        self.shares = require_non_negative(to_decimal(self.shares, "shares"), "shares")
        self.price_per_share = require_non_negative(
            to_decimal(self.price_per_share, "price_per_share"), "price_per_share"
        )
        if self.settlement_date is None and self.status == TransactionStatus.SETTLED:
            self.settlement_date = self.transaction_date

    @property
    def is_contribution(self) -> bool:
        return self.transaction_type == TransactionType.SUBSCRIPTION

    @property
    def is_distribution(self) -> bool:
        return self.transaction_type in (
            TransactionType.REDEMPTION,
            TransactionType.DISTRIBUTION,
        )

    @property
    def signed_shares(self) -> Decimal:
        """Share movement from the account's point of view."""
        if self.transaction_type == TransactionType.SUBSCRIPTION:
            return self.shares
        if self.transaction_type == TransactionType.REDEMPTION:
            return -self.shares
        return ZERO


@dataclass
class CapitalAccount:
    fund_id: UUID
    investor_id: UUID
    account_number: str
    id: UUID = field(default_factory=uuid4)
    share_class_id: UUID | None = None
    shares_owned: Decimal = ZERO
    capital_contributed: Decimal = ZERO
    capital_returned: Decimal = ZERO
    commitment_amount: Decimal = ZERO
    status: CapitalAccountStatus = CapitalAccountStatus.ACTIVE
    inception_date: date = field(default_factory=date.today)
    version: int = 0
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.account_number = self.account_number.strip()
        if not self.account_number:
            raise ValidationError("Account number is required")
        self.status = CapitalAccountStatus(self.status)
        self.shares_owned = require_non_negative(
            to_decimal(self.shares_owned, "shares_owned"), "shares_owned"
        )
        self.capital_contributed = require_non_negative(
            to_decimal(self.capital_contributed, "capital_contributed"),
            "capital_contributed",
        )
        self.capital_returned = require_non_negative(
            to_decimal(self.capital_returned, "capital_returned"), "capital_returned"
        )
        self.commitment_amount = require_non_negative(
            to_decimal(self.commitment_amount, "commitment_amount"),
            "commitment_amount",
        )

    @property
    def is_active(self) -> bool:
        return self.status == CapitalAccountStatus.ACTIVE

    @property
    def unfunded_commitment(self) -> Decimal | None:
        """Commitment not yet contributed; None for open-ended accounts."""
        if self.commitment_amount == ZERO:
            return None
        return max(self.commitment_amount - self.capital_contributed, ZERO)

    def apply(self, txn: Transaction) -> None:
        """Apply a ledger entry to the running balances.

        Raises before touching any field when a redemption would leave the
        share balance negative or a subscription would draw more than the
        unfunded commitment.
        """
        if txn.capital_account_id != self.id:
            raise ValidationError(
                f"Transaction {txn.id} belongs to account {txn.capital_account_id}, "
                f"not {self.id}"
            )
        kind = txn.transaction_type
        reopening = (
            kind == TransactionType.SUBSCRIPTION
            and self.status == CapitalAccountStatus.REDEEMED
        )
        if not self.is_active and not reopening and kind != TransactionType.DISTRIBUTION:
            raise StateConflictError(
                f"Capital account {self.account_number} is {self.status.value}",
                context={"account_id": str(self.id), "status": self.status.value},
            )

        if kind == TransactionType.SUBSCRIPTION:
            available = self.unfunded_commitment
            if available is not None and txn.amount > available:
                raise CommitmentExceededError(self.id, str(txn.amount), str(available))
            self.shares_owned += txn.shares
            self.capital_contributed += txn.amount
            if self.status == CapitalAccountStatus.REDEEMED:
                self.status = CapitalAccountStatus.ACTIVE
        elif kind == TransactionType.REDEMPTION:
            remaining = self.shares_owned - txn.shares
            if remaining < ZERO:
                raise InsufficientSharesError(
                    self.id, str(txn.shares), str(self.shares_owned)
                )
            self.shares_owned = remaining
            self.capital_returned += txn.amount
            if txn.shares > ZERO and remaining == ZERO:
                self.status = CapitalAccountStatus.REDEEMED
        elif kind == TransactionType.DISTRIBUTION:
            self.capital_returned += txn.amount
        # Transfers are recorded without a balance effect.
        self.updated_at = _utc_now()
