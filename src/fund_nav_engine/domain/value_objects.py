from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from fund_nav_engine.exceptions import InvalidAmountError

ZERO = Decimal("0")
CENT = Decimal("0.01")


class FundStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class ShareClassStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class LineItemKind(str, Enum):
    ASSET = "asset"
    LIABILITY = "liability"
    ADJUSTMENT = "adjustment"
    FEE = "fee"


class LineItemSource(str, Enum):
    MANUAL = "manual"
    BROKER = "broker"
    API = "api"


class NAVStatus(str, Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"


class FeeType(str, Enum):
    MANAGEMENT = "management"
    PERFORMANCE = "performance"


class FeeStructureStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AccrualFrequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"


class CapitalAccountStatus(str, Enum):
    ACTIVE = "active"
    REDEEMED = "redeemed"
    TRANSFERRED = "transferred"


class TransactionType(str, Enum):
    SUBSCRIPTION = "subscription"
    REDEMPTION = "redemption"
    DISTRIBUTION = "distribution"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"
    CANCELLED = "cancelled"


class RedemptionType(str, Enum):
    PARTIAL = "partial"
    FULL = "full"


class RedemptionStatus(str, Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"


class DistributionType(str, Enum):
    DIVIDEND = "dividend"
    CAPITAL_GAIN = "capital_gain"
    RETURN_OF_CAPITAL = "return_of_capital"
    INTEREST = "interest"
    OTHER = "other"


class DistributionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class AllocationStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"


class ReviewDecision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    INCEPTION_TO_DATE = "inception_to_date"


def to_decimal(value: Decimal | int | float | str, field: str = "value") -> Decimal:
    """Coerce a numeric input to Decimal without passing through binary floats."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise InvalidAmountError(field, value, "booleans are not numbers")
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as exc:
            raise InvalidAmountError(field, value, "not a decimal number") from exc
    if not result.is_finite():
        raise InvalidAmountError(field, value, "must be finite")
    return result


def quantize(value: Decimal, places: int) -> Decimal:
    """Round half-up to a fixed number of decimal places."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def round_money(value: Decimal, places: int = 2) -> Decimal:
    return quantize(value, places)


def require_non_negative(value: Decimal, field: str) -> Decimal:
    if value < ZERO:
        raise InvalidAmountError(field, value, "must not be negative")
    return value


def require_rate(value: Decimal, field: str) -> Decimal:
    if value < ZERO or value > Decimal("100"):
        raise InvalidAmountError(field, value, "must be a percentage between 0 and 100")
    return value


def normalize_currency(code: str) -> str:
    code = (code or "").strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise InvalidAmountError("currency", code, "must be a three-letter ISO code")
    return code


__all__ = [
    "ZERO",
    "CENT",
    "FundStatus",
    "ShareClassStatus",
    "LineItemKind",
    "LineItemSource",
    "NAVStatus",
    "FeeType",
    "FeeStructureStatus",
    "AccrualFrequency",
    "CapitalAccountStatus",
    "TransactionType",
    "TransactionStatus",
    "RedemptionType",
    "RedemptionStatus",
    "DistributionType",
    "DistributionStatus",
    "AllocationStatus",
    "ReviewDecision",
    "PeriodType",
    "to_decimal",
    "quantize",
    "round_money",
    "require_non_negative",
    "require_rate",
    "normalize_currency",
]
