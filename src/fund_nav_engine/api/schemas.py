"""Pydantic v2 schemas for API request/response models.

Money, share and rate fields are Decimal; in JSON they travel as strings.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from fund_nav_engine.domain.value_objects import (
    AccrualFrequency,
    AllocationStatus,
    CapitalAccountStatus,
    DistributionStatus,
    DistributionType,
    FeeStructureStatus,
    FeeType,
    FundStatus,
    LineItemKind,
    LineItemSource,
    NAVStatus,
    PeriodType,
    RedemptionStatus,
    RedemptionType,
    ReviewDecision,
    ShareClassStatus,
    TransactionStatus,
    TransactionType,
)


class HealthResponse(BaseModel):
    status: str
    version: str | None = None


# Fund Schemas
class FundCreate(BaseModel):
    """Schema for creating a fund."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    base_currency: str = Field(default="USD", min_length=3, max_length=3)
    inception_date: date | None = None
    fund_type: str = "hedge"
    nav_frequency: str = "monthly"
    total_commitments: Decimal = Decimal("0")


class FundResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    name: str
    base_currency: str
    status: FundStatus
    inception_date: date
    fund_type: str
    nav_frequency: str
    total_commitments: Decimal
    created_at: datetime
    updated_at: datetime


class ShareClassCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    class_code: str = Field(..., min_length=1, max_length=50)
    class_name: str = Field(..., min_length=1, max_length=255)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    management_fee_rate: Decimal = Decimal("0")
    performance_fee_rate: Decimal = Decimal("0")
    hurdle_rate: Decimal = Decimal("0")
    high_water_mark: bool = True
    price_precision: int | None = Field(default=None, ge=0, le=10)
    minimum_investment: Decimal = Decimal("0")


class ShareClassResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    class_code: str
    class_name: str
    currency: str
    management_fee_rate: Decimal
    performance_fee_rate: Decimal
    hurdle_rate: Decimal
    high_water_mark: bool
    price_precision: int
    minimum_investment: Decimal
    status: ShareClassStatus


class FeeStructureCreate(BaseModel):
    fee_type: FeeType
    rate: Decimal
    effective_from: date
    share_class_id: UUID | None = None
    frequency: str = "monthly"
    hurdle_rate: Decimal = Decimal("0")
    effective_to: date | None = None


class FeeStructureResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    share_class_id: UUID | None
    fee_type: FeeType
    rate: Decimal
    frequency: AccrualFrequency | str
    hurdle_rate: Decimal
    effective_from: date
    effective_to: date | None
    status: FeeStructureStatus


# NAV Schemas
class LineItemCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    kind: LineItemKind
    category: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    quantity: Decimal = Decimal("0")
    unit_price: Decimal = Decimal("0")
    amount: Decimal | None = None
    currency: str = Field(default="USD", min_length=3, max_length=3)
    fx_rate: Decimal | None = None
    source: LineItemSource = LineItemSource.MANUAL


class LineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    kind: LineItemKind
    category: str
    description: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal
    currency: str
    fx_rate: Decimal | None
    base_currency_amount: Decimal
    source: LineItemSource
    sort_order: int


class NAVCalculateRequest(BaseModel):
    """Schema for running a NAV calculation."""

    fund_id: UUID
    share_class_id: UUID | None = None
    valuation_date: date
    line_items: list[LineItemCreate] = Field(default_factory=list)
    total_shares: Decimal
    actor_id: UUID
    notes: str | None = None


class NAVActionRequest(BaseModel):
    actor_id: UUID | None = None
    note: str | None = None


class NAVApproveRequest(BaseModel):
    approver_id: UUID


class NAVResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    share_class_id: UUID | None
    valuation_date: date
    version: int
    status: NAVStatus
    total_assets: Decimal
    total_liabilities: Decimal
    net_asset_value: Decimal
    total_shares_outstanding: Decimal
    nav_per_share: Decimal
    management_fee_accrued: Decimal
    performance_fee_accrued: Decimal
    total_fees: Decimal
    created_by: UUID
    approved_by: UUID | None
    approved_at: datetime | None
    notes: str | None
    rejection_note: str | None
    calculation_data: dict[str, Any]
    created_at: datetime


# Capital Account Schemas
class CapitalAccountCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    fund_id: UUID
    investor_id: UUID
    account_number: str = Field(..., min_length=1, max_length=50)
    share_class_id: UUID | None = None
    commitment_amount: Decimal = Decimal("0")
    inception_date: date | None = None


class CapitalAccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    share_class_id: UUID | None
    investor_id: UUID
    account_number: str
    shares_owned: Decimal
    capital_contributed: Decimal
    capital_returned: Decimal
    commitment_amount: Decimal
    unfunded_commitment: Decimal | None
    status: CapitalAccountStatus
    inception_date: date
    version: int


class TransactionCreate(BaseModel):
    transaction_type: TransactionType
    amount: Decimal
    shares: Decimal | None = None
    price_per_share: Decimal | None = None
    transaction_date: date | None = None
    actor_id: UUID | None = None
    description: str | None = None
    reference_number: str | None = None


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    capital_account_id: UUID
    transaction_type: TransactionType
    amount: Decimal
    shares: Decimal
    price_per_share: Decimal
    currency: str
    status: TransactionStatus
    transaction_date: date
    settlement_date: date | None
    reference_number: str | None
    description: str | None
    created_at: datetime


# Redemption Schemas
class RedemptionCreate(BaseModel):
    account_id: UUID
    redemption_type: RedemptionType
    redemption_date: date
    shares: Decimal | None = None
    amount: Decimal | None = None
    reason: str | None = None
    requested_by: UUID | None = None


class RedemptionReview(BaseModel):
    decision: ReviewDecision
    reviewer_id: UUID | None = None
    shares_approved: Decimal | None = None
    amount_approved: Decimal | None = None
    price: Decimal | None = None
    rejection_reason: str | None = None


class RedemptionProcess(BaseModel):
    settlement_date: date | None = None


class RedemptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    capital_account_id: UUID
    request_number: str
    redemption_type: RedemptionType
    status: RedemptionStatus
    request_date: date
    redemption_date: date
    shares_requested: Decimal
    amount_requested: Decimal
    shares_approved: Decimal | None
    amount_approved: Decimal | None
    redemption_price: Decimal | None
    currency: str
    reason: str | None
    rejection_reason: str | None
    settlement_date: date | None
    settlement_amount: Decimal | None
    transaction_id: UUID | None


# Distribution Schemas
class DistributionCreate(BaseModel):
    fund_id: UUID
    amount_per_share: Decimal = Field(..., gt=0)
    record_date: date
    payment_date: date
    distribution_type: DistributionType = DistributionType.DIVIDEND
    share_class_id: UUID | None = None
    description: str | None = None
    notes: str | None = None
    created_by: UUID | None = None


class DistributionApprove(BaseModel):
    approver_id: UUID | None = None


class DistributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    share_class_id: UUID | None
    distribution_number: str
    distribution_type: DistributionType
    status: DistributionStatus
    record_date: date
    payment_date: date
    amount_per_share: Decimal
    total_shares: Decimal
    total_amount: Decimal
    currency: str
    description: str | None
    approved_by: UUID | None


class AllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    capital_account_id: UUID
    shares_held: Decimal
    allocation_amount: Decimal
    status: AllocationStatus
    transaction_id: UUID | None


# Performance Schemas
class PerformanceRequest(BaseModel):
    fund_id: UUID
    period_type: PeriodType
    as_of_date: date
    share_class_id: UUID | None = None
    capital_account_id: UUID | None = None


class PerformanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fund_id: UUID
    share_class_id: UUID | None
    capital_account_id: UUID | None
    period_type: PeriodType
    period_start: date
    metric_date: date
    beginning_nav: Decimal
    ending_nav: Decimal
    net_contributions: Decimal
    net_distributions: Decimal
    total_return_amount: Decimal
    total_return_percent: Decimal
    dpi: Decimal
    rvpi: Decimal
    tvpi: Decimal
    moic: Decimal
    calculation_notes: dict[str, Any]
    created_at: datetime
