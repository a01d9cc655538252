"""API routes for the Fund NAV Engine."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from fund_nav_engine.api.schemas import (
    AllocationResponse,
    CapitalAccountCreate,
    CapitalAccountResponse,
    DistributionApprove,
    DistributionCreate,
    DistributionResponse,
    FeeStructureCreate,
    FeeStructureResponse,
    FundCreate,
    FundResponse,
    HealthResponse,
    LineItemResponse,
    NAVActionRequest,
    NAVApproveRequest,
    NAVCalculateRequest,
    NAVResponse,
    PerformanceRequest,
    PerformanceResponse,
    RedemptionCreate,
    RedemptionProcess,
    RedemptionResponse,
    RedemptionReview,
    ShareClassCreate,
    ShareClassResponse,
    TransactionCreate,
    TransactionResponse,
)
from fund_nav_engine.container import Container
from fund_nav_engine.domain.nav import NAVLineItem
from fund_nav_engine.domain.value_objects import (
    DistributionStatus,
    PeriodType,
    RedemptionStatus,
)
from fund_nav_engine.repositories.sqlite import SQLiteDatabase

# Create routers
health_router = APIRouter(tags=["health"])
fund_router = APIRouter(prefix="/funds", tags=["funds"])
nav_router = APIRouter(prefix="/nav", tags=["nav"])
account_router = APIRouter(prefix="/capital-accounts", tags=["capital-accounts"])
redemption_router = APIRouter(prefix="/redemptions", tags=["redemptions"])
distribution_router = APIRouter(prefix="/distributions", tags=["distributions"])
performance_router = APIRouter(prefix="/performance", tags=["performance"])


# Dependency injection
def get_services(db: Annotated[SQLiteDatabase, Depends()]) -> Container:
    """Build a container bound to the request's database."""
    return Container(database=db)


Services = Annotated[Container, Depends(get_services)]


# Health endpoint
@health_router.get("/health", response_model=HealthResponse)
def health_check(services: Services) -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=services.settings.app_version)


# Fund endpoints
@fund_router.post("", response_model=FundResponse, status_code=status.HTTP_201_CREATED)
def create_fund(payload: FundCreate, services: Services) -> FundResponse:
    fund = services.fund_service.create_fund(**payload.model_dump())
    return FundResponse.model_validate(fund)


@fund_router.get("", response_model=list[FundResponse])
def list_funds(services: Services) -> list[FundResponse]:
    return [FundResponse.model_validate(f) for f in services.fund_service.list_funds()]


@fund_router.get("/{fund_id}", response_model=FundResponse)
def get_fund(fund_id: UUID, services: Services) -> FundResponse:
    return FundResponse.model_validate(services.fund_service.get_fund(fund_id))


@fund_router.post("/{fund_id}/close", response_model=FundResponse)
def close_fund(fund_id: UUID, services: Services) -> FundResponse:
    return FundResponse.model_validate(services.fund_service.close_fund(fund_id))


@fund_router.post(
    "/{fund_id}/share-classes",
    response_model=ShareClassResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_share_class(
    fund_id: UUID, payload: ShareClassCreate, services: Services
) -> ShareClassResponse:
    share_class = services.fund_service.add_share_class(fund_id, **payload.model_dump())
    return ShareClassResponse.model_validate(share_class)


@fund_router.get("/{fund_id}/share-classes", response_model=list[ShareClassResponse])
def list_share_classes(fund_id: UUID, services: Services) -> list[ShareClassResponse]:
    services.fund_service.get_fund(fund_id)
    return [
        ShareClassResponse.model_validate(sc)
        for sc in services.fund_service.list_share_classes(fund_id)
    ]


@fund_router.post(
    "/{fund_id}/fee-structures",
    response_model=FeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_fee_structure(
    fund_id: UUID, payload: FeeStructureCreate, services: Services
) -> FeeStructureResponse:
    fee_structure = services.fund_service.add_fee_structure(
        fund_id, **payload.model_dump()
    )
    return FeeStructureResponse.model_validate(fee_structure)


@fund_router.get("/{fund_id}/fee-structures", response_model=list[FeeStructureResponse])
def list_fee_structures(
    fund_id: UUID,
    services: Services,
    share_class_id: Annotated[UUID | None, Query()] = None,
) -> list[FeeStructureResponse]:
    return [
        FeeStructureResponse.model_validate(fs)
        for fs in services.fund_service.list_fee_structures(fund_id, share_class_id)
    ]


# NAV endpoints
@nav_router.post("", response_model=NAVResponse, status_code=status.HTTP_201_CREATED)
def calculate_nav(payload: NAVCalculateRequest, services: Services) -> NAVResponse:
    """Run a NAV calculation and store it as a draft."""
    line_items = [NAVLineItem(**item.model_dump()) for item in payload.line_items]
    calculation = services.nav_service.calculate_nav(
        fund_id=payload.fund_id,
        share_class_id=payload.share_class_id,
        valuation_date=payload.valuation_date,
        line_items=line_items,
        total_shares=payload.total_shares,
        actor_id=payload.actor_id,
        notes=payload.notes,
    )
    return NAVResponse.model_validate(calculation)


@nav_router.get("/latest", response_model=NAVResponse)
def get_latest_nav(
    services: Services,
    fund_id: Annotated[UUID, Query()],
    share_class_id: Annotated[UUID | None, Query()] = None,
) -> NAVResponse:
    """Latest approved NAV for a fund or share class."""
    calculation = services.nav_service.get_latest_nav(fund_id, share_class_id)
    if calculation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No approved NAV for fund {fund_id}",
        )
    return NAVResponse.model_validate(calculation)


@nav_router.get("/history", response_model=list[NAVResponse])
def get_nav_history(
    services: Services,
    fund_id: Annotated[UUID, Query()],
    share_class_id: Annotated[UUID | None, Query()] = None,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
) -> list[NAVResponse]:
    """Approved NAVs in ascending valuation-date order."""
    history = services.nav_service.get_nav_history(
        fund_id, share_class_id, start_date, end_date
    )
    return [NAVResponse.model_validate(calc) for calc in history]


@nav_router.get("/review", response_model=list[NAVResponse])
def list_for_review(
    services: Services, fund_id: Annotated[UUID, Query()]
) -> list[NAVResponse]:
    return [
        NAVResponse.model_validate(calc)
        for calc in services.nav_service.list_for_review(fund_id)
    ]


@nav_router.get("/{nav_id}", response_model=NAVResponse)
def get_nav(nav_id: UUID, services: Services) -> NAVResponse:
    return NAVResponse.model_validate(services.nav_service.get_nav(nav_id))


@nav_router.get("/{nav_id}/line-items", response_model=list[LineItemResponse])
def get_line_items(nav_id: UUID, services: Services) -> list[LineItemResponse]:
    return [
        LineItemResponse.model_validate(item)
        for item in services.nav_service.get_line_items(nav_id)
    ]


@nav_router.post("/{nav_id}/submit", response_model=NAVResponse)
def submit_nav(
    nav_id: UUID, payload: NAVActionRequest, services: Services
) -> NAVResponse:
    calculation = services.nav_service.submit_nav(nav_id, payload.actor_id)
    return NAVResponse.model_validate(calculation)


@nav_router.post("/{nav_id}/approve", response_model=NAVResponse)
def approve_nav(
    nav_id: UUID, payload: NAVApproveRequest, services: Services
) -> NAVResponse:
    calculation = services.nav_service.approve_nav(nav_id, payload.approver_id)
    return NAVResponse.model_validate(calculation)


@nav_router.post("/{nav_id}/reject", response_model=NAVResponse)
def reject_nav(
    nav_id: UUID, payload: NAVActionRequest, services: Services
) -> NAVResponse:
    calculation = services.nav_service.reject_nav(nav_id, payload.actor_id, payload.note)
    return NAVResponse.model_validate(calculation)


# Capital account endpoints
@account_router.post(
    "", response_model=CapitalAccountResponse, status_code=status.HTTP_201_CREATED
)
def open_capital_account(
    payload: CapitalAccountCreate, services: Services
) -> CapitalAccountResponse:
    account = services.fund_service.open_capital_account(**payload.model_dump())
    return CapitalAccountResponse.model_validate(account)


@account_router.get("/{account_id}", response_model=CapitalAccountResponse)
def get_capital_account(account_id: UUID, services: Services) -> CapitalAccountResponse:
    return CapitalAccountResponse.model_validate(
        services.ledger_service.get_account(account_id)
    )


@account_router.post(
    "/{account_id}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_transaction(
    account_id: UUID, payload: TransactionCreate, services: Services
) -> TransactionResponse:
    txn = services.ledger_service.record_transaction(account_id, **payload.model_dump())
    return TransactionResponse.model_validate(txn)


@account_router.get(
    "/{account_id}/transactions", response_model=list[TransactionResponse]
)
def list_transactions(
    account_id: UUID,
    services: Services,
    start_date: Annotated[date | None, Query()] = None,
    end_date: Annotated[date | None, Query()] = None,
) -> list[TransactionResponse]:
    return [
        TransactionResponse.model_validate(txn)
        for txn in services.ledger_service.list_transactions(
            account_id, start_date, end_date
        )
    ]


# Redemption endpoints
@redemption_router.post(
    "", response_model=RedemptionResponse, status_code=status.HTTP_201_CREATED
)
def create_redemption_request(
    payload: RedemptionCreate, services: Services
) -> RedemptionResponse:
    request = services.redemption_service.create_redemption_request(
        **payload.model_dump()
    )
    return RedemptionResponse.model_validate(request)


@redemption_router.get("", response_model=list[RedemptionResponse])
def list_redemption_requests(
    services: Services,
    fund_id: Annotated[UUID, Query()],
    request_status: Annotated[RedemptionStatus | None, Query(alias="status")] = None,
) -> list[RedemptionResponse]:
    return [
        RedemptionResponse.model_validate(r)
        for r in services.redemption_service.list_requests(fund_id, request_status)
    ]


@redemption_router.get("/{request_id}", response_model=RedemptionResponse)
def get_redemption_request(request_id: UUID, services: Services) -> RedemptionResponse:
    return RedemptionResponse.model_validate(
        services.redemption_service.get_request(request_id)
    )


@redemption_router.post("/{request_id}/review", response_model=RedemptionResponse)
def review_redemption(
    request_id: UUID, payload: RedemptionReview, services: Services
) -> RedemptionResponse:
    request = services.redemption_service.review_redemption(
        request_id, **payload.model_dump()
    )
    return RedemptionResponse.model_validate(request)


@redemption_router.post("/{request_id}/process", response_model=TransactionResponse)
def process_redemption(
    request_id: UUID, payload: RedemptionProcess, services: Services
) -> TransactionResponse:
    txn = services.redemption_service.process_redemption(
        request_id, payload.settlement_date
    )
    return TransactionResponse.model_validate(txn)


# Distribution endpoints
@distribution_router.post(
    "", response_model=DistributionResponse, status_code=status.HTTP_201_CREATED
)
def create_distribution(
    payload: DistributionCreate, services: Services
) -> DistributionResponse:
    distribution = services.distribution_service.create_distribution(
        **payload.model_dump()
    )
    return DistributionResponse.model_validate(distribution)


@distribution_router.get("", response_model=list[DistributionResponse])
def list_distributions(
    services: Services,
    fund_id: Annotated[UUID, Query()],
    distribution_status: Annotated[
        DistributionStatus | None, Query(alias="status")
    ] = None,
) -> list[DistributionResponse]:
    return [
        DistributionResponse.model_validate(d)
        for d in services.distribution_service.list_distributions(
            fund_id, distribution_status
        )
    ]


@distribution_router.get("/{distribution_id}", response_model=DistributionResponse)
def get_distribution(distribution_id: UUID, services: Services) -> DistributionResponse:
    return DistributionResponse.model_validate(
        services.distribution_service.get_distribution(distribution_id)
    )


@distribution_router.get(
    "/{distribution_id}/allocations", response_model=list[AllocationResponse]
)
def get_allocations(distribution_id: UUID, services: Services) -> list[AllocationResponse]:
    return [
        AllocationResponse.model_validate(a)
        for a in services.distribution_service.get_allocations(distribution_id)
    ]


@distribution_router.post(
    "/{distribution_id}/approve", response_model=DistributionResponse
)
def approve_distribution(
    distribution_id: UUID, payload: DistributionApprove, services: Services
) -> DistributionResponse:
    distribution = services.distribution_service.approve_distribution(
        distribution_id, payload.approver_id
    )
    return DistributionResponse.model_validate(distribution)


@distribution_router.post(
    "/{distribution_id}/process", response_model=list[TransactionResponse]
)
def process_distribution(
    distribution_id: UUID, services: Services
) -> list[TransactionResponse]:
    return [
        TransactionResponse.model_validate(t)
        for t in services.distribution_service.process_distribution(distribution_id)
    ]


@distribution_router.post("/{distribution_id}/cancel", response_model=DistributionResponse)
def cancel_distribution(distribution_id: UUID, services: Services) -> DistributionResponse:
    return DistributionResponse.model_validate(
        services.distribution_service.cancel_distribution(distribution_id)
    )


# Performance endpoints
@performance_router.post(
    "", response_model=PerformanceResponse, status_code=status.HTTP_201_CREATED
)
def calculate_performance(
    payload: PerformanceRequest, services: Services
) -> PerformanceResponse:
    metric = services.performance_service.calculate_performance(**payload.model_dump())
    return PerformanceResponse.model_validate(metric)


@performance_router.get("", response_model=list[PerformanceResponse])
def list_performance_metrics(
    services: Services,
    fund_id: Annotated[UUID, Query()],
    period_type: Annotated[PeriodType | None, Query()] = None,
) -> list[PerformanceResponse]:
    return [
        PerformanceResponse.model_validate(m)
        for m in services.performance_service.list_metrics(fund_id, period_type)
    ]
