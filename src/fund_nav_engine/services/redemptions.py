"""Redemption workflow: request, review, process."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.domain.capital import CapitalAccount, Transaction
from fund_nav_engine.domain.redemptions import RedemptionRequest
from fund_nav_engine.domain.value_objects import (
    ZERO,
    RedemptionStatus,
    RedemptionType,
    ReviewDecision,
    TransactionType,
    round_money,
    to_decimal,
)
from fund_nav_engine.exceptions import (
    ApprovedNAVNotFoundError,
    CapitalAccountNotFoundError,
    FundNotFoundError,
    InsufficientSharesError,
    InvalidAmountError,
    InvalidTransitionError,
    RedemptionRequestNotFoundError,
    StateConflictError,
)
from fund_nav_engine.logging_config import LogContext, get_logger
from fund_nav_engine.repositories.interfaces import (
    CapitalAccountRepository,
    FundRepository,
    NAVCalculationRepository,
    RedemptionRequestRepository,
    TransactionalStore,
)
from fund_nav_engine.services.interfaces import (
    CapitalLedgerService,
    RedemptionService,
)

logger = get_logger(__name__)


class RedemptionServiceImpl(RedemptionService):
    def __init__(
        self,
        store: TransactionalStore,
        redemption_repo: RedemptionRequestRepository,
        capital_account_repo: CapitalAccountRepository,
        fund_repo: FundRepository,
        nav_repo: NAVCalculationRepository,
        ledger_service: CapitalLedgerService,
        money_places: int = 2,
    ) -> None:
        self._store = store
        self._redemption_repo = redemption_repo
        self._capital_account_repo = capital_account_repo
        self._fund_repo = fund_repo
        self._nav_repo = nav_repo
        self._ledger_service = ledger_service
        self._money_places = money_places

    def _get_account(self, account_id: UUID) -> CapitalAccount:
        account = self._capital_account_repo.get(account_id)
        if account is None:
            raise CapitalAccountNotFoundError(account_id)
        return account

    def _get_request(self, request_id: UUID) -> RedemptionRequest:
        request = self._redemption_repo.get(request_id)
        if request is None:
            raise RedemptionRequestNotFoundError(request_id)
        return request

    def _latest_price(self, account: CapitalAccount) -> Decimal:
        latest = self._nav_repo.get_latest_approved(account.fund_id, account.share_class_id)
        if latest is None:
            raise ApprovedNAVNotFoundError(account.fund_id, account.share_class_id)
        return latest.nav_per_share

    def create_redemption_request(
        self,
        account_id: UUID,
        redemption_type: RedemptionType,
        redemption_date: date,
        shares: Decimal | None = None,
        amount: Decimal | None = None,
        reason: str | None = None,
        requested_by: UUID | None = None,
    ) -> RedemptionRequest:
        """Open a redemption request against a capital account.

        A full redemption takes the whole share balance. When no amount is
        given it is priced at the latest approved NAV per share.

        Raises:
            NotFoundError: If the account is missing, or pricing needs an
                approved NAV and there is none
            ValidationError: If the shares are not positive or exceed the
                balance
            StateConflictError: If the account is not active
        """
        redemption_type = RedemptionType(redemption_type)
        account = self._get_account(account_id)
        if not account.is_active:
            raise StateConflictError(
                f"Capital account {account.account_number} is {account.status.value}",
                context={"account_id": str(account.id)},
            )
        fund = self._fund_repo.get(account.fund_id)
        if fund is None:
            raise FundNotFoundError(account.fund_id)

        if redemption_type == RedemptionType.FULL:
            shares = account.shares_owned
            if shares <= ZERO:
                raise InvalidAmountError("shares", shares, "account holds no shares")
        else:
            if shares is None:
                raise InvalidAmountError("shares", None, "required for a partial redemption")
            shares = to_decimal(shares, "shares")
            if shares <= ZERO:
                raise InvalidAmountError("shares", shares, "must be positive")
            if shares > account.shares_owned:
                raise InsufficientSharesError(
                    account.id, str(shares), str(account.shares_owned)
                )

        if amount is None:
            amount = round_money(shares * self._latest_price(account), self._money_places)
        else:
            amount = to_decimal(amount, "amount")

        request = RedemptionRequest(
            fund_id=account.fund_id,
            capital_account_id=account.id,
            redemption_type=redemption_type,
            shares_requested=shares,
            amount_requested=amount,
            redemption_date=redemption_date,
            currency=fund.base_currency,
            reason=reason,
            requested_by=requested_by,
        )
        self._redemption_repo.add(request)
        logger.info(
            "redemption_requested",
            request_id=str(request.id),
            request_number=request.request_number,
            account_id=str(account.id),
            redemption_type=redemption_type.value,
            shares=str(shares),
            amount=str(amount),
        )
        return request

    def review_redemption(
        self,
        request_id: UUID,
        decision: ReviewDecision,
        reviewer_id: UUID | None = None,
        shares_approved: Decimal | None = None,
        amount_approved: Decimal | None = None,
        price: Decimal | None = None,
        rejection_reason: str | None = None,
    ) -> RedemptionRequest:
        """Approve or reject a requested redemption.

        An approval may grant different shares, amount or price than were
        requested; anything left out defaults from the request and the
        latest approved NAV.
        """
        decision = ReviewDecision(decision)
        with self._store.transaction():
            request = self._get_request(request_id)
            if request.status != RedemptionStatus.REQUESTED:
                raise InvalidTransitionError(
                    "redemption request", request.id, request.status.value, decision.value
                )

            if decision == ReviewDecision.REJECT:
                request.reject(rejection_reason, reviewer_id)
            else:
                account = self._get_account(request.capital_account_id)
                shares = (
                    request.shares_requested
                    if shares_approved is None
                    else to_decimal(shares_approved, "shares_approved")
                )
                if shares > account.shares_owned:
                    raise InsufficientSharesError(
                        account.id, str(shares), str(account.shares_owned)
                    )
                price = (
                    self._latest_price(account)
                    if price is None
                    else to_decimal(price, "price")
                )
                amount = (
                    round_money(shares * price, self._money_places)
                    if amount_approved is None
                    else to_decimal(amount_approved, "amount_approved")
                )
                request.approve(shares, amount, price, reviewer_id)

            self._redemption_repo.update(request, RedemptionStatus.REQUESTED)

        logger.info(
            "redemption_reviewed",
            request_id=str(request.id),
            decision=decision.value,
            status=request.status.value,
            shares_approved=str(request.shares_approved)
            if request.shares_approved is not None
            else None,
            amount_approved=str(request.amount_approved)
            if request.amount_approved is not None
            else None,
        )
        return request

    def process_redemption(
        self, request_id: UUID, settlement_date: date | None = None
    ) -> Transaction:
        """Settle an approved redemption.

        Moves the request through processing, records the redemption in the
        ledger and completes the request, all in one atomic unit.

        Raises:
            StateConflictError: If the request is not approved, including a
                second call for a request already processed
        """
        settlement_date = settlement_date or date.today()
        with LogContext(redemption_id=str(request_id)), self._store.transaction():
            logger.info("processing_redemption")
            request = self._get_request(request_id)
            request.start_processing()
            self._redemption_repo.update(request, RedemptionStatus.APPROVED)

            txn = self._ledger_service.record_transaction(
                request.capital_account_id,
                TransactionType.REDEMPTION,
                amount=request.amount_approved,
                shares=request.shares_approved,
                price_per_share=request.redemption_price,
                transaction_date=settlement_date,
                actor_id=request.approved_by,
                description=f"Redemption {request.request_number}",
                reference_number=request.request_number,
            )

            request.complete(txn.id, settlement_date)
            self._redemption_repo.update(request, RedemptionStatus.PROCESSING)

        logger.info(
            "redemption_processed",
            request_id=str(request.id),
            request_number=request.request_number,
            transaction_id=str(txn.id),
            settlement_amount=str(request.settlement_amount),
        )
        return txn

    def get_request(self, request_id: UUID) -> RedemptionRequest:
        return self._get_request(request_id)

    def list_requests(
        self, fund_id: UUID, status: RedemptionStatus | None = None
    ) -> list[RedemptionRequest]:
        return list(self._redemption_repo.list_by_fund(fund_id, status))

    def list_account_requests(self, account_id: UUID) -> list[RedemptionRequest]:
        return list(self._redemption_repo.list_by_account(account_id))
