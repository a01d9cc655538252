"""NAV calculation and the approval workflow."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.config import Settings, get_settings
from fund_nav_engine.domain.funds import Fund, ShareClass
from fund_nav_engine.domain.nav import NAVCalculation, NAVLineItem
from fund_nav_engine.domain.value_objects import (
    ZERO,
    LineItemKind,
    NAVStatus,
    to_decimal,
)
from fund_nav_engine.exceptions import (
    FundNotFoundError,
    InvalidAmountError,
    NAVCalculationNotFoundError,
    ShareClassNotFoundError,
    StateConflictError,
    ValidationError,
)
from fund_nav_engine.logging_config import get_logger
from fund_nav_engine.repositories.interfaces import (
    FundRepository,
    NAVCalculationRepository,
    ShareClassRepository,
    TransactionalStore,
)
from fund_nav_engine.services.interfaces import (
    CurrencyService,
    FeeCalculator,
    NAVService,
)

logger = get_logger(__name__)


class NAVServiceImpl(NAVService):
    """Calculates NAV snapshots and moves them through review.

    Every calculation is a new row; approved rows are never edited, only
    superseded when a newer calculation for the same (fund, share class,
    valuation date) key is approved.
    """

    def __init__(
        self,
        store: TransactionalStore,
        fund_repo: FundRepository,
        share_class_repo: ShareClassRepository,
        nav_repo: NAVCalculationRepository,
        fee_calculator: FeeCalculator,
        currency_service: CurrencyService,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._fund_repo = fund_repo
        self._share_class_repo = share_class_repo
        self._nav_repo = nav_repo
        self._fee_calculator = fee_calculator
        self._currency_service = currency_service
        self._settings = settings or get_settings()

    def _load_key(
        self, fund_id: UUID, share_class_id: UUID | None
    ) -> tuple[Fund, ShareClass | None]:
        fund = self._fund_repo.get(fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        if share_class_id is None:
            return fund, None
        share_class = self._share_class_repo.get(share_class_id)
        if share_class is None:
            raise ShareClassNotFoundError(share_class_id)
        if share_class.fund_id != fund.id:
            raise ValidationError(
                f"Share class {share_class_id} does not belong to fund {fund_id}"
            )
        return fund, share_class

    def _check_quantity(self, item: NAVLineItem) -> None:
        if item.quantity >= ZERO:
            return
        if item.category in self._settings.negative_quantity_categories:
            return
        raise InvalidAmountError(
            "quantity",
            item.quantity,
            f"category '{item.category}' does not allow negative quantities",
        )

    def _apply_fx(
        self, item: NAVLineItem, currency: str, valuation_date: date
    ) -> None:
        if item.fx_rate is not None or item.currency == currency:
            return
        rate = self._currency_service.get_rate(item.currency, currency, valuation_date)
        if rate is None:
            raise ValidationError(
                f"No exchange rate {item.currency}/{currency} on or before {valuation_date}",
                context={
                    "from_currency": item.currency,
                    "to_currency": currency,
                    "valuation_date": valuation_date.isoformat(),
                },
            )
        item.fx_rate = rate
        logger.debug(
            "fx_rate_applied",
            category=item.category,
            pair=f"{item.currency}/{currency}",
            rate=str(rate),
        )

    def calculate_nav(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        valuation_date: date,
        line_items: list[NAVLineItem],
        total_shares: Decimal,
        actor_id: UUID,
        notes: str | None = None,
    ) -> NAVCalculation:
        """Value a fund or share class from its line items.

        Writes a new draft calculation plus its line items as one atomic unit.

        Raises:
            NotFoundError: If the fund or share class does not exist
            ValidationError: On negative shares, disallowed negative
                quantities or a missing exchange rate
            StateConflictError: If the fund is closed
        """
        total_shares = to_decimal(total_shares, "total_shares")
        if total_shares < ZERO:
            raise InvalidAmountError("total_shares", total_shares, "must not be negative")

        fund, share_class = self._load_key(fund_id, share_class_id)
        if not fund.is_active:
            raise StateConflictError(
                f"Fund {fund.code} is closed", context={"fund_id": str(fund.id)}
            )
        currency = share_class.currency if share_class else fund.base_currency

        for index, item in enumerate(line_items):
            self._check_quantity(item)
            self._apply_fx(item, currency, valuation_date)
            item.sort_order = index

        total_assets = sum(
            (i.base_currency_amount for i in line_items if i.kind == LineItemKind.ASSET),
            ZERO,
        )
        total_liabilities = sum(
            (
                i.base_currency_amount
                for i in line_items
                if i.kind == LineItemKind.LIABILITY
            ),
            ZERO,
        )
        net_asset_value = total_assets - total_liabilities

        with self._store.transaction():
            previous_nav = ZERO
            if self._settings.fee_use_prior_approved_nav:
                prior = self._nav_repo.get_latest_approved(
                    fund.id, share_class_id, strictly_before=valuation_date
                )
                if prior is not None:
                    previous_nav = prior.net_asset_value
            high_water_mark = None
            if share_class is not None and share_class.high_water_mark:
                high_water_mark = self._nav_repo.peak_approved_nav(
                    fund.id, share_class_id, before=valuation_date
                )

            fees = self._fee_calculator.calculate(
                fund.id,
                share_class_id,
                valuation_date,
                current_nav=net_asset_value,
                previous_nav=previous_nav,
                high_water_mark=high_water_mark,
            )
            version = self._nav_repo.max_version(fund.id, share_class_id, valuation_date) + 1

            calculation = NAVCalculation(
                fund_id=fund.id,
                share_class_id=share_class_id,
                valuation_date=valuation_date,
                total_assets=total_assets,
                total_liabilities=total_liabilities,
                total_shares_outstanding=total_shares,
                created_by=actor_id,
                version=version,
                price_precision=(
                    share_class.price_precision
                    if share_class
                    else self._settings.default_price_precision
                ),
                management_fee_accrued=fees.management_fee,
                performance_fee_accrued=fees.performance_fee,
                notes=notes,
                calculation_data={
                    "currency": currency,
                    "fees": fees.as_dict(),
                    "previous_nav": str(previous_nav),
                    "high_water_mark": (
                        str(high_water_mark) if high_water_mark is not None else None
                    ),
                    "line_item_count": len(line_items),
                },
            )
            for item in line_items:
                item.nav_calculation_id = calculation.id
            self._nav_repo.add(calculation, line_items)

        logger.info(
            "nav_calculated",
            nav_id=str(calculation.id),
            fund_id=str(fund.id),
            share_class_id=str(share_class_id) if share_class_id else None,
            valuation_date=valuation_date.isoformat(),
            version=calculation.version,
            net_asset_value=str(calculation.net_asset_value),
            nav_per_share=str(calculation.nav_per_share),
        )
        return calculation

    def _get(self, calculation_id: UUID) -> NAVCalculation:
        calculation = self._nav_repo.get(calculation_id)
        if calculation is None:
            raise NAVCalculationNotFoundError(calculation_id)
        return calculation

    def submit_nav(
        self, calculation_id: UUID, actor_id: UUID | None = None
    ) -> NAVCalculation:
        with self._store.transaction():
            calculation = self._get(calculation_id)
            calculation.submit()
            self._nav_repo.update_status(calculation, NAVStatus.DRAFT)
        logger.info(
            "nav_submitted",
            nav_id=str(calculation.id),
            actor_id=str(actor_id) if actor_id else None,
        )
        return calculation

    def approve_nav(self, calculation_id: UUID, approver_id: UUID) -> NAVCalculation:
        """Approve a pending calculation and supersede the prior approval.

        The prior approved row for the same key is demoted before this row is
        promoted, inside one atomic unit, so at most one row per key is ever
        approved.

        Raises:
            NotFoundError: If the calculation does not exist
            StateConflictError: If it is not pending approval, including when
                a concurrent approval got there first
        """
        with self._store.transaction():
            calculation = self._get(calculation_id)
            calculation.approve(approver_id)
            superseded = self._nav_repo.supersede_approved(
                calculation.fund_id,
                calculation.share_class_id,
                calculation.valuation_date,
                exclude_id=calculation.id,
            )
            self._nav_repo.update_status(calculation, NAVStatus.PENDING_APPROVAL)

        for old_id in superseded:
            logger.info(
                "nav_superseded",
                nav_id=str(old_id),
                superseded_by=str(calculation.id),
            )
        logger.info(
            "nav_approved",
            nav_id=str(calculation.id),
            fund_id=str(calculation.fund_id),
            valuation_date=calculation.valuation_date.isoformat(),
            version=calculation.version,
            approver_id=str(approver_id),
        )
        return calculation

    def reject_nav(
        self,
        calculation_id: UUID,
        actor_id: UUID | None = None,
        note: str | None = None,
    ) -> NAVCalculation:
        with self._store.transaction():
            calculation = self._get(calculation_id)
            previous_status = calculation.status
            calculation.reject(note)
            self._nav_repo.update_status(calculation, previous_status)
        logger.info(
            "nav_rejected",
            nav_id=str(calculation.id),
            actor_id=str(actor_id) if actor_id else None,
            note=calculation.rejection_note,
        )
        return calculation

    def get_nav(self, calculation_id: UUID) -> NAVCalculation:
        return self._get(calculation_id)

    def get_line_items(self, calculation_id: UUID) -> list[NAVLineItem]:
        self._get(calculation_id)
        return self._nav_repo.get_line_items(calculation_id)

    def get_latest_nav(
        self, fund_id: UUID, share_class_id: UUID | None = None
    ) -> NAVCalculation | None:
        return self._nav_repo.get_latest_approved(fund_id, share_class_id)

    def get_nav_history(
        self,
        fund_id: UUID,
        share_class_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[NAVCalculation]:
        if start_date and end_date and start_date > end_date:
            raise ValidationError(f"start_date {start_date} is after end_date {end_date}")
        return list(
            self._nav_repo.list_approved(fund_id, share_class_id, start_date, end_date)
        )

    def list_for_review(self, fund_id: UUID) -> list[NAVCalculation]:
        return [
            calc
            for calc in self._nav_repo.list_for_review(fund_id)
            if calc.status in (NAVStatus.DRAFT, NAVStatus.PENDING_APPROVAL)
        ]
