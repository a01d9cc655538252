"""Fee accrual for a valuation period."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.domain.funds import FeeStructure
from fund_nav_engine.domain.value_objects import (
    ZERO,
    AccrualFrequency,
    FeeType,
    round_money,
)
from fund_nav_engine.logging_config import get_logger
from fund_nav_engine.repositories.interfaces import FeeStructureRepository
from fund_nav_engine.services.interfaces import FeeAccrual, FeeCalculator

logger = get_logger(__name__)

HUNDRED = Decimal("100")

_PERIODS_PER_YEAR = {
    AccrualFrequency.MONTHLY: Decimal("12"),
    AccrualFrequency.QUARTERLY: Decimal("4"),
    AccrualFrequency.ANNUAL: Decimal("1"),
}


def periods_per_year(frequency: AccrualFrequency | str) -> Decimal:
    # Unknown frequencies accrue monthly.
    return _PERIODS_PER_YEAR.get(frequency, Decimal("12"))


def management_fee(structure: FeeStructure, current_nav: Decimal) -> Decimal:
    annual = current_nav * structure.rate / HUNDRED
    return annual / periods_per_year(structure.frequency)


def performance_fee(
    structure: FeeStructure,
    current_nav: Decimal,
    previous_nav: Decimal,
    high_water_mark: Decimal | None = None,
) -> Decimal:
    """Performance fee on the gain above the hurdle.

    With a high-water mark the baseline is the higher of the previous NAV and
    the mark, so losses that were already charged are not charged again on
    the way back up.
    """
    baseline = previous_nav
    if high_water_mark is not None and high_water_mark > baseline:
        baseline = high_water_mark
    gain = current_nav - baseline
    if gain <= ZERO:
        return ZERO
    hurdle = baseline * structure.hurdle_rate / HUNDRED
    excess = max(ZERO, gain - hurdle)
    return excess * structure.rate / HUNDRED


class FeeCalculatorImpl(FeeCalculator):
    def __init__(
        self,
        fee_structure_repo: FeeStructureRepository | None = None,
        money_places: int = 2,
    ) -> None:
        self._fee_structure_repo = fee_structure_repo
        self._money_places = money_places

    def compute(
        self,
        structures: Iterable[FeeStructure],
        current_nav: Decimal,
        previous_nav: Decimal,
        high_water_mark: Decimal | None = None,
    ) -> FeeAccrual:
        management = ZERO
        performance = ZERO
        for structure in structures:
            if structure.fee_type == FeeType.MANAGEMENT:
                management += management_fee(structure, current_nav)
            elif structure.fee_type == FeeType.PERFORMANCE:
                performance += performance_fee(
                    structure, current_nav, previous_nav, high_water_mark
                )
        return FeeAccrual(
            management_fee=round_money(management, self._money_places),
            performance_fee=round_money(performance, self._money_places),
        )

    def calculate(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        as_of: date,
        current_nav: Decimal,
        previous_nav: Decimal,
        high_water_mark: Decimal | None = None,
    ) -> FeeAccrual:
        if self._fee_structure_repo is None:
            raise RuntimeError("FeeCalculatorImpl.calculate needs a fee structure repository")
        structures = list(
            self._fee_structure_repo.list_active(fund_id, share_class_id, as_of)
        )
        accrual = self.compute(structures, current_nav, previous_nav, high_water_mark)
        logger.debug(
            "fees_accrued",
            fund_id=str(fund_id),
            share_class_id=str(share_class_id) if share_class_id else None,
            structures=len(structures),
            management_fee=str(accrual.management_fee),
            performance_fee=str(accrual.performance_fee),
        )
        return accrual
