"""Fund, share class, fee structure and capital account setup."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from fund_nav_engine.domain.capital import CapitalAccount
from fund_nav_engine.domain.funds import FeeStructure, Fund, ShareClass
from fund_nav_engine.domain.value_objects import ZERO, FundStatus
from fund_nav_engine.exceptions import (
    FundNotFoundError,
    ShareClassNotFoundError,
    StateConflictError,
    ValidationError,
)
from fund_nav_engine.logging_config import get_logger
from fund_nav_engine.repositories.interfaces import (
    CapitalAccountRepository,
    FeeStructureRepository,
    FundRepository,
    ShareClassRepository,
    TransactionalStore,
)
from fund_nav_engine.services.interfaces import FundService

logger = get_logger(__name__)


class FundServiceImpl(FundService):
    def __init__(
        self,
        store: TransactionalStore,
        fund_repo: FundRepository,
        share_class_repo: ShareClassRepository,
        fee_structure_repo: FeeStructureRepository,
        capital_account_repo: CapitalAccountRepository,
        default_price_precision: int = 4,
    ) -> None:
        self._store = store
        self._fund_repo = fund_repo
        self._share_class_repo = share_class_repo
        self._fee_structure_repo = fee_structure_repo
        self._capital_account_repo = capital_account_repo
        self._default_price_precision = default_price_precision

    def create_fund(
        self,
        code: str,
        name: str,
        base_currency: str = "USD",
        inception_date: date | None = None,
        fund_type: str = "hedge",
        nav_frequency: str = "monthly",
        total_commitments: Decimal = ZERO,
    ) -> Fund:
        fund = Fund(
            code=code,
            name=name,
            base_currency=base_currency,
            inception_date=inception_date or date.today(),
            fund_type=fund_type,
            nav_frequency=nav_frequency,
            total_commitments=total_commitments,
        )
        # Code check and insert run in one unit.
        with self._store.transaction():
            if self._fund_repo.get_by_code(fund.code) is not None:
                raise ValidationError(
                    f"Fund code already exists: {fund.code}",
                    context={"code": fund.code},
                )
            self._fund_repo.add(fund)
        logger.info("fund_created", fund_id=str(fund.id), code=fund.code)
        return fund

    def get_fund(self, fund_id: UUID) -> Fund:
        fund = self._fund_repo.get(fund_id)
        if fund is None:
            raise FundNotFoundError(fund_id)
        return fund

    def list_funds(self) -> list[Fund]:
        return list(self._fund_repo.list_all())

    def close_fund(self, fund_id: UUID) -> Fund:
        fund = self.get_fund(fund_id)
        if fund.status == FundStatus.CLOSED:
            raise StateConflictError(
                f"Fund {fund.code} is already closed", context={"fund_id": str(fund_id)}
            )
        fund.close()
        self._fund_repo.update(fund)
        logger.info("fund_closed", fund_id=str(fund.id))
        return fund

    def add_share_class(
        self,
        fund_id: UUID,
        class_code: str,
        class_name: str,
        currency: str | None = None,
        management_fee_rate: Decimal = ZERO,
        performance_fee_rate: Decimal = ZERO,
        hurdle_rate: Decimal = ZERO,
        high_water_mark: bool = True,
        price_precision: int | None = None,
        minimum_investment: Decimal = ZERO,
    ) -> ShareClass:
        fund = self.get_fund(fund_id)
        share_class = ShareClass(
            fund_id=fund.id,
            class_code=class_code,
            class_name=class_name,
            currency=currency or fund.base_currency,
            management_fee_rate=management_fee_rate,
            performance_fee_rate=performance_fee_rate,
            hurdle_rate=hurdle_rate,
            high_water_mark=high_water_mark,
            price_precision=(
                self._default_price_precision
                if price_precision is None
                else price_precision
            ),
            minimum_investment=minimum_investment,
        )
        with self._store.transaction():
            existing = {
                sc.class_code for sc in self._share_class_repo.list_by_fund(fund.id)
            }
            if share_class.class_code in existing:
                raise ValidationError(
                    f"Share class {share_class.class_code} already exists "
                    f"in fund {fund.code}"
                )
            self._share_class_repo.add(share_class)
        logger.info(
            "share_class_added",
            fund_id=str(fund.id),
            share_class_id=str(share_class.id),
            class_code=share_class.class_code,
        )
        return share_class

    def get_share_class(self, share_class_id: UUID) -> ShareClass:
        share_class = self._share_class_repo.get(share_class_id)
        if share_class is None:
            raise ShareClassNotFoundError(share_class_id)
        return share_class

    def list_share_classes(self, fund_id: UUID) -> list[ShareClass]:
        return list(self._share_class_repo.list_by_fund(fund_id))

    def _require_share_class_in_fund(
        self, fund_id: UUID, share_class_id: UUID | None
    ) -> None:
        if share_class_id is None:
            return
        share_class = self.get_share_class(share_class_id)
        if share_class.fund_id != fund_id:
            raise ValidationError(
                f"Share class {share_class_id} does not belong to fund {fund_id}"
            )

    def add_fee_structure(
        self,
        fund_id: UUID,
        fee_type: str,
        rate: Decimal,
        effective_from: date,
        share_class_id: UUID | None = None,
        frequency: str = "monthly",
        hurdle_rate: Decimal = ZERO,
        effective_to: date | None = None,
    ) -> FeeStructure:
        fund = self.get_fund(fund_id)
        self._require_share_class_in_fund(fund.id, share_class_id)
        try:
            fee_structure = FeeStructure(
                fund_id=fund.id,
                fee_type=fee_type,
                rate=rate,
                effective_from=effective_from,
                share_class_id=share_class_id,
                frequency=frequency,
                hurdle_rate=hurdle_rate,
                effective_to=effective_to,
            )
        except ValueError as exc:
            raise ValidationError(f"Invalid fee structure: {exc}") from exc
        self._fee_structure_repo.add(fee_structure)
        logger.info(
            "fee_structure_added",
            fund_id=str(fund.id),
            fee_type=fee_structure.fee_type.value,
            rate=str(fee_structure.rate),
        )
        return fee_structure

    def list_fee_structures(
        self, fund_id: UUID, share_class_id: UUID | None = None
    ) -> list[FeeStructure]:
        return list(self._fee_structure_repo.list_by_key(fund_id, share_class_id))

    def open_capital_account(
        self,
        fund_id: UUID,
        investor_id: UUID,
        account_number: str,
        share_class_id: UUID | None = None,
        commitment_amount: Decimal = ZERO,
        inception_date: date | None = None,
    ) -> CapitalAccount:
        fund = self.get_fund(fund_id)
        if not fund.is_active:
            raise StateConflictError(
                f"Fund {fund.code} is closed", context={"fund_id": str(fund.id)}
            )
        self._require_share_class_in_fund(fund.id, share_class_id)
        account = CapitalAccount(
            fund_id=fund.id,
            investor_id=investor_id,
            account_number=account_number,
            share_class_id=share_class_id,
            commitment_amount=commitment_amount,
            inception_date=inception_date or date.today(),
        )
        with self._store.transaction():
            if self._capital_account_repo.get_by_account_number(
                account.account_number
            ):
                raise ValidationError(
                    f"Account number already exists: {account.account_number}"
                )
            self._capital_account_repo.add(account)
        logger.info(
            "capital_account_opened",
            fund_id=str(fund.id),
            account_id=str(account.id),
            account_number=account.account_number,
        )
        return account

    def list_capital_accounts(self, fund_id: UUID) -> list[CapitalAccount]:
        return list(self._capital_account_repo.list_by_fund(fund_id))
