from collections.abc import Iterator
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from fund_nav_engine.config import Environment, Settings
from fund_nav_engine.container import Container
from fund_nav_engine.domain.capital import CapitalAccount
from fund_nav_engine.domain.funds import Fund, ShareClass
from fund_nav_engine.domain.nav import NAVCalculation, NAVLineItem
from fund_nav_engine.domain.value_objects import LineItemKind
from fund_nav_engine.repositories.sqlite import SQLiteDatabase


@pytest.fixture
def settings() -> Settings:
    return Settings(environment=Environment.TESTING, sqlite_path=":memory:")


@pytest.fixture
def db() -> Iterator[SQLiteDatabase]:
    """Create an in-memory SQLite database for testing."""
    database = SQLiteDatabase(":memory:")
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def container(db: SQLiteDatabase, settings: Settings) -> Container:
    return Container(settings=settings, database=db)


@pytest.fixture
def actor_id() -> UUID:
    return uuid4()


@pytest.fixture
def fund(container: Container) -> Fund:
    return container.fund_service.create_fund(
        code="GOF",
        name="Global Opportunities Fund",
        base_currency="USD",
        inception_date=date(2024, 1, 1),
    )


@pytest.fixture
def share_class(container: Container, fund: Fund) -> ShareClass:
    return container.fund_service.add_share_class(
        fund.id,
        class_code="A",
        class_name="Class A",
        management_fee_rate=Decimal("2"),
        performance_fee_rate=Decimal("20"),
        hurdle_rate=Decimal("8"),
    )


@pytest.fixture
def account(container: Container, fund: Fund) -> CapitalAccount:
    return container.fund_service.open_capital_account(
        fund.id,
        investor_id=uuid4(),
        account_number="INV-0001",
        commitment_amount=Decimal("10000000"),
        inception_date=date(2024, 1, 1),
    )


def make_line_items(
    assets: str = "10000000", liabilities: str = "500000"
) -> list[NAVLineItem]:
    return [
        NAVLineItem(
            kind=LineItemKind.ASSET,
            category="equity",
            description="Listed equities",
            amount=Decimal(assets),
        ),
        NAVLineItem(
            kind=LineItemKind.LIABILITY,
            category="accrued_expense",
            description="Accrued expenses",
            amount=Decimal(liabilities),
        ),
    ]


def approve_nav(
    container: Container,
    fund: Fund,
    valuation_date: date,
    actor_id: UUID,
    assets: str = "10000000",
    liabilities: str = "500000",
    total_shares: str = "1000000",
    share_class_id: UUID | None = None,
) -> NAVCalculation:
    """Calculate, submit and approve a NAV in one go."""
    calc = container.nav_service.calculate_nav(
        fund_id=fund.id,
        share_class_id=share_class_id,
        valuation_date=valuation_date,
        line_items=make_line_items(assets, liabilities),
        total_shares=Decimal(total_shares),
        actor_id=actor_id,
    )
    container.nav_service.submit_nav(calc.id, actor_id)
    return container.nav_service.approve_nav(calc.id, actor_id)
