"""Tests for fund setup records, exchange rates and the container."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from fund_nav_engine.config import Settings
from fund_nav_engine.container import Container
from fund_nav_engine.domain.exchange_rates import ExchangeRate
from fund_nav_engine.domain.funds import FeeStructure, Fund, ShareClass
from fund_nav_engine.domain.value_objects import AccrualFrequency, FeeType, FundStatus
from fund_nav_engine.exceptions import InvalidAmountError, ValidationError
from fund_nav_engine.repositories.sqlite import SQLiteDatabase


class TestFund:
    def test_defaults(self):
        fund = Fund(code=" GOF ", name="Global Opportunities Fund", base_currency="usd")

        assert fund.code == "GOF"
        assert fund.base_currency == "USD"
        assert fund.status == FundStatus.ACTIVE
        assert fund.is_active

    def test_code_is_required(self):
        with pytest.raises(ValidationError):
            Fund(code="  ", name="Nameless")

    def test_bad_currency(self):
        with pytest.raises(InvalidAmountError):
            Fund(code="GOF", name="Fund", base_currency="DOLLARS")

    def test_close(self):
        fund = Fund(code="GOF", name="Fund")
        fund.close()
        assert fund.status == FundStatus.CLOSED
        assert not fund.is_active


class TestShareClass:
    def test_rate_above_hundred_is_rejected(self):
        with pytest.raises(ValidationError):
            ShareClass(
                fund_id=uuid4(),
                class_code="A",
                class_name="Class A",
                management_fee_rate=Decimal("101"),
            )

    def test_price_precision_range(self):
        with pytest.raises(ValidationError):
            ShareClass(fund_id=uuid4(), class_code="A", class_name="A", price_precision=11)


class TestFeeStructure:
    def test_unknown_frequency_is_kept(self):
        fee = FeeStructure(
            fund_id=uuid4(),
            fee_type=FeeType.MANAGEMENT,
            rate=Decimal("2"),
            effective_from=date(2024, 1, 1),
            frequency="fortnightly",
        )
        assert fee.frequency == "fortnightly"

    def test_known_frequency_is_an_enum(self):
        fee = FeeStructure(
            fund_id=uuid4(),
            fee_type="management",
            rate=Decimal("2"),
            effective_from=date(2024, 1, 1),
            frequency="quarterly",
        )
        assert fee.frequency == AccrualFrequency.QUARTERLY

    def test_window_must_not_be_inverted(self):
        with pytest.raises(ValidationError):
            FeeStructure(
                fund_id=uuid4(),
                fee_type=FeeType.MANAGEMENT,
                rate=Decimal("2"),
                effective_from=date(2024, 6, 1),
                effective_to=date(2024, 1, 1),
            )


class TestExchangeRate:
    def test_same_currency_is_rejected(self):
        with pytest.raises(ValidationError):
            ExchangeRate("USD", "usd", Decimal("1"), date(2024, 1, 31))

    def test_rate_must_be_positive(self):
        with pytest.raises(InvalidAmountError):
            ExchangeRate("EUR", "USD", Decimal("0"), date(2024, 1, 31))

    def test_inverse(self):
        rate = ExchangeRate("EUR", "USD", Decimal("1.25"), date(2024, 1, 31))
        assert rate.inverse_rate == Decimal("0.8")
        assert rate.convert(Decimal("100")) == Decimal("125.00")


class TestCurrencyService:
    def test_same_currency_is_one(self, container: Container):
        assert container.currency_service.get_rate("usd", "USD", date(2024, 1, 31)) == 1

    def test_latest_rate_on_or_before(self, container: Container):
        service = container.currency_service
        service.add_rate(ExchangeRate("EUR", "USD", Decimal("1.10"), date(2024, 1, 1)))
        service.add_rate(ExchangeRate("EUR", "USD", Decimal("1.20"), date(2024, 2, 1)))

        assert service.get_rate("EUR", "USD", date(2024, 1, 31)) == Decimal("1.10")
        assert service.get_rate("EUR", "USD", date(2024, 3, 1)) == Decimal("1.20")
        assert service.get_rate("EUR", "USD", date(2023, 12, 31)) is None

    def test_inverse_lookup(self, container: Container):
        service = container.currency_service
        service.add_rate(ExchangeRate("USD", "JPY", Decimal("150"), date(2024, 1, 1)))

        rate = service.get_rate("JPY", "USD", date(2024, 1, 31))
        assert rate is not None
        assert rate * Decimal("150") == pytest.approx(Decimal("1"))


class TestContainer:
    def test_external_database_is_left_open(self, settings: Settings, db: SQLiteDatabase):
        with Container(settings, database=db) as container:
            container.fund_service.create_fund("GOF", "Fund")

        assert len(Container(settings, database=db).fund_service.list_funds()) == 1

    def test_owned_database_is_created_on_demand(self, tmp_path):
        db_path = tmp_path / "engine.db"
        container = Container(settings=Settings(sqlite_path=db_path))
        assert not db_path.exists()

        container.fund_service.create_fund("GOF", "Fund")
        container.close()

        assert db_path.exists()
        with Container(settings=Settings(sqlite_path=db_path)) as reopened:
            assert [f.code for f in reopened.fund_service.list_funds()] == ["GOF"]

    def test_services_are_cached(self, container: Container):
        assert container.nav_service is container.nav_service
