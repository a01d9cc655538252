"""Dependency injection container for the Fund NAV Engine.

Wires the SQLite store, its repositories and the services on top of them.
Everything is built lazily on first access and cached for reuse.

Usage:
    from fund_nav_engine.container import Container, get_container

    container = get_container()
    nav = container.nav_service.get_latest_nav(fund_id)

    # Tests and the API can hand in an existing database
    container = Container(database=SQLiteDatabase(":memory:"))
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING

from fund_nav_engine.config import Settings, get_settings
from fund_nav_engine.logging_config import get_logger
from fund_nav_engine.repositories.sqlite import (
    SQLiteCapitalAccountRepository,
    SQLiteDatabase,
    SQLiteDistributionRepository,
    SQLiteExchangeRateRepository,
    SQLiteFeeStructureRepository,
    SQLiteFundRepository,
    SQLiteNAVCalculationRepository,
    SQLitePerformanceMetricRepository,
    SQLiteRedemptionRequestRepository,
    SQLiteShareClassRepository,
    SQLiteTransactionRepository,
)

if TYPE_CHECKING:
    from fund_nav_engine.services.currency import CurrencyServiceImpl
    from fund_nav_engine.services.distributions import DistributionServiceImpl
    from fund_nav_engine.services.fees import FeeCalculatorImpl
    from fund_nav_engine.services.funds import FundServiceImpl
    from fund_nav_engine.services.ledger import CapitalLedgerServiceImpl
    from fund_nav_engine.services.nav import NAVServiceImpl
    from fund_nav_engine.services.performance import PerformanceServiceImpl
    from fund_nav_engine.services.redemptions import RedemptionServiceImpl

logger = get_logger(__name__)


class Container:
    """Dependency injection container.

    The container can be configured with custom settings for testing:

        test_settings = Settings(sqlite_path=":memory:")
        container = Container(settings=test_settings)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        database: SQLiteDatabase | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._external_database = database
        logger.debug(
            "container_created",
            environment=self._settings.environment.value,
            external_database=database is not None,
        )

    @property
    def settings(self) -> Settings:
        """Get application settings."""
        return self._settings

    @cached_property
    def database(self) -> SQLiteDatabase:
        """Get the SQLite database, creating and initializing it on first access."""
        if self._external_database is not None:
            return self._external_database
        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)
        # Connections are per thread; close() can run on any of them.
        db = SQLiteDatabase(db_path, check_same_thread=False)
        db.initialize()
        return db

    # Repositories

    @cached_property
    def fund_repo(self) -> SQLiteFundRepository:
        return SQLiteFundRepository(self.database)

    @cached_property
    def share_class_repo(self) -> SQLiteShareClassRepository:
        return SQLiteShareClassRepository(self.database)

    @cached_property
    def fee_structure_repo(self) -> SQLiteFeeStructureRepository:
        return SQLiteFeeStructureRepository(self.database)

    @cached_property
    def nav_repo(self) -> SQLiteNAVCalculationRepository:
        return SQLiteNAVCalculationRepository(self.database)

    @cached_property
    def capital_account_repo(self) -> SQLiteCapitalAccountRepository:
        return SQLiteCapitalAccountRepository(self.database)

    @cached_property
    def transaction_repo(self) -> SQLiteTransactionRepository:
        return SQLiteTransactionRepository(self.database)

    @cached_property
    def redemption_repo(self) -> SQLiteRedemptionRequestRepository:
        return SQLiteRedemptionRequestRepository(self.database)

    @cached_property
    def distribution_repo(self) -> SQLiteDistributionRepository:
        return SQLiteDistributionRepository(self.database)

    @cached_property
    def metric_repo(self) -> SQLitePerformanceMetricRepository:
        return SQLitePerformanceMetricRepository(self.database)

    @cached_property
    def exchange_rate_repo(self) -> SQLiteExchangeRateRepository:
        return SQLiteExchangeRateRepository(self.database)

    # Services

    @cached_property
    def fund_service(self) -> "FundServiceImpl":
        """Get the fund setup service."""
        from fund_nav_engine.services.funds import FundServiceImpl

        return FundServiceImpl(
            store=self.database,
            fund_repo=self.fund_repo,
            share_class_repo=self.share_class_repo,
            fee_structure_repo=self.fee_structure_repo,
            capital_account_repo=self.capital_account_repo,
            default_price_precision=self._settings.default_price_precision,
        )

    @cached_property
    def currency_service(self) -> "CurrencyServiceImpl":
        from fund_nav_engine.services.currency import CurrencyServiceImpl

        return CurrencyServiceImpl(self.exchange_rate_repo)

    @cached_property
    def fee_calculator(self) -> "FeeCalculatorImpl":
        from fund_nav_engine.services.fees import FeeCalculatorImpl

        return FeeCalculatorImpl(
            fee_structure_repo=self.fee_structure_repo,
            money_places=self._settings.money_places,
        )

    @cached_property
    def nav_service(self) -> "NAVServiceImpl":
        """Get the NAV calculation and approval service."""
        from fund_nav_engine.services.nav import NAVServiceImpl

        return NAVServiceImpl(
            store=self.database,
            fund_repo=self.fund_repo,
            share_class_repo=self.share_class_repo,
            nav_repo=self.nav_repo,
            fee_calculator=self.fee_calculator,
            currency_service=self.currency_service,
            settings=self._settings,
        )

    @cached_property
    def ledger_service(self) -> "CapitalLedgerServiceImpl":
        """Get the capital account ledger."""
        from fund_nav_engine.services.ledger import CapitalLedgerServiceImpl

        return CapitalLedgerServiceImpl(
            store=self.database,
            capital_account_repo=self.capital_account_repo,
            transaction_repo=self.transaction_repo,
            fund_repo=self.fund_repo,
            share_class_repo=self.share_class_repo,
        )

    @cached_property
    def redemption_service(self) -> "RedemptionServiceImpl":
        """Get the redemption workflow service."""
        from fund_nav_engine.services.redemptions import RedemptionServiceImpl

        return RedemptionServiceImpl(
            store=self.database,
            redemption_repo=self.redemption_repo,
            capital_account_repo=self.capital_account_repo,
            fund_repo=self.fund_repo,
            nav_repo=self.nav_repo,
            ledger_service=self.ledger_service,
            money_places=self._settings.money_places,
        )

    @cached_property
    def distribution_service(self) -> "DistributionServiceImpl":
        from fund_nav_engine.services.distributions import DistributionServiceImpl

        return DistributionServiceImpl(
            store=self.database,
            distribution_repo=self.distribution_repo,
            capital_account_repo=self.capital_account_repo,
            fund_repo=self.fund_repo,
            share_class_repo=self.share_class_repo,
            ledger_service=self.ledger_service,
            money_places=self._settings.money_places,
        )

    @cached_property
    def performance_service(self) -> "PerformanceServiceImpl":
        """Get the performance metrics service."""
        from fund_nav_engine.services.performance import PerformanceServiceImpl

        return PerformanceServiceImpl(
            fund_repo=self.fund_repo,
            nav_repo=self.nav_repo,
            transaction_repo=self.transaction_repo,
            capital_account_repo=self.capital_account_repo,
            metric_repo=self.metric_repo,
            money_places=self._settings.money_places,
            ratio_places=self._settings.ratio_places,
        )

    def close(self) -> None:
        """Close the database if this container opened it."""
        if self._external_database is None and "database" in self.__dict__:
            logger.info("closing_database_connection")
            self.database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton.

    For testing, create a Container directly with custom settings instead
    of using this function.
    """
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset the global container."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()


def get_database() -> SQLiteDatabase:
    """FastAPI dependency for database access."""
    return get_container().database
