from fund_nav_engine.services.currency import CurrencyServiceImpl
from fund_nav_engine.services.distributions import DistributionServiceImpl
from fund_nav_engine.services.fees import FeeCalculatorImpl
from fund_nav_engine.services.funds import FundServiceImpl
from fund_nav_engine.services.interfaces import (
    CapitalLedgerService,
    CurrencyService,
    DistributionService,
    FeeAccrual,
    FeeCalculator,
    FundService,
    NAVService,
    PerformanceService,
    RedemptionService,
)
from fund_nav_engine.services.ledger import CapitalLedgerServiceImpl
from fund_nav_engine.services.nav import NAVServiceImpl
from fund_nav_engine.services.performance import PerformanceServiceImpl
from fund_nav_engine.services.redemptions import RedemptionServiceImpl

__all__ = [
    "CapitalLedgerService",
    "CapitalLedgerServiceImpl",
    "CurrencyService",
    "CurrencyServiceImpl",
    "DistributionService",
    "DistributionServiceImpl",
    "FeeAccrual",
    "FeeCalculator",
    "FeeCalculatorImpl",
    "FundService",
    "FundServiceImpl",
    "NAVService",
    "NAVServiceImpl",
    "PerformanceService",
    "PerformanceServiceImpl",
    "RedemptionService",
    "RedemptionServiceImpl",
]
