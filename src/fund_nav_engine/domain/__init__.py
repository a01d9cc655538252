from fund_nav_engine.domain.capital import CapitalAccount, Transaction
from fund_nav_engine.domain.distributions import Distribution, DistributionAllocation
from fund_nav_engine.domain.exchange_rates import ExchangeRate
from fund_nav_engine.domain.funds import FeeStructure, Fund, ShareClass
from fund_nav_engine.domain.nav import NAVCalculation, NAVLineItem
from fund_nav_engine.domain.performance import (
    PerformanceMetric,
    PeriodBounds,
    period_bounds,
)
from fund_nav_engine.domain.redemptions import RedemptionRequest

__all__ = [
    "CapitalAccount",
    "Distribution",
    "DistributionAllocation",
    "ExchangeRate",
    "FeeStructure",
    "Fund",
    "NAVCalculation",
    "NAVLineItem",
    "PerformanceMetric",
    "PeriodBounds",
    "RedemptionRequest",
    "ShareClass",
    "Transaction",
    "period_bounds",
]
