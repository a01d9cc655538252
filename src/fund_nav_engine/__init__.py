from fund_nav_engine.domain.capital import CapitalAccount, Transaction
from fund_nav_engine.domain.funds import FeeStructure, Fund, ShareClass
from fund_nav_engine.domain.nav import NAVCalculation, NAVLineItem
from fund_nav_engine.domain.performance import PerformanceMetric
from fund_nav_engine.domain.redemptions import RedemptionRequest
from fund_nav_engine.domain.value_objects import (
    NAVStatus,
    PeriodType,
    RedemptionStatus,
    TransactionType,
)

__all__ = [
    "CapitalAccount",
    "FeeStructure",
    "Fund",
    "NAVCalculation",
    "NAVLineItem",
    "NAVStatus",
    "PerformanceMetric",
    "PeriodType",
    "RedemptionRequest",
    "RedemptionStatus",
    "ShareClass",
    "Transaction",
    "TransactionType",
]

__version__ = "0.1.0"
