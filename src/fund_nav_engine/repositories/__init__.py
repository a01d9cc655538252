from fund_nav_engine.repositories.interfaces import (
    CapitalAccountRepository,
    DistributionRepository,
    ExchangeRateRepository,
    FeeStructureRepository,
    FundRepository,
    NAVCalculationRepository,
    PerformanceMetricRepository,
    RedemptionRequestRepository,
    ShareClassRepository,
    TransactionalStore,
    TransactionRepository,
)
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

__all__ = [
    "CapitalAccountRepository",
    "DistributionRepository",
    "ExchangeRateRepository",
    "FeeStructureRepository",
    "FundRepository",
    "NAVCalculationRepository",
    "PerformanceMetricRepository",
    "RedemptionRequestRepository",
    "ShareClassRepository",
    "TransactionalStore",
    "TransactionRepository",
    "SQLiteCapitalAccountRepository",
    "SQLiteDatabase",
    "SQLiteDistributionRepository",
    "SQLiteExchangeRateRepository",
    "SQLiteFeeStructureRepository",
    "SQLiteFundRepository",
    "SQLiteNAVCalculationRepository",
    "SQLitePerformanceMetricRepository",
    "SQLiteRedemptionRequestRepository",
    "SQLiteShareClassRepository",
    "SQLiteTransactionRepository",
]
