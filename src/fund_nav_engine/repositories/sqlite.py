"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import contextlib
import json
import sqlite3
import threading
from collections.abc import Iterable, Iterator
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID, uuid4

from fund_nav_engine.domain.capital import CapitalAccount, Transaction
from fund_nav_engine.domain.distributions import Distribution, DistributionAllocation
from fund_nav_engine.domain.exchange_rates import ExchangeRate
from fund_nav_engine.domain.funds import FeeStructure, Fund, ShareClass
from fund_nav_engine.domain.nav import NAVCalculation, NAVLineItem
from fund_nav_engine.domain.performance import PerformanceMetric
from fund_nav_engine.domain.redemptions import RedemptionRequest
from fund_nav_engine.domain.value_objects import (
    DistributionStatus,
    NAVStatus,
    PeriodType,
    RedemptionStatus,
    TransactionStatus,
    TransactionType,
)
from fund_nav_engine.exceptions import (
    ConcurrentModificationError,
    ConsistencyError,
)
from fund_nav_engine.logging_config import get_logger
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

logger = get_logger(__name__)


def _key(share_class_id: UUID | None) -> str:
    # NULLs never collide in a UNIQUE index, so fund-level rows use ''.
    return str(share_class_id) if share_class_id else ""


def _opt_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


def _opt_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _opt_decimal(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


def _opt_str(value: object | None) -> str | None:
    return str(value) if value is not None else None


class SQLiteDatabase(TransactionalStore):
    """SQLite database connection manager.

    Each thread gets its own connection, opened in autocommit mode, so an
    atomic unit belongs to the caller that opened it and nobody else's
    statements can join it. Multi-row writes go through transaction(),
    which takes the database write lock up front with BEGIN IMMEDIATE;
    other writers wait on SQLite's busy timeout and readers only ever see
    committed rows.

    ":memory:" opens a private shared-cache database so that every thread
    sees the same data. Pass check_same_thread=False when close() may run
    on a different thread from the ones that used the database.
    """

    def __init__(
        self,
        path: str | Path = ":memory:",
        check_same_thread: bool = True,
        timeout: float = 5.0,
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._timeout = timeout
        self._uri = (
            f"file:fne-{uuid4().hex}?mode=memory&cache=shared"
            if self._path == ":memory:"
            else None
        )
        self._local = threading.local()
        self._connections: list[sqlite3.Connection] = []

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the calling thread's connection."""
        conn: sqlite3.Connection | None = getattr(self._local, "connection", None)
        if conn is None:
            conn = sqlite3.connect(
                self._uri or self._path,
                timeout=self._timeout,
                check_same_thread=self._check_same_thread,
                isolation_level=None,
                uri=self._uri is not None,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._local.connection = conn
            self._connections.append(conn)
        return conn

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, "depth", 0) > 0

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.get_connection()
        depth = getattr(self._local, "depth", 0)
        if depth > 0:
            self._local.depth = depth + 1
            try:
                yield conn
            finally:
                self._local.depth = depth
            return

        conn.execute("BEGIN IMMEDIATE")
        self._local.depth = 1
        try:
            yield conn
        except sqlite3.DatabaseError as exc:
            conn.execute("ROLLBACK")
            logger.error("atomic_unit_rolled_back", error=str(exc))
            raise ConsistencyError(
                f"Atomic write failed and was rolled back: {exc}"
            ) from exc
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        else:
            conn.execute("COMMIT")
        finally:
            self._local.depth = 0

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        conn.executescript(
            """
            -- Funds table
            CREATE TABLE IF NOT EXISTS funds (
                id TEXT PRIMARY KEY,
                code TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                base_currency TEXT NOT NULL DEFAULT 'USD',
                status TEXT NOT NULL DEFAULT 'active',
                inception_date TEXT NOT NULL,
                fund_type TEXT NOT NULL DEFAULT 'hedge',
                nav_frequency TEXT NOT NULL DEFAULT 'monthly',
                total_commitments TEXT NOT NULL DEFAULT '0',
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            -- Share classes table
            CREATE TABLE IF NOT EXISTS share_classes (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                class_code TEXT NOT NULL,
                class_name TEXT NOT NULL,
                currency TEXT NOT NULL DEFAULT 'USD',
                management_fee_rate TEXT NOT NULL DEFAULT '0',
                performance_fee_rate TEXT NOT NULL DEFAULT '0',
                hurdle_rate TEXT NOT NULL DEFAULT '0',
                high_water_mark INTEGER NOT NULL DEFAULT 1,
                price_precision INTEGER NOT NULL DEFAULT 4,
                minimum_investment TEXT NOT NULL DEFAULT '0',
                status TEXT NOT NULL DEFAULT 'active',
                created_at TEXT NOT NULL,
                UNIQUE(fund_id, class_code),
                FOREIGN KEY (fund_id) REFERENCES funds(id)
            );

            -- Fee structures table
            CREATE TABLE IF NOT EXISTS fee_structures (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                share_class_key TEXT NOT NULL DEFAULT '',
                fee_type TEXT NOT NULL,
                rate TEXT NOT NULL,
                frequency TEXT NOT NULL DEFAULT 'monthly',
                hurdle_rate TEXT NOT NULL DEFAULT '0',
                effective_from TEXT NOT NULL,
                effective_to TEXT,
                status TEXT NOT NULL DEFAULT 'active',
                created_at TEXT NOT NULL,
                FOREIGN KEY (fund_id) REFERENCES funds(id)
            );

            -- NAV calculations table
            CREATE TABLE IF NOT EXISTS nav_calculations (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                share_class_key TEXT NOT NULL DEFAULT '',
                valuation_date TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 1,
                status TEXT NOT NULL DEFAULT 'draft',
                total_assets TEXT NOT NULL,
                total_liabilities TEXT NOT NULL,
                net_asset_value TEXT NOT NULL,
                total_shares_outstanding TEXT NOT NULL,
                nav_per_share TEXT NOT NULL,
                price_precision INTEGER NOT NULL DEFAULT 4,
                management_fee_accrued TEXT NOT NULL DEFAULT '0',
                performance_fee_accrued TEXT NOT NULL DEFAULT '0',
                total_fees TEXT NOT NULL DEFAULT '0',
                created_by TEXT NOT NULL,
                approved_by TEXT,
                approved_at TEXT,
                notes TEXT,
                rejection_note TEXT,
                calculation_data TEXT NOT NULL DEFAULT '{}',
                created_at TEXT NOT NULL,
                UNIQUE(fund_id, share_class_key, valuation_date, version),
                FOREIGN KEY (fund_id) REFERENCES funds(id)
            );
            -- At most one approved calculation per (fund, share class, date)
            CREATE UNIQUE INDEX IF NOT EXISTS uq_nav_calculations_approved_key
                ON nav_calculations(fund_id, share_class_key, valuation_date)
                WHERE status = 'approved';

            -- NAV line items table
            CREATE TABLE IF NOT EXISTS nav_line_items (
                id TEXT PRIMARY KEY,
                nav_calculation_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                category TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                quantity TEXT NOT NULL,
                unit_price TEXT NOT NULL,
                amount TEXT NOT NULL,
                currency TEXT NOT NULL,
                fx_rate TEXT,
                base_currency_amount TEXT NOT NULL,
                source TEXT NOT NULL DEFAULT 'manual',
                sort_order INTEGER NOT NULL DEFAULT 0,
                FOREIGN KEY (nav_calculation_id) REFERENCES nav_calculations(id) ON DELETE CASCADE
            );

            -- Capital accounts table
            CREATE TABLE IF NOT EXISTS capital_accounts (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                share_class_id TEXT,
                investor_id TEXT NOT NULL,
                account_number TEXT NOT NULL UNIQUE,
                shares_owned TEXT NOT NULL DEFAULT '0',
                capital_contributed TEXT NOT NULL DEFAULT '0',
                capital_returned TEXT NOT NULL DEFAULT '0',
                commitment_amount TEXT NOT NULL DEFAULT '0',
                status TEXT NOT NULL DEFAULT 'active',
                inception_date TEXT NOT NULL,
                version INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY (fund_id) REFERENCES funds(id),
                FOREIGN KEY (share_class_id) REFERENCES share_classes(id)
            );

            -- Capital transactions table (append-only ledger)
            CREATE TABLE IF NOT EXISTS capital_transactions (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                capital_account_id TEXT NOT NULL,
                transaction_type TEXT NOT NULL,
                transaction_date TEXT NOT NULL,
                settlement_date TEXT,
                amount TEXT NOT NULL,
                shares TEXT NOT NULL DEFAULT '0',
                price_per_share TEXT NOT NULL DEFAULT '0',
                currency TEXT NOT NULL DEFAULT 'USD',
                status TEXT NOT NULL DEFAULT 'settled',
                reference_number TEXT,
                description TEXT,
                nav_calculation_id TEXT,
                created_by TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (fund_id) REFERENCES funds(id),
                FOREIGN KEY (capital_account_id) REFERENCES capital_accounts(id)
            );

            -- Redemption requests table
            CREATE TABLE IF NOT EXISTS redemption_requests (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                capital_account_id TEXT NOT NULL,
                request_number TEXT NOT NULL UNIQUE,
                redemption_type TEXT NOT NULL,
                request_date TEXT NOT NULL,
                redemption_date TEXT NOT NULL,
                shares_requested TEXT NOT NULL,
                amount_requested TEXT NOT NULL,
                shares_approved TEXT,
                amount_approved TEXT,
                redemption_price TEXT,
                status TEXT NOT NULL DEFAULT 'requested',
                currency TEXT NOT NULL DEFAULT 'USD',
                reason TEXT,
                rejection_reason TEXT,
                requested_by TEXT,
                reviewed_by TEXT,
                approved_by TEXT,
                settlement_date TEXT,
                settlement_amount TEXT,
                transaction_id TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                CHECK (status != 'rejected' OR rejection_reason IS NOT NULL),
                FOREIGN KEY (capital_account_id) REFERENCES capital_accounts(id),
                FOREIGN KEY (transaction_id) REFERENCES capital_transactions(id)
            );

            -- Distributions and their per-account allocations
            CREATE TABLE IF NOT EXISTS distributions (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                share_class_id TEXT,
                distribution_number TEXT NOT NULL UNIQUE,
                distribution_type TEXT NOT NULL,
                record_date TEXT NOT NULL,
                payment_date TEXT NOT NULL,
                amount_per_share TEXT NOT NULL,
                total_shares TEXT NOT NULL,
                total_amount TEXT NOT NULL,
                currency TEXT NOT NULL DEFAULT 'USD',
                status TEXT NOT NULL DEFAULT 'pending',
                description TEXT,
                notes TEXT,
                created_by TEXT,
                approved_by TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                FOREIGN KEY (fund_id) REFERENCES funds(id),
                FOREIGN KEY (share_class_id) REFERENCES share_classes(id)
            );

            CREATE TABLE IF NOT EXISTS distribution_allocations (
                id TEXT PRIMARY KEY,
                distribution_id TEXT NOT NULL,
                capital_account_id TEXT NOT NULL,
                shares_held TEXT NOT NULL,
                allocation_amount TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                transaction_id TEXT,
                created_at TEXT NOT NULL,
                UNIQUE (distribution_id, capital_account_id),
                FOREIGN KEY (distribution_id) REFERENCES distributions(id),
                FOREIGN KEY (capital_account_id) REFERENCES capital_accounts(id),
                FOREIGN KEY (transaction_id) REFERENCES capital_transactions(id)
            );

            -- Performance metrics table (append-only calculation log)
            CREATE TABLE IF NOT EXISTS performance_metrics (
                id TEXT PRIMARY KEY,
                fund_id TEXT NOT NULL,
                share_class_id TEXT,
                capital_account_id TEXT,
                period_type TEXT NOT NULL,
                period_start TEXT NOT NULL,
                metric_date TEXT NOT NULL,
                beginning_nav TEXT NOT NULL,
                ending_nav TEXT NOT NULL,
                net_contributions TEXT NOT NULL,
                net_distributions TEXT NOT NULL,
                total_return_amount TEXT NOT NULL,
                total_return_percent TEXT NOT NULL,
                dpi TEXT NOT NULL,
                rvpi TEXT NOT NULL,
                tvpi TEXT NOT NULL,
                moic TEXT NOT NULL,
                calculation_notes TEXT NOT NULL DEFAULT '{}',
                created_at TEXT NOT NULL,
                FOREIGN KEY (fund_id) REFERENCES funds(id)
            );

            -- Exchange rates table
            CREATE TABLE IF NOT EXISTS exchange_rates (
                id TEXT PRIMARY KEY,
                from_currency TEXT NOT NULL,
                to_currency TEXT NOT NULL,
                rate TEXT NOT NULL,
                rate_date TEXT NOT NULL,
                source TEXT NOT NULL DEFAULT 'manual',
                created_at TEXT NOT NULL,
                UNIQUE(from_currency, to_currency, rate_date)
            );

            -- Indexes for common queries
            CREATE INDEX IF NOT EXISTS idx_share_classes_fund_id ON share_classes(fund_id);
            CREATE INDEX IF NOT EXISTS idx_fee_structures_key ON fee_structures(fund_id, share_class_key);
            CREATE INDEX IF NOT EXISTS idx_nav_calculations_key ON nav_calculations(fund_id, share_class_key, valuation_date);
            CREATE INDEX IF NOT EXISTS idx_nav_calculations_status ON nav_calculations(status);
            CREATE INDEX IF NOT EXISTS idx_nav_line_items_calculation ON nav_line_items(nav_calculation_id);
            CREATE INDEX IF NOT EXISTS idx_capital_accounts_fund_id ON capital_accounts(fund_id);
            CREATE INDEX IF NOT EXISTS idx_capital_transactions_account ON capital_transactions(capital_account_id);
            CREATE INDEX IF NOT EXISTS idx_capital_transactions_fund_date ON capital_transactions(fund_id, transaction_date);
            CREATE INDEX IF NOT EXISTS idx_redemption_requests_fund ON redemption_requests(fund_id);
            CREATE INDEX IF NOT EXISTS idx_redemption_requests_account ON redemption_requests(capital_account_id);
            CREATE INDEX IF NOT EXISTS idx_distributions_fund ON distributions(fund_id, status);
            CREATE INDEX IF NOT EXISTS idx_distribution_allocations_distribution ON distribution_allocations(distribution_id);
            CREATE INDEX IF NOT EXISTS idx_performance_metrics_fund ON performance_metrics(fund_id, period_type);
            CREATE INDEX IF NOT EXISTS idx_exchange_rates_pair_date ON exchange_rates(from_currency, to_currency, rate_date);
            """
        )

    def close(self) -> None:
        """Close every connection opened through this database."""
        for conn in self._connections:
            conn.close()
        self._connections = []
        self._local = threading.local()


class SQLiteFundRepository(FundRepository):
    """SQLite implementation of FundRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, fund: Fund) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO funds (id, code, name, base_currency, status, inception_date,
                               fund_type, nav_frequency, total_commitments, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(fund.id),
                fund.code,
                fund.name,
                fund.base_currency,
                fund.status.value,
                fund.inception_date.isoformat(),
                fund.fund_type,
                fund.nav_frequency,
                str(fund.total_commitments),
                fund.created_at.isoformat(),
                fund.updated_at.isoformat(),
            ),
        )

    def get(self, fund_id: UUID) -> Fund | None:
        conn = self._db.get_connection()
        row = conn.execute("SELECT * FROM funds WHERE id = ?", (str(fund_id),)).fetchone()
        if row is None:
            return None
        return self._row_to_fund(row)

    def get_by_code(self, code: str) -> Fund | None:
        conn = self._db.get_connection()
        row = conn.execute("SELECT * FROM funds WHERE code = ?", (code,)).fetchone()
        if row is None:
            return None
        return self._row_to_fund(row)

    def list_all(self) -> Iterable[Fund]:
        conn = self._db.get_connection()
        rows = conn.execute("SELECT * FROM funds ORDER BY code").fetchall()
        return [self._row_to_fund(row) for row in rows]

    def update(self, fund: Fund) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            UPDATE funds SET
                name = ?,
                status = ?,
                fund_type = ?,
                nav_frequency = ?,
                total_commitments = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (
                fund.name,
                fund.status.value,
                fund.fund_type,
                fund.nav_frequency,
                str(fund.total_commitments),
                fund.updated_at.isoformat(),
                str(fund.id),
            ),
        )

    def _row_to_fund(self, row: sqlite3.Row) -> Fund:
        return Fund(
            code=row["code"],
            name=row["name"],
            id=UUID(row["id"]),
            base_currency=row["base_currency"],
            status=row["status"],
            inception_date=date.fromisoformat(row["inception_date"]),
            fund_type=row["fund_type"],
            nav_frequency=row["nav_frequency"],
            total_commitments=Decimal(row["total_commitments"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteShareClassRepository(ShareClassRepository):
    """SQLite implementation of ShareClassRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, share_class: ShareClass) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO share_classes (id, fund_id, class_code, class_name, currency,
                                       management_fee_rate, performance_fee_rate, hurdle_rate,
                                       high_water_mark, price_precision, minimum_investment,
                                       status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(share_class.id),
                str(share_class.fund_id),
                share_class.class_code,
                share_class.class_name,
                share_class.currency,
                str(share_class.management_fee_rate),
                str(share_class.performance_fee_rate),
                str(share_class.hurdle_rate),
                1 if share_class.high_water_mark else 0,
                share_class.price_precision,
                str(share_class.minimum_investment),
                share_class.status.value,
                share_class.created_at.isoformat(),
            ),
        )

    def get(self, share_class_id: UUID) -> ShareClass | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM share_classes WHERE id = ?", (str(share_class_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_share_class(row)

    def list_by_fund(self, fund_id: UUID) -> Iterable[ShareClass]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM share_classes WHERE fund_id = ? ORDER BY class_code",
            (str(fund_id),),
        ).fetchall()
        return [self._row_to_share_class(row) for row in rows]

    def _row_to_share_class(self, row: sqlite3.Row) -> ShareClass:
        return ShareClass(
            fund_id=UUID(row["fund_id"]),
            class_code=row["class_code"],
            class_name=row["class_name"],
            id=UUID(row["id"]),
            currency=row["currency"],
            management_fee_rate=Decimal(row["management_fee_rate"]),
            performance_fee_rate=Decimal(row["performance_fee_rate"]),
            hurdle_rate=Decimal(row["hurdle_rate"]),
            high_water_mark=bool(row["high_water_mark"]),
            price_precision=row["price_precision"],
            minimum_investment=Decimal(row["minimum_investment"]),
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteFeeStructureRepository(FeeStructureRepository):
    """SQLite implementation of FeeStructureRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, fee_structure: FeeStructure) -> None:
        conn = self._db.get_connection()
        frequency = fee_structure.frequency
        conn.execute(
            """
            INSERT INTO fee_structures (id, fund_id, share_class_key, fee_type, rate, frequency,
                                        hurdle_rate, effective_from, effective_to, status, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(fee_structure.id),
                str(fee_structure.fund_id),
                _key(fee_structure.share_class_id),
                fee_structure.fee_type.value,
                str(fee_structure.rate),
                getattr(frequency, "value", frequency),
                str(fee_structure.hurdle_rate),
                fee_structure.effective_from.isoformat(),
                fee_structure.effective_to.isoformat()
                if fee_structure.effective_to
                else None,
                fee_structure.status.value,
                fee_structure.created_at.isoformat(),
            ),
        )

    def get(self, fee_structure_id: UUID) -> FeeStructure | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM fee_structures WHERE id = ?", (str(fee_structure_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_fee_structure(row)

    def list_by_key(
        self, fund_id: UUID, share_class_id: UUID | None
    ) -> Iterable[FeeStructure]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM fee_structures
            WHERE fund_id = ? AND share_class_key = ?
            ORDER BY effective_from, created_at
            """,
            (str(fund_id), _key(share_class_id)),
        ).fetchall()
        return [self._row_to_fee_structure(row) for row in rows]

    def list_active(
        self, fund_id: UUID, share_class_id: UUID | None, as_of: date
    ) -> Iterable[FeeStructure]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM fee_structures
            WHERE fund_id = ? AND share_class_key = ?
              AND status = 'active'
              AND effective_from <= ?
              AND (effective_to IS NULL OR effective_to >= ?)
            ORDER BY effective_from, created_at
            """,
            (str(fund_id), _key(share_class_id), as_of.isoformat(), as_of.isoformat()),
        ).fetchall()
        return [self._row_to_fee_structure(row) for row in rows]

    def _row_to_fee_structure(self, row: sqlite3.Row) -> FeeStructure:
        return FeeStructure(
            fund_id=UUID(row["fund_id"]),
            fee_type=row["fee_type"],
            rate=Decimal(row["rate"]),
            effective_from=date.fromisoformat(row["effective_from"]),
            id=UUID(row["id"]),
            share_class_id=_opt_uuid(row["share_class_key"]),
            frequency=row["frequency"],
            hurdle_rate=Decimal(row["hurdle_rate"]),
            effective_to=_opt_date(row["effective_to"]),
            status=row["status"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteNAVCalculationRepository(NAVCalculationRepository):
    """SQLite implementation of NAVCalculationRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, calculation: NAVCalculation, line_items: list[NAVLineItem]) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO nav_calculations (id, fund_id, share_class_key, valuation_date, version,
                                              status, total_assets, total_liabilities, net_asset_value,
                                              total_shares_outstanding, nav_per_share, price_precision,
                                              management_fee_accrued, performance_fee_accrued, total_fees,
                                              created_by, approved_by, approved_at, notes, rejection_note,
                                              calculation_data, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(calculation.id),
                    str(calculation.fund_id),
                    _key(calculation.share_class_id),
                    calculation.valuation_date.isoformat(),
                    calculation.version,
                    calculation.status.value,
                    str(calculation.total_assets),
                    str(calculation.total_liabilities),
                    str(calculation.net_asset_value),
                    str(calculation.total_shares_outstanding),
                    str(calculation.nav_per_share),
                    calculation.price_precision,
                    str(calculation.management_fee_accrued),
                    str(calculation.performance_fee_accrued),
                    str(calculation.total_fees),
                    str(calculation.created_by),
                    _opt_str(calculation.approved_by),
                    calculation.approved_at.isoformat() if calculation.approved_at else None,
                    calculation.notes,
                    calculation.rejection_note,
                    json.dumps(calculation.calculation_data, default=str),
                    calculation.created_at.isoformat(),
                ),
            )
            for item in line_items:
                conn.execute(
                    """
                    INSERT INTO nav_line_items (id, nav_calculation_id, kind, category, description,
                                                quantity, unit_price, amount, currency, fx_rate,
                                                base_currency_amount, source, sort_order)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(item.id),
                        str(calculation.id),
                        item.kind.value,
                        item.category,
                        item.description,
                        str(item.quantity),
                        str(item.unit_price),
                        str(item.amount),
                        item.currency,
                        _opt_str(item.fx_rate),
                        str(item.base_currency_amount),
                        item.source.value,
                        item.sort_order,
                    ),
                )

    def get(self, calculation_id: UUID) -> NAVCalculation | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM nav_calculations WHERE id = ?", (str(calculation_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_calculation(row)

    def get_line_items(self, calculation_id: UUID) -> list[NAVLineItem]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM nav_line_items
            WHERE nav_calculation_id = ?
            ORDER BY sort_order, rowid
            """,
            (str(calculation_id),),
        ).fetchall()
        return [self._row_to_line_item(row) for row in rows]

    def max_version(
        self, fund_id: UUID, share_class_id: UUID | None, valuation_date: date
    ) -> int:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT MAX(version) AS max_version FROM nav_calculations
            WHERE fund_id = ? AND share_class_key = ? AND valuation_date = ?
            """,
            (str(fund_id), _key(share_class_id), valuation_date.isoformat()),
        ).fetchone()
        return row["max_version"] or 0

    def update_status(
        self, calculation: NAVCalculation, expected_status: NAVStatus
    ) -> None:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """
            UPDATE nav_calculations SET
                status = ?,
                approved_by = ?,
                approved_at = ?,
                rejection_note = ?
            WHERE id = ? AND status = ?
            """,
            (
                calculation.status.value,
                _opt_str(calculation.approved_by),
                calculation.approved_at.isoformat() if calculation.approved_at else None,
                calculation.rejection_note,
                str(calculation.id),
                expected_status.value,
            ),
        )
        if cursor.rowcount != 1:
            raise ConcurrentModificationError("NAV calculation", calculation.id)

    def supersede_approved(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        valuation_date: date,
        exclude_id: UUID,
    ) -> list[UUID]:
        conn = self._db.get_connection()
        params = (
            str(fund_id),
            _key(share_class_id),
            valuation_date.isoformat(),
            str(exclude_id),
        )
        rows = conn.execute(
            """
            SELECT id FROM nav_calculations
            WHERE fund_id = ? AND share_class_key = ? AND valuation_date = ?
              AND status = 'approved' AND id != ?
            """,
            params,
        ).fetchall()
        conn.execute(
            """
            UPDATE nav_calculations SET status = 'superseded'
            WHERE fund_id = ? AND share_class_key = ? AND valuation_date = ?
              AND status = 'approved' AND id != ?
            """,
            params,
        )
        return [UUID(row["id"]) for row in rows]

    def list_by_key(
        self, fund_id: UUID, share_class_id: UUID | None, valuation_date: date
    ) -> Iterable[NAVCalculation]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM nav_calculations
            WHERE fund_id = ? AND share_class_key = ? AND valuation_date = ?
            ORDER BY version
            """,
            (str(fund_id), _key(share_class_id), valuation_date.isoformat()),
        ).fetchall()
        return [self._row_to_calculation(row) for row in rows]

    def get_latest_approved(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        on_or_before: date | None = None,
        strictly_before: date | None = None,
    ) -> NAVCalculation | None:
        conn = self._db.get_connection()
        query = """
            SELECT * FROM nav_calculations
            WHERE fund_id = ? AND share_class_key = ? AND status = 'approved'
        """
        params: list[str] = [str(fund_id), _key(share_class_id)]
        if on_or_before is not None:
            query += " AND valuation_date <= ?"
            params.append(on_or_before.isoformat())
        if strictly_before is not None:
            query += " AND valuation_date < ?"
            params.append(strictly_before.isoformat())
        query += " ORDER BY valuation_date DESC, version DESC LIMIT 1"
        row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return self._row_to_calculation(row)

    def list_approved(
        self,
        fund_id: UUID,
        share_class_id: UUID | None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Iterable[NAVCalculation]:
        conn = self._db.get_connection()
        query = """
            SELECT * FROM nav_calculations
            WHERE fund_id = ? AND share_class_key = ? AND status = 'approved'
        """
        params: list[str] = [str(fund_id), _key(share_class_id)]
        if start_date is not None:
            query += " AND valuation_date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND valuation_date <= ?"
            params.append(end_date.isoformat())
        query += " ORDER BY valuation_date, version"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_calculation(row) for row in rows]

    def list_for_review(self, fund_id: UUID) -> Iterable[NAVCalculation]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM nav_calculations
            WHERE fund_id = ? AND status IN ('draft', 'pending_approval')
            ORDER BY valuation_date, version
            """,
            (str(fund_id),),
        ).fetchall()
        return [self._row_to_calculation(row) for row in rows]

    def peak_approved_nav(
        self, fund_id: UUID, share_class_id: UUID | None, before: date
    ) -> Decimal | None:
        # Decimal text does not sort numerically in SQL; compare in Python.
        values = [
            calc.net_asset_value
            for calc in self.list_approved(fund_id, share_class_id)
            if calc.valuation_date < before
        ]
        return max(values) if values else None

    def _row_to_calculation(self, row: sqlite3.Row) -> NAVCalculation:
        calculation = NAVCalculation(
            fund_id=UUID(row["fund_id"]),
            valuation_date=date.fromisoformat(row["valuation_date"]),
            total_assets=Decimal(row["total_assets"]),
            total_liabilities=Decimal(row["total_liabilities"]),
            total_shares_outstanding=Decimal(row["total_shares_outstanding"]),
            created_by=UUID(row["created_by"]),
            id=UUID(row["id"]),
            share_class_id=_opt_uuid(row["share_class_key"]),
            version=row["version"],
            status=row["status"],
            price_precision=row["price_precision"],
            management_fee_accrued=Decimal(row["management_fee_accrued"]),
            performance_fee_accrued=Decimal(row["performance_fee_accrued"]),
            notes=row["notes"],
            rejection_note=row["rejection_note"],
            approved_by=_opt_uuid(row["approved_by"]),
            approved_at=datetime.fromisoformat(row["approved_at"])
            if row["approved_at"]
            else None,
            calculation_data=json.loads(row["calculation_data"] or "{}"),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
        # Stored values win over recomputation for rows written by older versions.
        calculation.net_asset_value = Decimal(row["net_asset_value"])
        calculation.nav_per_share = Decimal(row["nav_per_share"])
        return calculation

    def _row_to_line_item(self, row: sqlite3.Row) -> NAVLineItem:
        return NAVLineItem(
            kind=row["kind"],
            category=row["category"],
            description=row["description"],
            quantity=Decimal(row["quantity"]),
            unit_price=Decimal(row["unit_price"]),
            amount=Decimal(row["amount"]),
            currency=row["currency"],
            fx_rate=_opt_decimal(row["fx_rate"]),
            id=UUID(row["id"]),
            nav_calculation_id=UUID(row["nav_calculation_id"]),
            source=row["source"],
            sort_order=row["sort_order"],
        )


class SQLiteCapitalAccountRepository(CapitalAccountRepository):
    """SQLite implementation of CapitalAccountRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, account: CapitalAccount) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO capital_accounts (id, fund_id, share_class_id, investor_id, account_number,
                                          shares_owned, capital_contributed, capital_returned,
                                          commitment_amount, status, inception_date, version,
                                          created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(account.id),
                str(account.fund_id),
                _opt_str(account.share_class_id),
                str(account.investor_id),
                account.account_number,
                str(account.shares_owned),
                str(account.capital_contributed),
                str(account.capital_returned),
                str(account.commitment_amount),
                account.status.value,
                account.inception_date.isoformat(),
                account.version,
                account.created_at.isoformat(),
                account.updated_at.isoformat(),
            ),
        )

    def get(self, account_id: UUID) -> CapitalAccount | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM capital_accounts WHERE id = ?", (str(account_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_account(row)

    def get_by_account_number(self, account_number: str) -> CapitalAccount | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM capital_accounts WHERE account_number = ?", (account_number,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_account(row)

    def list_by_fund(self, fund_id: UUID) -> Iterable[CapitalAccount]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM capital_accounts WHERE fund_id = ? ORDER BY account_number",
            (str(fund_id),),
        ).fetchall()
        return [self._row_to_account(row) for row in rows]

    def update(self, account: CapitalAccount, expected_version: int) -> None:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """
            UPDATE capital_accounts SET
                shares_owned = ?,
                capital_contributed = ?,
                capital_returned = ?,
                commitment_amount = ?,
                status = ?,
                version = ?,
                updated_at = ?
            WHERE id = ? AND version = ?
            """,
            (
                str(account.shares_owned),
                str(account.capital_contributed),
                str(account.capital_returned),
                str(account.commitment_amount),
                account.status.value,
                expected_version + 1,
                account.updated_at.isoformat(),
                str(account.id),
                expected_version,
            ),
        )
        if cursor.rowcount != 1:
            raise ConcurrentModificationError("Capital account", account.id)
        account.version = expected_version + 1

    def _row_to_account(self, row: sqlite3.Row) -> CapitalAccount:
        return CapitalAccount(
            fund_id=UUID(row["fund_id"]),
            investor_id=UUID(row["investor_id"]),
            account_number=row["account_number"],
            id=UUID(row["id"]),
            share_class_id=_opt_uuid(row["share_class_id"]),
            shares_owned=Decimal(row["shares_owned"]),
            capital_contributed=Decimal(row["capital_contributed"]),
            capital_returned=Decimal(row["capital_returned"]),
            commitment_amount=Decimal(row["commitment_amount"]),
            status=row["status"],
            inception_date=date.fromisoformat(row["inception_date"]),
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteTransactionRepository(TransactionRepository):
    """SQLite implementation of TransactionRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, txn: Transaction) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO capital_transactions (id, fund_id, capital_account_id, transaction_type,
                                              transaction_date, settlement_date, amount, shares,
                                              price_per_share, currency, status, reference_number,
                                              description, nav_calculation_id, created_by, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(txn.id),
                str(txn.fund_id),
                str(txn.capital_account_id),
                txn.transaction_type.value,
                txn.transaction_date.isoformat(),
                txn.settlement_date.isoformat() if txn.settlement_date else None,
                str(txn.amount),
                str(txn.shares),
                str(txn.price_per_share),
                txn.currency,
                txn.status.value,
                txn.reference_number,
                txn.description,
                _opt_str(txn.nav_calculation_id),
                _opt_str(txn.created_by),
                txn.created_at.isoformat(),
            ),
        )

    def get(self, txn_id: UUID) -> Transaction | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM capital_transactions WHERE id = ?", (str(txn_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_transaction(row)

    def list_by_account(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> Iterable[Transaction]:
        conn = self._db.get_connection()
        query = "SELECT * FROM capital_transactions WHERE capital_account_id = ?"
        params: list[str] = [str(account_id)]
        if start_date is not None:
            query += " AND transaction_date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND transaction_date <= ?"
            params.append(end_date.isoformat())
        query += " ORDER BY transaction_date, created_at"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_transaction(row) for row in rows]

    def list_by_fund(
        self,
        fund_id: UUID,
        share_class_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        transaction_types: Iterable[TransactionType] | None = None,
    ) -> Iterable[Transaction]:
        conn = self._db.get_connection()
        query = """
            SELECT t.* FROM capital_transactions t
            JOIN capital_accounts a ON t.capital_account_id = a.id
            WHERE t.fund_id = ?
        """
        params: list[str] = [str(fund_id)]
        if share_class_id is not None:
            query += " AND a.share_class_id = ?"
            params.append(str(share_class_id))
        if start_date is not None:
            query += " AND t.transaction_date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND t.transaction_date <= ?"
            params.append(end_date.isoformat())
        if transaction_types is not None:
            types = [TransactionType(t).value for t in transaction_types]
            query += f" AND t.transaction_type IN ({', '.join('?' for _ in types)})"
            params.extend(types)
        query += " ORDER BY t.transaction_date, t.created_at"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_transaction(row) for row in rows]

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        return Transaction(
            fund_id=UUID(row["fund_id"]),
            capital_account_id=UUID(row["capital_account_id"]),
            transaction_type=row["transaction_type"],
            amount=Decimal(row["amount"]),
            transaction_date=date.fromisoformat(row["transaction_date"]),
            id=UUID(row["id"]),
            shares=Decimal(row["shares"]),
            price_per_share=Decimal(row["price_per_share"]),
            currency=row["currency"],
            status=TransactionStatus(row["status"]),
            settlement_date=_opt_date(row["settlement_date"]),
            reference_number=row["reference_number"],
            description=row["description"],
            nav_calculation_id=_opt_uuid(row["nav_calculation_id"]),
            created_by=_opt_uuid(row["created_by"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteRedemptionRequestRepository(RedemptionRequestRepository):
    """SQLite implementation of RedemptionRequestRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, request: RedemptionRequest) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO redemption_requests (id, fund_id, capital_account_id, request_number,
                                             redemption_type, request_date, redemption_date,
                                             shares_requested, amount_requested, status, currency,
                                             reason, requested_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(request.id),
                str(request.fund_id),
                str(request.capital_account_id),
                request.request_number,
                request.redemption_type.value,
                request.request_date.isoformat(),
                request.redemption_date.isoformat(),
                str(request.shares_requested),
                str(request.amount_requested),
                request.status.value,
                request.currency,
                request.reason,
                _opt_str(request.requested_by),
                request.created_at.isoformat(),
                request.updated_at.isoformat(),
            ),
        )

    def get(self, request_id: UUID) -> RedemptionRequest | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM redemption_requests WHERE id = ?", (str(request_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_request(row)

    def update(
        self, request: RedemptionRequest, expected_status: RedemptionStatus
    ) -> None:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """
            UPDATE redemption_requests SET
                status = ?,
                shares_approved = ?,
                amount_approved = ?,
                redemption_price = ?,
                reviewed_by = ?,
                approved_by = ?,
                rejection_reason = ?,
                settlement_date = ?,
                settlement_amount = ?,
                transaction_id = ?,
                updated_at = ?
            WHERE id = ? AND status = ?
            """,
            (
                request.status.value,
                _opt_str(request.shares_approved),
                _opt_str(request.amount_approved),
                _opt_str(request.redemption_price),
                _opt_str(request.reviewed_by),
                _opt_str(request.approved_by),
                request.rejection_reason,
                request.settlement_date.isoformat() if request.settlement_date else None,
                _opt_str(request.settlement_amount),
                _opt_str(request.transaction_id),
                request.updated_at.isoformat(),
                str(request.id),
                expected_status.value,
            ),
        )
        if cursor.rowcount != 1:
            raise ConcurrentModificationError("Redemption request", request.id)

    def list_by_fund(
        self, fund_id: UUID, status: RedemptionStatus | None = None
    ) -> Iterable[RedemptionRequest]:
        conn = self._db.get_connection()
        query = "SELECT * FROM redemption_requests WHERE fund_id = ?"
        params: list[str] = [str(fund_id)]
        if status is not None:
            query += " AND status = ?"
            params.append(RedemptionStatus(status).value)
        query += " ORDER BY request_date, created_at"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_request(row) for row in rows]

    def list_by_account(self, account_id: UUID) -> Iterable[RedemptionRequest]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM redemption_requests
            WHERE capital_account_id = ?
            ORDER BY request_date, created_at
            """,
            (str(account_id),),
        ).fetchall()
        return [self._row_to_request(row) for row in rows]

    def _row_to_request(self, row: sqlite3.Row) -> RedemptionRequest:
        return RedemptionRequest(
            fund_id=UUID(row["fund_id"]),
            capital_account_id=UUID(row["capital_account_id"]),
            redemption_type=row["redemption_type"],
            shares_requested=Decimal(row["shares_requested"]),
            amount_requested=Decimal(row["amount_requested"]),
            redemption_date=date.fromisoformat(row["redemption_date"]),
            id=UUID(row["id"]),
            request_number=row["request_number"],
            request_date=date.fromisoformat(row["request_date"]),
            status=row["status"],
            currency=row["currency"],
            reason=row["reason"],
            requested_by=_opt_uuid(row["requested_by"]),
            shares_approved=_opt_decimal(row["shares_approved"]),
            amount_approved=_opt_decimal(row["amount_approved"]),
            redemption_price=_opt_decimal(row["redemption_price"]),
            reviewed_by=_opt_uuid(row["reviewed_by"]),
            approved_by=_opt_uuid(row["approved_by"]),
            rejection_reason=row["rejection_reason"],
            settlement_date=_opt_date(row["settlement_date"]),
            settlement_amount=_opt_decimal(row["settlement_amount"]),
            transaction_id=_opt_uuid(row["transaction_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class SQLiteDistributionRepository(DistributionRepository):
    """SQLite implementation of DistributionRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(
        self, distribution: Distribution, allocations: list[DistributionAllocation]
    ) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO distributions (id, fund_id, share_class_id, distribution_number,
                                           distribution_type, record_date, payment_date,
                                           amount_per_share, total_shares, total_amount, currency,
                                           status, description, notes, created_by, approved_by,
                                           created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(distribution.id),
                    str(distribution.fund_id),
                    _opt_str(distribution.share_class_id),
                    distribution.distribution_number,
                    distribution.distribution_type.value,
                    distribution.record_date.isoformat(),
                    distribution.payment_date.isoformat(),
                    str(distribution.amount_per_share),
                    str(distribution.total_shares),
                    str(distribution.total_amount),
                    distribution.currency,
                    distribution.status.value,
                    distribution.description,
                    distribution.notes,
                    _opt_str(distribution.created_by),
                    _opt_str(distribution.approved_by),
                    distribution.created_at.isoformat(),
                    distribution.updated_at.isoformat(),
                ),
            )
            for allocation in allocations:
                conn.execute(
                    """
                    INSERT INTO distribution_allocations (id, distribution_id, capital_account_id,
                                                          shares_held, allocation_amount, status,
                                                          transaction_id, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        str(allocation.id),
                        str(distribution.id),
                        str(allocation.capital_account_id),
                        str(allocation.shares_held),
                        str(allocation.allocation_amount),
                        allocation.status.value,
                        _opt_str(allocation.transaction_id),
                        allocation.created_at.isoformat(),
                    ),
                )

    def get(self, distribution_id: UUID) -> Distribution | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM distributions WHERE id = ?", (str(distribution_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_distribution(row)

    def get_allocations(self, distribution_id: UUID) -> list[DistributionAllocation]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT * FROM distribution_allocations
            WHERE distribution_id = ?
            ORDER BY created_at, id
            """,
            (str(distribution_id),),
        ).fetchall()
        return [self._row_to_allocation(row) for row in rows]

    def update(
        self, distribution: Distribution, expected_status: DistributionStatus
    ) -> None:
        conn = self._db.get_connection()
        cursor = conn.execute(
            """
            UPDATE distributions SET
                status = ?,
                approved_by = ?,
                updated_at = ?
            WHERE id = ? AND status = ?
            """,
            (
                distribution.status.value,
                _opt_str(distribution.approved_by),
                distribution.updated_at.isoformat(),
                str(distribution.id),
                expected_status.value,
            ),
        )
        if cursor.rowcount != 1:
            raise ConcurrentModificationError("Distribution", distribution.id)

    def update_allocation(self, allocation: DistributionAllocation) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            UPDATE distribution_allocations SET
                status = ?,
                transaction_id = ?
            WHERE id = ?
            """,
            (
                allocation.status.value,
                _opt_str(allocation.transaction_id),
                str(allocation.id),
            ),
        )

    def list_by_fund(
        self, fund_id: UUID, status: DistributionStatus | None = None
    ) -> Iterable[Distribution]:
        conn = self._db.get_connection()
        query = "SELECT * FROM distributions WHERE fund_id = ?"
        params: list[str] = [str(fund_id)]
        if status is not None:
            query += " AND status = ?"
            params.append(DistributionStatus(status).value)
        query += " ORDER BY record_date DESC, created_at DESC"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_distribution(row) for row in rows]

    def _row_to_distribution(self, row: sqlite3.Row) -> Distribution:
        return Distribution(
            fund_id=UUID(row["fund_id"]),
            amount_per_share=Decimal(row["amount_per_share"]),
            record_date=date.fromisoformat(row["record_date"]),
            payment_date=date.fromisoformat(row["payment_date"]),
            id=UUID(row["id"]),
            share_class_id=_opt_uuid(row["share_class_id"]),
            distribution_number=row["distribution_number"],
            distribution_type=row["distribution_type"],
            total_shares=Decimal(row["total_shares"]),
            total_amount=Decimal(row["total_amount"]),
            currency=row["currency"],
            status=row["status"],
            description=row["description"],
            notes=row["notes"],
            created_by=_opt_uuid(row["created_by"]),
            approved_by=_opt_uuid(row["approved_by"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_allocation(self, row: sqlite3.Row) -> DistributionAllocation:
        return DistributionAllocation(
            distribution_id=UUID(row["distribution_id"]),
            capital_account_id=UUID(row["capital_account_id"]),
            shares_held=Decimal(row["shares_held"]),
            allocation_amount=Decimal(row["allocation_amount"]),
            id=UUID(row["id"]),
            status=row["status"],
            transaction_id=_opt_uuid(row["transaction_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLitePerformanceMetricRepository(PerformanceMetricRepository):
    """SQLite implementation of PerformanceMetricRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, metric: PerformanceMetric) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO performance_metrics (id, fund_id, share_class_id, capital_account_id,
                                             period_type, period_start, metric_date, beginning_nav,
                                             ending_nav, net_contributions, net_distributions,
                                             total_return_amount, total_return_percent, dpi, rvpi,
                                             tvpi, moic, calculation_notes, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(metric.id),
                str(metric.fund_id),
                _opt_str(metric.share_class_id),
                _opt_str(metric.capital_account_id),
                metric.period_type.value,
                metric.period_start.isoformat(),
                metric.metric_date.isoformat(),
                str(metric.beginning_nav),
                str(metric.ending_nav),
                str(metric.net_contributions),
                str(metric.net_distributions),
                str(metric.total_return_amount),
                str(metric.total_return_percent),
                str(metric.dpi),
                str(metric.rvpi),
                str(metric.tvpi),
                str(metric.moic),
                json.dumps(metric.calculation_notes, default=str),
                metric.created_at.isoformat(),
            ),
        )

    def list_by_fund(
        self, fund_id: UUID, period_type: PeriodType | None = None
    ) -> Iterable[PerformanceMetric]:
        conn = self._db.get_connection()
        query = "SELECT * FROM performance_metrics WHERE fund_id = ?"
        params: list[str] = [str(fund_id)]
        if period_type is not None:
            query += " AND period_type = ?"
            params.append(PeriodType(period_type).value)
        query += " ORDER BY created_at DESC, rowid DESC"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_metric(row) for row in rows]

    def _row_to_metric(self, row: sqlite3.Row) -> PerformanceMetric:
        return PerformanceMetric(
            fund_id=UUID(row["fund_id"]),
            period_type=row["period_type"],
            metric_date=date.fromisoformat(row["metric_date"]),
            period_start=date.fromisoformat(row["period_start"]),
            id=UUID(row["id"]),
            share_class_id=_opt_uuid(row["share_class_id"]),
            capital_account_id=_opt_uuid(row["capital_account_id"]),
            beginning_nav=Decimal(row["beginning_nav"]),
            ending_nav=Decimal(row["ending_nav"]),
            net_contributions=Decimal(row["net_contributions"]),
            net_distributions=Decimal(row["net_distributions"]),
            total_return_amount=Decimal(row["total_return_amount"]),
            total_return_percent=Decimal(row["total_return_percent"]),
            dpi=Decimal(row["dpi"]),
            rvpi=Decimal(row["rvpi"]),
            tvpi=Decimal(row["tvpi"]),
            moic=Decimal(row["moic"]),
            calculation_notes=json.loads(row["calculation_notes"] or "{}"),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteExchangeRateRepository(ExchangeRateRepository):
    def __init__(self, db: SQLiteDatabase) -> None:
        self._db = db

    def add(self, rate: ExchangeRate) -> None:
        conn = self._db.get_connection()
        conn.execute(
            """
            INSERT INTO exchange_rates (id, from_currency, to_currency, rate, rate_date,
                                        source, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(rate.id),
                rate.from_currency,
                rate.to_currency,
                str(rate.rate),
                rate.rate_date.isoformat(),
                rate.source,
                rate.created_at.isoformat(),
            ),
        )

    def get_latest_rate(
        self, from_currency: str, to_currency: str, as_of: date
    ) -> ExchangeRate | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM exchange_rates
            WHERE from_currency = ? AND to_currency = ? AND rate_date <= ?
            ORDER BY rate_date DESC
            LIMIT 1
            """,
            (from_currency.upper(), to_currency.upper(), as_of.isoformat()),
        ).fetchone()
        if row is None:
            return None
        return ExchangeRate(
            from_currency=row["from_currency"],
            to_currency=row["to_currency"],
            rate=Decimal(row["rate"]),
            rate_date=date.fromisoformat(row["rate_date"]),
            id=UUID(row["id"]),
            source=row["source"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
