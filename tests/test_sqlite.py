"""Tests for the SQLite store's atomic units across threads."""

import threading
from pathlib import Path

import pytest

from fund_nav_engine.config import Settings
from fund_nav_engine.container import Container
from fund_nav_engine.domain.funds import Fund
from fund_nav_engine.exceptions import ConsistencyError, ValidationError
from fund_nav_engine.repositories.sqlite import SQLiteDatabase, SQLiteFundRepository


@pytest.fixture
def file_db(tmp_path: Path):
    database = SQLiteDatabase(tmp_path / "engine.db", check_same_thread=False)
    database.initialize()
    yield database
    database.close()


class TestTransaction:
    def test_nested_unit_joins_the_outer_one(self, db: SQLiteDatabase):
        with pytest.raises(RuntimeError):
            with db.transaction():
                with db.transaction():
                    SQLiteFundRepository(db).add(Fund(code="NEST", name="Nested"))
                assert db.in_transaction
                raise RuntimeError("abort outer unit")

        assert not db.in_transaction
        assert SQLiteFundRepository(db).get_by_code("NEST") is None

    def test_database_error_becomes_consistency_error(self, db: SQLiteDatabase):
        with pytest.raises(ConsistencyError):
            with db.transaction() as conn:
                conn.execute("INSERT INTO no_such_table VALUES (1)")

        assert not db.in_transaction


class TestConcurrentCallers:
    def test_in_memory_database_is_shared_between_threads(
        self, settings: Settings
    ):
        database = SQLiteDatabase(":memory:", check_same_thread=False)
        database.initialize()
        container = Container(settings, database=database)

        worker = threading.Thread(
            target=container.fund_service.create_fund, args=("THR", "Threaded Fund")
        )
        worker.start()
        worker.join(timeout=10)

        assert [f.code for f in container.fund_service.list_funds()] == ["THR"]
        database.close()

    def test_rollback_on_one_thread_keeps_another_threads_write(
        self, settings: Settings, file_db: SQLiteDatabase
    ):
        container = Container(settings, database=file_db)
        fund_repo = container.fund_repo
        written = threading.Event()
        release = threading.Event()
        failures: list[Exception] = []

        def failing_unit() -> None:
            try:
                with file_db.transaction():
                    fund_repo.add(Fund(code="DOOMED", name="Doomed Fund"))
                    written.set()
                    release.wait(timeout=5)
                    raise RuntimeError("abort")
            except RuntimeError as exc:
                failures.append(exc)

        worker = threading.Thread(target=failing_unit)
        worker.start()
        assert written.wait(timeout=5)

        # Uncommitted rows from the other thread's unit are invisible.
        assert fund_repo.get_by_code("DOOMED") is None

        threading.Timer(0.2, release.set).start()
        other = container.fund_service.create_fund("OTHER", "Other Fund")
        worker.join(timeout=10)

        assert len(failures) == 1
        assert fund_repo.get(other.id) is not None
        assert fund_repo.get_by_code("DOOMED") is None

    def test_racing_duplicate_creates_yield_one_fund(
        self, settings: Settings, file_db: SQLiteDatabase
    ):
        service = Container(settings, database=file_db).fund_service
        barrier = threading.Barrier(2)
        outcomes: list[object] = []

        def create() -> None:
            barrier.wait(timeout=5)
            try:
                outcomes.append(service.create_fund("DUP", "Duplicate"))
            except ValidationError as exc:
                outcomes.append(exc)

        workers = [threading.Thread(target=create) for _ in range(2)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join(timeout=10)

        assert len(outcomes) == 2
        assert sum(isinstance(o, Fund) for o in outcomes) == 1
        assert sum(isinstance(o, ValidationError) for o in outcomes) == 1
        assert [f.code for f in service.list_funds()] == ["DUP"]
