# Overview: Pytest coverage for optimistic locking and the retry policy.

"""
Concurrency Tests

- run_with_retry retries StaleDataError / OperationalError and maps the
  final failure to a ledger error
- the version_id column turns a lost race into StaleDataError
- concurrent transfers against a file-backed SQLite database conserve stock
"""

import threading
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from fifo_ledger import create_app
from fifo_ledger.errors import ConcurrentModificationError, PersistenceFailureError
from fifo_ledger.extensions import db
from fifo_ledger.models import InventoryLot, Item, StaffMember, Store, Transfer
from fifo_ledger.services import ledger_service, transfer_service
from fifo_ledger.services.concurrency import run_with_retry
from fifo_ledger.time_utils import today

from conftest import TEST_SETTINGS


def _bump_version(lot_id):
    db.session.execute(
        text("UPDATE inventory_lots SET version_id = version_id + 1 WHERE id = :id"),
        {"id": lot_id},
    )


class TestRunWithRetry:
    def test_returns_first_success(self, app):
        with app.app_context():
            assert run_with_retry(lambda: "ok") == "ok"

    def test_stale_data_is_retried(self, app):
        calls = []

        def _op():
            calls.append(1)
            if len(calls) < 3:
                raise StaleDataError("lost race")
            return "done"

        with app.app_context():
            assert run_with_retry(_op, attempts=3, backoff_base=0) == "done"
        assert len(calls) == 3

    def test_stale_data_exhausted(self, app):
        def _op():
            raise StaleDataError("lost race")

        with app.app_context():
            with pytest.raises(ConcurrentModificationError) as excinfo:
                run_with_retry(_op, attempts=2, backoff_base=0)
        assert excinfo.value.retryable

    def test_operational_error_exhausted(self, app):
        calls = []

        def _op():
            calls.append(1)
            raise OperationalError("UPDATE inventory_lots", {}, Exception("database is locked"))

        with app.app_context():
            with pytest.raises(PersistenceFailureError):
                run_with_retry(_op, attempts=3, backoff_base=0)
        assert len(calls) == 3

    def test_other_errors_are_not_retried(self, app):
        calls = []

        def _op():
            calls.append(1)
            raise KeyError("boom")

        with app.app_context():
            with pytest.raises(KeyError):
                run_with_retry(_op, attempts=3, backoff_base=0)
        assert len(calls) == 1


class TestOptimisticLocking:
    def test_concurrent_version_bump_raises_stale_data(self, db_session, store_a, item, expires_in):
        lot = ledger_service.receive(store_a.id, item.id, 10, expires_in(5))
        lot = db_session.get(InventoryLot, lot.id)

        _bump_version(lot.id)
        lot.quantity = Decimal("9")
        with pytest.raises(StaleDataError):
            db_session.flush()
        db_session.rollback()

    def test_lost_race_is_rerun_from_scratch(self, db_session, store_a, item, expires_in):
        lot_id = ledger_service.receive(store_a.id, item.id, 10, expires_in(5)).id
        attempts = []

        def _op():
            lot = db.session.get(InventoryLot, lot_id)
            if not attempts:
                _bump_version(lot_id)
            attempts.append(1)
            lot.quantity = lot.quantity - 1
            db.session.commit()
            return lot

        run_with_retry(_op, attempts=3, backoff_base=0)

        assert len(attempts) == 2
        assert ledger_service.get_lot(lot_id).quantity == Decimal("9")

    def test_persistent_conflict_leaves_lot_untouched(self, db_session, store_a, item, expires_in):
        lot_id = ledger_service.receive(store_a.id, item.id, 10, expires_in(5)).id

        def _op():
            lot = db.session.get(InventoryLot, lot_id)
            _bump_version(lot_id)
            lot.quantity = lot.quantity - 1
            db.session.commit()

        with pytest.raises(ConcurrentModificationError):
            run_with_retry(_op, attempts=3, backoff_base=0)
        assert ledger_service.get_lot(lot_id).quantity == Decimal("10")


@pytest.fixture
def file_app(tmp_path):
    """Separate app on a file database so threads get their own connections."""
    settings = dict(TEST_SETTINGS)
    settings.update({
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'ledger.sqlite3'}",
        "LEDGER_RETRY_ATTEMPTS": 10,
        "LEDGER_RETRY_BACKOFF": 0.01,
    })
    app = create_app(settings)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()
        db.engine.dispose()


class TestConcurrentTransfers:
    def test_parallel_transfers_conserve_stock(self, file_app):
        with file_app.app_context():
            source_store = Store(name="Storeroom", capability="receive-only")
            target_store = Store(name="Bar", capability="sell-only")
            item = Item(name="Lime")
            staff = StaffMember(name="Alex")
            db.session.add_all([source_store, target_store, item, staff])
            db.session.commit()
            ids = (item.id, source_store.id, target_store.id, staff.id)
            lot_id = ledger_service.receive(source_store.id, item.id, 20, today() + timedelta(days=6)).id

        errors = []

        def _worker():
            with file_app.app_context():
                try:
                    transfer_service.transfer(ids[0], ids[1], ids[2], 2, ids[3])
                except Exception as exc:  # surfaced through the assertion below
                    errors.append(exc)

        threads = [threading.Thread(target=_worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        with file_app.app_context():
            source = db.session.get(InventoryLot, lot_id)
            destinations = db.session.query(InventoryLot).filter_by(store_id=ids[2]).all()
            assert source.quantity == Decimal("12")
            assert len(destinations) == 1
            assert destinations[0].quantity == Decimal("8")
            assert db.session.query(Transfer).count() == 4
