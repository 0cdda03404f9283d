# Overview: Pytest coverage for the append-only activity log.

from datetime import timedelta
from decimal import Decimal

import pytest

from fifo_ledger.errors import ValidationError
from fifo_ledger.models import ActivityLogEntry
from fifo_ledger.models.inventory import ACTION_RECEIVED, ACTION_SOLD, ACTION_TRANSFERRED
from fifo_ledger.services import activity_service, ledger_service, transfer_service
from fifo_ledger.time_utils import utcnow


class TestAppendActivity:
    def test_unknown_action_rejected(self, db_session, store_a):
        with pytest.raises(ValidationError):
            activity_service.append_activity(store_id=store_a.id, action_type="adjusted")

    def test_append_flushes_without_commit(self, db_session, store_a):
        entry = activity_service.append_activity(
            store_id=store_a.id,
            action_type=ACTION_RECEIVED,
            quantity_before=Decimal("0"),
            quantity_after=Decimal("3"),
        )
        assert entry.id is not None
        db_session.rollback()
        assert db_session.query(ActivityLogEntry).count() == 0

    def test_entries_cannot_be_updated_or_deleted(self, db_session, store_a):
        entry = activity_service.append_activity(store_id=store_a.id, action_type=ACTION_SOLD)
        db_session.commit()

        entry.action_type = ACTION_RECEIVED
        with pytest.raises(NotImplementedError):
            db_session.commit()
        db_session.rollback()

        db_session.delete(entry)
        with pytest.raises(NotImplementedError):
            db_session.commit()
        db_session.rollback()
        assert db_session.query(ActivityLogEntry).count() == 1


class TestFeeds:
    def test_one_entry_per_mutation_newest_first(self, db_session, store_a, store_b, item, staff, expires_in):
        lot = ledger_service.receive(store_a.id, item.id, 10, expires_in(4))
        transfer_service.transfer(item.id, store_a.id, store_b.id, 4, staff.id)
        ledger_service.mark_sold(lot.id)

        entries = activity_service.recent_activity()
        assert [e.action_type for e in entries] == [ACTION_SOLD, ACTION_TRANSFERRED, ACTION_RECEIVED]

    def test_store_filter_and_limit(self, db_session, store_a, store_b, item, expires_in):
        for _ in range(3):
            ledger_service.receive(store_a.id, item.id, 1, expires_in(4))
        ledger_service.receive(store_b.id, item.id, 1, expires_in(4))

        assert len(activity_service.recent_activity(store_id=store_a.id)) == 3
        assert len(activity_service.recent_activity(limit=2)) == 2
        assert len(activity_service.recent_activity(limit=0)) == 1

    def test_limit_is_clamped_to_configured_max(self, db_session, app, store_a, item, expires_in, monkeypatch):
        monkeypatch.setitem(app.config, "ACTIVITY_FEED_MAX_LIMIT", 2)
        for _ in range(3):
            ledger_service.receive(store_a.id, item.id, 1, expires_in(4))
        assert len(activity_service.recent_activity(limit=100)) == 2

    def test_iter_activity_streams_everything(self, db_session, store_a, item, expires_in):
        for _ in range(5):
            ledger_service.receive(store_a.id, item.id, 1, expires_in(4))

        assert len(list(activity_service.iter_activity(batch_size=2))) == 5
        future = utcnow() + timedelta(hours=1)
        assert list(activity_service.iter_activity(since=future)) == []
