# Overview: Pytest coverage for the Flask CLI command groups.

import json

from fifo_ledger.models import InventoryLot, Store
from fifo_ledger.services import ledger_service


def test_catalog_bootstrap(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["catalog", "add-store", "--name", "Dock", "--capability", "receive-only"])
    assert result.exit_code == 0, result.output
    runner.invoke(args=["catalog", "add-item", "--name", "Lemons", "--category", "produce"])
    runner.invoke(args=["catalog", "add-staff", "--name", "Robin"])

    assert db_session.query(Store).filter_by(name="Dock").one().capability == "receive-only"

    listed = runner.invoke(args=["catalog", "list", "--json"])
    data = json.loads(listed.output)
    assert [s["name"] for s in data["stores"]] == ["Dock"]
    assert [i["name"] for i in data["items"]] == ["Lemons"]
    assert [m["name"] for m in data["staff"]] == ["Robin"]


def test_refresh_priorities(app, db_session, store_a, item, expires_in):
    lot = ledger_service.receive(store_a.id, item.id, 4, expires_in(2))
    lot.priority_score = 0
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["fifo", "refresh-priorities"])

    assert result.exit_code == 0, result.output
    assert "1 lot(s)" in result.output
    assert db_session.get(InventoryLot, lot.id).priority_score == 80


def test_recommend_prints_fifo_order(app, db_session, store_a, item, expires_in):
    ledger_service.receive(store_a.id, item.id, 4, expires_in(9), batch_number="LATE")
    ledger_service.receive(store_a.id, item.id, 4, expires_in(1), batch_number="SOON")

    result = app.test_cli_runner().invoke(args=["fifo", "recommend", "--store-id", str(store_a.id)])

    assert result.exit_code == 0, result.output
    assert result.output.index("SOON") < result.output.index("LATE")


def test_recommend_unknown_store(app, db_session):
    result = app.test_cli_runner().invoke(args=["fifo", "recommend", "--store-id", "99999"])
    assert result.exit_code != 0
    assert "not found" in result.output


def test_expiring_and_activity(app, db_session, store_a, item, expires_in):
    ledger_service.receive(store_a.id, item.id, 4, expires_in(3), batch_number="B-3")
    runner = app.test_cli_runner()

    expiring = runner.invoke(args=["fifo", "expiring", "--within-days", "7"])
    assert "B-3" in expiring.output

    activity = runner.invoke(args=["fifo", "activity"])
    assert "received" in activity.output
    assert "0 -> 4" in activity.output
