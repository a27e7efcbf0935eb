"""
Device shipment backfill tests: SQLite test database.
"""

import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from backend import backfill, models
from backend.backfill import backfill_device_shipments


def _project(db, name="Project", location="Lagos", rooms=4):
    project = models.Project(name=name, location=location, rooms_count=rooms)
    db.add(project)
    db.flush()
    return project


def _quote_with_items(db, project, *items):
    quote = models.Quote(project_id=project.id, tier=models.PriceTier.STANDARD, title="Standard")
    db.add(quote)
    db.flush()
    rows = []
    for name, category in items:
        row = models.QuoteItem(quote_id=quote.id, name=name, category=category, quantity=1)
        db.add(row)
        rows.append(row)
    db.flush()
    return rows


def _milestone(db, project, index, items_json, title=None):
    milestone = models.Milestone(
        project_id=project.id, index=index,
        title=title or f"Milestone {index}", items_json=items_json,
    )
    db.add(milestone)
    db.flush()
    return milestone


def _shipments(db):
    return db.query(models.ProjectDeviceShipment).all()


def test_project_without_milestones_gets_empty_shipment(db):
    project = _project(db)
    db.commit()

    report = backfill_device_shipments(db)

    assert report.created == 1
    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.project_id == project.id
    assert shipment.milestone_id is None
    assert shipment.items_json == []


def test_first_milestone_without_items_gets_empty_unlinked_shipment(db):
    project = _project(db)
    _milestone(db, project, 0, None)
    db.commit()

    backfill_device_shipments(db)

    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.milestone_id is None
    assert shipment.items_json == []


def test_items_derived_from_first_milestone_by_index(db):
    project = _project(db)
    camera, = _quote_with_items(db, project, ("Camera", "SURVEILLANCE"))
    later = _milestone(db, project, 1, [{"quoteItemId": "ignored", "quantity": 9}])
    first = _milestone(db, project, 0, [
        {"quoteItemId": camera.id, "quantity": 2},
        {"quoteItemId": "missing"},
    ])
    db.commit()

    report = backfill_device_shipments(db)

    assert report.created == 1
    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.milestone_id == first.id
    assert shipment.milestone_id != later.id
    assert shipment.items_json == [
        {"quoteItemId": camera.id, "quantity": 2, "name": "Camera", "category": "SURVEILLANCE"},
        {"quoteItemId": "missing", "quantity": 1, "name": None, "category": None},
    ]


def test_backfill_is_idempotent(db):
    for i in range(3):
        _project(db, name=f"P{i}")
    db.commit()

    first = backfill_device_shipments(db)
    second = backfill_device_shipments(db)

    assert first.created == 3
    assert second.created == 0
    assert second.skipped == 3
    assert len(_shipments(db)) == 3


def test_existing_shipment_is_not_overwritten(db):
    project = _project(db)
    _milestone(db, project, 0, [{"quoteItemId": "x", "quantity": 1}])
    db.add(models.ProjectDeviceShipment(
        project_id=project.id,
        items_json=[{"quoteItemId": "keep", "quantity": 5, "name": "Kept", "category": "GATE"}],
    ))
    db.commit()

    report = backfill_device_shipments(db)

    assert report.created == 0
    assert report.skipped == 1
    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.items_json[0]["quoteItemId"] == "keep"


def test_malformed_milestone_items_still_create_shipment(db):
    project = _project(db)
    milestone = _milestone(db, project, 0, {"not": "a list"})
    db.commit()

    backfill_device_shipments(db)

    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.milestone_id == milestone.id
    assert shipment.items_json == []


def test_derivation_failure_logged_and_empty_shipment_created(db, monkeypatch, caplog):
    project = _project(db)
    milestone = _milestone(db, project, 0, [{"quoteItemId": "A", "quantity": 1}])
    db.commit()

    def broken_lookup(session):
        def lookup(ids):
            raise RuntimeError("catalog down")
        return lookup

    monkeypatch.setattr(backfill, "quote_item_lookup", broken_lookup)
    with caplog.at_level("ERROR", logger="backend.backfill"):
        report = backfill_device_shipments(db)

    assert report.created == 1
    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.milestone_id == milestone.id
    assert shipment.items_json == []
    assert project.id in caplog.text
    assert "catalog down" in caplog.text


def test_failed_lookup_rolls_back_before_creating_shipment(db, monkeypatch):
    project = _project(db)
    milestone = _milestone(db, project, 0, [{"quoteItemId": "A", "quantity": 1}])
    db.commit()

    def poisoning_lookup(session):
        def lookup(ids):
            # Leaves the session with a write that can never be flushed
            session.add(models.QuoteItem(quote_id=None, name=None, category=None))
            raise RuntimeError("connection reset")
        return lookup

    monkeypatch.setattr(backfill, "quote_item_lookup", poisoning_lookup)
    report = backfill_device_shipments(db)

    assert report.created == 1
    assert report.failed == 0
    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.milestone_id == milestone.id
    assert shipment.items_json == []
    assert db.query(models.QuoteItem).count() == 0


def test_shipment_created_by_another_writer_is_detected(db, monkeypatch):
    project = _project(db)
    _milestone(db, project, 0, [{"quoteItemId": "x", "quantity": 1}])
    db.commit()
    kept = [{"quoteItemId": "keep", "quantity": 5, "name": "Kept", "category": "GATE"}]

    real_check = backfill._existing_shipment
    checks = []

    def racing_check(session, project_id):
        checks.append(project_id)
        if len(checks) == 1:
            other = sessionmaker(bind=session.get_bind())()
            other.add(models.ProjectDeviceShipment(project_id=project_id, items_json=kept))
            other.commit()
            other.close()
            return None
        return real_check(session, project_id)

    monkeypatch.setattr(backfill, "_existing_shipment", racing_check)
    report = backfill_device_shipments(db)

    assert report.created == 0
    assert report.skipped == 1
    assert report.failed == 0
    shipment = db.query(models.ProjectDeviceShipment).one()
    assert shipment.items_json == kept


def test_integrity_error_without_existing_shipment_is_a_failure(db, monkeypatch):
    project = _project(db)
    db.commit()
    project_id = project.id

    real_commit = db.commit

    def failing_commit():
        monkeypatch.setattr(db, "commit", real_commit)
        raise IntegrityError(
            "INSERT INTO project_device_shipments", {}, Exception("FOREIGN KEY constraint failed"),
        )

    monkeypatch.setattr(db, "commit", failing_commit)
    report = backfill_device_shipments(db)

    assert report.skipped == 0
    assert report.failed == 1
    assert report.failed_project_ids == [project_id]
    assert _shipments(db) == []


def test_one_batched_catalog_query_per_project(db):
    project = _project(db)
    items = _quote_with_items(db, project, ("Bulb", "LIGHTING"), ("Lock", "ACCESS"), ("Cam", "SURVEILLANCE"))
    _milestone(db, project, 0, [{"quoteItemId": i.id, "quantity": 1} for i in items])
    db.commit()

    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        if "FROM quote_items" in statement:
            statements.append(statement)

    engine = db.get_bind()
    event.listen(engine, "before_cursor_execute", record)
    try:
        backfill_device_shipments(db)
    finally:
        event.remove(engine, "before_cursor_execute", record)

    assert len(statements) == 1
    shipment = db.query(models.ProjectDeviceShipment).one()
    assert [i["name"] for i in shipment.items_json] == ["Bulb", "Lock", "Cam"]


def test_persist_failure_for_one_project_does_not_stop_batch(db, monkeypatch):
    bad = _project(db, name="Bad")
    good = _project(db, name="Good")
    db.commit()

    real = backfill._backfill_project

    def flaky(session, project):
        if project.name == "Bad":
            raise RuntimeError("write failed")
        return real(session, project)

    monkeypatch.setattr(backfill, "_backfill_project", flaky)
    report = backfill_device_shipments(db)

    assert report.created == 1
    assert report.failed == 1
    assert report.failed_project_ids == [bad.id]
    assert [s.project_id for s in _shipments(db)] == [good.id]


def test_main_returns_zero_and_creates_shipments(db):
    _project(db)
    db.commit()

    assert backfill.main(["--database-url", "sqlite:///./test.db"]) == 0
    assert len(_shipments(db)) == 1


def test_main_returns_one_when_store_unreachable(monkeypatch):
    def unreachable(session):
        raise ConnectionError("store unreachable")

    monkeypatch.setattr(backfill, "backfill_device_shipments", unreachable)
    assert backfill.main(["--database-url", "sqlite:///./test.db"]) == 1
