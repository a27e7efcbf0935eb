#!/usr/bin/env python3
"""
Backfill ProjectDeviceShipment for existing projects.

Usage:
    backfill-device-shipments [--database-url URL]
    python -m backend.backfill

For every project without a shipment:
  - no milestone, or first milestone has no items  → empty shipment, milestone_id NULL
  - otherwise → items derived from the first milestone (by index), linked to it

Projects that already have a shipment are skipped, so the backfill can be
re-run any number of times. One project failing never stops the batch.
"""

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import BaseModel
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from . import models
from .config import settings
from .shipment_deriver import try_derive_shipment_items

logger = logging.getLogger(__name__)

CREATED = "created"
SKIPPED = "skipped"


class BackfillReport(BaseModel):
    created: int = 0
    skipped: int = 0
    failed: int = 0
    failed_project_ids: List[str] = []


def quote_item_lookup(db: Session):
    """Batched catalog lookup: one query for all ids of a milestone."""
    def lookup(ids: List[str]) -> List[models.QuoteItem]:
        return db.query(models.QuoteItem).filter(models.QuoteItem.id.in_(ids)).all()
    return lookup


def _existing_shipment(db: Session, project_id: str) -> Optional[models.ProjectDeviceShipment]:
    return db.query(models.ProjectDeviceShipment).filter(
        models.ProjectDeviceShipment.project_id == project_id
    ).first()


def _backfill_project(db: Session, project: models.Project) -> str:
    project_id = project.id
    if _existing_shipment(db, project_id):
        return SKIPPED

    first_milestone = project.milestones[0] if project.milestones else None

    if first_milestone is None or first_milestone.items_json is None:
        # Still create an empty shipment so older projects have something to show
        milestone_id = None
        items = []
    else:
        milestone_id = first_milestone.id
        result = try_derive_shipment_items(first_milestone.items_json, quote_item_lookup(db))
        if not result.ok:
            # A failed lookup can leave the transaction aborted
            db.rollback()
            logger.error(
                "Failed to derive shipment items for project %s: %s",
                project_id, result.error,
            )
        items = [item.to_json() for item in result.items]

    db.add(models.ProjectDeviceShipment(
        project_id=project_id,
        milestone_id=milestone_id,
        items_json=items,
    ))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if _existing_shipment(db, project_id) is None:
            raise
        # Unique project_id: another writer created it between check and insert
        logger.warning("Shipment for project %s already exists, not overwriting", project_id)
        return SKIPPED
    return CREATED


def backfill_device_shipments(db: Session) -> BackfillReport:
    """
    Ensure every project has exactly one device shipment.

    Failures loading the project list propagate (fatal). Failures for a
    single project are logged and counted, and the batch moves on.
    """
    report = BackfillReport()
    projects = db.query(models.Project).order_by(models.Project.created_at).all()

    for project in projects:
        try:
            outcome = _backfill_project(db, project)
        except Exception as e:
            db.rollback()
            logger.error("Backfill failed for project %s: %s", project.id, e)
            report.failed += 1
            report.failed_project_ids.append(project.id)
            continue
        if outcome == CREATED:
            report.created += 1
        else:
            report.skipped += 1

    return report


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Backfill device shipments for existing projects.")
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Backfilling ProjectDeviceShipment for existing projects...")

    connect_args = {"check_same_thread": False} if args.database_url.startswith("sqlite") else {}
    engine = create_engine(args.database_url, connect_args=connect_args)
    db = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        report = backfill_device_shipments(db)
    except Exception as e:
        logger.error("Backfill failed: %s", e)
        return 1
    finally:
        db.close()
        engine.dispose()

    logger.info(
        "Backfill complete. Shipments created: %d (skipped %d, failed %d)",
        report.created, report.skipped, report.failed,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
