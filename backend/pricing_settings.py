"""
Admin-tunable pricing settings.

A single PricingSettings row holds the store-configurable fee inputs
(logistics per trip for each tier, misc and tax rates). The row is created
with the fee engine defaults on first access. Rates are edited as percents
and stored as fractions.
"""

import logging
import math

from sqlalchemy.orm import Session

from . import models
from .fee_engine import (
    FeeConfigOverrides,
    LOGISTICS_PER_TRIP_LAGOS,
    LOGISTICS_PER_TRIP_WEST_NEAR,
    LOGISTICS_PER_TRIP_OTHER,
    MISC_RATE,
    TAX_RATE,
)

logger = logging.getLogger(__name__)

AMOUNT_FIELDS = (
    "logistics_per_trip_lagos",
    "logistics_per_trip_west_near",
    "logistics_per_trip_other",
)
PERCENT_FIELDS = {
    "misc_rate_percent": "misc_rate",
    "tax_rate_percent": "tax_rate",
}


class InvalidPricingSetting(ValueError):
    """Raised for an out-of-range settings update. Message names the field."""


def ensure_settings(db: Session) -> models.PricingSettings:
    row = db.query(models.PricingSettings).first()
    if row:
        return row
    row = models.PricingSettings(
        logistics_per_trip_lagos=LOGISTICS_PER_TRIP_LAGOS,
        logistics_per_trip_west_near=LOGISTICS_PER_TRIP_WEST_NEAR,
        logistics_per_trip_other=LOGISTICS_PER_TRIP_OTHER,
        misc_rate=MISC_RATE,
        tax_rate=TAX_RATE,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Created default pricing settings")
    return row


def _to_number(value):
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_amount(value, field: str) -> float:
    number = _to_number(value)
    if number is None or number < 0:
        raise InvalidPricingSetting(f"{field} must be a non-negative number.")
    return number


def _to_rate(value, field: str) -> float:
    number = _to_number(value)
    if number is None or number < 0 or number > 100:
        raise InvalidPricingSetting(f"{field} must be between 0 and 100 (percent).")
    return number / 100.0


def update_settings(db: Session, payload: dict) -> models.PricingSettings:
    """
    Apply a partial update. Keys missing from payload (or None) are untouched.
    Everything is validated before anything is written.
    """
    row = ensure_settings(db)

    changes = {}
    for field in AMOUNT_FIELDS:
        if payload.get(field) is not None:
            changes[field] = _to_amount(payload[field], field)
    for field, column in PERCENT_FIELDS.items():
        if payload.get(field) is not None:
            changes[column] = _to_rate(payload[field], field)

    if changes:
        for column, value in changes.items():
            setattr(row, column, value)
        db.commit()
        db.refresh(row)
        logger.info("Pricing settings updated: %s", ", ".join(sorted(changes)))
    return row


def fee_overrides_from_settings(row: models.PricingSettings) -> FeeConfigOverrides:
    """The settings row as explicit fee engine overrides."""
    return FeeConfigOverrides(
        logistics_per_trip_lagos=row.logistics_per_trip_lagos,
        logistics_per_trip_west_near=row.logistics_per_trip_west_near,
        logistics_per_trip_other=row.logistics_per_trip_other,
        misc_rate=row.misc_rate,
        tax_rate=row.tax_rate,
    )


def settings_to_dict(row: models.PricingSettings) -> dict:
    return {
        "logistics_per_trip_lagos": row.logistics_per_trip_lagos,
        "logistics_per_trip_west_near": row.logistics_per_trip_west_near,
        "logistics_per_trip_other": row.logistics_per_trip_other,
        "misc_rate": row.misc_rate,
        "tax_rate": row.tax_rate,
        "misc_rate_percent": round(row.misc_rate * 100, 4),
        "tax_rate_percent": round(row.tax_rate * 100, 4),
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }
