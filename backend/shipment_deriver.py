"""
Device Shipment Deriver.

Rebuilds a shipment's line items from a milestone's raw items JSON and the
quote-item catalog. The milestone JSON is written by an upstream flow and is
loosely typed, so every field is validated explicitly:

    quoteItemId:    kept only if it is a string, else None
    quantity:       kept only if it is a number > 0, else 1
    name, category: from the catalog record, None when the id does not resolve

Entries are never dropped. All ids are resolved with ONE catalog lookup.
"""

import logging
import math
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

CatalogLookup = Callable[[List[str]], Iterable]


class ShipmentItem(BaseModel):
    quote_item_id: Optional[str] = None
    quantity: int = 1
    name: Optional[str] = None
    category: Optional[str] = None

    def to_json(self) -> dict:
        """Stored shape on ProjectDeviceShipment.items_json."""
        return {
            "quoteItemId": self.quote_item_id,
            "quantity": self.quantity,
            "name": self.name,
            "category": self.category,
        }


class DerivationResult(BaseModel):
    """Success with items, or failure with a reason (and no items)."""
    items: List[ShipmentItem] = []
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_quote_item_id(entry) -> Optional[str]:
    if not isinstance(entry, dict):
        return None
    value = entry.get("quoteItemId", entry.get("quote_item_id"))
    return value if isinstance(value, str) else None


def normalize_quantity(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 1
    if isinstance(value, int):
        return max(value, 1)
    if not math.isfinite(value) or value <= 0:
        return 1
    return max(int(value), 1)


def _category_value(category) -> Optional[str]:
    if category is None:
        return None
    return getattr(category, "value", category)


def derive_shipment_items(raw_items, catalog_lookup: CatalogLookup) -> List[ShipmentItem]:
    """
    Derive shipment items from raw milestone items.

    Args:
        raw_items: milestone.items_json: anything; non-lists yield []
        catalog_lookup: called once with the distinct ids, returns records
            with id / name / category attributes

    Raises whatever catalog_lookup raises.
    """
    if not isinstance(raw_items, (list, tuple)):
        return []

    ids = [extract_quote_item_id(entry) for entry in raw_items]
    distinct_ids = list(dict.fromkeys(i for i in ids if i is not None))

    by_id = {}
    if distinct_ids:
        for record in catalog_lookup(distinct_ids):
            by_id[record.id] = record

    items = []
    for entry, quote_item_id in zip(raw_items, ids):
        record = by_id.get(quote_item_id) if quote_item_id else None
        raw_quantity = entry.get("quantity") if isinstance(entry, dict) else None
        items.append(ShipmentItem(
            quote_item_id=quote_item_id,
            quantity=normalize_quantity(raw_quantity),
            name=record.name if record else None,
            category=_category_value(record.category) if record else None,
        ))
    logger.debug(
        "Derived %d shipment items, %d ids unresolved",
        len(items), len([i for i in distinct_ids if i not in by_id]),
    )
    return items


def try_derive_shipment_items(raw_items, catalog_lookup: CatalogLookup) -> DerivationResult:
    """derive_shipment_items(), with any failure turned into an empty result carrying the reason."""
    try:
        return DerivationResult(items=derive_shipment_items(raw_items, catalog_lookup))
    except Exception as e:
        return DerivationResult(items=[], error=f"{type(e).__name__}: {e}")
