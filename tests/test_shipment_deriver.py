"""
Shipment deriver tests: in-memory catalog, no database.
"""

from types import SimpleNamespace

import pytest

from backend.shipment_deriver import (
    ShipmentItem,
    derive_shipment_items,
    extract_quote_item_id,
    normalize_quantity,
    try_derive_shipment_items,
)


class FakeCatalog:
    """Records every lookup so tests can assert on batching."""

    def __init__(self, records):
        self.records = {r.id: r for r in records}
        self.calls = []

    def __call__(self, ids):
        self.calls.append(list(ids))
        return [self.records[i] for i in ids if i in self.records]


def _record(id, name, category):
    return SimpleNamespace(id=id, name=name, category=category)


@pytest.fixture
def catalog():
    return FakeCatalog([_record("A", "Camera", "Security")])


def test_resolved_and_missing_items(catalog):
    raw = [{"quoteItemId": "A", "quantity": 2}, {"quoteItemId": "missing"}]
    items = derive_shipment_items(raw, catalog)
    assert [i.to_json() for i in items] == [
        {"quoteItemId": "A", "quantity": 2, "name": "Camera", "category": "Security"},
        {"quoteItemId": "missing", "quantity": 1, "name": None, "category": None},
    ]


@pytest.mark.parametrize("raw", [None, {}, "items", 42, {"quoteItemId": "A"}])
def test_non_list_input_yields_nothing(raw, catalog):
    assert derive_shipment_items(raw, catalog) == []
    assert catalog.calls == []


def test_single_batched_lookup_with_distinct_ids(catalog):
    raw = [
        {"quoteItemId": "A", "quantity": 1},
        {"quoteItemId": "B", "quantity": 1},
        {"quoteItemId": "A", "quantity": 3},
        {"quoteItemId": "C"},
    ]
    items = derive_shipment_items(raw, catalog)
    assert len(items) == 4
    assert catalog.calls == [["A", "B", "C"]]


def test_no_lookup_when_no_string_ids(catalog):
    items = derive_shipment_items([{"quoteItemId": 7}, {"quantity": 2}], catalog)
    assert catalog.calls == []
    assert [i.quote_item_id for i in items] == [None, None]
    assert [i.quantity for i in items] == [1, 2]


def test_malformed_entries_are_kept(catalog):
    items = derive_shipment_items([None, "A", ["A"], {"quoteItemId": "A"}], catalog)
    assert len(items) == 4
    assert items[0] == ShipmentItem(quote_item_id=None, quantity=1)
    assert items[3].name == "Camera"


@pytest.mark.parametrize("value,expected", [
    (3, 3),
    (1, 1),
    (0, 1),
    (-4, 1),
    (None, 1),
    ("5", 1),
    (True, 1),
    (float("nan"), 1),
    (float("inf"), 1),
    (2.0, 2),
    (0.5, 1),
    (10**400, 10**400),
])
def test_quantity_policy(value, expected):
    assert normalize_quantity(value) == expected


def test_extract_quote_item_id():
    assert extract_quote_item_id({"quoteItemId": "abc"}) == "abc"
    assert extract_quote_item_id({"quote_item_id": "abc"}) == "abc"
    assert extract_quote_item_id({"quoteItemId": 12}) is None
    assert extract_quote_item_id({"quoteItemId": None}) is None
    assert extract_quote_item_id("abc") is None


def test_enum_category_is_stored_as_value():
    import enum

    class Category(str, enum.Enum):
        LIGHTING = "LIGHTING"

    catalog = FakeCatalog([_record("L1", "Bulb", Category.LIGHTING)])
    items = derive_shipment_items([{"quoteItemId": "L1", "quantity": 4}], catalog)
    assert items[0].category == "LIGHTING"


def test_lookup_failure_propagates_from_derive():
    def broken(ids):
        raise ConnectionError("catalog unavailable")

    with pytest.raises(ConnectionError):
        derive_shipment_items([{"quoteItemId": "A"}], broken)


def test_try_derive_reports_failure_with_reason():
    def broken(ids):
        raise ConnectionError("catalog unavailable")

    result = try_derive_shipment_items([{"quoteItemId": "A"}], broken)
    assert not result.ok
    assert result.items == []
    assert "catalog unavailable" in result.error


def test_try_derive_success(catalog):
    result = try_derive_shipment_items([{"quoteItemId": "A", "quantity": 2}], catalog)
    assert result.ok
    assert result.items[0].name == "Camera"
