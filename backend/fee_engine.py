"""
Quote Fee Engine.

Turns a raw device subtotal plus project metadata (location, room count)
into an itemized fee breakdown. Pure math: no database, no settings object.
Rates come from the named defaults below, optionally overridden per call.

Input: devices subtotal, device count, free-text location, rooms count, overrides
Output: FeeBreakdown

Arithmetic (in order):
    installation_fee  = total_devices × installation_fee_per_device
    integration_fee   = devices_subtotal × integration_rate
    logistics_cost    = logistics_per_trip(tier) × trip_count
    miscellaneous_fee = devices_subtotal × misc_rate
    taxable_base      = devices_subtotal + the four fees above
    tax_amount        = taxable_base × tax_rate
    total             = taxable_base + tax_amount
"""

import enum
import logging
import math
import numbers
from decimal import Decimal
from typing import Mapping, Optional, Union

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)


# Defaults: placeholder rates, tuned later via pricing settings
INSTALLATION_FEE_PER_DEVICE = 15000.0
INTEGRATION_RATE = 0.10             # 10% of devices subtotal
LOGISTICS_PER_TRIP_LAGOS = 50000.0
LOGISTICS_PER_TRIP_WEST_NEAR = 60000.0
LOGISTICS_PER_TRIP_OTHER = 100000.0
MISC_RATE = 0.05                    # 5% miscellaneous buffer
TAX_RATE = 0.075                    # 7.5% VAT on subtotal + fees

# Trip-count heuristic
BASELINE_TRIPS = 4
SMALL_PROJECT_TRIPS = 3             # <= 3 rooms
LARGE_PROJECT_TRIPS = 5             # 8-12 rooms
XL_PROJECT_TRIPS = 6                # > 12 rooms

PRIMARY_CITY_KEYWORD = "lagos"
# Literal list, not a full geography of the south-west
WEST_NEAR_KEYWORDS = ("osun", "ogun", "ibadan", "oyo", "ondo", "ekiti", "kwara")


class LocationTier(str, enum.Enum):
    LAGOS = "lagos"
    WEST_NEAR = "west_near"
    OTHER = "other"


class FeeConfig(BaseModel):
    """Rates for one computation. Immutable: use with_overrides() for a variant."""
    installation_fee_per_device: float = INSTALLATION_FEE_PER_DEVICE
    integration_rate: float = INTEGRATION_RATE
    logistics_per_trip_lagos: float = LOGISTICS_PER_TRIP_LAGOS
    logistics_per_trip_west_near: float = LOGISTICS_PER_TRIP_WEST_NEAR
    logistics_per_trip_other: float = LOGISTICS_PER_TRIP_OTHER
    misc_rate: float = MISC_RATE
    tax_rate: float = TAX_RATE

    class Config:
        frozen = True

    def with_overrides(self, overrides: Union["FeeConfigOverrides", Mapping, None]) -> "FeeConfig":
        """
        Returns a copy where only the supplied fields are replaced.
        None values, unknown keys and negative or non-finite rates are ignored.
        """
        if overrides is None:
            return self
        if not isinstance(overrides, FeeConfigOverrides):
            overrides = FeeConfigOverrides.model_validate(dict(overrides))
        supplied = {
            field: value
            for field, value in overrides.model_dump(exclude_none=True).items()
            if math.isfinite(value) and value >= 0
        }
        if not supplied:
            return self
        return self.model_copy(update=supplied)


class FeeConfigOverrides(BaseModel):
    """Partial FeeConfig. Accepts snake_case or camelCase keys."""
    installation_fee_per_device: Optional[float] = None
    integration_rate: Optional[float] = None
    logistics_per_trip_lagos: Optional[float] = None
    logistics_per_trip_west_near: Optional[float] = None
    logistics_per_trip_other: Optional[float] = None
    misc_rate: Optional[float] = None
    tax_rate: Optional[float] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


DEFAULT_FEE_CONFIG = FeeConfig()


class FeeBreakdown(BaseModel):
    installation_fee: float
    integration_fee: float
    logistics_cost: float
    miscellaneous_fee: float
    tax_amount: float
    total: float

    class Config:
        frozen = True

    @property
    def taxable_base(self) -> float:
        return self.total - self.tax_amount


def _to_float(value) -> Optional[float]:
    """Finite float for any real number (int, float, Decimal, Fraction), else None."""
    if isinstance(value, bool) or not isinstance(value, (numbers.Real, Decimal)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _sanitize_amount(value) -> float:
    """Non-numeric, non-finite and negative values become 0."""
    number = _to_float(value)
    if number is None or number < 0:
        return 0.0
    return number


def classify_location(location_hint: Optional[str]) -> LocationTier:
    """
    Lagos is checked first, so "Lagos, near Ogun border" is still LAGOS.
    Missing or blank hints fall through to OTHER.
    """
    if not location_hint:
        return LocationTier.OTHER
    hint = str(location_hint).lower()
    if PRIMARY_CITY_KEYWORD in hint:
        return LocationTier.LAGOS
    if any(keyword in hint for keyword in WEST_NEAR_KEYWORDS):
        return LocationTier.WEST_NEAR
    return LocationTier.OTHER


def recommended_trip_count(rooms_count=None) -> int:
    """Site visits needed for a project of this size."""
    rooms_count = _to_float(rooms_count)
    if rooms_count is None:
        return BASELINE_TRIPS
    if rooms_count <= 3:
        return SMALL_PROJECT_TRIPS
    if 8 <= rooms_count <= 12:
        return LARGE_PROJECT_TRIPS
    if rooms_count > 12:
        return XL_PROJECT_TRIPS
    return BASELINE_TRIPS


def logistics_rate_for(tier: LocationTier, config: FeeConfig = DEFAULT_FEE_CONFIG) -> float:
    if tier == LocationTier.LAGOS:
        return config.logistics_per_trip_lagos
    if tier == LocationTier.WEST_NEAR:
        return config.logistics_per_trip_west_near
    return config.logistics_per_trip_other


def compute_quote_fees(
    devices_subtotal,
    total_devices,
    location_hint: Optional[str] = None,
    rooms_count=None,
    overrides: Union[FeeConfigOverrides, Mapping, None] = None,
) -> FeeBreakdown:
    """
    Computes the fee breakdown for a quote.

    Never raises on bad numbers: a non-finite or negative subtotal or
    device count is treated as 0, so callers always get a valid breakdown.
    """
    devices_subtotal = _sanitize_amount(devices_subtotal)
    total_devices = _sanitize_amount(total_devices)
    config = DEFAULT_FEE_CONFIG.with_overrides(overrides)

    tier = classify_location(location_hint)
    trips = recommended_trip_count(rooms_count)

    installation_fee = total_devices * config.installation_fee_per_device
    integration_fee = devices_subtotal * config.integration_rate
    logistics_cost = logistics_rate_for(tier, config) * trips
    miscellaneous_fee = devices_subtotal * config.misc_rate

    taxable_base = (
        devices_subtotal + installation_fee + integration_fee +
        logistics_cost + miscellaneous_fee
    )
    tax_amount = taxable_base * config.tax_rate
    total = taxable_base + tax_amount

    logger.debug(
        "Fees computed: tier=%s trips=%d subtotal=%.2f total=%.2f",
        tier.value, trips, devices_subtotal, total,
    )

    return FeeBreakdown(
        installation_fee=installation_fee,
        integration_fee=integration_fee,
        logistics_cost=logistics_cost,
        miscellaneous_fee=miscellaneous_fee,
        tax_amount=tax_amount,
        total=total,
    )
