from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import datetime
from .models import ProductCategory, PriceTier, ShipmentStatus
from .fee_engine import FeeConfigOverrides


class ProjectCreate(BaseModel):
    name: str
    location: Optional[str] = None
    building_type: Optional[str] = None
    rooms_count: Optional[int] = None


class MilestoneCreate(BaseModel):
    title: str
    index: Optional[int] = None  # Defaults to next index
    amount: float = 0.0
    items: Optional[List[Any]] = None  # Loosely typed: [{"quoteItemId", "quantity"}]


class ProductBase(BaseModel):
    name: str
    category: ProductCategory
    price_tier: PriceTier
    unit_price: float = Field(ge=0)
    active: bool = True


class ProductCreate(ProductBase):
    pass


class Product(ProductBase):
    id: str
    created_at: datetime
    class Config:
        from_attributes = True


class GenerateQuotesRequest(BaseModel):
    project_id: str


class FeePreviewRequest(BaseModel):
    devices_subtotal: float
    total_devices: float
    location: Optional[str] = None
    rooms_count: Optional[float] = None
    overrides: Optional[FeeConfigOverrides] = None
    use_pricing_settings: bool = True  # Apply stored settings before explicit overrides


class AddQuoteItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, gt=0)


class UpdateQuoteItemRequest(BaseModel):
    quantity: Optional[int] = None


class PricingSettingsUpdate(BaseModel):
    logistics_per_trip_lagos: Optional[float] = None
    logistics_per_trip_west_near: Optional[float] = None
    logistics_per_trip_other: Optional[float] = None
    misc_rate_percent: Optional[float] = None
    tax_rate_percent: Optional[float] = None


class DeviceShipmentUpdate(BaseModel):
    status: Optional[ShipmentStatus] = None
    location_note: Optional[str] = None
    estimated_from: Optional[datetime] = None
    estimated_to: Optional[datetime] = None
