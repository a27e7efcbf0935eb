from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, Enum, Boolean, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from .database import Base
import enum
import uuid


def _uuid() -> str:
    return str(uuid.uuid4())


# --- Enums ---

class ProjectStatus(str, enum.Enum):
    NEW = "NEW"
    QUOTES_GENERATED = "QUOTES_GENERATED"
    QUOTE_SELECTED = "QUOTE_SELECTED"


class QuoteStatus(str, enum.Enum):
    GENERATED = "GENERATED"
    SELECTED = "SELECTED"


class PriceTier(str, enum.Enum):
    ECONOMY = "ECONOMY"
    STANDARD = "STANDARD"
    LUXURY = "LUXURY"


class ProductCategory(str, enum.Enum):
    LIGHTING = "LIGHTING"
    SURVEILLANCE = "SURVEILLANCE"
    ACCESS = "ACCESS"
    GATE = "GATE"
    STAIRCASE = "STAIRCASE"
    CLIMATE = "CLIMATE"


class ShipmentStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"


# --- Tables ---

class Project(Base):
    """A customer's installation project."""
    __tablename__ = "projects"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    location = Column(Text, nullable=True)  # Free text: used for logistics tiering
    building_type = Column(String, nullable=True)
    rooms_count = Column(Integer, nullable=True)
    status = Column(Enum(ProjectStatus), default=ProjectStatus.NEW)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    milestones = relationship(
        "Milestone", back_populates="project",
        order_by="Milestone.index", cascade="all, delete-orphan",
    )
    quotes = relationship("Quote", back_populates="project", cascade="all, delete-orphan")
    device_shipment = relationship(
        "ProjectDeviceShipment", back_populates="project",
        uselist=False, cascade="all, delete-orphan",
    )


class Milestone(Base):
    """Payment/delivery milestone. items_json is written by the milestone flow and is loosely typed."""
    __tablename__ = "milestones"

    id = Column(String, primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id"), nullable=False, index=True)
    index = Column(Integer, nullable=False, default=0)
    title = Column(String, nullable=False)
    amount = Column(Float, default=0.0)
    status = Column(String, default="PENDING")
    items_json = Column(JSON, nullable=True)  # [{"quoteItemId": str, "quantity": int}, ...]
    created_at = Column(DateTime, default=datetime.utcnow)

    project = relationship("Project", back_populates="milestones")


class Product(Base):
    """Installable device catalog, one row per product per price tier."""
    __tablename__ = "products"

    id = Column(String, primary_key=True, default=_uuid)
    name = Column(String, nullable=False)
    category = Column(Enum(ProductCategory), nullable=False)
    price_tier = Column(Enum(PriceTier), nullable=False)
    unit_price = Column(Float, nullable=False)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(String, primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id"), nullable=False, index=True)
    tier = Column(Enum(PriceTier), nullable=False)
    status = Column(Enum(QuoteStatus), default=QuoteStatus.GENERATED)
    title = Column(String, nullable=False)
    currency = Column(String, default="NGN")
    is_selected = Column(Boolean, default=False)

    # Totals: subtotal is devices only, total includes fees and tax
    subtotal = Column(Float, default=0.0)
    total_devices = Column(Integer, default=0)
    installation_fee = Column(Float, default=0.0)
    integration_fee = Column(Float, default=0.0)
    logistics_cost = Column(Float, default=0.0)
    miscellaneous_fee = Column(Float, default=0.0)
    tax_amount = Column(Float, default=0.0)
    total = Column(Float, default=0.0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="quotes")
    items = relationship("QuoteItem", back_populates="quote", cascade="all, delete-orphan")


class QuoteItem(Base):
    """Authoritative quote line. Milestone items and shipments reference these by id."""
    __tablename__ = "quote_items"

    id = Column(String, primary_key=True, default=_uuid)
    quote_id = Column(String, ForeignKey("quotes.id"), nullable=False, index=True)
    product_id = Column(String, ForeignKey("products.id"), nullable=True)
    name = Column(String, nullable=False)
    category = Column(String, nullable=False)
    quantity = Column(Integer, default=1)
    unit_price = Column(Float, default=0.0)
    total_price = Column(Float, default=0.0)

    quote = relationship("Quote", back_populates="items")


class ProjectDeviceShipment(Base):
    """One per project. Created by the milestone flow or the backfill, never duplicated."""
    __tablename__ = "project_device_shipments"

    id = Column(String, primary_key=True, default=_uuid)
    project_id = Column(String, ForeignKey("projects.id"), unique=True, nullable=False)
    milestone_id = Column(String, ForeignKey("milestones.id"), nullable=True)
    items_json = Column(JSON, default=list)  # [{"quoteItemId", "quantity", "name", "category"}]
    status = Column(Enum(ShipmentStatus), default=ShipmentStatus.PENDING)
    location_note = Column(Text, nullable=True)
    estimated_from = Column(DateTime, nullable=True)
    estimated_to = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="device_shipment")


class PricingSettings(Base):
    """Single-row table of admin-tunable fee inputs."""
    __tablename__ = "pricing_settings"

    id = Column(Integer, primary_key=True, index=True)
    logistics_per_trip_lagos = Column(Float, nullable=False)
    logistics_per_trip_west_near = Column(Float, nullable=False)
    logistics_per_trip_other = Column(Float, nullable=False)
    misc_rate = Column(Float, nullable=False)
    tax_rate = Column(Float, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
