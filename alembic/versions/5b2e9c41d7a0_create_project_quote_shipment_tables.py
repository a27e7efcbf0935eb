"""create project, quote, pricing and device shipment tables

Revision ID: 5b2e9c41d7a0
Revises:
Create Date: 2026-10-18 09:41:12.118204

Creates tables only where missing, so databases that were built by
Base.metadata.create_all() can be upgraded safely.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = '5b2e9c41d7a0'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PROJECT_STATUS = sa.Enum("NEW", "QUOTES_GENERATED", "QUOTE_SELECTED", name="projectstatus")
QUOTE_STATUS = sa.Enum("GENERATED", "SELECTED", name="quotestatus")
PRICE_TIER = sa.Enum("ECONOMY", "STANDARD", "LUXURY", name="pricetier")
PRODUCT_CATEGORY = sa.Enum(
    "LIGHTING", "SURVEILLANCE", "ACCESS", "GATE", "STAIRCASE", "CLIMATE",
    name="productcategory",
)
SHIPMENT_STATUS = sa.Enum("PENDING", "IN_TRANSIT", "DELIVERED", name="shipmentstatus")


def _table_exists(table_name):
    """Check if a table exists."""
    bind = op.get_bind()
    insp = inspect(bind)
    return table_name in insp.get_table_names()


def upgrade() -> None:
    if not _table_exists("projects"):
        op.create_table(
            "projects",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("location", sa.Text(), nullable=True),
            sa.Column("building_type", sa.String(), nullable=True),
            sa.Column("rooms_count", sa.Integer(), nullable=True),
            sa.Column("status", PROJECT_STATUS, nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("milestones"):
        op.create_table(
            "milestones",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False, index=True),
            sa.Column("index", sa.Integer(), nullable=False),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("amount", sa.Float(), nullable=True),
            sa.Column("status", sa.String(), nullable=True),
            sa.Column("items_json", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("products"):
        op.create_table(
            "products",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("category", PRODUCT_CATEGORY, nullable=False),
            sa.Column("price_tier", PRICE_TIER, nullable=False),
            sa.Column("unit_price", sa.Float(), nullable=False),
            sa.Column("active", sa.Boolean(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("quotes"):
        op.create_table(
            "quotes",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False, index=True),
            sa.Column("tier", PRICE_TIER, nullable=False),
            sa.Column("status", QUOTE_STATUS, nullable=True),
            sa.Column("title", sa.String(), nullable=False),
            sa.Column("currency", sa.String(), nullable=True),
            sa.Column("is_selected", sa.Boolean(), nullable=True),
            sa.Column("subtotal", sa.Float(), nullable=True),
            sa.Column("total_devices", sa.Integer(), nullable=True),
            sa.Column("installation_fee", sa.Float(), nullable=True),
            sa.Column("integration_fee", sa.Float(), nullable=True),
            sa.Column("logistics_cost", sa.Float(), nullable=True),
            sa.Column("miscellaneous_fee", sa.Float(), nullable=True),
            sa.Column("tax_amount", sa.Float(), nullable=True),
            sa.Column("total", sa.Float(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("quote_items"):
        op.create_table(
            "quote_items",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("quote_id", sa.String(), sa.ForeignKey("quotes.id"), nullable=False, index=True),
            sa.Column("product_id", sa.String(), sa.ForeignKey("products.id"), nullable=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("category", sa.String(), nullable=False),
            sa.Column("quantity", sa.Integer(), nullable=True),
            sa.Column("unit_price", sa.Float(), nullable=True),
            sa.Column("total_price", sa.Float(), nullable=True),
        )

    if not _table_exists("project_device_shipments"):
        op.create_table(
            "project_device_shipments",
            sa.Column("id", sa.String(), primary_key=True),
            sa.Column("project_id", sa.String(), sa.ForeignKey("projects.id"), nullable=False, unique=True),
            sa.Column("milestone_id", sa.String(), sa.ForeignKey("milestones.id"), nullable=True),
            sa.Column("items_json", sa.JSON(), nullable=True),
            sa.Column("status", SHIPMENT_STATUS, nullable=True),
            sa.Column("location_note", sa.Text(), nullable=True),
            sa.Column("estimated_from", sa.DateTime(), nullable=True),
            sa.Column("estimated_to", sa.DateTime(), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )

    if not _table_exists("pricing_settings"):
        op.create_table(
            "pricing_settings",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("logistics_per_trip_lagos", sa.Float(), nullable=False),
            sa.Column("logistics_per_trip_west_near", sa.Float(), nullable=False),
            sa.Column("logistics_per_trip_other", sa.Float(), nullable=False),
            sa.Column("misc_rate", sa.Float(), nullable=False),
            sa.Column("tax_rate", sa.Float(), nullable=False),
            sa.Column("created_at", sa.DateTime(), nullable=True),
            sa.Column("updated_at", sa.DateTime(), nullable=True),
        )


def downgrade() -> None:
    for table in (
        "pricing_settings",
        "project_device_shipments",
        "quote_items",
        "quotes",
        "products",
        "milestones",
        "projects",
    ):
        if _table_exists(table):
            op.drop_table(table)
