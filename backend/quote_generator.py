"""
Quote generation and item editing.

Deterministic generator: one quote per price tier, one product per device
category, quantities scaled by the project's room count. Every change to a
quote's items re-runs the fee engine with the project's location and room
count and the current pricing settings.
"""

import logging
import math
from typing import List, Optional

from sqlalchemy.orm import Session

from . import models
from .config import settings
from .fee_engine import FeeConfigOverrides, compute_quote_fees
from .pricing_settings import ensure_settings, fee_overrides_from_settings

logger = logging.getLogger(__name__)

TIER_ORDER = [models.PriceTier.ECONOMY, models.PriceTier.STANDARD, models.PriceTier.LUXURY]

TIER_TITLES = {
    models.PriceTier.ECONOMY: "Economy automation package",
    models.PriceTier.STANDARD: "Standard automation package",
    models.PriceTier.LUXURY: "Luxury automation package",
}


class NotFound(LookupError):
    """Project, quote or quote item does not exist."""


class QuoteGenerationError(RuntimeError):
    """Quotes cannot be generated, e.g. no active products."""


def category_quantity(category: models.ProductCategory, rooms: int) -> int:
    """How many of a device category a project of `rooms` rooms needs."""
    if category == models.ProductCategory.LIGHTING:
        return max(rooms * 2, 2)
    if category == models.ProductCategory.SURVEILLANCE:
        return max(math.ceil(rooms / 2), 1)
    if category == models.ProductCategory.CLIMATE:
        return max(rooms, 1)
    # ACCESS, GATE, STAIRCASE: one per project
    return 1


def build_tier_items(products: List[models.Product], tier: models.PriceTier, rooms: int) -> List[dict]:
    """One item per category for the tier. The first product seen in a category wins."""
    by_category = {}
    for product in products:
        if product.price_tier != tier:
            continue
        by_category.setdefault(product.category, product)

    return [
        {
            "product_id": product.id,
            "name": product.name,
            "category": category,
            "quantity": category_quantity(category, rooms),
            "unit_price": float(product.unit_price),
        }
        for category, product in by_category.items()
    ]


def _get_project(db: Session, project_id: str) -> models.Project:
    project = db.query(models.Project).filter(models.Project.id == project_id).first()
    if not project:
        raise NotFound("Project not found")
    return project


def _get_quote(db: Session, quote_id: str) -> models.Quote:
    quote = db.query(models.Quote).filter(models.Quote.id == quote_id).first()
    if not quote:
        raise NotFound("Quote not found")
    return quote


def _get_quote_item(quote: models.Quote, item_id: str) -> models.QuoteItem:
    for item in quote.items:
        if item.id == item_id:
            return item
    raise NotFound("Quote item not found")


def current_fee_overrides(db: Session) -> FeeConfigOverrides:
    return fee_overrides_from_settings(ensure_settings(db))


def recalculate_totals(quote: models.Quote, overrides: FeeConfigOverrides) -> models.Quote:
    """
    Recompute subtotal, device count and fees from the quote's items.

    subtotal       = Σ item.total_price
    total_devices  = Σ item.quantity
    fees           = compute_quote_fees(subtotal, total_devices, location, rooms, overrides)
    """
    subtotal = round(sum(item.total_price or 0.0 for item in quote.items), 2)
    total_devices = sum(item.quantity or 0 for item in quote.items)

    project = quote.project
    fees = compute_quote_fees(
        subtotal,
        total_devices,
        location_hint=project.location,
        rooms_count=project.rooms_count,
        overrides=overrides,
    )

    quote.subtotal = subtotal
    quote.total_devices = total_devices
    quote.installation_fee = round(fees.installation_fee, 2)
    quote.integration_fee = round(fees.integration_fee, 2)
    quote.logistics_cost = round(fees.logistics_cost, 2)
    quote.miscellaneous_fee = round(fees.miscellaneous_fee, 2)
    quote.tax_amount = round(fees.tax_amount, 2)
    quote.total = round(
        quote.subtotal + quote.installation_fee + quote.integration_fee +
        quote.logistics_cost + quote.miscellaneous_fee + quote.tax_amount,
        2,
    )
    return quote


def generate_for_project(db: Session, project_id: str) -> List[models.Quote]:
    """
    Replace the project's GENERATED quotes with fresh Economy/Standard/Luxury quotes.
    Selected quotes are kept.
    """
    project = _get_project(db, project_id)

    products = db.query(models.Product).filter(models.Product.active.is_(True)).all()
    if not products:
        raise QuoteGenerationError("No automation products are configured yet.")

    rooms = project.rooms_count if project.rooms_count and project.rooms_count > 0 else 1
    overrides = current_fee_overrides(db)

    # ORM delete so quote items go with their quote
    for stale in list(project.quotes):
        if stale.status == models.QuoteStatus.GENERATED:
            project.quotes.remove(stale)
    db.flush()

    created = []
    for tier in TIER_ORDER:
        quote = models.Quote(
            project=project,
            tier=tier,
            status=models.QuoteStatus.GENERATED,
            title=TIER_TITLES[tier],
            currency=settings.CURRENCY,
        )
        for item in build_tier_items(products, tier, rooms):
            quote.items.append(models.QuoteItem(
                product_id=item["product_id"],
                name=item["name"],
                category=item["category"].value,
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                total_price=round(item["unit_price"] * item["quantity"], 2),
            ))
        recalculate_totals(quote, overrides)
        db.add(quote)
        created.append(quote)

    project.status = models.ProjectStatus.QUOTES_GENERATED
    db.commit()
    for quote in created:
        db.refresh(quote)

    logger.info("Generated %d quotes for project %s (rooms=%d)", len(created), project_id, rooms)
    return created


def list_for_project(db: Session, project_id: str) -> List[models.Quote]:
    return db.query(models.Quote).filter(
        models.Quote.project_id == project_id,
    ).order_by(models.Quote.created_at.desc()).all()


def get_quote(db: Session, quote_id: str) -> models.Quote:
    return _get_quote(db, quote_id)


def select_quote(db: Session, quote_id: str) -> models.Quote:
    """Mark one quote SELECTED; its siblings go back to GENERATED."""
    quote = _get_quote(db, quote_id)
    for sibling in quote.project.quotes:
        sibling.is_selected = False
        sibling.status = models.QuoteStatus.GENERATED
    quote.is_selected = True
    quote.status = models.QuoteStatus.SELECTED
    quote.project.status = models.ProjectStatus.QUOTE_SELECTED
    db.commit()
    db.refresh(quote)
    return quote


def add_item(db: Session, quote_id: str, product_id: str, quantity: int) -> models.Quote:
    overrides = current_fee_overrides(db)
    quote = _get_quote(db, quote_id)
    product = db.query(models.Product).filter(models.Product.id == product_id).first()
    if not product:
        raise NotFound("Product not found")

    quote.items.append(models.QuoteItem(
        product_id=product.id,
        name=product.name,
        category=product.category.value,
        quantity=quantity,
        unit_price=float(product.unit_price),
        total_price=round(float(product.unit_price) * quantity, 2),
    ))
    recalculate_totals(quote, overrides)
    db.commit()
    db.refresh(quote)
    return quote


def update_item(db: Session, quote_id: str, item_id: str, quantity: Optional[int]) -> models.Quote:
    """A quantity that is not a positive number keeps the current quantity."""
    overrides = current_fee_overrides(db)
    quote = _get_quote(db, quote_id)
    item = _get_quote_item(quote, item_id)

    if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0:
        item.quantity = quantity
    item.total_price = round(item.unit_price * item.quantity, 2)

    recalculate_totals(quote, overrides)
    db.commit()
    db.refresh(quote)
    return quote


def remove_item(db: Session, quote_id: str, item_id: str) -> models.Quote:
    overrides = current_fee_overrides(db)
    quote = _get_quote(db, quote_id)
    item = _get_quote_item(quote, item_id)
    quote.items.remove(item)
    recalculate_totals(quote, overrides)
    db.commit()
    db.refresh(quote)
    return quote


def quote_to_dict(quote: models.Quote) -> dict:
    return {
        "id": quote.id,
        "project_id": quote.project_id,
        "tier": quote.tier.value if quote.tier else None,
        "status": quote.status.value if quote.status else None,
        "title": quote.title,
        "currency": quote.currency,
        "is_selected": bool(quote.is_selected),
        "subtotal": quote.subtotal,
        "total_devices": quote.total_devices,
        "fees": {
            "installation_fee": quote.installation_fee,
            "integration_fee": quote.integration_fee,
            "logistics_cost": quote.logistics_cost,
            "miscellaneous_fee": quote.miscellaneous_fee,
            "tax_amount": quote.tax_amount,
        },
        "total": quote.total,
        "created_at": quote.created_at.isoformat() if quote.created_at else None,
        "items": [
            {
                "id": item.id,
                "product_id": item.product_id,
                "name": item.name,
                "category": item.category,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total_price": item.total_price,
            }
            for item in quote.items
        ],
    }
