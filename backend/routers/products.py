from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from .. import models, schemas
from ..database import get_db

router = APIRouter(prefix="/products", tags=["products"])

# Starter catalog: one product per category per tier, prices in NGN
DEFAULT_PRODUCTS = [
    ("Smart bulb (basic)", models.ProductCategory.LIGHTING, models.PriceTier.ECONOMY, 8000.0),
    ("Wi-Fi camera 2MP", models.ProductCategory.SURVEILLANCE, models.PriceTier.ECONOMY, 35000.0),
    ("Keypad door lock", models.ProductCategory.ACCESS, models.PriceTier.ECONOMY, 60000.0),
    ("Smart switch dimmer", models.ProductCategory.LIGHTING, models.PriceTier.STANDARD, 18000.0),
    ("PoE camera 4MP", models.ProductCategory.SURVEILLANCE, models.PriceTier.STANDARD, 75000.0),
    ("Fingerprint door lock", models.ProductCategory.ACCESS, models.PriceTier.STANDARD, 120000.0),
    ("Smart AC controller", models.ProductCategory.CLIMATE, models.PriceTier.STANDARD, 45000.0),
    ("Scene lighting panel", models.ProductCategory.LIGHTING, models.PriceTier.LUXURY, 42000.0),
    ("4K AI camera", models.ProductCategory.SURVEILLANCE, models.PriceTier.LUXURY, 160000.0),
    ("Face-recognition access", models.ProductCategory.ACCESS, models.PriceTier.LUXURY, 350000.0),
    ("Automated sliding gate motor", models.ProductCategory.GATE, models.PriceTier.LUXURY, 650000.0),
    ("Multi-zone climate hub", models.ProductCategory.CLIMATE, models.PriceTier.LUXURY, 110000.0),
]


@router.get("/seed")
def seed_products(db: Session = Depends(get_db)):
    """Seed the starter catalog. Safe to run multiple times: skips existing."""
    seeded = 0
    for name, category, tier, unit_price in DEFAULT_PRODUCTS:
        existing = db.query(models.Product).filter(
            models.Product.name == name,
            models.Product.price_tier == tier,
        ).first()
        if not existing:
            db.add(models.Product(name=name, category=category, price_tier=tier, unit_price=unit_price))
            seeded += 1
    db.commit()
    return {"ok": True, "seeded": seeded}


@router.get("/", response_model=List[schemas.Product])
def list_products(active_only: bool = False, db: Session = Depends(get_db)):
    query = db.query(models.Product)
    if active_only:
        query = query.filter(models.Product.active.is_(True))
    return query.order_by(models.Product.price_tier, models.Product.category).all()


@router.post("/", response_model=schemas.Product)
def create_product(product: schemas.ProductCreate, db: Session = Depends(get_db)):
    db_product = models.Product(**product.model_dump())
    db.add(db_product)
    db.commit()
    db.refresh(db_product)
    return db_product
