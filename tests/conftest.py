"""
Shared test fixtures: SQLite test database, test client, sample records.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Point the app at the test database before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from backend import models
from backend.database import Base, get_db
from backend.main import app


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def seeded_products(db):
    """One product per category for each tier."""
    rows = [
        ("Bulb E", models.ProductCategory.LIGHTING, models.PriceTier.ECONOMY, 10000.0),
        ("Camera E", models.ProductCategory.SURVEILLANCE, models.PriceTier.ECONOMY, 40000.0),
        ("Lock E", models.ProductCategory.ACCESS, models.PriceTier.ECONOMY, 50000.0),
        ("Bulb S", models.ProductCategory.LIGHTING, models.PriceTier.STANDARD, 20000.0),
        ("Camera S", models.ProductCategory.SURVEILLANCE, models.PriceTier.STANDARD, 80000.0),
        ("Climate S", models.ProductCategory.CLIMATE, models.PriceTier.STANDARD, 45000.0),
        ("Panel L", models.ProductCategory.LIGHTING, models.PriceTier.LUXURY, 40000.0),
        ("Gate L", models.ProductCategory.GATE, models.PriceTier.LUXURY, 600000.0),
    ]
    products = [
        models.Product(name=name, category=category, price_tier=tier, unit_price=price)
        for name, category, tier, price in rows
    ]
    db.add_all(products)
    db.commit()
    return products
