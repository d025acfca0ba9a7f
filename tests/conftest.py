"""
Shared test fixtures for storefront and portal tests.
"""
import os
import tempfile
from pathlib import Path

import pytest

# Load .env file FIRST before any storefront imports
from dotenv import load_dotenv
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path, override=True)

# Set test-specific environment (but don't override secrets from .env)
_TEST_DATA_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DATA_DIR"] = _TEST_DATA_DIR
os.environ["UPLOADS_DIR"] = str(Path(_TEST_DATA_DIR) / "storage")
os.environ["PASSWORD_HASH_ITERATIONS"] = "1000"

# Now import and clear settings cache to pick up the test values
from storefront.config import get_settings
get_settings.cache_clear()

from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

CUSTOMER_PASSWORD = "correct-horse-battery"
STAFF_PASSWORD = "staff-password-123"


@pytest.fixture
def db_engine():
    """In-memory database shared by every session of one test."""
    from storefront.core import database
    from storefront.models import database as models  # noqa: F401

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    original_engine = database.engine
    database.engine = engine
    database.SessionLocal.configure(bind=engine)
    database.Base.metadata.create_all(bind=engine)

    yield engine

    database.Base.metadata.drop_all(bind=engine)
    database.engine = original_engine
    database.SessionLocal.configure(bind=original_engine)
    engine.dispose()


@pytest.fixture
def db(db_engine):
    """Session for arranging data directly in tests."""
    from storefront.core.database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def reset_state():
    """Clear rate limiter and metrics between tests."""
    from storefront.core.metrics import metrics
    from storefront.core.rate_limit import rate_limiter

    rate_limiter.reset()
    metrics.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def uploads_dir(tmp_path):
    from storefront.services.upload_service import upload_service

    path = tmp_path / "storage"
    original = upload_service._uploads_dir
    upload_service._uploads_dir = path
    yield path
    upload_service._uploads_dir = original


@pytest.fixture
def client(db_engine, uploads_dir):
    """Test client bound to the in-memory database."""
    from fastapi.testclient import TestClient
    from storefront.main import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def catalog(db):
    """A small catalog: one service with options, three tiers and a product."""
    from storefront.models.database import (
        OptionType,
        Product,
        ProductCategory,
        ProductVariant,
        Service,
        ServiceCategory,
        ServiceOption,
        TierFeature,
        TierPackage,
    )

    category = ServiceCategory(name="Print", slug="print", sort_order=1)
    db.add(category)
    db.flush()

    service = Service(
        category_id=category.id,
        name="Business Cards",
        slug="business-cards",
        description="Premium business cards",
        requires_booking=False,
        requires_proof=True,
        is_top_seller=True,
    )
    db.add(service)
    db.flush()

    db.add_all([
        ServiceOption(service_id=service.id, key="quantity", label="Quantity", type=OptionType.SELECT,
                      required=True, choices='["250", "500", "1000"]', sort_order=1),
        ServiceOption(service_id=service.id, key="finish", label="Finish", type=OptionType.SELECT,
                      choices='["matte", "gloss"]', sort_order=2),
    ])

    tiers = {}
    for order, slug in enumerate(("basic", "standard", "premium"), start=1):
        tier = TierPackage(name=slug.title(), slug=slug, sort_order=order)
        db.add(tier)
        db.flush()
        db.add(TierFeature(
            tier_id=tier.id,
            group_name="Design",
            feature_key="revisions",
            feature_label="Revisions",
            feature_value={"basic": "0", "standard": "2", "premium": "Unlimited"}[slug],
            sort_order=1,
        ))
        tiers[slug] = tier.id

    product_category = ProductCategory(name="Stickers", slug="stickers", sort_order=1)
    db.add(product_category)
    db.flush()
    product = Product(
        slug="die-cut-stickers",
        name="Die Cut Stickers",
        description="Vinyl stickers",
        base_price=2.5,
        category_id=product_category.id,
    )
    db.add(product)
    db.flush()
    small = ProductVariant(product_id=product.id, label="50 stickers", quantity=50,
                           unit_price=0.5, total_price=25.0, sort_order=1)
    large = ProductVariant(product_id=product.id, label="100 stickers", quantity=100,
                           unit_price=0.4, total_price=40.0, compare_at_price=50.0,
                           discount_label="20% off", sort_order=2)
    db.add_all([small, large])
    db.commit()

    return {
        "category_id": category.id,
        "service_id": service.id,
        "tiers": tiers,
        "product_id": product.id,
        "variant_small_id": small.id,
        "variant_large_id": large.id,
    }


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register_customer(client, email="aoife@example.com", name="Aoife Byrne") -> dict:
    """Register through the API and return the response plus headers."""
    response = client.post("/api/v1/auth/register", json={
        "name": name,
        "email": email,
        "password": CUSTOMER_PASSWORD,
        "company_name": "Byrne Bakery",
    })
    assert response.status_code == 201, response.text
    data = response.json()
    data["headers"] = auth_headers(data["token"])
    return data


def create_staff(db, role="STAFF", email=None) -> dict:
    """Insert a staff or admin user with a live session."""
    from storefront.core.security import hash_password
    from storefront.models.database import StaffProfile, User, UserRole
    from storefront.services.auth_service import auth_service

    user = User(
        name=f"{role.title()} User",
        email=email or f"{role.lower()}@sultanstamp.example",
        password_hash=hash_password(STAFF_PASSWORD),
        role=UserRole(role),
    )
    db.add(user)
    db.flush()
    db.add(StaffProfile(user_id=user.id, department="Production"))
    token = auth_service.issue_session(db, user)
    db.commit()
    return {"id": user.id, "email": user.email, "token": token, "headers": auth_headers(token)}


@pytest.fixture
def customer(client):
    return register_customer(client)


@pytest.fixture
def staff(db):
    return create_staff(db, "STAFF")


@pytest.fixture
def admin(db):
    return create_staff(db, "ADMIN")


@pytest.fixture
def guest_id():
    return "3f2b8c1e-9a4d-4e6f-8b2a-1c3d5e7f9a0b"


def submit_quote(client, customer, catalog, tier="standard", **extra) -> dict:
    """Create a customer quote through the API and return the response body."""
    payload = {
        "service_id": catalog["service_id"],
        "tier_id": catalog["tiers"][tier],
        "project_details": {"quantity": "500", "finish": "matte"},
        **extra,
    }
    response = client.post("/api/v1/quotes", json=payload, headers=customer["headers"])
    assert response.status_code == 201, response.text
    return response.json()


def finalize_quote(client, admin, quote_id, final_subtotal=100.0) -> dict:
    response = client.post(
        f"/api/v1/admin/quotes/{quote_id}/finalize",
        json={"final_subtotal": final_subtotal},
        headers=admin["headers"],
    )
    assert response.status_code == 200, response.text
    return response.json()
