"""Pytest fixtures for buildsetu tests."""

import os

# Configuration is read at import time, so the environment must be in
# place before anything from buildsetu is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from buildsetu.database import Base, SessionLocal, engine  # noqa: E402
from buildsetu import models  # noqa: E402,F401
from buildsetu.models import Address, Category, Product, Role, User  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_schema():
    """Every test starts from empty tables."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)


@pytest.fixture
def db(fresh_schema):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


# =========================
# USERS
# =========================

@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(role=Role.buyer, name=None):
        counter["n"] += 1
        user = User(
            name=name or f"{role.value.title()} {counter['n']}",
            email=f"{role.value.lower()}{counter['n']}@example.com",
            phone="9876543210",
            role=role,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def buyer(make_user):
    return make_user(Role.buyer)


@pytest.fixture
def other_buyer(make_user):
    return make_user(Role.buyer)


@pytest.fixture
def seller(make_user):
    return make_user(Role.seller)


@pytest.fixture
def other_seller(make_user):
    return make_user(Role.seller)


@pytest.fixture
def admin(make_user):
    return make_user(Role.admin)


# =========================
# CATALOG
# =========================

@pytest.fixture
def category(db):
    cat = Category(name="Cement", slug="cement", description="Portland cement and cement products")
    db.add(cat)
    db.commit()
    db.refresh(cat)
    return cat


@pytest.fixture
def make_product(db, seller, category):
    def _make(price="500.00", stock=100, name="Portland Cement 50kg", is_active=True, owner=None):
        product = Product(
            name=name,
            slug=f"{name.lower().replace(' ', '-')}-{os.urandom(4).hex()}",
            description="High-quality Portland cement suitable for construction",
            unit="bag",
            price=Decimal(price),
            stock_quantity=stock,
            category_id=category.id,
            seller_id=(owner or seller).id,
            is_active=is_active,
        )
        db.add(product)
        db.commit()
        db.refresh(product)
        return product

    return _make


# =========================
# ADDRESSES
# =========================

@pytest.fixture
def make_address(db):
    def _make(user, label="Home", is_default=False):
        address = Address(
            user_id=user.id,
            label=label,
            line1="123 Main Street",
            city="Gwalior",
            state="MP",
            pincode="474001",
            is_default=is_default,
        )
        db.add(address)
        db.commit()
        db.refresh(address)
        return address

    return _make


# =========================
# API
# =========================

@pytest.fixture
def client(fresh_schema):
    from buildsetu.main import app

    return TestClient(app)