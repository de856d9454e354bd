import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest
from uuid import uuid4
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from tramar.database.core import Base, get_db
from tramar.main import app
from tramar.auth.service import create_access_token
from tramar.core.config import settings
from tramar.products.models import Product
from tramar.users.models import User, UserRole
from tramar.utils import password_utils

# Use an in-memory SQLite database for testing
TEST_SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

TEST_WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture(scope="function")
def db_engine():
    engine = create_engine(
        TEST_SQLALCHEMY_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    """
    Creates a new, isolated in-memory database session for each test.
    """
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def _make_user(db, name, email, role=UserRole.USER):
    user = User(
        id=uuid4(),
        name=name,
        email=email,
        password_hash=password_utils.get_password_hash("ValidPassword123!"),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_user(db_session):
    return _make_user(db_session, "Test User", "test@example.com")


@pytest.fixture(scope="function")
def other_user(db_session):
    return _make_user(db_session, "Other User", "other@example.com")


@pytest.fixture(scope="function")
def admin_user(db_session):
    return _make_user(db_session, "Admin User", "admin@example.com", role=UserRole.ADMIN)


@pytest.fixture(scope="function")
def make_product(db_session):
    """Factory for catalog products. Prices are given in cents."""
    def _make(name="Test GPU", price_cents=5000, count_in_stock=10, category="gpu"):
        product = Product(
            name=name,
            description=f"{name} description",
            category=category,
            image=f"/images/{name.lower().replace(' ', '-')}.jpg",
            price_cents=price_cents,
            count_in_stock=count_in_stock,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return _make


@pytest.fixture(scope="function")
def client(db_session):
    """
    Creates a TestClient for the app with the database dependency overridden.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _headers_for(user):
    token = create_access_token(user.email, user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers(test_user):
    return _headers_for(test_user)


@pytest.fixture(scope="function")
def other_headers(other_user):
    return _headers_for(other_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user):
    return _headers_for(admin_user)


@pytest.fixture(scope="function")
def webhook_secret(monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    return TEST_WEBHOOK_SECRET
