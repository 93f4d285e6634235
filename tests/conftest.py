import os

# Settings are read at import time; configure them before the app loads.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_CALLS"] = "100000"
os.environ["EMAIL_ENABLED"] = "False"

from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from main import app  # noqa: E402
from database.base import Base  # noqa: E402
from database.connection import get_db  # noqa: E402
from models.delivery import Delivery, DeliveryStatus, PackageType  # noqa: E402
from models.user import User, UserRole  # noqa: E402
from models.vendor import Vendor  # noqa: E402
from services.auth import create_access_token  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db_session(engine):
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_session):
    app.dependency_overrides[get_db] = lambda: db_session
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make_user(role=UserRole.CUSTOMER, name="Test User"):
        counter["n"] += 1
        user = User(
            email=f"{role.value}{counter['n']}@example.com",
            name=name,
            password_hash="not-a-real-hash",
            role=role,
            is_active=True,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_vendor(db_session, make_user):
    def _make_vendor(company_name="Swift Cargo"):
        user = make_user(UserRole.VENDOR, name=company_name)
        vendor = Vendor(id=user.id, company_name=company_name, email=user.email)
        db_session.add(vendor)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_vendor


@pytest.fixture
def make_delivery(db_session):
    def _make_delivery(customer, vendor=None, status=DeliveryStatus.PENDING):
        delivery = Delivery(
            user_id=customer.id,
            vendor_id=vendor.id if vendor is not None else None,
            pickup_address="12 MG Road, Bengaluru",
            drop_address="48 Park Street, Kolkata",
            weight_kg=Decimal("5.00"),
            package_type=PackageType.STANDARD,
            status=status,
        )
        db_session.add(delivery)
        db_session.commit()
        db_session.refresh(delivery)
        return delivery

    return _make_delivery


@pytest.fixture
def customer(make_user):
    return make_user(UserRole.CUSTOMER, name="Asha Rao")


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN, name="Ops Admin")


@pytest.fixture
def vendor(make_vendor):
    return make_vendor("Swift Cargo")


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        token = create_access_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers
