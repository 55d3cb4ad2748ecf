import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["SKIP_DB_INIT"] = "true"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from insurance_crm.database import Base, get_db
from insurance_crm.main import app
from insurance_crm.models.customer import Customer
from insurance_crm.models.user import User, UserRole
from insurance_crm.repositories.customer_repo import CustomerRepository
from insurance_crm.repositories.user_repo import UserRepository
from insurance_crm.utils.security import create_access_token


class FakeClock:
    """Settable replacement for utcnow()"""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture()
def clock():
    return FakeClock(datetime(2025, 6, 1, 10, 0, 0))


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _ = [User, Customer]
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(username=None, pin="1234", role=UserRole.MOBILE_USER, state="Karnataka", **fields):
        counter["n"] += 1
        username = username or f"agent{counter['n']}"
        return UserRepository(db).create(
            username=username,
            email=fields.pop("email", f"{username}@example.com"),
            pin=pin,
            location_state=state,
            role=role,
            **fields,
        )

    return _make


@pytest.fixture()
def make_customer(db):
    counter = {"n": 0}

    def _make(**fields):
        counter["n"] += 1
        fields.setdefault("first_name", f"Customer {counter['n']}")
        fields.setdefault("mobile_number", f"98450{counter['n']:05d}")
        fields.setdefault("state", "Karnataka")
        return CustomerRepository(db).create(**fields)

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": str(user.id), "username": user.username})
        return {"Authorization": f"Bearer {token}"}

    return _headers
