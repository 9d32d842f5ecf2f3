"""
Shared fixtures: in-memory SQLite, a logged-in Admin, and invoice/report
directories under tmp_path.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

from app import config, models
from app.database import Base, SessionLocal, engine
from app.main import app
from app.routers.auth import get_current_user, get_password_hash


@pytest.fixture(autouse=True)
def storage(tmp_path, monkeypatch):
    """Fresh schema and file directories for every test."""
    monkeypatch.setattr(config, "INVOICE_DIR", tmp_path / "invoices")
    monkeypatch.setattr(config, "REPORT_TMP_DIR", tmp_path / "temp")
    Base.metadata.create_all(bind=engine)
    yield tmp_path
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def admin_user(db):
    user = models.User(
        username="admin",
        name="Shop Owner",
        password_hash=get_password_hash("admin123!"),
        role="Admin",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def client(admin_user):
    app.dependency_overrides[get_current_user] = lambda: admin_user
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def anon_client():
    """No auth override: endpoints see the real bearer-token check."""
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def bike_payload():
    def make(**overrides):
        payload = {
            "bike_number": "ka01ab1234",
            "brand": "Honda",
            "model": "CB Shine",
            "year": 2021,
            "buy_price": 100000,
            "purchase_date": "2024-01-01T10:00:00",
            "color": "Black",
            "condition_rating": 8,
        }
        payload.update(overrides)
        return payload
    return make


@pytest.fixture
def create_bike(client, bike_payload):
    def make(**overrides):
        response = client.post("/bikes/", json=bike_payload(**overrides))
        assert response.status_code == 201, response.text
        return response.json()
    return make


@pytest.fixture
def sell_bike(client):
    def make(bike_id, **overrides):
        payload = {
            "bike_id": bike_id,
            "buyer_name": "Ravi Kumar",
            "buyer_phone": "9876543210",
            "buyer_address": "12 MG Road, Bengaluru",
            "selling_price": 130000,
            "discount": 5000,
            "payment_mode": "Cash",
        }
        payload.update(overrides)
        return client.post("/sales/", json=payload)
    return make
