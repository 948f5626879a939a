import pytest
from fastapi.testclient import TestClient

from database import Database
from main import create_app


@pytest.fixture
def database(tmp_path):
    db = Database(url=f"sqlite:///{tmp_path / 'restaurant.db'}")
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def session(database):
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(database):
    with TestClient(create_app(database)) as test_client:
        yield test_client


@pytest.fixture
def category(client):
    resp = client.post("/categories", json={"name": "Mains", "description": "Main courses"})
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.fixture
def make_menu_item(client, category):
    def _make(name="Biryani", price=100.0, **extra):
        payload = {"category_id": category["id"], "name": name, "price": price}
        payload.update(extra)
        resp = client.post("/menu", json=payload)
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]
    return _make


@pytest.fixture
def make_customer(client):
    def _make(name="Asha", phone="9876543210", email=None):
        resp = client.post("/customers", json={"name": name, "phone": phone, "email": email})
        assert resp.status_code == 201, resp.json()
        return resp.json()["data"]
    return _make
