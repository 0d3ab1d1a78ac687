"""
Pytest configuration and fixtures for the Survey Hub API tests
"""
import itertools
import os

# Settings are read on import, so the environment has to be in place first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_DB"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENABLE_METRICS"] = "false"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from surveyhub.db import Base, build_engine, get_db
from surveyhub.main import app as application


engine = build_engine("sqlite://")
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session")
def app():
    """One application instance for the whole run; metrics register once per process"""
    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def tables():
    """Fresh schema for every test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def make_admin(client):
    """Register a new admin and return bearer headers for it"""
    counter = itertools.count(1)

    def _make(name=None, email=None, password="secret123"):
        n = next(counter)
        response = client.post("/v1/auth/register", json={
            "name": name or f"Admin {n}",
            "email": email or f"admin{n}@surveyhub.example.com",
            "password": password,
        })
        assert response.status_code == 201, response.text
        token = response.json()["data"]["token"]
        return {"Authorization": f"Bearer {token}"}

    return _make


@pytest.fixture
def auth(make_admin):
    return make_admin()


_sequence = itertools.count(1)


class Factory:
    """Creates resources through the API and returns their `data` payloads"""

    def __init__(self, client, headers):
        self.client = client
        self.headers = headers
        self._seq = _sequence

    def _post(self, path, payload):
        response = self.client.post(f"/v1/{path}", json=payload, headers=self.headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    def client_(self, **overrides):
        n = next(self._seq)
        payload = {"name": f"Client {n}", "company": f"Company {n}"}
        payload.update(overrides)
        return self._post("clients", payload)

    def site(self, **overrides):
        n = next(self._seq)
        payload = {
            "name": f"Site {n}",
            "address": f"{n} Survey Road",
            "city": "Pune",
            "state": "MH",
            "startDate": "2024-03-01",
        }
        payload.update(overrides)
        return self._post("sites", payload)

    def instrument(self, **overrides):
        n = next(self._seq)
        payload = {"name": f"Total Station {n}", "type": "total-station", "serialNumber": f"TS-{n:05d}"}
        payload.update(overrides)
        return self._post("instruments", payload)

    def crew(self, **overrides):
        n = next(self._seq)
        payload = {"name": f"Crew {n}", "username": f"crew{n}", "password": "fieldwork"}
        payload.update(overrides)
        return self._post("crews", payload)

    def vehicle(self, **overrides):
        n = next(self._seq)
        payload = {"name": f"Truck {n}", "type": "truck", "registrationNumber": f"mh12ab{n:04d}"}
        payload.update(overrides)
        return self._post("vehicles", payload)

    def bill(self, customer_id, sites, amounts=None, **overrides):
        amounts = amounts or [1000] * len(sites)
        n = next(self._seq)
        payload = {
            "customerId": customer_id,
            "billNumber": str(100 + n),
            "billDate": "2024-03-15",
            "items": [
                {"siteId": s["id"], "description": "Boundary survey", "rate": a, "amount": a}
                for s, a in zip(sites, amounts)
            ],
        }
        payload.update(overrides)
        return self._post("bills", payload)

    def expense(self, **overrides):
        payload = {"type": "FUEL", "amount": 250, "expenseDate": "2024-03-10"}
        payload.update(overrides)
        return self._post("expenses", payload)


@pytest.fixture
def factory(client, auth):
    return Factory(client, auth)


@pytest.fixture
def factory_for(client):
    """Factory bound to arbitrary admin headers, for multi-tenant tests"""
    def _for(headers):
        return Factory(client, headers)
    return _for
