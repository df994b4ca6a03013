"""
Pytest configuration and shared fixtures.

Provides:
- An in-memory SQLite database shared by the app and the tests
- API client and registered homeowner/contractor fixtures
"""
import os
from typing import Any, Dict, Generator

# Must be set before the app (and its engine/settings) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["ENVIRONMENT"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import app.models  # noqa: F401
from app.database import Base, SessionLocal, engine, get_db
from app.main import app as fastapi_app
from app.services.storage import MarketplaceStorage


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def database():
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(database) -> Generator[Session, None, None]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def storage(db_session) -> MarketplaceStorage:
    return MarketplaceStorage(db_session)


@pytest.fixture
def client(database) -> Generator[TestClient, None, None]:
    def _override():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = _override
    yield TestClient(fastapi_app)
    fastapi_app.dependency_overrides.clear()


# =============================================================================
# API Actors
# =============================================================================

def register(client: TestClient, **overrides) -> Dict[str, Any]:
    payload = {
        "username": "homeowner1",
        "email": "owner@example.com",
        "password": "SecurePass123!",
        "first_name": "Hannah",
        "last_name": "Owner",
        "user_type": "homeowner",
        "city": "San Francisco",
        "state": "CA",
    }
    payload.update(overrides)
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    data = response.json()
    return {
        "id": data["user"]["id"],
        "token": data["access_token"],
        "headers": {"Authorization": f"Bearer {data['access_token']}"},
        "user": data["user"],
    }


@pytest.fixture
def homeowner(client) -> Dict[str, Any]:
    return register(client)


@pytest.fixture
def contractor(client) -> Dict[str, Any]:
    """A registered contractor account with a kitchen-focused profile."""
    actor = register(
        client,
        username="builder1",
        email="builder@example.com",
        first_name="Carlos",
        last_name="Builder",
        user_type="contractor",
        latitude=37.7749,
        longitude=-122.4194,
    )
    response = client.post("/api/contractors", headers=actor["headers"], json={
        "company_name": "Bay Area Kitchens",
        "license_number": "CA-123456",
        "specialties": ["Kitchen Remodeling", "Cabinetry"],
        "experience_years": 8,
        "description": "Licensed and insured kitchen specialists",
    })
    assert response.status_code == 201, response.text
    actor["contractor_id"] = response.json()["id"]
    return actor


@pytest.fixture
def project_payload() -> Dict[str, Any]:
    return {
        "title": "Complete kitchen remodel",
        "description": "Full kitchen renovation with new cabinets, granite countertops and lighting",
        "category": "Kitchen Remodeling",
        "budget": "$15,000 - $25,000",
        "timeline": "2-3 months",
        "address": "123 Market St, San Francisco, CA",
    }


@pytest.fixture
def project(client, homeowner, project_payload) -> Dict[str, Any]:
    response = client.post("/api/projects", headers=homeowner["headers"], json=project_payload)
    assert response.status_code == 201, response.text
    return response.json()

