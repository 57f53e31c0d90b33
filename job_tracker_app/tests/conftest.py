"""
Pytest configuration and shared fixtures for the Job Tracker tests.
"""
import os
import sys
from datetime import date, datetime, timezone
from unittest.mock import patch

import pytest

os.environ.setdefault("TESTING", "true")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-jwt-tokens-12345678901234567890")

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Import application components
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.main import app
from backend.models.db.database import get_db, Base
from backend import schemas


# Test Database Setup
@pytest.fixture(scope="function")
def test_db_engine():
    """A fresh in-memory SQLite database per test, shared across threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def test_db_session(test_db_engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="function")
def test_client(test_db_session):
    """Create a test client with overridden database dependency."""
    def override_get_db():
        try:
            yield test_db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


# User Fixtures
@pytest.fixture
def test_user_data():
    """Sample user data for testing."""
    return {
        "email": "test@example.com",
        "password": "testpassword123",
        "display_name": "Test User"
    }


def login(client, email, password):
    response = client.post("/api/auth/login", data={"username": email, "password": password})
    assert response.status_code == 200
    return response.json()["access_token"]


@pytest.fixture
def access_token(test_client, test_user_data):
    """Register and sign in the test user; returns the bearer token."""
    response = test_client.post("/api/auth/register", json=test_user_data)
    assert response.status_code == 200
    return login(test_client, test_user_data["email"], test_user_data["password"])


@pytest.fixture
def auth_headers(access_token):
    """Get authentication headers for API requests."""
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def other_auth_headers(test_client):
    """A second, unrelated account."""
    data = {"email": "other@example.com", "password": "password123"}
    assert test_client.post("/api/auth/register", json=data).status_code == 200
    token = login(test_client, data["email"], data["password"])
    return {"Authorization": f"Bearer {token}"}


# Application Test Data
@pytest.fixture
def sample_application_data():
    return {
        "companyName": "Tech Innovations Inc",
        "position": "Senior Python Developer",
        "status": "applied",
        "appliedDate": "2024-01-15",
        "jobType": "remote",
        "location": "Jakarta",
        "salary": "IDR 25.000.000",
        "jobUrl": "https://example.com/job/123",
        "notes": "Applied through company website",
        "tags": ["python", "backend"],
    }


@pytest.fixture
def create_application(test_client, auth_headers):
    """Factory: POST an application (with overrides) and return the JSON body."""
    def _create(headers=None, **fields):
        payload = {"companyName": "Acme", "position": "Engineer", "appliedDate": "2024-01-15"}
        payload.update(fields)
        response = test_client.post("/api/applications/", json=payload, headers=headers or auth_headers)
        assert response.status_code == 201, response.text
        return response.json()
    return _create


def make_record(**fields) -> schemas.JobApplication:
    """Build an in-memory record without touching the database."""
    defaults = {
        "id": "app-1",
        "user_id": "user-1",
        "company_name": "Acme",
        "position": "Engineer",
        "status": schemas.ApplicationStatus.APPLIED,
        "applied_date": date(2024, 1, 15),
        "created_at": datetime(2024, 1, 15, tzinfo=timezone.utc),
    }
    defaults.update(fields)
    return schemas.JobApplication(**defaults)


@pytest.fixture
def record_factory():
    return make_record


# Environment Variable Mocks
@pytest.fixture(autouse=True)
def mock_environment_variables():
    """Mock environment variables for testing."""
    test_env = {
        "SECRET_KEY": "test-secret-key-for-jwt-tokens-12345678901234567890",
        "LOG_LEVEL": "DEBUG"
    }

    with patch.dict(os.environ, test_env):
        yield test_env
