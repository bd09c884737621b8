"""
3D Printing Analytics - Test Configuration and Fixtures
"""
from typing import AsyncGenerator

import bcrypt
import pytest
from httpx import AsyncClient, ASGITransport

from print_analytics.core.config import build_config
from print_analytics.main import create_app

ADMIN_PASSWORD = "lab-admin-pass"
# Low cost factor keeps the suite fast
ADMIN_PASSWORD_HASH = bcrypt.hashpw(ADMIN_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")
JWT_SECRET = "test-jwt-secret-key-for-testing-only"


def make_config(tmp_path, backend="sqlite", **sections):
    overrides = {
        "server": {"environment": "testing"},
        "storage": {"backend": backend, "data_dir": str(tmp_path / "data")},
        "auth": {"jwt_secret": JWT_SECRET, "admin_password_hash": ADMIN_PASSWORD_HASH},
        "rate_limits": {
            "api": {"max_calls": 10000, "window_seconds": 900},
            "auth": {"max_calls": 1000, "window_seconds": 900},
        },
        "client": {"api_base_url": "http://test/api", "cache_dir": str(tmp_path / "cache")},
    }
    for section, values in sections.items():
        overrides.setdefault(section, {}).update(values)
    return build_config(overrides)


async def start_app(config):
    """Build the app and open its store (ASGITransport does not run lifespan)"""
    application = create_app(config)
    await application.state.storage.initialize()
    return application


@pytest.fixture(params=["sqlite", "json"])
def backend(request) -> str:
    """Every API test runs against both storage backends"""
    return request.param


@pytest.fixture
async def app(tmp_path, backend):
    application = await start_app(make_config(tmp_path, backend=backend))
    yield application
    await application.state.storage.close()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_token(app) -> str:
    return app.state.auth_service.issue_token()["token"]


@pytest.fixture
def auth_headers(admin_token) -> dict:
    """Generate authentication headers for the admin"""
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def job_data():
    """Factory for a valid job payload"""
    def _make(**overrides):
        data = {
            "date": "2024-05-14",
            "projectName": "Line 3 retrofit",
            "partType": "Bracket",
            "partSize": "Medium",
            "partName": "Sensor bracket",
            "application": "Holds the proximity sensor on the conveyor",
            "sharepointLink": "https://example.sharepoint.com/sites/lab/bracket",
            "materialUsed": "PETG",
            "machineName": "Bambu X1C",
            "printingTimeMins": 90,
            "printPrice": 100,
            "oemCost": 250,
            "status": "completed",
            "category": "production",
            "quantities": {"bng": 2, "rd": 3},
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def feedback_data():
    """Factory for a valid feedback payload"""
    def _make(**overrides):
        data = {
            "name": "Priya Raman",
            "email": "Priya.Raman@example.com",
            "partName": "Sensor bracket",
            "location": "Bangalore",
            "category": "suggestion",
            "subject": "Thicker walls",
            "message": "The bracket flexes under load, please try 3 perimeters.",
            "rating": 4,
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def project_data():
    """Factory for a valid project payload"""
    def _make(**overrides):
        data = {
            "title": "Cable guide",
            "description": "Printed guides for the new robot cell cabling",
            "priority": "high",
            "location": "RCC",
            "dueDate": "2024-07-01",
            "assignedTo": "Maintenance team",
            "tags": ["robot", "cabling"],
        }
        data.update(overrides)
        return data
    return _make
