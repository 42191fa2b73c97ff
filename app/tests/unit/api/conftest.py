import pytest
from fastapi.testclient import TestClient

from api.routes.system import router as system_router
from api.v1.router import router as v1_router
from infrastructure.services import get_notification_service
from utils.tests import create_test_app

HEADERS = {"X-User-Id": "resident-1"}


@pytest.fixture
def app(service):
    """Test app with the v1 routes served by the in-memory engine."""
    test_app = create_test_app([system_router, v1_router])
    test_app.dependency_overrides[get_notification_service] = lambda: service
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def headers():
    return dict(HEADERS)
