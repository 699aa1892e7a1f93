"""Shared fixtures for route tests."""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from plantmap.web.app import app

ADMIN = {"X-User-ID": "admin-1", "X-User-Roles": "operations_admin"}
FIELD = {"X-User-ID": "field-1", "X-User-Roles": "technician"}


@pytest.fixture
def client():
    """Test client without lifespan; routes get a mocked session."""
    return TestClient(app)


@pytest.fixture
def admin_headers():
    return dict(ADMIN)


@pytest.fixture
def field_headers():
    return dict(FIELD)


@pytest.fixture
def mock_db_session():
    """Mock database session with async context manager."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.commit = AsyncMock()

    async_cm = AsyncMock()
    async_cm.__aenter__.return_value = session
    async_cm.__aexit__.return_value = None

    return async_cm
