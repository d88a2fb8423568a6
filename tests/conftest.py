"""
Global pytest configuration and fixtures for the CSR26 API test suite.
"""

import os
from typing import Dict
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

# Set test environment variables before the app settings are loaded
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only-32-chars"
os.environ["ENVIRONMENT"] = "test"

from fastapi.testclient import TestClient  # noqa: E402

from prisma import Prisma  # noqa: E402
from csr26_api.domains.auth.tokens import create_user_token  # noqa: E402
from csr26_api.main import app  # noqa: E402

# Import fixtures from fixture modules
from tests.fixtures.model_fixtures import *  # noqa: F403, F401, E402

PRISMA_MODELS = (
    "user",
    "transaction",
    "sku",
    "merchant",
    "partner",
    "invoice",
    "setting",
    "giftcode",
    "magiclink",
    "partnermagiclink",
)

PRISMA_ACTIONS = (
    "find_unique",
    "find_first",
    "find_many",
    "count",
    "create",
    "create_many",
    "update",
    "update_many",
    "upsert",
)


@pytest.fixture
def mock_prisma() -> Mock:
    """
    Mock Prisma client for unit tests that don't need real database.

    Every model action is an AsyncMock. Lookups return None, lists are empty
    and counts are zero unless a test says otherwise; settings therefore fall
    back to their built-in defaults.

    ``tx()`` opens an interactive transaction that yields the same mock, so
    queries made through the transaction land on the same delegates.
    """
    mock_db = Mock(spec=Prisma)
    for model in PRISMA_MODELS:
        delegate = Mock()
        for action in PRISMA_ACTIONS:
            setattr(delegate, action, AsyncMock())
        delegate.find_unique.return_value = None
        delegate.find_first.return_value = None
        delegate.find_many.return_value = []
        delegate.count.return_value = 0
        delegate.update_many.return_value = 1
        setattr(mock_db, model, delegate)

    transaction = MagicMock()
    transaction.__aenter__.return_value = mock_db
    transaction.__aexit__.return_value = False
    mock_db.tx = Mock(return_value=transaction)
    return mock_db


@pytest.fixture
def test_jwt_secret() -> str:
    """JWT secret for generating test tokens."""
    return "test-secret-key-for-testing-only-32-chars"


@pytest.fixture
def user_token(mock_user: Mock) -> str:
    return create_user_token(mock_user.id, mock_user.email, mock_user.role)


@pytest.fixture
def auth_headers(user_token: str) -> Dict[str, str]:
    """Authentication headers carrying a valid user token."""
    return {"Authorization": f"Bearer {user_token}"}


@pytest.fixture
def test_client() -> TestClient:
    """FastAPI test client for API endpoint testing."""
    return TestClient(app)


@pytest.fixture
def client(mock_prisma: Mock):
    """
    Test client whose database dependency is the mock Prisma client.

    Dependency overrides are cleared after the test.
    """
    from csr26_api.core.database import get_db

    app.dependency_overrides[get_db] = lambda: mock_prisma
    yield TestClient(app)
    app.dependency_overrides.clear()
