"""
Tests for the application entry points and Prisma error mapping in csr26_api/main.py
"""

from unittest.mock import Mock

from fastapi.testclient import TestClient
from prisma.errors import UniqueViolationError

from csr26_api.domains.auth.tokens import create_user_token
from tests.fixtures.model_fixtures import make_merchant


def test_root(test_client: TestClient):
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.json() == {"message": "CSR26 API is running"}


def test_health(test_client: TestClient):
    response = test_client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert "timestamp" in body


def test_unique_violation_maps_to_conflict(
    client: TestClient, mock_prisma: Mock, mock_admin_user: Mock
):
    token = create_user_token(mock_admin_user.id, mock_admin_user.email, mock_admin_user.role)
    mock_prisma.user.find_unique.return_value = mock_admin_user
    mock_prisma.merchant.create.side_effect = UniqueViolationError(
        {"user_facing_error": {"message": "Unique constraint failed on the fields: (`email`)"}}
    )

    response = client.post(
        "/api/merchants",
        json={"name": "Conad", "email": make_merchant().email},
        headers={"Authorization": f"Bearer {token}"},
    )

    assert response.status_code == 409
    assert response.json() == {"detail": "A record with this value already exists"}
