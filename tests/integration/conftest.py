"""
Integration Test Fixtures.

Fixtures for integration tests - real FastAPI app, real database session.
These fixtures build on the root conftest.py database, storage and
identity fixtures. Object storage is the in-memory FakeObjectStorage.
"""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from notesapp.backend.core.database import get_db_session
from notesapp.backend.storage import get_object_storage


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(db_session: AsyncSession, fake_storage: Any, hs256_identity: Any) -> Any:
    """
    Create the application with database and storage overrides.

    Every request in a test shares the test database session, so the
    rows one request writes are visible to the next.
    """
    from notesapp.backend.main import create_app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session
        await db_session.flush()

    application = create_app()
    application.dependency_overrides[get_db_session] = override_get_db_session
    application.dependency_overrides[get_object_storage] = lambda: fake_storage
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client bound to the app in-process.

    Usage:
        async def test_list(client: AsyncClient, auth_headers: dict):
            response = await client.get("/api/v1/notes", headers=auth_headers)
            assert response.status_code == 200
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client


# =============================================================================
# API Response Assertion Helpers
# =============================================================================


class ApiAssertions:
    """Helper class for API response assertions."""

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """
        Assert API response is successful.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is True, f"Response not successful: {data}"
        return data

    @staticmethod
    def assert_error(
        response: Any,
        expected_status: int,
        expected_code: str | None = None,
        expected_message: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert API response is an error.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        data = response.json()
        assert data.get("success") is False, f"Response should be error: {data}"
        assert data.get("error") is not None, f"Missing error details: {data}"

        if expected_code:
            actual_code = data["error"].get("code")
            assert actual_code == expected_code, (
                f"Expected error code {expected_code}, got {actual_code}"
            )
        if expected_message:
            assert data["error"].get("message") == expected_message

        return data


@pytest.fixture
def api() -> ApiAssertions:
    """Provide API assertion helpers."""
    return ApiAssertions()
