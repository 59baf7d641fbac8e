"""
Unit Tests for Health Check Endpoints.

Tests the health check functionality including:
- Liveness check (/health)
- Readiness check (/health/ready)
- Detailed health check (/health/detailed)
- Database and object storage checks
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi import HTTPException

from notesapp.backend.api.health import (
    check_database,
    check_storage,
    detailed_health_check,
    health_check,
    readiness_check,
)


HEALTHY = {"status": "healthy", "latency_ms": 1}


class TestHealthCheck:
    """Tests for the liveness health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_healthy(self):
        assert await health_check() == {"status": "healthy"}


class TestCheckDatabase:
    """Tests for the database health check function."""

    @pytest.mark.asyncio
    async def test_healthy_against_real_engine(self, db_session_factory):
        with patch(
            "notesapp.backend.core.database.get_session_factory",
            return_value=db_session_factory,
        ):
            result = await check_database()

        assert result["status"] == "healthy"
        assert "latency_ms" in result

    @pytest.mark.asyncio
    async def test_unhealthy_on_connection_error(self):
        factory = MagicMock(side_effect=ConnectionError("Connection refused"))

        with patch("notesapp.backend.core.database.get_session_factory", return_value=factory):
            result = await check_database()

        assert result["status"] == "unhealthy"
        assert "Connection refused" in result["error"]


class TestCheckStorage:
    """Tests for the object storage health check function."""

    @pytest.mark.asyncio
    async def test_healthy(self, fake_storage):
        with patch("notesapp.backend.storage.get_object_storage", return_value=fake_storage):
            result = await check_storage()

        assert result["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_unhealthy_when_bucket_unreachable(self):
        storage = MagicMock()
        storage.check = AsyncMock(side_effect=RuntimeError("bucket missing"))

        with patch("notesapp.backend.storage.get_object_storage", return_value=storage):
            result = await check_storage()

        assert result == {"status": "unhealthy", "error": "bucket missing"}


class TestReadinessCheck:
    """Tests for the readiness endpoint."""

    @pytest.mark.asyncio
    async def test_ready_when_all_healthy(self):
        with patch("notesapp.backend.api.health.check_database", AsyncMock(return_value=HEALTHY)), \
             patch("notesapp.backend.api.health.check_storage", AsyncMock(return_value=HEALTHY)):
            result = await readiness_check()

        assert result["status"] == "healthy"
        assert set(result["checks"]) == {"database", "storage"}

    @pytest.mark.asyncio
    async def test_503_when_storage_unhealthy(self):
        unhealthy = {"status": "unhealthy", "error": "down"}

        with patch("notesapp.backend.api.health.check_database", AsyncMock(return_value=HEALTHY)), \
             patch("notesapp.backend.api.health.check_storage", AsyncMock(return_value=unhealthy)):
            with pytest.raises(HTTPException) as exc_info:
                await readiness_check()

        assert exc_info.value.status_code == 503
        assert exc_info.value.detail["checks"]["storage"] == unhealthy


class TestDetailedHealthCheck:
    """Tests for the detailed endpoint."""

    @pytest.mark.asyncio
    async def test_reports_application_and_overall_status(self):
        unhealthy = {"status": "unhealthy", "error": "down"}

        with patch("notesapp.backend.api.health.check_database", AsyncMock(return_value=unhealthy)), \
             patch("notesapp.backend.api.health.check_storage", AsyncMock(return_value=HEALTHY)):
            result = await detailed_health_check()

        assert result["status"] == "unhealthy"
        assert result["application"]["name"] == "Notes"
        assert "pools" in result
