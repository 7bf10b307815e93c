"""
Unit Tests for Health Check Endpoints.

Tests the health check functionality including:
- Liveness check (/health)
- Readiness check (/health/ready)
- Database connectivity check
"""

from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.responses import JSONResponse

from slate.backend.api.health import check_database, health_check, readiness_check


def _session_factory(session):
    """Build a stand-in for the async_sessionmaker returned by get_session_factory."""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=context)


class TestHealthCheck:
    """Tests for the liveness health check endpoint."""

    async def test_health_returns_healthy(self):
        assert await health_check() == {"status": "healthy"}


class TestCheckDatabase:
    """Tests for the database health check function."""

    async def test_returns_healthy_on_successful_connection(self):
        session = AsyncMock()

        with patch(
            "slate.backend.api.health.get_session_factory",
            return_value=_session_factory(session),
        ):
            result = await check_database()

        assert result["status"] == "healthy"
        assert "latency_ms" in result
        session.execute.assert_awaited_once()

    async def test_returns_unhealthy_on_connection_error(self):
        session = AsyncMock()
        session.execute.side_effect = ConnectionError("refused")

        with patch(
            "slate.backend.api.health.get_session_factory",
            return_value=_session_factory(session),
        ):
            result = await check_database()

        assert result["status"] == "unhealthy"
        assert "refused" in result["error"]


class TestReadinessCheck:
    """Tests for the readiness endpoint."""

    async def test_ready_when_database_healthy(self):
        with patch(
            "slate.backend.api.health.check_database",
            AsyncMock(return_value={"status": "healthy", "latency_ms": 1}),
        ):
            result = await readiness_check()

        assert result["status"] == "healthy"
        assert result["checks"]["database"]["status"] == "healthy"
        assert "background_tasks" in result

    async def test_503_when_database_unhealthy(self):
        with patch(
            "slate.backend.api.health.check_database",
            AsyncMock(return_value={"status": "unhealthy", "error": "down"}),
        ):
            result = await readiness_check()

        assert isinstance(result, JSONResponse)
        assert result.status_code == 503
