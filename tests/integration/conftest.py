"""
Integration Test Fixtures.

Fixtures for integration tests - uses real database and services.
These fixtures build on the root conftest.py database fixtures.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable, Iterable
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from slate.backend.core.database import get_db_session
from slate.backend.core.resilience import create_circuit_breaker
from slate.backend.core.security import create_access_token
from slate.backend.intake.parser import ParseResult, ParseService
from slate.backend.repositories.user import UserRepository
from slate.backend.services.identity import IdentityService
from slate.backend.services.page import PageService
from slate.backend.services.section import SectionService
from slate.backend.services.sharing import SharingService

API = "/api/v1"


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
async def client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create a test client with database session override.

    The client uses the test database session, so rows created through
    services in a test are visible to the API and vice versa.

    Usage:
        async def test_health_endpoint(client: AsyncClient):
            response = await client.get("/health")
            assert response.status_code == 200
    """

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    from slate.backend.main import create_app

    app = create_app()
    app.dependency_overrides[get_db_session] = override_get_db_session

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Principal Fixtures
# =============================================================================


@pytest.fixture
def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[str]]:
    """
    Mirror a user into the users table, the way a first session request does.

    Usage:
        bob = await make_user("bob", "bob@example.com")
    """

    async def _make(user_id: str, email: str | None = None) -> str:
        await UserRepository(db_session).upsert(user_id, email or f"{user_id}@example.com")
        await db_session.flush()
        return user_id

    return _make


@pytest.fixture
def session_headers() -> Callable[..., dict[str, str]]:
    """
    Build session bearer headers for a user.

    Usage:
        response = await client.get(f"{API}/keys", headers=session_headers("alice"))
    """

    def _headers(user_id: str, email: str | None = None) -> dict[str, str]:
        token = create_access_token({"sub": user_id, "email": email or f"{user_id}@example.com"})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def api_key_headers(db_session: AsyncSession, make_user) -> Callable[[str], Awaitable[dict[str, str]]]:
    """
    Issue an API key for a user and build the X-API-Key header.

    Usage:
        headers = await api_key_headers("alice")
    """

    async def _headers(user_id: str) -> dict[str, str]:
        await make_user(user_id)
        issued = await IdentityService(db_session).issue_key(user_id, "test key")
        return {"X-API-Key": issued.plain_key}

    return _headers


# =============================================================================
# Parser Fixtures
# =============================================================================


class ScriptedAgent:
    """Stands in for the model: returns the scripted proposals in order."""

    class _Run:
        def __init__(self, output: Any) -> None:
            self.output = output

    def __init__(self, outputs: Iterable[ParseResult]) -> None:
        self._outputs = list(outputs)
        self.prompts: list[str] = []

    async def run(self, prompt: str) -> "ScriptedAgent._Run":
        self.prompts.append(prompt)
        return self._Run(self._outputs.pop(0).model_copy(deep=True))


@pytest.fixture
def scripted_parser(monkeypatch) -> Callable[..., ScriptedAgent]:
    """
    Route every intake parse through a scripted agent.

    Usage:
        scripted_parser(ParseResult(content="x", page="Work", section="Inbox"))
    """

    def _install(*outputs: ParseResult) -> ScriptedAgent:
        agent = ScriptedAgent(outputs)
        parser = ParseService(
            parse_agent=agent,
            breaker=create_circuit_breaker("intake-scripted", fail_max=5, timeout_duration=60),
        )
        monkeypatch.setattr("slate.backend.intake.coordinator.ParseService", lambda: parser)
        return agent

    return _install


# =============================================================================
# API Response Assertion Helpers
# =============================================================================


class ApiAssertions:
    """Helper class for API response assertions."""

    @staticmethod
    def assert_ok(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """
        Assert API response is successful.

        Returns:
            Response JSON data
        """
        assert response.status_code == expected_status, (
            f"Expected status {expected_status}, got {response.status_code}: "
            f"{response.text}"
        )
        return response.json()

    @staticmethod
    def assert_success(response: Any, expected_status: int = 200) -> dict[str, Any]:
        """Assert an acknowledgement body (`{"success": true}`)."""
        data = ApiAssertions.assert_ok(response, expected_status)
        assert data.get("success") is True, f"Response not successful: {data}"
        return data

    @staticmethod
    def assert_error(
        response: Any,
        expected_status: int,
        expected_code: str | None = None,
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

        return data

    @staticmethod
    def assert_validation_error(
        response: Any,
        field: str | None = None,
    ) -> dict[str, Any]:
        """
        Assert API response is a request validation error (400).

        Args:
            response: httpx Response object
            field: Expected field with validation error (optional)
        """
        data = ApiAssertions.assert_error(response, 400, "VAL_REQUEST_INVALID")

        if field:
            errors = data["error"].get("details", {}).get("validation_errors", [])
            fields = [e.get("field", "") for e in errors]
            assert any(field in f for f in fields), (
                f"Expected validation error for field '{field}', "
                f"got errors for: {fields}"
            )

        return data


@pytest.fixture
def api() -> ApiAssertions:
    """Provide API assertion helpers."""
    return ApiAssertions()


# =============================================================================
# Hierarchy Fixtures
# =============================================================================


@pytest.fixture
def make_tree(db_session: AsyncSession, make_user) -> Callable[..., Awaitable[tuple[Any, Any]]]:
    """
    Create a user with one page holding one section.

    Usage:
        page, section = await make_tree("alice")
    """

    async def _make(user_id: str, page_name: str = "Work", section_name: str = "Inbox"):
        await make_user(user_id)
        page = await PageService(db_session).create_page(user_id, page_name)
        section = await SectionService(db_session).create_section(user_id, page.id, section_name)
        return page, section

    return _make


@pytest.fixture
def share_page(db_session: AsyncSession, make_user) -> Callable[..., Awaitable[None]]:
    """
    Grant a role on a page and, by default, accept it as the grantee.

    Usage:
        await share_page("alice", page.id, "bob", "team")
    """

    async def _share(owner_id: str, page_id: str, grantee_id: str, role: str, accept: bool = True) -> None:
        await make_user(grantee_id)
        service = SharingService(db_session)
        await service.grant(owner_id, page_id, role, grantee_id=grantee_id)
        if accept:
            await service.respond(grantee_id, page_id, True)

    return _share
