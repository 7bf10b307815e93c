"""
Unit Test Fixtures.

Fixtures for unit tests - all external dependencies are mocked.
Unit tests should be fast and isolated, never touching real databases.
"""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest


# =============================================================================
# Database Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """
    Mock database session for unit tests.

    Usage:
        def test_service(mock_db_session: AsyncMock):
            service = PageService(mock_db_session)
    """
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    session.get = AsyncMock()
    return session


# =============================================================================
# Parse Agent Fakes
# =============================================================================


class FakeRunResult:
    """What `Agent.run` returns: the structured output on `.output`."""

    def __init__(self, output: Any) -> None:
        self.output = output


class FakeAgent:
    """
    Stand-in for a PydanticAI agent.

    Returns the configured output, or raises the configured error. Every
    prompt is recorded.
    """

    def __init__(self, output: Any = None, error: BaseException | None = None) -> None:
        self.output = output
        self.error = error
        self.prompts: list[str] = []

    async def run(self, prompt: str) -> FakeRunResult:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return FakeRunResult(self.output)


@pytest.fixture
def fake_agent() -> type[FakeAgent]:
    """Provide the FakeAgent class for building parse agents."""
    return FakeAgent


# =============================================================================
# Logging Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.logger", mock_logger):
                # Test code that logs
                mock_logger.warning.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
