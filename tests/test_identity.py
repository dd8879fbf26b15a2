"""Tests for API key identity resolution."""

from unittest.mock import MagicMock

import pytest

from success_mcp.identity import IdentityResolver
from success_mcp.models import UserContext


@pytest.mark.asyncio
async def test_resolves_and_strips_prefix(mock_database: MagicMock) -> None:
    """Test that the suc_api_ prefix is stripped before lookup."""
    mock_database.fetch_one.return_value = {"company_id": 7, "user_id": 9}
    resolver = IdentityResolver(mock_database)

    context = await resolver.resolve("suc_api_abc123")

    assert context == UserContext(company_id="7", user_id="9")
    assert mock_database.fetch_one.call_args[0][1] == ("abc123",)


@pytest.mark.asyncio
async def test_results_are_cached(mock_database: MagicMock) -> None:
    """Test that a second lookup of the same key skips the database."""
    mock_database.fetch_one.return_value = {"company_id": "c", "user_id": "u"}
    resolver = IdentityResolver(mock_database)

    first = await resolver.resolve("suc_api_key")
    second = await resolver.resolve("suc_api_key")

    assert first is second
    mock_database.fetch_one.assert_called_once()

    resolver.clear()
    await resolver.resolve("suc_api_key")
    assert mock_database.fetch_one.call_count == 2


@pytest.mark.asyncio
async def test_unknown_key_is_not_cached(mock_database: MagicMock) -> None:
    """Test that misses return None and are retried."""
    resolver = IdentityResolver(mock_database)

    assert await resolver.resolve("suc_api_nope") is None
    assert await resolver.resolve("suc_api_nope") is None
    assert mock_database.fetch_one.call_count == 2


@pytest.mark.asyncio
async def test_no_database_or_key() -> None:
    """Test that nothing can be resolved without a database or a key."""
    resolver = IdentityResolver(None)

    assert await resolver.resolve("suc_api_key") is None
    assert await resolver.resolve("") is None
