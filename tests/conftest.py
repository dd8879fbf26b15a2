"""Shared fixtures for success-mcp tests."""

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from success_mcp.cli import configure_logging
from success_mcp.config import Settings
from success_mcp.context import ToolContext
from success_mcp.database import Database
from success_mcp.graphql import GraphQLClient
from success_mcp.models import GraphQLResult, UserContext

COMPANY_ID = "company-1"
USER_ID = "user-1"


class GraphQLRouter:
    """Answers GraphQL calls by matching a substring of the document.

    Routes are checked in insertion order. A route value can be response data,
    a GraphQLResult, or a callable taking the variables and returning either.
    Every call is recorded as (query, variables).
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    def on(self, fragment: str, response: Any) -> "GraphQLRouter":
        self.routes[fragment] = response
        return self

    async def __call__(
        self, query: str, variables: dict[str, Any] | None = None, token: str | None = None
    ) -> GraphQLResult:
        self.calls.append((query, variables))
        for fragment, response in self.routes.items():
            if fragment in query:
                if callable(response):
                    response = response(variables or {})
                if isinstance(response, GraphQLResult):
                    return response
                return GraphQLResult(ok=True, data=response)
        raise AssertionError(f"Unexpected GraphQL call: {query}")

    def variables_for(self, fragment: str) -> list[dict[str, Any] | None]:
        return [variables for query, variables in self.calls if fragment in query]


@pytest.fixture(autouse=True)
def quiet_logging() -> None:
    """Send log output to stderr at warning level so stdout stays clean."""
    configure_logging("warning")


@pytest.fixture
def settings() -> Settings:
    """Settings in API key mode with a web URL for object links."""
    return Settings(api_key="suc_api_test", use_api_key=True, dev_mode=True, oauth_server_url="https://app.success.co")


@pytest.fixture
def router() -> GraphQLRouter:
    return GraphQLRouter()


@pytest.fixture
def mock_graphql(router: GraphQLRouter) -> MagicMock:
    """GraphQL client whose execute is served by the router."""
    client = MagicMock(spec=GraphQLClient)
    client.execute = AsyncMock(side_effect=router.__call__)
    return client


@pytest.fixture
def mock_database() -> MagicMock:
    database = MagicMock(spec=Database)
    database.fetch_one = AsyncMock(return_value=None)
    database.fetch_all = AsyncMock(return_value=[])
    database.execute = AsyncMock(return_value=[])
    return database


@pytest.fixture
def context(settings: Settings, mock_graphql: MagicMock) -> ToolContext:
    """Tool context with an authenticated user and no database."""
    ctx = ToolContext(settings, mock_graphql)
    ctx.identity.resolve = AsyncMock(return_value=UserContext(company_id=COMPANY_ID, user_id=USER_ID))
    return ctx


@pytest.fixture
def db_context(settings: Settings, mock_graphql: MagicMock, mock_database: MagicMock) -> ToolContext:
    """Tool context with an authenticated user and a mocked database."""
    ctx = ToolContext(settings, mock_graphql, database=mock_database)
    ctx.identity.resolve = AsyncMock(return_value=UserContext(company_id=COMPANY_ID, user_id=USER_ID))
    return ctx


def connection(nodes: list[dict[str, Any]], total: int | None = None) -> dict[str, Any]:
    return {"nodes": nodes, "totalCount": len(nodes) if total is None else total}


def text_of(response: dict[str, Any]) -> str:
    return response["content"][0]["text"]


def json_of(response: dict[str, Any]) -> Any:
    return json.loads(text_of(response))


@pytest.fixture
def leadership(router: GraphQLRouter) -> Callable[[str | None], None]:
    """Register the leadership-team lookup, returning the given id (or none)."""

    def register(team_id: str | None = "lead-team") -> None:
        nodes = [{"id": team_id}] if team_id else []
        router.on("query LeadershipTeam", {"teams": connection(nodes)})

    return register
