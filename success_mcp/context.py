"""Per-process tool context: settings, clients and identity passed to every tool."""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import date
from typing import Any

import structlog

from success_mcp.config import Settings
from success_mcp.database import Database
from success_mcp.debug_log import DebugLog
from success_mcp.errors import (
    ContextError,
    DatabaseError,
    GraphQLError,
    LeadershipTeamNotFoundError,
    RequiredFieldError,
)
from success_mcp.filters import Filter
from success_mcp.graphql import GraphQLClient
from success_mcp.helpers import last_date_of_current_quarter
from success_mcp.identity import IdentityResolver
from success_mcp.models import AuthContext, GraphQLResult, UserContext

logger = structlog.get_logger()

_auth_context: ContextVar[AuthContext | None] = ContextVar("success_mcp_auth", default=None)

LEADERSHIP_TEAM_QUERY = """
query LeadershipTeam($filter: TeamFilter) {
  teams(filter: $filter) {
    nodes { id }
    totalCount
  }
}
"""

QUARTER_DATES_SQL = """
SELECT quarter_one_date, quarter_two_date, quarter_three_date, quarter_four_date
FROM companies
WHERE id = %s
LIMIT 1
"""

COMPANY_CODE_SQL = "SELECT code FROM companies WHERE id = %s LIMIT 1"


def get_auth_context() -> AuthContext | None:
    return _auth_context.get()


@contextmanager
def auth_scope(auth: AuthContext | None) -> Iterator[None]:
    """Run the enclosed block with a request-scoped auth context."""
    token = _auth_context.set(auth)
    try:
        yield
    finally:
        _auth_context.reset(token)


class ToolContext:
    """Everything a tool needs to talk to Success.co.

    Replaces module-level globals with one explicitly constructed object.
    The identity cache and company-code cache live here, so their lifetime is
    the lifetime of the context.
    """

    def __init__(
        self,
        settings: Settings,
        graphql: GraphQLClient,
        database: Database | None = None,
        identity: IdentityResolver | None = None,
        debug_log: DebugLog | None = None,
    ) -> None:
        self.settings = settings
        self.graphql = graphql
        self.database = database
        self.identity = identity or IdentityResolver(database)
        self.debug_log = debug_log or DebugLog(settings.debug_log_file, enabled=False)
        self._company_codes: dict[str, str] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ToolContext":
        """Build a context with real clients from settings."""
        debug_log = DebugLog(settings.debug_log_file, enabled=settings.dev_mode)
        debug_log.clear()
        database = Database.from_settings(settings)
        graphql = GraphQLClient(settings.graphql_endpoint, debug_log=debug_log)
        logger.info(
            "Tool context created",
            endpoint=settings.graphql_endpoint,
            database=database is not None,
            dev_mode=settings.dev_mode,
        )
        return cls(settings, graphql, database=database, debug_log=debug_log)

    async def aclose(self) -> None:
        await self.graphql.aclose()
        if self.database is not None:
            await self.database.close()

    def auth_token(self) -> str | None:
        """Bearer token for the current request: request auth first, then the dev API key."""
        auth = get_auth_context()
        if auth is not None and auth.access_token:
            return auth.access_token
        if self.settings.api_key_mode and self.settings.api_key:
            return self.settings.api_key
        return None

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> GraphQLResult:
        return await self.graphql.execute(query, variables, token=self.auth_token())

    async def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute a document and return its data, raising GraphQLError on failure."""
        result = await self.execute(query, variables)
        if not result.ok:
            raise GraphQLError(result.error or "Unknown GraphQL error")
        return result.data or {}

    async def get_user_context(self) -> UserContext | None:
        auth = get_auth_context()
        if auth is not None and auth.access_token and auth.company_id and auth.user_id:
            return UserContext(company_id=auth.company_id, user_id=auth.user_id, user_email=auth.user_email)
        if self.settings.api_key_mode and self.settings.api_key:
            return await self.identity.resolve(self.settings.api_key)
        logger.debug("No user context available")
        return None

    async def require_user_context(self) -> UserContext:
        user_context = await self.get_user_context()
        if user_context is None:
            raise ContextError()
        return user_context

    def require_database(self, purpose: str) -> Database:
        if self.database is None:
            raise DatabaseError(f"Database connection is required for {purpose}")
        return self.database

    async def get_leadership_team_id(self) -> str | None:
        """Id of the active team flagged as leadership, or None."""
        variables = {"filter": Filter().equal("stateId", "ACTIVE").equal("isLeadership", True).build()}
        result = await self.execute(LEADERSHIP_TEAM_QUERY, variables)
        if not result.ok:
            logger.warning("Failed to look up leadership team", error=result.error)
            return None
        nodes = (result.data or {}).get("teams", {}).get("nodes", [])
        if not nodes:
            logger.info("No leadership team found")
            return None
        return nodes[0]["id"]

    async def resolve_team_id(
        self,
        team_id: str | None,
        leadership_team: bool = False,
        required: bool = False,
        required_message: str | None = None,
    ) -> str | None:
        """Resolve an explicit team id or the leadership-team shortcut.

        Args:
            team_id: Explicit team id (wins over the shortcut)
            leadership_team: Look up the leadership team when no id is given
            required: Raise RequiredFieldError if no team results
            required_message: Message for the required-team error
        """
        if leadership_team and not team_id:
            team_id = await self.get_leadership_team_id()
            if not team_id:
                raise LeadershipTeamNotFoundError()
        if required and not team_id:
            raise RequiredFieldError(
                "teamId",
                required_message or "Team ID is required. Either provide teamId or set leadershipTeam to true.",
            )
        return team_id

    async def get_company_code(self, company_id: str | None) -> str | None:
        if not company_id or self.database is None:
            return None
        if company_id in self._company_codes:
            return self._company_codes[company_id]
        row = await self.database.fetch_one(COMPANY_CODE_SQL, (company_id,))
        if row and row.get("code"):
            self._company_codes[company_id] = row["code"]
            return row["code"]
        return None

    async def object_url(self, entity_type: str, object_id: str | None, company_id: str | None) -> str | None:
        """Web URL of an object, or None when any part is unknown."""
        base = self.settings.oauth_server_url
        if not base or not object_id:
            return None
        code = await self.get_company_code(company_id)
        if not code:
            return None
        return f"{base}/{code}/{entity_type}/{object_id}"

    async def get_quarter_dates(self, company_id: str) -> list[Any] | None:
        if self.database is None:
            logger.debug("Database not configured, cannot look up quarter dates")
            return None
        row = await self.database.fetch_one(QUARTER_DATES_SQL, (company_id,))
        if not row:
            logger.debug("Company not found", company_id=company_id)
            return None
        return [row["quarter_one_date"], row["quarter_two_date"], row["quarter_three_date"], row["quarter_four_date"]]

    async def get_quarter_end_date(self, company_id: str, today: date | None = None) -> str | None:
        """Last day of the company's current quarter as YYYY-MM-DD, or None."""
        try:
            quarter_dates = await self.get_quarter_dates(company_id)
            if quarter_dates is None:
                return None
            end = last_date_of_current_quarter(quarter_dates, today or date.today())
        except Exception as e:
            logger.error("Failed to look up quarter dates", error=str(e))
            return None
        return end.isoformat() if end else None
