"""Team tools."""

import structlog

from success_mcp.errors import ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

TEAMS_QUERY = """
query Teams($filter: TeamFilter, $first: Int, $offset: Int) {
  teams(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      badgeUrl
      name
      desc
      color
      isLeadership
      createdAt
      stateId
      companyId
    }
    totalCount
  }
}
"""


class TeamTools(ToolSet):
    """Teams, including the leadership-team flag."""

    @tool("getTeams", "fetching teams")
    async def get_teams(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        keyword: str | None = None,
    ) -> ToolResponse:
        """List teams. The isLeadership flag identifies the leadership team.

        Args:
            first: Page size
            offset: Number of teams to skip
            state_id: ACTIVE, INACTIVE or DELETED
            keyword: Case-insensitive substring of the team name
        """
        validate_state_id(state_id)
        filter_ = Filter().equal("stateId", state_id).contains_insensitive("name", keyword)
        logger.info("Fetching teams", state_id=state_id, keyword=keyword)

        data = await self._query(TEAMS_QUERY, page_variables(filter_, first, offset))
        teams, total = self._connection(data, "teams")
        return success_response(
            {
                "totalCount": total,
                "results": [
                    {
                        "id": team["id"],
                        "title": team["name"],
                        "description": team.get("desc") or "",
                        "color": team.get("color"),
                        "status": team.get("stateId"),
                        "isLeadership": team.get("isLeadership"),
                    }
                    for team in teams
                ],
            }
        )
