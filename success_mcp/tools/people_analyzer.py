"""People Analyzer sessions with their participants and scores."""

import asyncio
from typing import Any

import structlog

from success_mcp.errors import ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

SESSIONS_QUERY = """
query PeopleAnalyzerSessions($filter: PeopleAnalyzerSessionFilter, $first: Int, $offset: Int) {
  peopleAnalyzerSessions(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      name
      teamId
      peopleAnalyzerSessionStatusId
      createdAt
      updatedAt
      stateId
      companyId
    }
    totalCount
  }
}
"""

SESSION_DETAIL_QUERY = """
query PeopleAnalyzerSessionDetail($scoreFilter: PeopleAnalyzerSessionUsersScoreFilter, $userFilter: PeopleAnalyzerSessionUserFilter) {
  peopleAnalyzerSessionUsersScores(filter: $scoreFilter) {
    nodes {
      id
      peopleAnalyzerSessionUserId
      peopleAnalyzerSessionId
      rightPerson
      rightSeat
      getsIt
      wantsIt
      capacityToDoIt
      createdAt
      updatedAt
    }
  }
  peopleAnalyzerSessionUsers(filter: $userFilter) {
    nodes { id peopleAnalyzerSessionId userId createdAt }
  }
}
"""


class PeopleAnalyzerTools(ToolSet):
    async def _with_scores(self, session: dict[str, Any]) -> dict[str, Any]:
        session_filter = Filter().equal("peopleAnalyzerSessionId", session["id"]).build()
        result = await self.context.execute(
            SESSION_DETAIL_QUERY, {"scoreFilter": session_filter, "userFilter": session_filter}
        )
        if not result.ok:
            logger.warning("Could not load people analyzer scores", session_id=session["id"], error=result.error)
            return {**session, "users": [], "scores": []}
        data = result.data or {}
        return {
            **session,
            "users": self._connection(data, "peopleAnalyzerSessionUsers")[0],
            "scores": self._connection(data, "peopleAnalyzerSessionUsersScores")[0],
        }

    @tool("getPeopleAnalyzerSessions", "fetching people analyzer sessions")
    async def get_people_analyzer_sessions(
        self,
        first: int = 50,
        offset: int = 0,
        state_id: str = "ACTIVE",
        team_id: str | None = None,
        leadership_team: bool = False,
        session_id: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
    ) -> ToolResponse:
        """List People Analyzer sessions with the users rated in each and their
        right person / right seat (gets it, wants it, capacity to do it) scores.

        Args:
            first: Page size
            offset: Number of sessions to skip
            state_id: ACTIVE, INACTIVE or DELETED
            team_id: Only sessions of this team
            leadership_team: Use the leadership team instead of team_id
            session_id: Only this session
            created_after: Created on or after this ISO date
            created_before: Created on or before this ISO date
        """
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)
        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("teamId", team_id)
            .equal("id", session_id)
            .gte("createdAt", created_after)
            .lte("createdAt", created_before)
        )
        data = await self._query(SESSIONS_QUERY, page_variables(filter_, first, offset))
        sessions, total = self._connection(data, "peopleAnalyzerSessions")
        detailed = await asyncio.gather(*(self._with_scores(session) for session in sessions))
        return success_response({"totalCount": total, "sessions": list(detailed)})
