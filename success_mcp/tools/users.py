"""User and team-membership tools."""

import asyncio
from typing import Any

import structlog

from success_mcp.errors import EntityNotFoundError, ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

USER_FIELDS = """
  id
  userName
  firstName
  lastName
  jobTitle
  desc
  avatar
  email
  userPermissionId
  userStatusId
  languageId
  timeZone
  companyId
"""

USERS_QUERY = f"""
query Users($filter: UserFilter, $first: Int, $offset: Int) {{
  users(filter: $filter, first: $first, offset: $offset) {{
    nodes {{ {USER_FIELDS} }}
    totalCount
  }}
}}
"""

TEAM_MEMBER_IDS_QUERY = """
query TeamMembers($filter: UsersOnTeamFilter) {
  usersOnTeams(filter: $filter) {
    nodes { userId }
  }
}
"""

MEMBERSHIPS_QUERY = """
query Memberships($filter: UsersOnTeamFilter) {
  usersOnTeams(filter: $filter) {
    nodes {
      id
      userId
      teamId
      createdAt
      stateId
      companyId
    }
    totalCount
  }
}
"""

USERS_BY_ID_QUERY = """
query UsersById($filter: UserFilter) {
  users(filter: $filter) {
    nodes { id firstName lastName email jobTitle }
  }
}
"""

TEAMS_BY_ID_QUERY = """
query TeamsById($filter: TeamFilter) {
  teams(filter: $filter) {
    nodes { id name desc isLeadership }
  }
}
"""


def _user_result(user: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": user["id"],
        "name": f"{user.get('firstName') or ''} {user.get('lastName') or ''}".strip(),
        "email": user.get("email"),
        "jobTitle": user.get("jobTitle") or "",
        "description": user.get("desc") or "",
        "userName": user.get("userName") or "",
        "avatar": user.get("avatar") or "",
        "status": user.get("userStatusId"),
        "language": user.get("languageId"),
        "timeZone": user.get("timeZone"),
    }


class UserTools(ToolSet):
    """Users and their team memberships."""

    @tool("getUsers", "fetching users")
    async def get_users(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        team_id: str | None = None,
        leadership_team: bool = False,
    ) -> ToolResponse:
        """List users, optionally only the members of one team.

        Args:
            first: Page size
            offset: Number of users to skip
            state_id: ACTIVE, INACTIVE or DELETED
            team_id: Only users on this team
            leadership_team: Use the leadership team instead of team_id
        """
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        data = await self._query(USERS_QUERY, page_variables(Filter().equal("stateId", state_id), first, offset))
        users, _ = self._connection(data, "users")

        if team_id:
            members = await self._query(
                TEAM_MEMBER_IDS_QUERY,
                {"filter": Filter().equal("teamId", team_id).equal("stateId", state_id).build()},
            )
            member_ids = {node["userId"] for node in self._connection(members, "usersOnTeams")[0]}
            users = [user for user in users if user["id"] in member_ids]
            logger.debug("Filtered users by team", team_id=team_id, count=len(users))

        return success_response({"totalCount": len(users), "results": [_user_result(u) for u in users]})

    @tool("getCurrentUser", "fetching current user")
    async def get_current_user(self) -> ToolResponse:
        """Get the authenticated user. Use this to resolve "my" or "I" in a question to a userId."""
        user_context = await self.context.require_user_context()
        data = await self._query(USERS_QUERY, {"filter": Filter().equal("id", user_context.user_id).build()})
        users, _ = self._connection(data, "users")
        if not users:
            raise EntityNotFoundError("User", user_context.user_id)
        result = _user_result(users[0])
        result["companyId"] = user_context.company_id
        return success_response(result)

    @tool("getUsersOnTeams", "fetching team memberships")
    async def get_users_on_teams(
        self,
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        state_id: str = "ACTIVE",
    ) -> ToolResponse:
        """List team memberships with the user and team of each.

        Args:
            team_id: Only memberships of this team
            leadership_team: Use the leadership team instead of team_id
            user_id: Only memberships of this user
            state_id: ACTIVE, INACTIVE or DELETED
        """
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        filter_ = Filter().equal("stateId", state_id).equal("teamId", team_id).equal("userId", user_id)
        data = await self._query(MEMBERSHIPS_QUERY, {"filter": filter_.build()})
        memberships, total = self._connection(data, "usersOnTeams")

        user_ids = sorted({m["userId"] for m in memberships})
        team_ids = sorted({m["teamId"] for m in memberships})
        users, teams = await asyncio.gather(
            self._lookup(USERS_BY_ID_QUERY, "users", user_ids),
            self._lookup(TEAMS_BY_ID_QUERY, "teams", team_ids),
        )

        return success_response(
            {
                "totalCount": total,
                "memberships": [
                    {
                        "id": m["id"],
                        "userId": m["userId"],
                        "teamId": m["teamId"],
                        "user": users.get(m["userId"]),
                        "team": teams.get(m["teamId"]),
                        "createdAt": m.get("createdAt"),
                    }
                    for m in memberships
                ],
            }
        )

    async def _lookup(self, query: str, key: str, ids: list[str]) -> dict[str, dict[str, Any]]:
        if not ids:
            return {}
        data = await self._query(query, {"filter": Filter().is_in("id", ids).build()})
        return {node["id"]: node for node in self._connection(data, key)[0]}
