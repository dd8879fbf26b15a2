"""Milestone tools. Milestones are dated checkpoints on a rock."""

from typing import Any

import structlog

from success_mcp.errors import NoUpdatesError, RequiredFieldError, ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import parse_date, validate_choice, validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

MILESTONE_STATUSES = ("TODO", "COMPLETE")
MILESTONE_FIELDS = "id rockId name dueDate userId milestoneStatusId createdAt stateId companyId"

MILESTONES_QUERY = """
query Milestones($filter: MilestoneFilter, $first: Int, $offset: Int) {
  milestones(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      rockId
      name
      dueDate
      userId
      milestoneStatusId
      createdAt
      stateId
      companyId
    }
    totalCount
  }
}
"""


def _milestone_result(milestone: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": milestone["id"],
        "rockId": milestone.get("rockId"),
        "name": milestone.get("name"),
        "dueDate": milestone.get("dueDate"),
        "userId": milestone.get("userId"),
        "milestoneStatusId": milestone.get("milestoneStatusId"),
        "createdAt": milestone.get("createdAt"),
        "status": milestone.get("stateId"),
    }


class MilestoneTools(ToolSet):
    @tool("getMilestones", "fetching milestones")
    async def get_milestones(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        rock_id: str | None = None,
        user_id: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        keyword: str | None = None,
    ) -> ToolResponse:
        """List rock milestones.

        Args:
            first: Page size
            offset: Number of milestones to skip
            state_id: ACTIVE, INACTIVE or DELETED
            rock_id: Only milestones of this rock
            user_id: Only milestones owned by this user
            team_id: Only milestones of this team
            leadership_team: Use the leadership team instead of team_id
            keyword: Case-insensitive substring of the milestone name
        """
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)
        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("rockId", rock_id)
            .equal("userId", user_id)
            .equal("teamId", team_id)
            .contains_insensitive("name", keyword)
        )
        data = await self._query(MILESTONES_QUERY, page_variables(filter_, first, offset))
        milestones, total = self._connection(data, "milestones")
        return success_response({"totalCount": total, "results": [_milestone_result(m) for m in milestones]})

    @tool("createMilestone", "creating milestone", read_only=False)
    async def create_milestone(
        self,
        name: str,
        rock_id: str,
        due_date: str | None = None,
        user_id: str | None = None,
    ) -> ToolResponse:
        """Add a milestone to a rock.

        Args:
            name: Milestone name
            rock_id: Rock the milestone belongs to
            due_date: Due date (YYYY-MM-DD)
            user_id: Owner, defaults to the authenticated user
        """
        if not name or not name.strip():
            raise RequiredFieldError("name", "Milestone name is required")
        if not rock_id:
            raise RequiredFieldError("rockId", "Rock ID is required")
        if due_date:
            parse_date(due_date)
        user_context = await self.context.require_user_context()

        milestone_input: dict[str, Any] = {
            "name": name,
            "rockId": rock_id,
            "milestoneStatusId": "TODO",
            "userId": user_id or user_context.user_id,
            "companyId": user_context.company_id,
            "stateId": "ACTIVE",
        }
        if due_date:
            milestone_input["dueDate"] = due_date

        logger.info("Creating milestone", rock_id=rock_id)
        milestone = await self._mutate("createMilestone", "milestone", MILESTONE_FIELDS, {"milestone": milestone_input})
        return success_response(
            {"success": True, "message": "Milestone created successfully", "milestone": _milestone_result(milestone)}
        )

    @tool("updateMilestone", "updating milestone", read_only=False)
    async def update_milestone(
        self,
        milestone_id: str,
        name: str | None = None,
        due_date: str | None = None,
        user_id: str | None = None,
        milestone_status_id: str | None = None,
    ) -> ToolResponse:
        """Update a milestone. Only the given fields change.

        Args:
            milestone_id: Milestone to update
            name: New name
            due_date: New due date (YYYY-MM-DD)
            user_id: New owner
            milestone_status_id: TODO or COMPLETE
        """
        if not milestone_id:
            raise RequiredFieldError("milestoneId", "Milestone ID is required")
        if milestone_status_id:
            validate_choice(
                milestone_status_id, MILESTONE_STATUSES, 'Invalid milestoneStatusId - must be "TODO" or "COMPLETE"'
            )
        if due_date:
            parse_date(due_date)
        await self.context.require_user_context()

        patch: dict[str, Any] = {}
        if name:
            patch["name"] = name
        if due_date:
            patch["dueDate"] = due_date
        if user_id:
            patch["userId"] = user_id
        if milestone_status_id:
            patch["milestoneStatusId"] = milestone_status_id
        if not patch:
            raise NoUpdatesError()

        milestone = await self._mutate(
            "updateMilestone", "milestone", MILESTONE_FIELDS, {"id": milestone_id, "patch": patch}
        )
        return success_response(
            {"success": True, "message": "Milestone updated successfully", "milestone": _milestone_result(milestone)}
        )

    @tool("deleteMilestone", "deleting milestone", read_only=False, destructive=True)
    async def delete_milestone(self, milestone_id: str) -> ToolResponse:
        """Delete a milestone by marking it DELETED.

        Args:
            milestone_id: Milestone to delete
        """
        if not milestone_id:
            raise RequiredFieldError("milestoneId", "Milestone ID is required")
        milestone = await self._soft_delete("updateMilestone", "milestone", milestone_id)
        return success_response(
            {
                "success": True,
                "message": "Milestone deleted successfully",
                "milestone": {"id": milestone["id"], "status": milestone.get("stateId")},
            }
        )
