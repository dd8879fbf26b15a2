"""Issue tools."""

from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from success_mcp.errors import NoUpdatesError, RequiredFieldError, ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import (
    capitalize_type,
    map_issue_type,
    map_priority_to_number,
    map_priority_to_text,
    validate_choice,
    validate_state_id,
)
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

ISSUE_STATUSES = ("TODO", "COMPLETE", "ALL")
ISSUE_TYPE_CHOICES = ("Short-term", "Long-term", "ALL")
STUCK_AFTER = timedelta(days=30)

ISSUES_QUERY = """
query Issues($filter: IssueFilter, $first: Int, $offset: Int) {
  issues(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      issueStatusId
      name
      desc
      teamId
      userId
      type
      priorityNo
      priorityOrder
      statusUpdatedAt
      meetingId
      createdAt
      stateId
      companyId
    }
    totalCount
  }
}
"""

CREATED_ISSUE_FIELDS = "id name desc issueStatusId teamId userId type priorityNo createdAt stateId companyId"
UPDATED_ISSUE_FIELDS = "id name desc issueStatusId teamId userId priorityNo statusUpdatedAt stateId"


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def summarize_issues(issues: list[dict[str, Any]], total: int, now: datetime | None = None) -> dict[str, int]:
    """Counts over one page of issues.

    An open issue is stuck when its status has not changed for more than 30
    days, and high priority when priorityNo is 1 or lower.
    """
    now = now or datetime.now(timezone.utc)
    open_issues = [i for i in issues if i.get("issueStatusId") == "TODO"]
    stuck = 0
    for issue in open_issues:
        updated = _parse_timestamp(issue.get("statusUpdatedAt"))
        if updated is not None and updated < now - STUCK_AFTER:
            stuck += 1
    return {
        "totalCount": total,
        "todoCount": len(open_issues),
        "completeCount": sum(1 for i in issues if i.get("issueStatusId") == "COMPLETE"),
        "stuckCount": stuck,
        "highPriorityCount": sum(1 for i in open_issues if (i.get("priorityNo") or 999) <= 1),
    }


class IssueTools(ToolSet):
    """Issues: problems, ideas and obstacles on a team's issues list."""

    @tool("getIssues", "fetching issues")
    async def get_issues(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        status: str = "TODO",
        type: str = "Short-term",
        from_meetings: bool = False,
        keyword: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
        status_updated_before: str | None = None,
    ) -> ToolResponse:
        """List issues with summary counts.

        Args:
            first: Page size
            offset: Number of issues to skip
            state_id: ACTIVE, INACTIVE or DELETED
            team_id: Only issues of this team
            leadership_team: Use the leadership team instead of team_id
            user_id: Only issues owned by this user
            status: TODO, COMPLETE or ALL
            type: Short-term, Long-term or ALL
            from_meetings: Only issues raised in a meeting
            keyword: Case-insensitive substring of the issue name
            created_after: Created on or after this ISO date
            created_before: Created on or before this ISO date
            status_updated_before: Status last changed on or before this ISO date
        """
        validate_state_id(state_id)
        if status:
            validate_choice(status, ISSUE_STATUSES, 'Invalid status - must be "TODO", "COMPLETE", or "ALL"')
        if type:
            validate_choice(type, ISSUE_TYPE_CHOICES, 'Invalid type - must be "Short-term", "Long-term", or "ALL"')
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("teamId", team_id)
            .equal("userId", user_id)
            .contains_insensitive("name", keyword)
        )
        if status and status != "ALL":
            filter_.equal("issueStatusId", status)
        if type and type != "ALL":
            filter_.equal("type", type.lower())
        if from_meetings:
            filter_.is_null("meetingId", False)
        filter_.gte("createdAt", created_after).lte("createdAt", created_before)
        filter_.lte("statusUpdatedAt", status_updated_before)

        logger.info("Fetching issues", status=status, type=type, team_id=team_id)
        data = await self._query(ISSUES_QUERY, page_variables(filter_, first, offset))
        issues, total = self._connection(data, "issues")
        return success_response(
            {
                "summary": summarize_issues(issues, total),
                "results": [
                    {
                        "id": issue["id"],
                        "name": issue.get("name"),
                        "description": issue.get("desc") or "",
                        "status": issue.get("issueStatusId"),
                        "type": capitalize_type(issue.get("type")),
                        "priority": map_priority_to_text(issue.get("priorityNo")),
                        "priorityOrder": issue.get("priorityOrder"),
                        "teamId": issue.get("teamId"),
                        "userId": issue.get("userId"),
                        "meetingId": issue.get("meetingId"),
                        "createdAt": issue.get("createdAt"),
                        "statusUpdatedAt": issue.get("statusUpdatedAt"),
                    }
                    for issue in issues
                ],
            }
        )

    @tool("createIssue", "creating issue", read_only=False)
    async def create_issue(
        self,
        name: str,
        team_id: str | None = None,
        leadership_team: bool = False,
        desc: str = "",
        user_id: str | None = None,
        priority: str = "Medium",
        type: str = "Short-term",
    ) -> ToolResponse:
        """Create an issue on a team's issues list.

        Args:
            name: Issue title
            team_id: Team the issue belongs to
            leadership_team: Use the leadership team instead of team_id
            desc: Longer description
            user_id: Owner of the issue, defaults to the authenticated user
            priority: High, Medium, Low or No priority
            type: Short-term or Long-term
        """
        if not name or not name.strip():
            raise RequiredFieldError("name", "Issue name is required")
        team_id = await self.context.resolve_team_id(team_id, leadership_team, required=True)
        user_context = await self.context.require_user_context()

        issue_input = {
            "name": name,
            "desc": desc,
            "issueStatusId": "TODO",
            "priorityNo": map_priority_to_number(priority),
            "type": map_issue_type(type),
            "teamId": team_id,
            "userId": user_id or user_context.user_id,
            "companyId": user_context.company_id,
            "stateId": "ACTIVE",
        }
        logger.info("Creating issue", team_id=team_id)
        issue = await self._mutate("createIssue", "issue", CREATED_ISSUE_FIELDS, {"issue": issue_input})
        return success_response({"success": True, "message": "Issue created successfully", "issue": issue})

    @tool("updateIssue", "updating issue", read_only=False)
    async def update_issue(
        self,
        issue_id: str,
        name: str | None = None,
        desc: str | None = None,
        issue_status_id: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        priority: str | None = None,
        type: str | None = None,
    ) -> ToolResponse:
        """Update an issue. Only the given fields change.

        Args:
            issue_id: Issue to update
            name: New title
            desc: New description (an empty string clears it)
            issue_status_id: TODO or COMPLETE
            team_id: Move the issue to this team
            leadership_team: Move the issue to the leadership team
            user_id: New owner
            priority: High, Medium, Low or No priority
            type: Short-term or Long-term
        """
        if not issue_id:
            raise RequiredFieldError("issueId", "Issue ID is required")
        if issue_status_id:
            validate_choice(issue_status_id, ("TODO", "COMPLETE"), 'Invalid issueStatusId - must be "TODO" or "COMPLETE"')
        team_id = await self.context.resolve_team_id(team_id, leadership_team)
        await self.context.require_user_context()

        patch: dict[str, Any] = {}
        if name:
            patch["name"] = name
        if desc is not None:
            patch["desc"] = desc
        if issue_status_id:
            patch["issueStatusId"] = issue_status_id
        if team_id:
            patch["teamId"] = team_id
        if user_id:
            patch["userId"] = user_id
        if priority is not None:
            patch["priorityNo"] = map_priority_to_number(priority)
        if type:
            patch["type"] = map_issue_type(type)
        if not patch:
            raise NoUpdatesError()

        issue = await self._mutate("updateIssue", "issue", UPDATED_ISSUE_FIELDS, {"id": issue_id, "patch": patch})
        return success_response({"success": True, "message": "Issue updated successfully", "issue": issue})

    @tool("deleteIssue", "deleting issue", read_only=False, destructive=True)
    async def delete_issue(self, issue_id: str) -> ToolResponse:
        """Delete an issue by marking it DELETED.

        Args:
            issue_id: Issue to delete
        """
        if not issue_id:
            raise RequiredFieldError("issueId")
        issue = await self._soft_delete("updateIssue", "issue", issue_id)
        return success_response(
            {
                "success": True,
                "message": "Issue deleted successfully",
                "issue": {"id": issue["id"], "status": issue.get("stateId")},
            }
        )
