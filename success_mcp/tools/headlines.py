"""Headline tools.

Callers see the statuses "Shared" and "Not shared"; the API stores them as
DISCUSSED and DISCUSS.
"""

from typing import Any

import structlog

from success_mcp.errors import NoUpdatesError, RequiredFieldError, ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import headline_status_to_external, headline_status_to_internal, validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

HEADLINES_QUERY = """
query Headlines($filter: HeadlineFilter, $first: Int, $offset: Int) {
  headlines(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      name
      desc
      userId
      teamId
      headlineStatusId
      statusUpdatedAt
      meetingId
      createdAt
      stateId
      companyId
      isCascadingMessage
    }
    totalCount
  }
}
"""

CREATED_HEADLINE_FIELDS = "id name desc headlineStatusId teamId userId isCascadingMessage createdAt stateId companyId"
UPDATED_HEADLINE_FIELDS = "id name desc headlineStatusId teamId userId isCascadingMessage statusUpdatedAt stateId"


def _matches_keyword(headline: dict[str, Any], keyword: str) -> bool:
    needle = keyword.lower()
    return any(needle in (headline.get(key) or "").lower() for key in ("name", "desc"))


class HeadlineTools(ToolSet):
    """Headlines: short good-news or FYI items shared in meetings."""

    async def _with_url(self, headline: dict[str, Any], company_id: str | None) -> dict[str, Any]:
        shaped = dict(headline)
        shaped["headlineStatusId"] = headline_status_to_external(headline.get("headlineStatusId"))
        shaped["url"] = await self.context.object_url("headlines", headline.get("id"), company_id)
        return shaped

    @tool("getHeadlines", "fetching headlines")
    async def get_headlines(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        headline_id: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        from_meetings: bool = False,
        created_after: str | None = None,
        created_before: str | None = None,
        keyword: str | None = None,
        status: str = "Not shared",
    ) -> ToolResponse:
        """List headlines.

        A keyword matches the name or description, and paging is then applied
        to the matching headlines.

        Args:
            first: Page size
            offset: Number of headlines to skip
            state_id: ACTIVE, INACTIVE or DELETED
            headline_id: Only this headline
            team_id: Only headlines of this team
            leadership_team: Use the leadership team instead of team_id
            user_id: Only headlines by this user
            from_meetings: Only headlines raised in a meeting
            created_after: Created on or after this ISO date
            created_before: Created on or before this ISO date
            keyword: Case-insensitive substring of the name or description
            status: Shared, Not shared or ALL
        """
        validate_state_id(state_id)
        internal_status = headline_status_to_internal(status) if status and status != "ALL" else None
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("id", headline_id)
            .equal("teamId", team_id)
            .equal("userId", user_id)
            .equal("headlineStatusId", internal_status)
        )
        if from_meetings:
            filter_.is_null("meetingId", False)
        filter_.gte("createdAt", created_after).lte("createdAt", created_before)

        if keyword:
            variables = page_variables(filter_)
        else:
            variables = page_variables(filter_, first, offset)
        data = await self._query(HEADLINES_QUERY, variables)
        headlines, _ = self._connection(data, "headlines")

        if keyword:
            headlines = [h for h in headlines if _matches_keyword(h, keyword)]
            start = offset or 0
            headlines = headlines[start : start + first] if first else headlines[start:]
            logger.debug("Filtered headlines by keyword", keyword=keyword, count=len(headlines))

        user_context = await self.context.get_user_context()
        company_id = user_context.company_id if user_context else None
        results = []
        for headline in headlines:
            results.append(
                {
                    "id": headline["id"],
                    "name": headline.get("name"),
                    "description": headline.get("desc") or "",
                    "status": headline_status_to_external(headline.get("headlineStatusId")),
                    "teamId": headline.get("teamId"),
                    "userId": headline.get("userId"),
                    "meetingId": headline.get("meetingId"),
                    "isCascadingMessage": headline.get("isCascadingMessage"),
                    "createdAt": headline.get("createdAt"),
                    "statusUpdatedAt": headline.get("statusUpdatedAt"),
                    "url": await self.context.object_url("headlines", headline["id"], company_id),
                }
            )
        return success_response({"totalCount": len(results), "results": results})

    @tool("createHeadline", "creating headline", read_only=False)
    async def create_headline(
        self,
        name: str,
        desc: str = "",
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        status: str = "Not shared",
        is_cascading_message: bool = False,
    ) -> ToolResponse:
        """Create a headline on a team.

        Args:
            name: Headline text
            desc: Longer description
            team_id: Team the headline belongs to
            leadership_team: Use the leadership team instead of team_id
            user_id: Author, defaults to the authenticated user
            status: Shared or Not shared
            is_cascading_message: Whether this is a cascading message for other teams
        """
        team_id = await self.context.resolve_team_id(
            team_id,
            leadership_team,
            required=True,
            required_message="Headline must be assigned to a team. "
            "Please provide either 'teamId' or set 'leadershipTeam' to true.",
        )
        if not name or not name.strip():
            raise RequiredFieldError("name", "Headline text is required")
        headline_status_id = headline_status_to_internal(status)
        user_context = await self.context.require_user_context()

        headline_input = {
            "name": name,
            "desc": desc,
            "headlineStatusId": headline_status_id,
            "isCascadingMessage": is_cascading_message,
            "companyId": user_context.company_id,
            "teamId": team_id,
            "userId": user_id or user_context.user_id,
            "stateId": "ACTIVE",
        }
        logger.info("Creating headline", team_id=team_id, status=headline_status_id)
        headline = await self._mutate("createHeadline", "headline", CREATED_HEADLINE_FIELDS, {"headline": headline_input})
        return success_response(
            {
                "success": True,
                "message": "Headline created successfully",
                "headline": await self._with_url(headline, user_context.company_id),
            }
        )

    @tool("updateHeadline", "updating headline", read_only=False)
    async def update_headline(
        self,
        headline_id: str,
        name: str | None = None,
        desc: str | None = None,
        status: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        is_cascading_message: bool | None = None,
    ) -> ToolResponse:
        """Update a headline. Only the given fields change.

        Args:
            headline_id: Headline to update
            name: New text
            desc: New description
            status: Shared or Not shared
            team_id: Move the headline to this team
            leadership_team: Move the headline to the leadership team
            user_id: New author
            is_cascading_message: Whether this is a cascading message
        """
        if not headline_id:
            raise RequiredFieldError("headlineId", "Headline ID is required")
        internal_status = headline_status_to_internal(status) if status else None
        team_id = await self.context.resolve_team_id(team_id, leadership_team)
        user_context = await self.context.require_user_context()

        patch: dict[str, Any] = {}
        if name:
            patch["name"] = name
        if desc is not None:
            patch["desc"] = desc
        if internal_status:
            patch["headlineStatusId"] = internal_status
        if team_id:
            patch["teamId"] = team_id
        if user_id:
            patch["userId"] = user_id
        if is_cascading_message is not None:
            patch["isCascadingMessage"] = is_cascading_message
        if not patch:
            raise NoUpdatesError()

        headline = await self._mutate(
            "updateHeadline", "headline", UPDATED_HEADLINE_FIELDS, {"id": headline_id, "patch": patch}
        )
        return success_response(
            {
                "success": True,
                "message": "Headline updated successfully",
                "headline": await self._with_url(headline, user_context.company_id),
            }
        )

    @tool("deleteHeadline", "deleting headline", read_only=False, destructive=True)
    async def delete_headline(self, headline_id: str) -> ToolResponse:
        """Delete a headline by marking it DELETED.

        Args:
            headline_id: Headline to delete
        """
        if not headline_id:
            raise RequiredFieldError("headlineId")
        headline = await self._soft_delete("updateHeadline", "headline", headline_id)
        return success_response(
            {
                "success": True,
                "message": "Headline deleted successfully",
                "headline": {"id": headline["id"], "status": headline.get("stateId")},
            }
        )
