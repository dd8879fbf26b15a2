"""Meeting tools: meetings, meeting infos (recurring meeting series) and agendas."""

import asyncio
from datetime import date
from typing import Any

import structlog

from success_mcp.errors import (
    EntityNotFoundError,
    InvalidDateError,
    NoUpdatesError,
    RequiredFieldError,
    ToolError,
    ToolResponse,
    ValidationError,
    success_response,
    text_response,
)
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import parse_date, validate_choice, validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

MEETING_AGENDA_TYPES = (
    "ANNUAL-PLANNING-DAY-1",
    "ANNUAL-PLANNING-DAY-2",
    "QUARTERLY-PULSING-AGENDA",
    "WEEKLY-L10",
    "FOCUS-DAY",
    "VISION-BUILDING-SESSION",
)
INVALID_AGENDA_TYPE = f"Invalid meetingAgendaType - must be one of: {', '.join(MEETING_AGENDA_TYPES)}"

MEETING_INFO_SUMMARY_QUERY = """
query MeetingInfoSummaries($filter: MeetingInfoFilter) {
  meetingInfos(filter: $filter) {
    nodes {
      id
      name
      teamId
      team { id name }
    }
  }
}
"""

MEETINGS_QUERY = """
query Meetings($filter: MeetingFilter, $first: Int, $offset: Int) {
  meetings(filter: $filter, first: $first, offset: $offset, orderBy: DATE_DESC) {
    nodes {
      id
      meetingInfoId
      date
      startTime
      endTime
      averageRating
      meetingStatusId
      createdAt
      stateId
      companyId
    }
    totalCount
  }
}
"""

MEETING_INFOS_QUERY = """
query MeetingInfos($filter: MeetingInfoFilter, $first: Int, $offset: Int) {
  meetingInfos(filter: $filter, first: $first, offset: $offset, orderBy: CREATED_AT_DESC) {
    nodes {
      id
      name
      desc
      meetingAgendaId
      teamId
      meetingInfoStatusId
      meetingRepeatsId
      createdAt
      stateId
      companyId
      ownerUserId
      repeatInterval
      repeatUnit
      selectedDays
      team { id name desc color isLeadership }
      meetingAgenda { id name desc meetingAgendaStatusId meetingAgendaTypeId facilitatorUserId scribeUserId }
      owner { id firstName lastName email jobTitle }
    }
    totalCount
  }
}
"""

MEETING_AGENDAS_QUERY = """
query MeetingAgendas($filter: MeetingAgendaFilter, $first: Int, $offset: Int) {
  meetingAgendas(filter: $filter, first: $first, offset: $offset, orderBy: CREATED_AT_DESC) {
    nodes {
      id
      name
      desc
      builtIn
      meetingAgendaStatusId
      meetingRepeatsId
      meetingAgendaTypeId
      teamId
      createdAt
      stateId
      companyId
      facilitatorUserId
      scribeUserId
      repeatInterval
      repeatUnit
      selectedDays
      team { id name desc color isLeadership }
      facilitatorUser { id firstName lastName email jobTitle }
      scribeUser { id firstName lastName email jobTitle }
      meetingAgendaSections(orderBy: ORDER_ASC) {
        nodes { id name desc order duration type visible }
      }
    }
    totalCount
  }
}
"""

MEETING_HEADLINES_QUERY = """
query MeetingHeadlines($filter: HeadlineFilter) {
  headlines(filter: $filter) {
    nodes { id name desc userId teamId headlineStatusId meetingId createdAt }
  }
}
"""

MEETING_TODOS_QUERY = """
query MeetingTodos($filter: TodoFilter) {
  todos(filter: $filter) {
    nodes { id name desc todoStatusId userId teamId meetingId dueDate createdAt }
  }
}
"""

MEETING_ISSUES_QUERY = """
query MeetingIssues($filter: IssueFilter) {
  issues(filter: $filter) {
    nodes { id name desc issueStatusId userId teamId meetingId createdAt }
  }
}
"""

MEETING_INFO_FIELDS = "id name meetingAgendaId teamId ownerUserId stateId"
MEETING_FIELDS = "id date startTime endTime meetingStatusId meetingInfoId createdAt stateId companyId"


def _reject_past_date(value: str, message: str, today: date | None = None) -> None:
    if parse_date(value) < (today or date.today()):
        raise InvalidDateError(message)


def _meeting_result(meeting: dict[str, Any], info: dict[str, Any] | None = None) -> dict[str, Any]:
    info = info or {}
    return {
        "id": meeting["id"],
        "meetingInfoId": meeting.get("meetingInfoId"),
        "meetingInfoName": info.get("name"),
        "teamId": info.get("teamId"),
        "teamName": (info.get("team") or {}).get("name"),
        "date": meeting.get("date"),
        "startTime": meeting.get("startTime"),
        "endTime": meeting.get("endTime"),
        "averageRating": meeting.get("averageRating"),
        "status": meeting.get("meetingStatusId"),
        "createdAt": meeting.get("createdAt"),
    }


def group_meeting_items(
    meeting: dict[str, Any],
    headlines: list[dict[str, Any]],
    todos: list[dict[str, Any]],
    issues: list[dict[str, Any]],
) -> dict[str, Any]:
    """Details of one meeting from items fetched for a whole set of meetings."""
    meeting_id = meeting["id"]
    own_headlines = [h for h in headlines if h.get("meetingId") == meeting_id]
    own_todos = [t for t in todos if t.get("meetingId") == meeting_id]
    own_issues = [i for i in issues if i.get("meetingId") == meeting_id]
    return {
        "meeting": _meeting_result(meeting),
        "headlines": [
            {
                "id": h["id"],
                "name": h.get("name"),
                "description": h.get("desc") or "",
                "status": h.get("headlineStatusId"),
                "userId": h.get("userId"),
                "teamId": h.get("teamId"),
                "createdAt": h.get("createdAt"),
            }
            for h in own_headlines
        ],
        "todos": [
            {
                "id": t["id"],
                "name": t.get("name"),
                "description": t.get("desc") or "",
                "status": t.get("todoStatusId"),
                "userId": t.get("userId"),
                "teamId": t.get("teamId"),
                "dueDate": t.get("dueDate"),
                "createdAt": t.get("createdAt"),
            }
            for t in own_todos
        ],
        "issues": [
            {
                "id": i["id"],
                "name": i.get("name"),
                "description": i.get("desc") or "",
                "status": i.get("issueStatusId"),
                "userId": i.get("userId"),
                "teamId": i.get("teamId"),
                "createdAt": i.get("createdAt"),
            }
            for i in own_issues
        ],
        "summary": {
            "headlineCount": len(own_headlines),
            "todoCount": len(own_todos),
            "issueCount": len(own_issues),
        },
    }


class MeetingTools(ToolSet):
    """Meetings and the meeting series and agendas behind them."""

    async def _meeting_infos(self, filter_: Filter) -> dict[str, dict[str, Any]]:
        data = await self._query(MEETING_INFO_SUMMARY_QUERY, {"filter": filter_.build()})
        return {info["id"]: info for info in self._connection(data, "meetingInfos")[0]}

    @tool("getMeetings", "fetching meetings")
    async def get_meetings(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        team_id: str | None = None,
        leadership_team: bool = False,
        meeting_agenda_id: str | None = None,
        meeting_agenda_type: str | None = None,
        date_after: str | None = None,
        date_before: str | None = None,
    ) -> ToolResponse:
        """List a team's meetings, most recent first.

        Args:
            first: Page size
            offset: Number of meetings to skip
            state_id: ACTIVE, INACTIVE or DELETED
            team_id: Team whose meetings to list
            leadership_team: Use the leadership team instead of team_id
            meeting_agenda_id: Only meetings using this agenda
            meeting_agenda_type: Only meetings with this agenda type, e.g. WEEKLY-L10
            date_after: Meeting date on or after (YYYY-MM-DD)
            date_before: Meeting date on or before (YYYY-MM-DD)
        """
        if meeting_agenda_id and meeting_agenda_type:
            raise ValidationError(
                message="Only one of meetingAgendaId or meetingAgendaType can be provided, not both."
            )
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team, required=True)

        infos = await self._meeting_infos(Filter().equal("teamId", team_id).equal("stateId", "ACTIVE"))
        if not infos:
            return success_response({"totalCount": 0, "results": []})

        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .is_in("meetingInfoId", list(infos))
            .equal("meetingAgendaId", meeting_agenda_id)
            .equal("meetingAgendaType", meeting_agenda_type)
            .gte("date", date_after)
            .lte("date", date_before)
        )
        data = await self._query(MEETINGS_QUERY, page_variables(filter_, first, offset))
        meetings, total = self._connection(data, "meetings")

        missing = sorted({m["meetingInfoId"] for m in meetings if m.get("meetingInfoId") and m["meetingInfoId"] not in infos})
        if missing:
            infos.update(await self._meeting_infos(Filter().is_in("id", missing)))

        return success_response(
            {"totalCount": total, "results": [_meeting_result(m, infos.get(m.get("meetingInfoId"))) for m in meetings]}
        )

    @tool("getMeetingInfos", "fetching meeting infos")
    async def get_meeting_infos(
        self,
        first: int = 50,
        offset: int = 0,
        state_id: str = "ACTIVE",
        team_id: str | None = None,
        leadership_team: bool = False,
        meeting_info_status_id: str | None = None,
    ) -> ToolResponse:
        """List meeting series (recurring meeting definitions) with their team, agenda and owner.

        Args:
            first: Page size
            offset: Number of meeting infos to skip
            state_id: ACTIVE, INACTIVE or DELETED
            team_id: Only meeting infos of this team
            leadership_team: Use the leadership team instead of team_id
            meeting_info_status_id: Only meeting infos with this status
        """
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)
        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("teamId", team_id)
            .equal("meetingInfoStatusId", meeting_info_status_id)
        )
        data = await self._query(MEETING_INFOS_QUERY, page_variables(filter_, first, offset))
        infos, total = self._connection(data, "meetingInfos")
        return success_response({"totalCount": total, "results": infos})

    @tool("getMeetingAgendas", "fetching meeting agendas")
    async def get_meeting_agendas(
        self,
        first: int = 50,
        offset: int = 0,
        state_id: str = "ACTIVE",
        team_id: str | None = None,
        leadership_team: bool = False,
        meeting_agenda_status_id: str | None = None,
        meeting_agenda_type_id: str | None = None,
        built_in: bool | None = None,
    ) -> ToolResponse:
        """List meeting agendas (templates) with their sections.

        Args:
            first: Page size
            offset: Number of agendas to skip
            state_id: ACTIVE, INACTIVE or DELETED
            team_id: Only agendas of this team
            leadership_team: Use the leadership team instead of team_id
            meeting_agenda_status_id: Only agendas with this status
            meeting_agenda_type_id: Only agendas of this type, e.g. WEEKLY-L10
            built_in: Only built-in (true) or custom (false) agendas
        """
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)
        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("teamId", team_id)
            .equal("meetingAgendaStatusId", meeting_agenda_status_id)
            .equal("meetingAgendaTypeId", meeting_agenda_type_id)
            .equal("builtIn", built_in)
        )
        data = await self._query(MEETING_AGENDAS_QUERY, page_variables(filter_, first, offset))
        agendas, total = self._connection(data, "meetingAgendas")
        return success_response({"totalCount": total, "results": agendas})

    @tool("getMeetingDetails", "fetching meeting details")
    async def get_meeting_details(
        self,
        meeting_id: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        date_after: str | None = None,
        date_before: str | None = None,
        first: int = 5,
        state_id: str = "ACTIVE",
    ) -> ToolResponse:
        """Meetings with the headlines, todos and issues raised in each.

        Give a meetingId for one meeting, or a team (and optional date range)
        for that team's most recent meetings.

        Args:
            meeting_id: A single meeting
            team_id: Team whose meetings to include
            leadership_team: Use the leadership team instead of team_id
            date_after: Meeting date on or after (YYYY-MM-DD)
            date_before: Meeting date on or before (YYYY-MM-DD)
            first: Maximum number of meetings when listing by team
            state_id: ACTIVE, INACTIVE or DELETED
        """
        validate_state_id(state_id)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)
        if not meeting_id and not team_id:
            raise RequiredFieldError("meetingId", "meetingId or a team (teamId or leadershipTeam) is required")

        filter_ = Filter().equal("stateId", state_id).equal("id", meeting_id)
        if team_id:
            infos = await self._meeting_infos(Filter().equal("teamId", team_id).equal("stateId", "ACTIVE"))
            if not infos:
                return success_response({"totalCount": 0, "results": []})
            filter_.is_in("meetingInfoId", list(infos))
        filter_.gte("date", date_after).lte("date", date_before)

        data = await self._query(MEETINGS_QUERY, page_variables(filter_, 1 if meeting_id else first))
        meetings, _ = self._connection(data, "meetings")
        if not meetings:
            if meeting_id:
                raise EntityNotFoundError("Meeting", meeting_id)
            return success_response({"totalCount": 0, "results": []})

        item_filter = Filter().is_in("meetingId", [m["id"] for m in meetings]).equal("stateId", state_id).build()
        headlines_data, todos_data, issues_data = await asyncio.gather(
            self._query(MEETING_HEADLINES_QUERY, {"filter": item_filter}),
            self._query(MEETING_TODOS_QUERY, {"filter": item_filter}),
            self._query(MEETING_ISSUES_QUERY, {"filter": item_filter}),
        )
        headlines = self._connection(headlines_data, "headlines")[0]
        todos = self._connection(todos_data, "todos")[0]
        issues = self._connection(issues_data, "issues")[0]

        details = [group_meeting_items(m, headlines, todos, issues) for m in meetings]
        if meeting_id:
            return success_response(details[0])
        return success_response({"totalCount": len(details), "results": details})

    @tool("createMeeting", "creating meeting", read_only=False)
    async def create_meeting(
        self,
        date: str,
        meeting_agenda_id: str | None = None,
        meeting_agenda_type: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        name: str | None = None,
    ) -> ToolResponse:
        """Schedule a meeting. Creates a one-off meeting series, then the meeting in it.

        Args:
            date: Meeting date (YYYY-MM-DD), today or later
            meeting_agenda_id: Agenda to use
            meeting_agenda_type: Look up the team's agenda of this type instead, e.g. WEEKLY-L10
            team_id: Team holding the meeting
            leadership_team: Use the leadership team instead of team_id
            name: Meeting name, defaults to the agenda name
        """
        if not date:
            raise RequiredFieldError("date", "Meeting date is required (format: YYYY-MM-DD)")
        _reject_past_date(
            date, "Cannot create a meeting with a date in the past. Please use a current or future date."
        )
        if not meeting_agenda_id and not meeting_agenda_type:
            raise RequiredFieldError("meetingAgendaId", "Either meetingAgendaId or meetingAgendaType is required")
        if meeting_agenda_type and not meeting_agenda_id:
            validate_choice(meeting_agenda_type, MEETING_AGENDA_TYPES, INVALID_AGENDA_TYPE)
        if not team_id and not leadership_team:
            raise RequiredFieldError("teamId", "Either teamId or leadershipTeam=true is required")
        user_context = await self.context.require_user_context()
        team_id = await self.context.resolve_team_id(team_id, leadership_team, required=True)

        agenda_name = name
        if meeting_agenda_type and not meeting_agenda_id:
            agenda_filter = (
                Filter()
                .equal("meetingAgendaTypeId", meeting_agenda_type)
                .equal("teamId", team_id)
                .equal("stateId", "ACTIVE")
            )
            data = await self._query(MEETING_AGENDAS_QUERY, page_variables(agenda_filter, 1))
            agendas, _ = self._connection(data, "meetingAgendas")
            if not agendas:
                raise ToolError(
                    f'No meeting agenda found with type "{meeting_agenda_type}" for the specified team. '
                    "Use getMeetingAgendas to see available agendas."
                )
            meeting_agenda_id = agendas[0]["id"]
            agenda_name = agenda_name or agendas[0].get("name")

        info_input = {
            "name": agenda_name or f"Meeting on {date}",
            "meetingAgendaId": meeting_agenda_id,
            "teamId": team_id,
            "ownerUserId": user_context.user_id,
            "companyId": user_context.company_id,
            "stateId": "ACTIVE",
            "meetingInfoStatusId": "ACTIVE",
            "meetingRepeatsId": "NEVER",
        }
        meeting_info = await self._mutate("createMeetingInfo", "meetingInfo", MEETING_INFO_FIELDS, {"meetingInfo": info_input})
        logger.info("Meeting info created", meeting_info_id=meeting_info["id"], team_id=team_id)

        meeting_input = {
            "date": date,
            "meetingInfoId": meeting_info["id"],
            "meetingStatusId": "NOT-STARTED",
            "companyId": user_context.company_id,
            "stateId": "ACTIVE",
        }
        try:
            meeting = await self._mutate("createMeeting", "meeting", MEETING_FIELDS, {"meeting": meeting_input})
        except ToolError as e:
            logger.warning("Meeting creation failed after meeting info was created", meeting_info_id=meeting_info["id"])
            return text_response(
                f"Warning: Meeting info {meeting_info['id']} was created, but creating the meeting failed: "
                f"{e.message}. The meeting info was not removed."
            )
        return success_response(
            {"success": True, "message": "Meeting created successfully", "meetingInfo": meeting_info, "meeting": meeting}
        )

    @tool("updateMeeting", "updating meeting", read_only=False)
    async def update_meeting(self, meeting_id: str, date: str | None = None, state: str | None = None) -> ToolResponse:
        """Move a meeting to another date or change its state.

        Args:
            meeting_id: Meeting to update
            date: New date (YYYY-MM-DD), today or later
            state: ACTIVE, INACTIVE or DELETED
        """
        if not meeting_id:
            raise RequiredFieldError("meetingId", "Meeting ID is required")
        await self.context.require_user_context()
        if date:
            _reject_past_date(
                date, "Cannot update a meeting to a date in the past. Please use a current or future date."
            )
        if state:
            validate_state_id(state)

        patch: dict[str, Any] = {}
        if date:
            patch["date"] = date
        if state:
            patch["stateId"] = state
        if not patch:
            raise NoUpdatesError()

        meeting = await self._mutate("updateMeeting", "meeting", "id date meetingInfoId stateId", {"id": meeting_id, "patch": patch})
        return success_response({"success": True, "message": "Meeting updated successfully", "meeting": meeting})
