"""Tests for MCP server wiring."""

import inspect
from unittest.mock import MagicMock

import pytest
from conftest import GraphQLRouter, connection

from success_mcp.context import ToolContext
from success_mcp.errors import text_response
from success_mcp.server import _handler, build_server, camel_case
from success_mcp.tools import ALL_TOOLSETS
from success_mcp.tools.base import ToolSpec
from success_mcp.tools.rocks import RockTools
from success_mcp.tools.teams import TeamTools

EXPECTED_TOOLS = {
    "search",
    "fetch",
    "getTeams",
    "getUsers",
    "getUsersOnTeams",
    "getCurrentUser",
    "getTodos",
    "createTodo",
    "updateTodo",
    "deleteTodo",
    "getRocks",
    "createRock",
    "updateRock",
    "deleteRock",
    "getMilestones",
    "createMilestone",
    "updateMilestone",
    "deleteMilestone",
    "getIssues",
    "createIssue",
    "updateIssue",
    "deleteIssue",
    "getHeadlines",
    "createHeadline",
    "updateHeadline",
    "deleteHeadline",
    "getMeetings",
    "getMeetingInfos",
    "getMeetingAgendas",
    "getMeetingDetails",
    "createMeeting",
    "updateMeeting",
    "getScorecardMeasurables",
    "createScorecardMeasurableEntry",
    "updateScorecardMeasurableEntry",
    "createScorecardMeasurable",
    "updateScorecardMeasurable",
    "deleteScorecardMeasurable",
    "getLeadershipVTO",
    "getAccountabilityChart",
    "getPeopleAnalyzerSessions",
    "getOrgCheckups",
    "getComments",
    "createComment",
    "updateComment",
    "deleteComment",
}


def test_tool_names_are_unique(context: ToolContext) -> None:
    """Test that no two tool methods share a name."""
    names = [spec.name for cls in ALL_TOOLSETS for spec, _ in cls(context).tools()]
    assert len(names) == len(set(names))
    assert set(names) == EXPECTED_TOOLS


@pytest.mark.asyncio
async def test_build_server_registers_tools(context: ToolContext) -> None:
    """Test that every tool is registered with its hints and parameters."""
    mcp = build_server(context)

    tools = {t.name: t for t in await mcp.list_tools()}

    assert set(tools) == EXPECTED_TOOLS
    assert tools["getTeams"].annotations.readOnlyHint is True
    assert tools["deleteComment"].annotations.destructiveHint is True
    assert tools["createTodo"].annotations.readOnlyHint is False
    assert "teamId" in tools["getTodos"].inputSchema["properties"]
    assert tools["fetch"].inputSchema["required"] == ["id"]


def test_handler_signature(context: ToolContext) -> None:
    """Test that the handler exposes the method's parameters and returns text."""
    method = TeamTools(context).get_teams
    handler = _handler(context, ToolSpec("getTeams"), method)

    signature = inspect.signature(handler)
    assert "self" not in signature.parameters
    assert "keyword" in signature.parameters
    assert signature.return_annotation is str
    assert handler.__name__ == "getTeams"


@pytest.mark.asyncio
async def test_handler_logs_result(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that a successful call is written to the debug log."""
    router.on("query Teams", {"teams": connection([{"id": "t1", "name": "Sales"}])})
    context.debug_log = MagicMock()
    handler = _handler(context, ToolSpec("getTeams"), TeamTools(context).get_teams)

    text = await handler(first=5)

    assert '"t1"' in text
    context.debug_log.tool_start.assert_called_once_with("getTeams", {"first": 5})
    context.debug_log.tool_end.assert_called_once_with("getTeams", result=text)


@pytest.mark.asyncio
async def test_handler_logs_error(context: ToolContext) -> None:
    """Test that an error response is logged as an error."""
    context.debug_log = MagicMock()

    async def failing() -> dict:
        return text_response("Error: nope")

    handler = _handler(context, ToolSpec("broken"), failing)

    assert await handler() == "Error: nope"
    context.debug_log.tool_end.assert_called_once_with("broken", error="Error: nope")


@pytest.mark.parametrize(
    "name, public",
    [("team_id", "teamId"), ("leadership_team", "leadershipTeam"), ("meeting_agenda_type_id", "meetingAgendaTypeId"), ("first", "first")],
)
def test_camel_case(name: str, public: str) -> None:
    """Test the public spelling of parameter names."""
    assert camel_case(name) == public


@pytest.mark.asyncio
async def test_schema_uses_camel_case_names(context: ToolContext) -> None:
    """Test that tool schemas expose the names used in error messages."""
    tools = {t.name: t for t in await build_server(context).list_tools()}

    properties = tools["createRock"].inputSchema["properties"]
    assert {"teamId", "leadershipTeam", "dueDate", "userId"} <= set(properties)
    assert "team_id" not in properties
    assert tools["createRock"].inputSchema["required"] == ["name"]
    assert "    teamId:" in tools["createRock"].description


@pytest.mark.asyncio
async def test_handler_maps_camel_case_arguments(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that camelCase arguments reach the tool under their Python names."""
    router.on("query Rocks", {"rocks": connection([])})
    router.on("query TeamsOnRocks", {"teamsOnRocks": connection([])})
    context.debug_log = MagicMock()
    handler = _handler(context, ToolSpec("getRocks"), RockTools(context).get_rocks)

    text = await handler(teamId="t1", stateId="ACTIVE")

    assert not text.startswith("Error")
    assert router.variables_for("query Rocks")[0]["filter"]["stateId"] == {"equalTo": "ACTIVE"}
    assert router.variables_for("query TeamsOnRocks")[0]["filter"]["teamId"] == {"equalTo": "t1"}
    context.debug_log.tool_start.assert_called_once_with("getRocks", {"teamId": "t1", "stateId": "ACTIVE"})


@pytest.mark.asyncio
async def test_missing_team_message_matches_schema(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that the missing-team error names parameters the schema accepts."""
    handler = _handler(context, ToolSpec("createRock"), RockTools(context).create_rock)

    text = await handler(name="Launch")

    assert "'teamId'" in text and "'leadershipTeam'" in text
    assert {"teamId", "leadershipTeam"} <= set(inspect.signature(handler).parameters)
    assert router.calls == []
