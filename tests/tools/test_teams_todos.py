"""Tests for team and todo tools."""

from datetime import datetime, timezone

import pytest
from conftest import GraphQLRouter, connection, json_of, text_of

from success_mcp.context import ToolContext
from success_mcp.tools.teams import TeamTools
from success_mcp.tools.todos import TodoTools, build_todo_filter


@pytest.mark.asyncio
async def test_get_teams(context: ToolContext, router: GraphQLRouter) -> None:
    """Test team listing with a keyword filter."""
    router.on(
        "query Teams",
        {"teams": connection([{"id": "t1", "name": "Leadership", "desc": None, "isLeadership": True, "stateId": "ACTIVE"}])},
    )

    data = json_of(await TeamTools(context).get_teams(keyword="lead", first=10))

    assert data["totalCount"] == 1
    assert data["results"][0] == {
        "id": "t1",
        "title": "Leadership",
        "description": "",
        "color": None,
        "status": "ACTIVE",
        "isLeadership": True,
    }
    assert router.variables_for("query Teams")[0] == {
        "filter": {"stateId": {"equalTo": "ACTIVE"}, "name": {"includesInsensitive": "lead"}},
        "first": 10,
    }


@pytest.mark.asyncio
async def test_invalid_state_is_rejected_before_any_call(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that invalid enums never reach the network."""
    response = await TeamTools(context).get_teams(state_id="ARCHIVED")

    assert text_of(response) == "Error: stateId must be one of: ACTIVE, INACTIVE, DELETED"
    assert router.calls == []


def test_all_status_adds_no_status_clause() -> None:
    """Test that ALL leaves todoStatusId out of the filter."""
    built = build_todo_filter("ACTIVE", "ALL").build()
    assert built == {"stateId": {"equalTo": "ACTIVE"}}


def test_overdue_filter_bounds_now() -> None:
    """Test that OVERDUE compares the due date to the current time."""
    before = datetime.now(timezone.utc)
    built = build_todo_filter("ACTIVE", "OVERDUE").build()
    after = datetime.now(timezone.utc)

    assert built["todoStatusId"] == {"equalTo": "TODO"}
    cutoff = datetime.fromisoformat(built["dueDate"]["lessThan"].replace("Z", "+00:00"))
    assert before.replace(microsecond=before.microsecond // 1000 * 1000) <= cutoff <= after


def test_completion_range_forces_complete() -> None:
    """Test that completion bounds restrict ALL to completed todos."""
    built = build_todo_filter("ACTIVE", "ALL", completed_after="2024-01-01", from_meetings=True).build()

    assert built["todoStatusId"] == {"equalTo": "COMPLETE"}
    assert built["statusUpdatedAt"] == {"greaterThanOrEqualTo": "2024-01-01"}
    assert built["meetingId"] == {"isNull": False}


@pytest.mark.asyncio
async def test_get_todos_for_leadership_team(context: ToolContext, router: GraphQLRouter, leadership) -> None:
    """Test that the leadership shortcut resolves to a team filter."""
    leadership("lead")
    router.on("query Todos", {"todos": connection([{"id": "1", "name": "Call", "todoStatusId": "TODO"}], total=7)})

    data = json_of(await TodoTools(context).get_todos(leadership_team=True))

    assert data["totalCount"] == 7
    assert data["results"][0]["status"] == "TODO"
    assert router.variables_for("query Todos")[0]["filter"]["teamId"] == {"equalTo": "lead"}


@pytest.mark.asyncio
async def test_missing_leadership_team(context: ToolContext, router: GraphQLRouter, leadership) -> None:
    """Test the error when no leadership team exists, after exactly one lookup."""
    leadership(None)

    response = await TodoTools(context).get_todos(leadership_team=True)

    assert text_of(response).startswith("Error: Could not find leadership team")
    assert len(router.calls) == 1


@pytest.mark.asyncio
async def test_invalid_todo_status(context: ToolContext) -> None:
    """Test status validation."""
    response = await TodoTools(context).get_todos(status="LATE")
    assert "must be" in text_of(response)


@pytest.mark.asyncio
async def test_create_todo(context: ToolContext, router: GraphQLRouter) -> None:
    """Test the createTodo input."""
    router.on("createTodo(", {"createTodo": {"todo": {"id": "td1", "name": "Ship"}}})

    data = json_of(await TodoTools(context).create_todo(name="Ship", team_id="t1", priority="High", due_date="2024-06-01"))

    assert data["todo"]["id"] == "td1"
    todo_input = router.variables_for("createTodo(")[0]["input"]["todo"]
    assert todo_input["priorityNo"] == 1
    assert todo_input["todoStatusId"] == "TODO"
    assert todo_input["userId"] == "user-1"
    assert todo_input["companyId"] == "company-1"
    assert todo_input["dueDate"] == "2024-06-01"


@pytest.mark.asyncio
async def test_create_todo_requires_team(context: ToolContext) -> None:
    """Test that a team is required."""
    response = await TodoTools(context).create_todo(name="Ship")
    assert text_of(response).startswith("Error: Team ID is required")


@pytest.mark.asyncio
async def test_update_todo_without_changes(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that an empty update is rejected."""
    response = await TodoTools(context).update_todo(todo_id="td1")

    assert text_of(response).startswith("Error: No updates specified")
    assert router.calls == []


@pytest.mark.asyncio
async def test_delete_todo_soft_deletes(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that delete sets stateId to DELETED."""
    router.on("updateTodo(", {"updateTodo": {"todo": {"id": "td1", "stateId": "DELETED"}}})

    data = json_of(await TodoTools(context).delete_todo(todo_id="td1"))

    assert data["todo"]["stateId"] == "DELETED"
    assert router.variables_for("updateTodo(")[0] == {"input": {"id": "td1", "patch": {"stateId": "DELETED"}}}
