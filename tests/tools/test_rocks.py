"""Tests for rock tools and team-link reconciliation."""

from unittest.mock import AsyncMock

import pytest
from conftest import GraphQLRouter, connection, json_of, text_of

from success_mcp.context import ToolContext
from success_mcp.models import GraphQLResult
from success_mcp.tools.rocks import RockTools, plan_team_links

ROCK = {"id": "r1", "name": "Launch", "rockStatusId": "ONTRACK", "dueDate": "2024-06-30", "type": "company"}


def link_created(variables: dict) -> dict:
    team_id = variables["input"]["teamsOnRock"]["teamId"]
    return {"createTeamsOnRock": {"teamsOnRock": {"id": f"link-{team_id}", "teamId": team_id}}}


def link_updated(variables: dict) -> dict:
    return {"updateTeamsOnRock": {"teamsOnRock": {"id": variables["input"]["id"]}}}


def test_plan_team_links() -> None:
    """Test reconciliation of {A: ACTIVE, B: DELETED} towards {B, C}."""
    existing = [
        {"id": "la", "teamId": "A", "stateId": "ACTIVE"},
        {"id": "lb", "teamId": "B", "stateId": "DELETED"},
    ]

    plan = plan_team_links(existing, ["B", "C"])

    assert plan.deactivate == [("A", "la")]
    assert plan.reactivate == [("B", "lb")]
    assert plan.create == ["C"]
    assert plan.unchanged == []


def test_plan_keeps_active_desired_links() -> None:
    """Test that active links to desired teams are left alone."""
    plan = plan_team_links([{"id": "la", "teamId": "A", "stateId": "ACTIVE"}], ["A"])

    assert plan.unchanged == ["A"]
    assert not plan.deactivate and not plan.reactivate and not plan.create


@pytest.mark.asyncio
async def test_update_rock_reconciles_links(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that update deactivates A, reactivates B and creates C."""
    router.on(
        "query TeamsOnRocks",
        {
            "teamsOnRocks": connection(
                [
                    {"id": "la", "rockId": "r1", "teamId": "A", "stateId": "ACTIVE"},
                    {"id": "lb", "rockId": "r1", "teamId": "B", "stateId": "DELETED"},
                ]
            )
        },
    )
    router.on("mutation UpdateTeamsOnRock", link_updated)
    router.on("mutation CreateTeamsOnRock", link_created)

    data = json_of(await RockTools(context).update_rock(rock_id="r1", team_id="B,C"))

    assert data["message"] == (
        "Rock updated successfully (reassigned to 2 teams, 1 team link(s) reactivated from DELETED)"
    )
    updates = router.variables_for("mutation UpdateTeamsOnRock")
    assert updates == [
        {"input": {"id": "la", "patch": {"stateId": "DELETED"}}},
        {"input": {"id": "lb", "patch": {"stateId": "ACTIVE"}}},
    ]
    created = router.variables_for("mutation CreateTeamsOnRock")
    assert [v["input"]["teamsOnRock"]["teamId"] for v in created] == ["C"]


@pytest.mark.asyncio
async def test_update_rock_partial_link_failure(context: ToolContext, router: GraphQLRouter) -> None:
    """Test the warning listing which links succeeded and which failed."""
    router.on("query TeamsOnRocks", {"teamsOnRocks": connection([])})
    router.on(
        "mutation CreateTeamsOnRock",
        lambda v: link_created(v)
        if v["input"]["teamsOnRock"]["teamId"] == "A"
        else GraphQLResult(ok=False, error="GraphQL error: denied"),
    )

    text = text_of(await RockTools(context).update_rock(rock_id="r1", team_id="A,B"))

    assert text.startswith("Rock updated but some team assignments failed:")
    assert "- Successfully linked to: A" in text
    assert "- Failed to link to: B (GraphQL error: denied)" in text


@pytest.mark.asyncio
async def test_update_rock_all_links_fail(context: ToolContext, router: GraphQLRouter) -> None:
    """Test the error when no link could be made."""
    router.on("query TeamsOnRocks", {"teamsOnRocks": connection([])})
    router.on("mutation CreateTeamsOnRock", GraphQLResult(ok=False, error="GraphQL error: denied"))

    text = text_of(await RockTools(context).update_rock(rock_id="r1", team_id="A"))

    assert text == "Error: Rock updated but all team assignments failed: A (GraphQL error: denied)"


@pytest.mark.asyncio
async def test_update_rock_requires_changes(context: ToolContext) -> None:
    """Test that an update with nothing to change is rejected."""
    assert text_of(await RockTools(context).update_rock(rock_id="r1")).startswith("Error: No updates specified")


@pytest.mark.asyncio
async def test_create_rock_defaults_due_date_to_quarter_end(context: ToolContext, router: GraphQLRouter) -> None:
    """Test the default due date and multiple team links."""
    context.get_quarter_end_date = AsyncMock(return_value="2024-06-30")
    router.on("createRock(", lambda v: {"createRock": {"rock": {**ROCK, "dueDate": v["input"]["rock"]["dueDate"]}}})
    router.on("mutation CreateTeamsOnRock", link_created)

    data = json_of(await RockTools(context).create_rock(name="Launch", team_id="t1, t2", type="Personal"))

    assert data["message"] == "Rock created successfully and linked to 2 teams (t1, t2)"
    assert data["rock"]["dueDate"] == "2024-06-30"
    rock_input = router.variables_for("createRock(")[0]["input"]["rock"]
    assert rock_input["type"] == "personal"
    assert rock_input["rockStatusId"] == "ONTRACK"


@pytest.mark.asyncio
async def test_create_rock_without_due_date_or_quarters(context: ToolContext) -> None:
    """Test the error when the quarter end cannot be determined."""
    text = text_of(await RockTools(context).create_rock(name="Launch", team_id="t1"))
    assert text == "Error: Could not determine default due date. Please provide a due date explicitly."


@pytest.mark.asyncio
async def test_create_rock_requires_team(context: ToolContext) -> None:
    """Test the team requirement message."""
    text = text_of(await RockTools(context).create_rock(name="Launch"))
    assert text.startswith("Error: Rock must be assigned to a team.")


@pytest.mark.asyncio
async def test_get_rocks_by_team(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that a team filter keeps only linked rocks and adds teamIds."""
    router.on("query Rocks", {"rocks": connection([ROCK, {**ROCK, "id": "r2"}])})
    router.on(
        "query TeamsOnRocks",
        lambda v: {
            "teamsOnRocks": connection(
                [{"id": "l1", "rockId": "r1", "teamId": "t1"}, {"id": "l2", "rockId": "r1", "teamId": "t2"}]
                if "rockId" in v["filter"]
                else [{"id": "l1", "rockId": "r1", "teamId": "t1"}]
            )
        },
    )

    data = json_of(await RockTools(context).get_rocks(team_id="t1"))

    assert data["totalCount"] == 1
    assert data["results"][0]["teamIds"] == ["t1", "t2"]


@pytest.mark.asyncio
async def test_invalid_rock_status(context: ToolContext) -> None:
    """Test rock status validation."""
    text = text_of(await RockTools(context).get_rocks(rock_status_id="DONE"))
    assert text == "Error: Invalid rock status - must be ONTRACK, OFFTRACK, COMPLETE, or INCOMPLETE"


def test_plan_creates_link_for_inactive_team() -> None:
    """Test that an INACTIVE link is neither kept nor reactivated."""
    existing = [
        {"id": "la", "teamId": "A", "stateId": "INACTIVE"},
        {"id": "lb", "teamId": "B", "stateId": "INACTIVE"},
    ]

    plan = plan_team_links(existing, ["A"])

    assert plan.create == ["A"]
    assert plan.reactivate == [] and plan.unchanged == [] and plan.deactivate == []


def test_plan_prefers_active_link_of_a_team() -> None:
    """Test that a team with an active and a deleted link counts as linked."""
    existing = [
        {"id": "la1", "teamId": "A", "stateId": "ACTIVE"},
        {"id": "la2", "teamId": "A", "stateId": "DELETED"},
    ]

    plan = plan_team_links(existing, ["A"])

    assert plan.unchanged == ["A"]
    assert plan.reactivate == []


@pytest.mark.asyncio
@pytest.mark.parametrize("method", ["create_rock", "update_rock"])
async def test_separator_only_team_id_is_rejected(context: ToolContext, router: GraphQLRouter, method: str) -> None:
    """Test that a team id made only of separators is rejected before any mutation."""
    tools = RockTools(context)
    kwargs = {"name": "Launch"} if method == "create_rock" else {"rock_id": "r1"}

    text = text_of(await getattr(tools, method)(team_id=" , ,", **kwargs))

    assert text == "Error: teamId must contain at least one team ID"
    assert router.calls == []
