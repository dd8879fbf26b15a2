"""Tests for search and fetch."""

import pytest
from conftest import GraphQLRouter, connection, json_of, text_of

from success_mcp.context import ToolContext
from success_mcp.errors import ValidationError
from success_mcp.models import GraphQLResult
from success_mcp.tools.search import SEARCH_HELP, SearchTools, detect_intent, parse_resource_uri, resource_uri


@pytest.mark.parametrize(
    "query, kind",
    [
        ("List my teams", "teams"),
        ("show people in sales", "users"),
        ("Find todos", "todos"),
        ("what are our priorities", "rocks"),
        ("Get meetings", "meetings"),
        ("any open problems?", "issues"),
        ("latest news", "headlines"),
        ("show our core values", "visions"),
        ("current vision", "visions"),
        ("leadership team", "teams"),
        ("weather tomorrow", None),
    ],
)
def test_detect_intent(query, kind) -> None:
    """Test which entity kind a query maps to."""
    assert detect_intent(query) == kind


def test_parse_resource_uri() -> None:
    """Test splitting a resource URI."""
    assert parse_resource_uri("success-co://rocks/r-1") == ("rocks", "r-1")
    assert resource_uri("rocks", "r-1") == "success-co://rocks/r-1"


def test_parse_resource_uri_malformed() -> None:
    """Test that a bare id is rejected."""
    with pytest.raises(ValidationError, match="Invalid resource id '123'"):
        parse_resource_uri("123")


def test_parse_resource_uri_unknown_type() -> None:
    """Test that unknown resource types are rejected."""
    with pytest.raises(ValidationError, match="Unknown resource type 'widgets'"):
        parse_resource_uri("success-co://widgets/1")


@pytest.mark.asyncio
async def test_search_without_intent(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that an unrecognised query returns the help text."""
    text = text_of(await SearchTools(context).search("weather tomorrow"))

    assert text == SEARCH_HELP
    assert router.calls == []


@pytest.mark.asyncio
async def test_search_requires_query(context: ToolContext) -> None:
    """Test that an empty query is rejected."""
    assert text_of(await SearchTools(context).search("  ")) == "Error: query is required"


@pytest.mark.asyncio
async def test_search_todos(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that list hits carry a title, snippet and fetchable uri."""
    router.on(
        "todos(filter",
        {"todos": connection([{"id": "t1", "name": "Call Bob", "desc": None, "type": None, "priorityNo": 2}])},
    )

    data = json_of(await SearchTools(context).search("find todos"))

    assert data["kind"] == "todos"
    assert data["hits"] == [
        {"id": "t1", "title": "Call Bob", "snippet": "Priority: 2", "uri": "success-co://todos/t1"}
    ]
    query, variables = router.calls[0]
    assert "$filter: TodoFilter" in query
    assert variables == {"filter": {"stateId": {"equalTo": "ACTIVE"}}}


@pytest.mark.asyncio
async def test_search_users(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that user hits use the full name and job title."""
    router.on(
        "users(filter",
        {"users": connection([{"id": "u1", "firstName": "Ada", "lastName": "Lovelace", "jobTitle": "CEO"}])},
    )

    data = json_of(await SearchTools(context).search("show users"))

    assert data["hits"][0]["title"] == "Ada Lovelace"
    assert data["hits"][0]["snippet"] == "CEO"


@pytest.mark.asyncio
async def test_search_visions(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that vision hits cover the components and skip failed ones."""
    router.on("query Visions(", {"visions": connection([{"id": "vis1", "teamId": "lead", "isLeadership": True}])})
    router.on("query VisionCoreValues(", {"visionCoreValues": connection([{"id": "cv1", "name": "Integrity", "visionId": "vis1"}])})
    router.on("query VisionCoreFocusTypes", GraphQLResult(ok=False, error="GraphQL error: denied"))
    router.on("query VisionThreeYearGoals", {"visionThreeYearGoals": connection([])})
    router.on(
        "query VisionMarketStrategies",
        {"visionMarketStrategies": connection([{"id": "ms1", "name": "SMB", "idealCustomer": "Small firms"}])},
    )

    data = json_of(await SearchTools(context).search("show vision"))

    assert data["visionId"] == "vis1"
    assert [(h["type"], h["title"]) for h in data["hits"]] == [
        ("core_value", "Core Value: Integrity"),
        ("market_strategy", "Marketing Strategy: SMB"),
    ]
    assert data["hits"][0]["uri"] == "success-co://visionCoreValues/cv1"


@pytest.mark.asyncio
async def test_search_visions_none(context: ToolContext, router: GraphQLRouter) -> None:
    """Test the message when there is no leadership vision."""
    router.on("query Visions(", {"visions": connection([])})

    data = json_of(await SearchTools(context).search("current vision"))

    assert data["message"] == "No leadership team visions found"
    assert data["hits"] == []


@pytest.mark.asyncio
async def test_fetch(context: ToolContext, router: GraphQLRouter) -> None:
    """Test fetching a resource by URI."""
    router.on("query Fetch", {"rock": {"id": "r1", "name": "Launch"}})

    data = json_of(await SearchTools(context).fetch("success-co://rocks/r1"))

    assert data == {"uri": "success-co://rocks/r1", "type": "rocks", "id": "r1", "name": "Launch"}
    query, variables = router.calls[0]
    assert "rock(id: $id)" in query
    assert variables == {"id": "r1"}


@pytest.mark.asyncio
async def test_fetch_not_found(context: ToolContext, router: GraphQLRouter) -> None:
    """Test fetching a resource that does not exist."""
    router.on("query Fetch", {"milestone": None})

    text = text_of(await SearchTools(context).fetch("success-co://milestones/m9"))

    assert text == "Error: Milestone not found with ID: m9"


@pytest.mark.asyncio
async def test_fetch_bad_uri(context: ToolContext, router: GraphQLRouter) -> None:
    """Test that a malformed URI is reported without querying."""
    text = text_of(await SearchTools(context).fetch("rocks/1"))

    assert text.startswith("Error: Invalid resource id 'rocks/1'")
    assert router.calls == []
