"""Free-text search across entity kinds and fetch-by-URI for single resources."""

import asyncio
import re
from collections.abc import Callable
from typing import Any

import structlog

from success_mcp.errors import (
    EntityNotFoundError,
    RequiredFieldError,
    ToolResponse,
    ValidationError,
    success_response,
    text_response,
)
from success_mcp.filters import Filter
from success_mcp.helpers import full_name
from success_mcp.tools.base import ToolSet, tool
from success_mcp.tools.vto import COMPONENTS, VISIONS_QUERY

logger = structlog.get_logger()

URI_SCHEME = "success-co"
_URI_RE = re.compile(r"^success-co://(?P<resource>[A-Za-z]+)/(?P<id>.+)$")

SEARCH_HELP = (
    "I support searching for: teams, users, todos, rocks, meetings, issues, headlines, visions. "
    "Try: 'List my teams', 'Show users', 'Find todos', 'Get meetings', 'Show vision', etc."
)


def _intent(*patterns: str) -> re.Pattern[str]:
    return re.compile("|".join(f"(?:{p})" for p in patterns))


# Checked in order, the first match wins.
INTENTS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("teams", _intent(r"\b(team|teams|my team|my teams)\b", r"list.*team", r"show.*team")),
    (
        "users",
        _intent(
            r"\b(user|users|people|person|employee|employees)\b",
            r"list.*user",
            r"show.*user",
            r"list.*people",
            r"show.*people",
        ),
    ),
    ("todos", _intent(r"\b(todo|todos|task|tasks|to-do|to-dos)\b", r"(list|show|find|get).*todo")),
    ("rocks", _intent(r"\b(rock|rocks|priority|priorities)\b", r"(list|show|find|get).*rock")),
    ("meetings", _intent(r"\b(meeting|meetings|session|sessions)\b", r"(list|show|find|get).*meeting")),
    ("issues", _intent(r"\b(issue|issues|problem|problems|concern|concerns)\b", r"(list|show|find|get).*issue")),
    (
        "headlines",
        _intent(
            r"\b(headline|headlines|news|update|updates|announcement|announcements)\b",
            r"(list|show|find|get).*headline",
        ),
    ),
    (
        "visions",
        _intent(
            r"\b(vision|visions|core values|core focus|three year goals|3 year goals|marketing strategy|market strategy)\b",
            r"(show|list|find|get).*vision",
            r"leadership.*team",
            r"current.*vision",
        ),
    ),
)


def detect_intent(query: str) -> str | None:
    """Entity kind a free-text query asks for, or None."""
    q = query.lower()
    for kind, pattern in INTENTS:
        if pattern.search(q):
            return kind
    return None


def _joined(*parts: str | None) -> str:
    return " ".join(p for p in parts if p).strip()


def _user_hit(user: dict[str, Any]) -> dict[str, str]:
    return {
        "id": str(user["id"]),
        "title": full_name(user),
        "snippet": _joined(user.get("jobTitle"), user.get("desc")) or (user.get("email") or ""),
    }


def _named_hit(node: dict[str, Any], fallback: str) -> dict[str, str]:
    return {
        "id": str(node["id"]),
        "title": node.get("name") or str(node["id"]),
        "snippet": _joined(node.get("type"), node.get("desc")) or fallback,
    }


def _meeting_hit(meeting: dict[str, Any]) -> dict[str, str]:
    return {
        "id": str(meeting["id"]),
        "title": f"Meeting on {meeting.get('date')}",
        "snippet": f"{meeting.get('startTime') or ''} - {meeting.get('endTime') or ''} "
        f"(Rating: {meeting.get('averageRating') or 'N/A'})",
    }


# kind -> (connection field, selection, hit builder)
LIST_SEARCHES: dict[str, tuple[str, str, Callable[[dict[str, Any]], dict[str, str]]]] = {
    "teams": (
        "teams",
        "id name desc",
        lambda t: {"id": str(t["id"]), "title": t.get("name") or str(t["id"]), "snippet": t.get("desc") or ""},
    ),
    "users": ("users", "id firstName lastName jobTitle desc email", _user_hit),
    "todos": ("todos", "id name desc type priorityNo", lambda t: _named_hit(t, f"Priority: {t.get('priorityNo')}")),
    "rocks": ("rocks", "id name desc type dueDate", lambda r: _named_hit(r, f"Due: {r.get('dueDate')}")),
    "meetings": ("meetings", "id date startTime endTime averageRating", _meeting_hit),
    "issues": ("issues", "id name desc type priorityNo", lambda i: _named_hit(i, f"Priority: {i.get('priorityNo')}")),
    "headlines": (
        "headlines",
        "id name desc headlineStatusId",
        lambda h: {
            "id": str(h["id"]),
            "title": h.get("name") or str(h["id"]),
            "snippet": h.get("desc") or f"Status: {h.get('headlineStatusId')}",
        },
    ),
}

VISION_HITS: dict[str, tuple[str, Callable[[dict[str, Any]], dict[str, str]]]] = {
    "visionCoreValues": (
        "core_value",
        lambda cv: {"title": f"Core Value: {cv.get('name')}", "snippet": f"Vision ID: {cv.get('visionId')}"},
    ),
    "visionCoreFocusTypes": (
        "core_focus",
        lambda cf: {
            "title": f"Core Focus: {cf.get('name')}",
            "snippet": cf.get("desc") or cf.get("coreFocusName") or f"Type: {cf.get('type')}",
        },
    ),
    "visionThreeYearGoals": (
        "three_year_goal",
        lambda g: {
            "title": f"3-Year Goal: {g.get('name')}",
            "snippet": f"Target Date: {g.get('futureDate')} | Type: {g.get('type')}",
        },
    ),
    "visionMarketStrategies": (
        "market_strategy",
        lambda s: {
            "title": f"Marketing Strategy: {s.get('name')}",
            "snippet": f"Ideal Customer: {s.get('idealCustomer')} | Value Prop: {s.get('uniqueValueProposition')}",
        },
    ),
}

# URI resource type -> (single-entity query field, selection)
RESOURCES: dict[str, tuple[str, str]] = {
    "teams": ("team", "id name desc badgeUrl color isLeadership createdAt stateId companyId"),
    "users": (
        "user",
        "id userName firstName lastName jobTitle desc avatar email userPermissionId userStatusId "
        "languageId timeZone createdAt stateId companyId",
    ),
    "todos": (
        "todo",
        "id todoStatusId name desc teamId userId statusUpdatedAt type dueDate priorityNo createdAt "
        "stateId companyId meetingId",
    ),
    "rocks": ("rock", "id rockStatusId name desc statusUpdatedAt type dueDate createdAt stateId companyId"),
    "meetings": (
        "meeting",
        "id meetingInfoId date startTime endTime averageRating meetingStatusId createdAt stateId companyId",
    ),
    "issues": (
        "issue",
        "id issueStatusId name desc teamId userId type priorityNo priorityOrder statusUpdatedAt meetingId "
        "createdAt stateId companyId",
    ),
    "headlines": (
        "headline",
        "id name desc userId teamId headlineStatusId statusUpdatedAt meetingId createdAt stateId companyId",
    ),
    "milestones": (
        "milestone",
        "id rockId name userId dueDate milestoneStatusId createdAt stateId companyId",
    ),
    "visions": ("vision", "id teamId isLeadership createdAt stateId companyId"),
    "visionCoreValues": ("visionCoreValue", "id name cascadeAll visionId createdAt stateId companyId"),
    "visionCoreFocusTypes": (
        "visionCoreFocusType",
        "id name coreFocusName desc src type visionId cascadeAll createdAt stateId companyId",
    ),
    "visionThreeYearGoals": (
        "visionThreeYearGoal",
        "id name futureDate cascadeAll visionId type createdAt stateId companyId",
    ),
    "visionMarketStrategies": (
        "visionMarketStrategy",
        "id name cascadeAll visionId idealCustomer idealCustomerDesc provenProcess provenProcessDesc "
        "guarantee guaranteeDesc uniqueValueProposition showProvenProcess showGuarantee isCustom "
        "createdAt stateId companyId",
    ),
}


def parse_resource_uri(uri: str) -> tuple[str, str]:
    """Split ``success-co://{resourceType}/{id}`` into its parts.

    Raises:
        ValidationError: If the URI is malformed or names an unknown resource type
    """
    match = _URI_RE.match(uri.strip())
    if not match:
        raise ValidationError(
            message=f"Invalid resource id '{uri}'. Expected {URI_SCHEME}://{{resourceType}}/{{id}}, "
            f"e.g. {URI_SCHEME}://todos/123"
        )
    resource = match.group("resource")
    if resource not in RESOURCES:
        raise ValidationError(
            message=f"Unknown resource type '{resource}'. Supported: {', '.join(RESOURCES)}"
        )
    return resource, match.group("id")


def resource_uri(resource: str, object_id: str) -> str:
    return f"{URI_SCHEME}://{resource}/{object_id}"


class SearchTools(ToolSet):
    """Entry points for clients that only know search and fetch."""

    async def _list_hits(self, kind: str) -> ToolResponse:
        field, selection, to_hit = LIST_SEARCHES[kind]
        type_name = f"{field[0].upper()}{field[1:-1]}Filter"
        document = f"""
        query Search($filter: {type_name}) {{
          {field}(filter: $filter) {{
            nodes {{ {selection} }}
            totalCount
          }}
        }}
        """
        data = await self._query(document, {"filter": Filter().equal("stateId", "ACTIVE").build()})
        nodes, total = self._connection(data, field)
        hits = []
        for node in nodes:
            hit = to_hit(node)
            hit["uri"] = resource_uri(kind, hit["id"])
            hits.append(hit)
        return success_response({"kind": kind, "totalCount": total, "hits": hits})

    async def _vision_hits(self) -> ToolResponse:
        data = await self._query(
            VISIONS_QUERY, {"filter": Filter().equal("stateId", "ACTIVE").equal("isLeadership", True).build()}
        )
        visions, _ = self._connection(data, "visions")
        if not visions:
            return success_response(
                {"kind": "visions", "totalCount": 0, "hits": [], "message": "No leadership team visions found"}
            )
        vision = visions[0]

        component_filter = {"filter": Filter().equal("stateId", "ACTIVE").equal("visionId", vision["id"]).build()}
        results = await asyncio.gather(*(self.context.execute(query, component_filter) for _, query, _ in COMPONENTS))
        hits = []
        for (label, _, key), result in zip(COMPONENTS, results):
            if not result.ok:
                logger.warning("Skipping vision component in search", component=label, error=result.error)
                continue
            hit_type, to_hit = VISION_HITS[key]
            for node in self._connection(result.data or {}, key)[0]:
                hits.append(
                    {"id": str(node["id"]), **to_hit(node), "type": hit_type, "uri": resource_uri(key, str(node["id"]))}
                )
        return success_response(
            {
                "kind": "visions",
                "totalCount": len(hits),
                "hits": hits,
                "visionId": vision["id"],
                "teamId": vision.get("teamId"),
                "isLeadership": vision.get("isLeadership"),
            }
        )

    @tool("search", "searching")
    async def search(self, query: str) -> ToolResponse:
        """Search Success.co with a short natural-language request such as "list my teams",
        "show rocks" or "current vision". Each hit carries a uri usable with fetch.

        Args:
            query: What to look for
        """
        if not query or not query.strip():
            raise RequiredFieldError("query")
        kind = detect_intent(query)
        logger.info("Search", query=query, kind=kind)
        if kind is None:
            return text_response(SEARCH_HELP)
        if kind == "visions":
            return await self._vision_hits()
        return await self._list_hits(kind)

    @tool("fetch", "fetching resource")
    async def fetch(self, id: str) -> ToolResponse:
        """Fetch one resource by URI, e.g. success-co://rocks/123.

        Args:
            id: Resource URI returned by search
        """
        if not id:
            raise RequiredFieldError("id")
        resource, object_id = parse_resource_uri(id)
        field, selection = RESOURCES[resource]
        document = f"""
        query Fetch($id: ID!) {{
          {field}(id: $id) {{ {selection} }}
        }}
        """
        data = await self._query(document, {"id": object_id})
        node = data.get(field)
        if not node:
            raise EntityNotFoundError(field[0].upper() + field[1:], object_id)
        return success_response({"uri": resource_uri(resource, object_id), "type": resource, **node})
