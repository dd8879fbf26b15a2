"""Accountability chart: the primary org chart rendered as an indented seat tree."""

import asyncio
import re
from datetime import date
from typing import Any

import structlog

from success_mcp.errors import ToolError, ToolResponse, text_response
from success_mcp.filters import Filter
from success_mcp.helpers import full_name, parse_id_list, validate_state_id
from success_mcp.models import Seat
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

BATCH_SIZE = 50
_DIGITS_RE = re.compile(r"^\d+$")

ORG_CHARTS_QUERY = """
query OrgCharts($filter: OrgChartFilter) {
  orgCharts(filter: $filter) {
    nodes { id name description isPrimaryChart userId companyId createdAt updatedAt }
    totalCount
  }
}
"""

SEATS_QUERY = """
query OrgChartSeats($filter: OrgChartSeatFilter) {
  orgChartSeats(filter: $filter) {
    nodes { id name parentId order holders orgChartId createdAt updatedAt }
    totalCount
  }
}
"""

ROLES_QUERY = """
query OrgChartRoles($filter: OrgChartRolesResponsibilityFilter) {
  orgChartRolesResponsibilities(filter: $filter) {
    nodes { id orgChartSeatId name description order createdAt updatedAt }
  }
}
"""

HOLDERS_QUERY = """
query SeatHolders($filter: UserFilter) {
  users(filter: $filter) {
    nodes { id firstName lastName email jobTitle }
  }
}
"""


def batched(ids: list[str], size: int = BATCH_SIZE) -> list[list[str]]:
    return [ids[i : i + size] for i in range(0, len(ids), size)]


def is_meaningful_role(name: str | None) -> bool:
    """False for blank, very short or purely numeric role names."""
    cleaned = (name or "").strip()
    return len(cleaned) > 2 and not _DIGITS_RE.match(cleaned)


def dedupe_roles(roles: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Meaningful roles in order, keeping the first of each (name, description) pair."""
    seen = set()
    unique = []
    for role in roles:
        key = (role.get("name"), role.get("description") or "")
        if key in seen or not is_meaningful_role(role.get("name")):
            continue
        seen.add(key)
        unique.append(role)
    return unique


def build_seat_tree(nodes: list[dict[str, Any]], roles_by_seat: dict[str, list[dict[str, Any]]]) -> list[Seat]:
    """Link flat seats into trees via parentId and assign levels.

    Seats whose parent is missing are roots. Seats caught in a parent cycle
    are also returned as roots so none are lost.
    """
    seats = {
        node["id"]: Seat(
            id=node["id"],
            name=node.get("name") or "",
            parent_id=node.get("parentId"),
            order=node.get("order") or 0,
            holders=parse_id_list(node.get("holders")),
            roles=sorted(roles_by_seat.get(node["id"], []), key=lambda r: r.get("order") or 0),
        )
        for node in nodes
    }
    for seat in seats.values():
        parent = seats.get(seat.parent_id) if seat.parent_id else None
        if parent is not None:
            parent.children.append(seat)
    for seat in seats.values():
        seat.children.sort(key=lambda s: s.order)

    roots = sorted(
        (s for s in seats.values() if not s.parent_id or s.parent_id not in seats), key=lambda s: s.order
    )
    placed: set[str] = set()

    def assign(seat: Seat, level: int) -> None:
        if seat.id in placed:
            return
        placed.add(seat.id)
        seat.level = level
        for child in seat.children:
            assign(child, level + 1)

    for root in roots:
        assign(root, 0)
    for seat in sorted(seats.values(), key=lambda s: s.order):
        if seat.id not in placed:
            logger.warning("Seat is part of a parent cycle", seat_id=seat.id)
            seat.children = [c for c in seat.children if c.id not in placed]
            roots.append(seat)
            assign(seat, 0)
    return roots


def _render_seat(seat: Seat, users: dict[str, dict[str, Any]], lines: list[str], seen: set[str]) -> None:
    if seat.id in seen:
        return
    seen.add(seat.id)
    indent = "  " * seat.level
    lines.append(f"{indent}### {seat.name}")
    if seat.holders:
        lines.append(f"{indent}**Seat Holders:**")
        for holder_id in seat.holders:
            user = users.get(holder_id)
            label = f"{full_name(user)} (ID: {holder_id})" if user else f"Unknown User (ID: {holder_id})"
            lines.append(f"{indent}  • {label}")
    else:
        lines.append(f"{indent}**Seat Holders:** *Vacant*")
    if seat.roles:
        lines.append(f"{indent}**Roles & Responsibilities:**")
        for role in seat.roles:
            line = f"{indent}  • {role['name'].strip()}"
            description = (role.get("description") or "").strip()
            if description:
                line += f": {description}"
            lines.append(line)
    lines.append("")
    for child in seat.children:
        _render_seat(child, users, lines, seen)


def render_chart(
    chart: dict[str, Any],
    seat_nodes: list[dict[str, Any]],
    roots: list[Seat],
    users: dict[str, dict[str, Any]],
    today: date | None = None,
) -> str:
    """Markdown accountability chart."""
    lines = ["# Accountability Chart", "", f"**Chart:** {chart.get('name')}"]
    if chart.get("description"):
        lines.append(f"**Description:** {chart['description']}")
    lines.extend([f"Generated on: {(today or date.today()).isoformat()}", ""])
    if not seat_nodes:
        lines.append("No seats found in the primary org chart.")
        return "\n".join(lines) + "\n"

    lines.extend(["## Organizational Structure", ""])
    seen: set[str] = set()
    for root in roots:
        _render_seat(root, users, lines, seen)

    filled = sum(1 for node in seat_nodes if (node.get("holders") or "").strip())
    total_roles = 0
    stack = list(roots)
    counted: set[str] = set()
    while stack:
        seat = stack.pop()
        if seat.id in counted:
            continue
        counted.add(seat.id)
        total_roles += len(seat.roles)
        stack.extend(seat.children)
    lines.extend(
        [
            "## Summary",
            "",
            f"- **Total Seats:** {len(seat_nodes)}",
            f"- **Filled Seats:** {filled}",
            f"- **Vacant Seats:** {len(seat_nodes) - filled}",
            f"- **Total Roles & Responsibilities:** {total_roles}",
            f"- **Chart ID:** {chart['id']}",
        ]
    )
    return "\n".join(lines) + "\n"


class AccountabilityChartTools(ToolSet):
    async def _roles_by_seat(self, seat_ids: list[str]) -> dict[str, list[dict[str, Any]]]:
        results = await asyncio.gather(
            *(
                self._query(
                    ROLES_QUERY,
                    {"filter": Filter().is_in("orgChartSeatId", batch).equal("stateId", "ACTIVE").build()},
                )
                for batch in batched(seat_ids)
            )
        )
        roles: dict[str, list[dict[str, Any]]] = {}
        for data in results:
            for role in self._connection(data, "orgChartRolesResponsibilities")[0]:
                roles.setdefault(role["orgChartSeatId"], []).append(role)
        return {seat_id: dedupe_roles(seat_roles) for seat_id, seat_roles in roles.items()}

    async def _users(self, user_ids: list[str]) -> dict[str, dict[str, Any]]:
        results = await asyncio.gather(
            *(self._query(HOLDERS_QUERY, {"filter": Filter().is_in("id", batch).build()}) for batch in batched(user_ids))
        )
        return {user["id"]: user for data in results for user in self._connection(data, "users")[0]}

    @tool("getAccountabilityChart", "fetching accountability chart")
    async def get_accountability_chart(self, state_id: str = "ACTIVE") -> ToolResponse:
        """The company's primary accountability chart as Markdown: seats, who holds them
        and each seat's roles and responsibilities.

        Args:
            state_id: ACTIVE, INACTIVE or DELETED
        """
        validate_state_id(state_id)
        data = await self._query(
            ORG_CHARTS_QUERY, {"filter": Filter().equal("stateId", state_id).equal("isPrimaryChart", 1).build()}
        )
        charts, _ = self._connection(data, "orgCharts")
        if not charts:
            raise ToolError(
                "No primary org chart found. Please ensure there is an org chart marked as primary (isPrimaryChart = 1)."
            )
        chart = charts[0]

        data = await self._query(
            SEATS_QUERY, {"filter": Filter().equal("orgChartId", chart["id"]).equal("stateId", state_id).build()}
        )
        seat_nodes, _ = self._connection(data, "orgChartSeats")
        holder_ids = sorted({holder for node in seat_nodes for holder in parse_id_list(node.get("holders"))})
        roles, users = await asyncio.gather(
            self._roles_by_seat([node["id"] for node in seat_nodes]),
            self._users(holder_ids),
        )
        logger.debug("Loaded accountability chart", seats=len(seat_nodes), holders=len(holder_ids))

        roots = build_seat_tree(seat_nodes, roles)
        return text_response(render_chart(chart, seat_nodes, roots, users))
