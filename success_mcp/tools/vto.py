"""Vision/Traction Organizer (VTO) report for the leadership team."""

import asyncio
from typing import Any

import structlog

from success_mcp.errors import GraphQLError, ToolError, ToolResponse, text_response
from success_mcp.filters import Filter
from success_mcp.helpers import strip_html, validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

VISIONS_QUERY = """
query Visions($filter: VisionFilter) {
  visions(filter: $filter) {
    nodes { id teamId isLeadership createdAt stateId companyId }
    totalCount
  }
}
"""

CORE_VALUES_QUERY = """
query VisionCoreValues($filter: VisionCoreValueFilter) {
  visionCoreValues(filter: $filter) {
    nodes { id name cascadeAll visionId createdAt stateId companyId }
    totalCount
  }
}
"""

CORE_VALUE_DETAILS_QUERY = """
query VisionCoreValueDetails($filter: VisionCoreValueDetailFilter) {
  visionCoreValueDetails(filter: $filter) {
    nodes { id name desc type position visionCoreValueId cascadeAll }
    totalCount
  }
}
"""

CORE_FOCUS_QUERY = """
query VisionCoreFocusTypes($filter: VisionCoreFocusTypeFilter) {
  visionCoreFocusTypes(filter: $filter) {
    nodes { id name coreFocusName desc src type visionId cascadeAll createdAt stateId companyId }
    totalCount
  }
}
"""

THREE_YEAR_GOALS_QUERY = """
query VisionThreeYearGoals($filter: VisionThreeYearGoalFilter) {
  visionThreeYearGoals(filter: $filter) {
    nodes { id name futureDate cascadeAll visionId type createdAt stateId companyId }
    totalCount
  }
}
"""

MARKET_STRATEGIES_QUERY = """
query VisionMarketStrategies($filter: VisionMarketStrategyFilter) {
  visionMarketStrategies(filter: $filter) {
    nodes {
      id
      name
      cascadeAll
      visionId
      idealCustomer
      idealCustomerDesc
      provenProcess
      provenProcessDesc
      guarantee
      guaranteeDesc
      uniqueValueProposition
      showProvenProcess
      showGuarantee
      isCustom
      createdAt
      stateId
      companyId
    }
    totalCount
  }
}
"""

# (label used in error messages, query, connection field)
COMPONENTS = (
    ("Core Values", CORE_VALUES_QUERY, "visionCoreValues"),
    ("Core Focus", CORE_FOCUS_QUERY, "visionCoreFocusTypes"),
    ("Three Year Goals", THREE_YEAR_GOALS_QUERY, "visionThreeYearGoals"),
    ("Market Strategies", MARKET_STRATEGIES_QUERY, "visionMarketStrategies"),
)


def _day(value: str | None) -> str:
    return (value or "")[:10]


def _cascade(core_value: dict[str, Any]) -> str:
    return "Cascades to all teams" if core_value.get("cascadeAll") else "Leadership only"


def render_vto(
    vision: dict[str, Any],
    core_values: list[dict[str, Any]],
    core_value_details: list[dict[str, Any]],
    core_focus: list[dict[str, Any]],
    goals: list[dict[str, Any]],
    strategies: list[dict[str, Any]],
) -> str:
    """Markdown summary of a vision and its components."""
    lines = [
        "# Leadership Vision/Traction Organizer Summary",
        "",
        f"**Vision ID:** {vision['id']}",
        f"**Team ID:** {vision.get('teamId')}",
        f"**Created:** {_day(vision.get('createdAt'))}",
        f"**Status:** {vision.get('stateId')}",
        "",
    ]

    if core_values:
        lines.append("## Core Values")
        if core_value_details:
            parents = {cv["id"]: cv for cv in core_values}
            for detail in core_value_details:
                if not detail.get("name"):
                    continue
                line = f"• **{detail['name']}**"
                desc = strip_html(detail.get("desc"))
                if desc:
                    line += f" - {desc}"
                parent = parents.get(detail.get("visionCoreValueId"))
                if parent:
                    line += f" ({_cascade(parent)})"
                lines.append(line)
        else:
            lines.extend(f"• **{cv.get('name')}** ({_cascade(cv)})" for cv in core_values)
        lines.append("")

    if core_focus:
        lines.append("## Core Focus")
        for focus in core_focus:
            lines.append(f"• **{focus.get('name') or focus.get('type')}** ({focus.get('type')})")
            desc = strip_html(focus.get("desc"))
            if desc:
                lines.append(f"  - {desc}")
        lines.append("")

    if goals:
        lines.append("## Goals & Planning")
        for goal in goals:
            lines.append(f"• **{goal.get('name')}** ({goal.get('type')})")
            if goal.get("futureDate"):
                lines.append(f"  - Target Date: {_day(goal['futureDate'])}")
        lines.append("")

    if strategies:
        lines.append("## Market Strategy")
        for strategy in strategies:
            lines.append(f"• **{strategy.get('name')}**")
            if strategy.get("idealCustomer"):
                lines.append(f"  - Target Market: {strategy['idealCustomer']}")
            market_desc = strip_html(strategy.get("idealCustomerDesc"))
            if market_desc:
                lines.append(f"  - Market Description: {market_desc}")
            if strategy.get("provenProcess"):
                lines.append(f"  - Proven Process: {strategy['provenProcess']}")
            if strategy.get("guarantee") and strategy.get("showGuarantee"):
                lines.append(f"  - Guarantee: {strategy['guarantee']}")
                guarantee_desc = strip_html(strategy.get("guaranteeDesc"))
                if guarantee_desc:
                    lines.append(f"    {guarantee_desc}")
            if strategy.get("uniqueValueProposition"):
                lines.append(f"  - Unique Value Proposition: {strategy['uniqueValueProposition']}")
        lines.append("")

    lines.extend(
        [
            "## Summary Statistics",
            f"• Core Values: {len(core_value_details) or len(core_values)}",
            f"• Core Focus Items: {len(core_focus)}",
            f"• Goals & Plans: {len(goals)}",
            f"• Market Strategies: {len(strategies)}",
        ]
    )
    return "\n".join(lines) + "\n"


class VtoTools(ToolSet):
    async def _leadership_vision(self, state_id: str) -> dict[str, Any] | None:
        data = await self._query(
            VISIONS_QUERY, {"filter": Filter().equal("stateId", state_id).equal("isLeadership", True).build()}
        )
        visions, _ = self._connection(data, "visions")
        if visions:
            return visions[0]

        team_id = await self.context.get_leadership_team_id()
        if not team_id:
            return None
        logger.debug("No vision flagged as leadership, looking up by leadership team", team_id=team_id)
        data = await self._query(
            VISIONS_QUERY, {"filter": Filter().equal("stateId", state_id).equal("teamId", team_id).build()}
        )
        visions, _ = self._connection(data, "visions")
        return visions[0] if visions else None

    @tool("getLeadershipVTO", "fetching leadership VTO")
    async def get_leadership_vto(self, state_id: str = "ACTIVE") -> ToolResponse:
        """Leadership Vision/Traction Organizer as Markdown: core values, core focus,
        goals, market strategy and summary counts.

        Args:
            state_id: ACTIVE, INACTIVE or DELETED
        """
        validate_state_id(state_id)
        vision = await self._leadership_vision(state_id)
        if vision is None:
            raise ToolError("No leadership vision found. Please ensure you have a vision for the leadership team.")

        component_filter = {"filter": Filter().equal("stateId", state_id).equal("visionId", vision["id"]).build()}
        results = await asyncio.gather(*(self.context.execute(query, component_filter) for _, query, _ in COMPONENTS))
        errors = [f"{label}: {result.error}" for (label, _, _), result in zip(COMPONENTS, results) if not result.ok]
        if errors:
            raise GraphQLError(f"Error fetching VTO components: {', '.join(errors)}")
        core_values, core_focus, goals, strategies = (
            self._connection(result.data or {}, key)[0] for (_, _, key), result in zip(COMPONENTS, results)
        )

        details: list[dict[str, Any]] = []
        core_value_ids = [cv["id"] for cv in core_values if cv.get("id")]
        if core_value_ids:
            result = await self.context.execute(
                CORE_VALUE_DETAILS_QUERY,
                {"filter": Filter().equal("stateId", state_id).is_in("visionCoreValueId", core_value_ids).build()},
            )
            if result.ok:
                details = sorted(
                    self._connection(result.data or {}, "visionCoreValueDetails")[0],
                    key=lambda d: d.get("position") or 0,
                )
            else:
                logger.warning("Could not load core value details", error=result.error)

        return text_response(render_vto(vision, core_values, details, core_focus, goals, strategies))
