"""Rock tools, including reconciliation of rock-to-team links."""

import json
from dataclasses import dataclass, field
from typing import Any

import structlog

from success_mcp.errors import (
    NoUpdatesError,
    RequiredFieldError,
    ToolError,
    ToolResponse,
    success_response,
    text_response,
)
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import map_rock_type, parse_id_list, validate_choice, validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

ROCK_STATUSES = ("ONTRACK", "OFFTRACK", "COMPLETE", "INCOMPLETE")
INVALID_ROCK_STATUS = "Invalid rock status - must be ONTRACK, OFFTRACK, COMPLETE, or INCOMPLETE"

ROCKS_QUERY = """
query Rocks($filter: RockFilter, $first: Int, $offset: Int) {
  rocks(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      rockStatusId
      name
      desc
      statusUpdatedAt
      type
      dueDate
      createdAt
      stateId
      companyId
      userId
    }
    totalCount
  }
}
"""

TEAMS_ON_ROCKS_QUERY = """
query TeamsOnRocks($filter: TeamsOnRockFilter) {
  teamsOnRocks(filter: $filter) {
    nodes { id rockId teamId stateId }
  }
}
"""

CREATE_LINK_MUTATION = """
mutation CreateTeamsOnRock($input: CreateTeamsOnRockInput!) {
  createTeamsOnRock(input: $input) {
    teamsOnRock { id teamId rockId stateId }
  }
}
"""

UPDATE_LINK_MUTATION = """
mutation UpdateTeamsOnRock($input: UpdateTeamsOnRockInput!) {
  updateTeamsOnRock(input: $input) {
    teamsOnRock { id teamId stateId }
  }
}
"""

CREATED_ROCK_FIELDS = "id name desc rockStatusId dueDate type userId createdAt stateId companyId"
UPDATED_ROCK_FIELDS = "id name desc rockStatusId dueDate userId statusUpdatedAt stateId"
NO_TEAM_IDS = "teamId must contain at least one team ID"


@dataclass
class LinkPlan:
    """Steps needed to move a rock's team links to a desired set.

    ``deactivate`` and ``reactivate`` hold (team id, link id) pairs; ``create``
    and ``unchanged`` hold team ids.
    """

    deactivate: list[tuple[str, str]] = field(default_factory=list)
    reactivate: list[tuple[str, str]] = field(default_factory=list)
    create: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)


def plan_team_links(existing: list[dict[str, Any]], desired: list[str]) -> LinkPlan:
    """Diff existing teamsOnRocks rows against the desired team ids.

    Active links outside the desired set are deactivated. Desired teams are
    left alone when already active and reactivated when soft-deleted. Any
    other desired team, including one whose only link is INACTIVE, gets a
    new link.

    Args:
        existing: Link rows with id, teamId and stateId
        desired: Team ids the rock should end up linked to
    """
    by_team: dict[str, dict[str, Any]] = {}
    for link in existing:
        current = by_team.get(link["teamId"])
        if current is None or current.get("stateId") != "ACTIVE":
            by_team[link["teamId"]] = link
    plan = LinkPlan()
    for team_id, link in by_team.items():
        if team_id not in desired and link.get("stateId") == "ACTIVE":
            plan.deactivate.append((team_id, link["id"]))
    for team_id in desired:
        link = by_team.get(team_id)
        state = link.get("stateId") if link else None
        if state == "ACTIVE":
            plan.unchanged.append(team_id)
        elif state == "DELETED":
            plan.reactivate.append((team_id, link["id"]))
        else:
            plan.create.append(team_id)
    return plan


def _rock_result(rock: dict[str, Any], team_ids: list[str]) -> dict[str, Any]:
    return {
        "id": rock["id"],
        "name": rock.get("name"),
        "description": rock.get("desc") or "",
        "status": rock.get("rockStatusId"),
        "type": rock.get("type"),
        "dueDate": rock.get("dueDate"),
        "createdAt": rock.get("createdAt"),
        "statusUpdatedAt": rock.get("statusUpdatedAt"),
        "userId": rock.get("userId"),
        "teamIds": team_ids,
    }


def _format_failures(failures: list[tuple[str, str]]) -> str:
    return ", ".join(f"{team_id} ({error})" for team_id, error in failures)


class RockTools(ToolSet):
    """Rocks: quarterly priorities linked to one or more teams."""

    @tool("getRocks", "fetching rocks")
    async def get_rocks(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        rock_status_id: str = "",
        user_id: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        keyword: str | None = None,
    ) -> ToolResponse:
        """List rocks with the ids of the teams each is linked to.

        Args:
            first: Page size
            offset: Number of rocks to skip
            state_id: ACTIVE, INACTIVE or DELETED
            rock_status_id: ONTRACK, OFFTRACK, COMPLETE or INCOMPLETE (empty for any)
            user_id: Only rocks owned by this user
            team_id: Only rocks linked to this team
            leadership_team: Use the leadership team instead of team_id
            keyword: Case-insensitive substring of the rock name
        """
        validate_state_id(state_id)
        if rock_status_id:
            validate_choice(rock_status_id, ROCK_STATUSES, INVALID_ROCK_STATUS)
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("rockStatusId", rock_status_id or None)
            .equal("userId", user_id)
            .contains_insensitive("name", keyword)
        )
        data = await self._query(ROCKS_QUERY, page_variables(filter_, first, offset))
        rocks, _ = self._connection(data, "rocks")

        if team_id:
            links = await self._links(Filter().equal("teamId", team_id).equal("stateId", state_id))
            team_rock_ids = {link["rockId"] for link in links}
            rocks = [rock for rock in rocks if rock["id"] in team_rock_ids]

        teams_by_rock: dict[str, list[str]] = {}
        if rocks:
            links = await self._links(Filter().is_in("rockId", [r["id"] for r in rocks]).equal("stateId", state_id))
            for link in links:
                teams_by_rock.setdefault(link["rockId"], []).append(link["teamId"])

        return success_response(
            {
                "totalCount": len(rocks),
                "results": [_rock_result(rock, teams_by_rock.get(rock["id"], [])) for rock in rocks],
            }
        )

    async def _links(self, filter_: Filter) -> list[dict[str, Any]]:
        data = await self._query(TEAMS_ON_ROCKS_QUERY, {"filter": filter_.build()})
        return self._connection(data, "teamsOnRocks")[0]

    async def _create_link(self, team_id: str, rock_id: str, company_id: str) -> str | None:
        """Create one team link. Returns an error string on failure."""
        result = await self.context.execute(
            CREATE_LINK_MUTATION,
            {"input": {"teamsOnRock": {"teamId": team_id, "rockId": rock_id, "companyId": company_id, "stateId": "ACTIVE"}}},
        )
        if result.ok and ((result.data or {}).get("createTeamsOnRock") or {}).get("teamsOnRock"):
            return None
        return result.error or "Unknown error"

    async def _set_link_state(self, link_id: str, state_id: str) -> str | None:
        result = await self.context.execute(
            UPDATE_LINK_MUTATION, {"input": {"id": link_id, "patch": {"stateId": state_id}}}
        )
        if result.ok and ((result.data or {}).get("updateTeamsOnRock") or {}).get("teamsOnRock"):
            return None
        return result.error or "Unknown error"

    @tool("createRock", "creating rock", read_only=False)
    async def create_rock(
        self,
        name: str,
        desc: str = "",
        due_date: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        type: str = "Company",
    ) -> ToolResponse:
        """Create a rock and link it to one or more teams.

        The due date defaults to the last day of the company's current quarter.

        Args:
            name: Rock name
            desc: Description
            due_date: Due date (YYYY-MM-DD)
            team_id: Team id, or several comma-separated
            leadership_team: Use the leadership team instead of team_id
            user_id: Owner; defaults to the authenticated user
            type: Company or Personal
        """
        team_id = await self.context.resolve_team_id(
            team_id,
            leadership_team,
            required=True,
            required_message="Rock must be assigned to a team. Please provide either 'teamId' or set 'leadershipTeam' to true.",
        )
        team_ids = parse_id_list(team_id)
        if not team_ids:
            raise RequiredFieldError("teamId", NO_TEAM_IDS)
        if not name or not name.strip():
            raise RequiredFieldError("name", "Rock name is required")
        user_context = await self.context.require_user_context()

        if not due_date:
            due_date = await self.context.get_quarter_end_date(user_context.company_id)
            if not due_date:
                raise ToolError("Could not determine default due date. Please provide a due date explicitly.")
            logger.debug("Using quarter end as rock due date", due_date=due_date)

        rock = await self._mutate(
            "createRock",
            "rock",
            CREATED_ROCK_FIELDS,
            {
                "rock": {
                    "name": name,
                    "desc": desc,
                    "dueDate": due_date,
                    "rockStatusId": "ONTRACK",
                    "type": map_rock_type(type),
                    "companyId": user_context.company_id,
                    "userId": user_id or user_context.user_id,
                    "stateId": "ACTIVE",
                }
            },
        )
        logger.info("Rock created", rock_id=rock["id"])

        linked: list[str] = []
        failed: list[tuple[str, str]] = []
        for single_team_id in team_ids:
            error = await self._create_link(single_team_id, rock["id"], user_context.company_id)
            if error is None:
                linked.append(single_team_id)
            else:
                logger.warning("Failed to link rock to team", rock_id=rock["id"], team_id=single_team_id, error=error)
                failed.append((single_team_id, error))

        if failed:
            return text_response(
                "Rock created successfully but some team assignments failed:\n"
                f"- Successfully linked to: {', '.join(linked)}\n"
                f"- Failed to link to: {_format_failures(failed)}\n\n"
                f"Rock details: {json.dumps(rock, indent=2)}"
            )

        if len(team_ids) > 1:
            message = f"Rock created successfully and linked to {len(team_ids)} teams ({', '.join(team_ids)})"
        else:
            message = f"Rock created successfully and linked to team {team_ids[0]}"
        return success_response(
            {
                "success": True,
                "message": message,
                "rock": {
                    "id": rock["id"],
                    "name": rock.get("name"),
                    "desc": rock.get("desc"),
                    "status": rock.get("rockStatusId"),
                    "dueDate": rock.get("dueDate"),
                    "type": rock.get("type"),
                    "userId": rock.get("userId"),
                    "createdAt": rock.get("createdAt"),
                    "stateId": rock.get("stateId"),
                    "companyId": rock.get("companyId"),
                },
            }
        )

    @tool("updateRock", "updating rock", read_only=False)
    async def update_rock(
        self,
        rock_id: str,
        name: str | None = None,
        desc: str | None = None,
        status: str | None = None,
        due_date: str | None = None,
        user_id: str | None = None,
        team_id: str | None = None,
    ) -> ToolResponse:
        """Update a rock and optionally reassign its teams.

        Passing teamId replaces the rock's team links with exactly those teams.
        Links to other teams are soft-deleted and soft-deleted links are reactivated.

        Args:
            rock_id: Rock to update
            name: New name
            desc: New description
            status: ONTRACK, OFFTRACK, COMPLETE or INCOMPLETE
            due_date: New due date (YYYY-MM-DD)
            user_id: New owner
            team_id: Team id, or several comma-separated
        """
        if not rock_id:
            raise RequiredFieldError("rockId", "Rock ID is required")
        user_context = await self.context.require_user_context()
        if status:
            validate_choice(status, ROCK_STATUSES, INVALID_ROCK_STATUS)
        team_ids = parse_id_list(team_id)
        if team_id and not team_ids:
            raise RequiredFieldError("teamId", NO_TEAM_IDS)

        patch: dict[str, str] = {}
        if name:
            patch["name"] = name
        if desc is not None:
            patch["desc"] = desc
        if status:
            patch["rockStatusId"] = status
        if due_date:
            patch["dueDate"] = due_date
        if user_id:
            patch["userId"] = user_id
        if not patch and not team_ids:
            raise NoUpdatesError()

        rock = None
        if patch:
            rock = await self._mutate("updateRock", "rock", UPDATED_ROCK_FIELDS, {"id": rock_id, "patch": patch})

        reactivated: list[str] = []
        if team_ids:
            existing = await self._links(Filter().equal("rockId", rock_id))
            plan = plan_team_links(existing, team_ids)
            logger.info(
                "Reconciling rock team links",
                rock_id=rock_id,
                deactivate=len(plan.deactivate),
                reactivate=len(plan.reactivate),
                create=len(plan.create),
            )

            for old_team_id, link_id in plan.deactivate:
                error = await self._set_link_state(link_id, "DELETED")
                if error is not None:
                    raise ToolError(f"Failed to soft delete existing team assignment for {old_team_id}: {error}")

            linked = list(plan.unchanged)
            failed: list[tuple[str, str]] = []
            for new_team_id, link_id in plan.reactivate:
                error = await self._set_link_state(link_id, "ACTIVE")
                if error is None:
                    linked.append(new_team_id)
                    reactivated.append(new_team_id)
                else:
                    failed.append((new_team_id, error))
            for new_team_id in plan.create:
                error = await self._create_link(new_team_id, rock_id, user_context.company_id)
                if error is None:
                    linked.append(new_team_id)
                else:
                    failed.append((new_team_id, error))

            if failed and linked:
                return text_response(
                    "Rock updated but some team assignments failed:\n"
                    f"- Successfully linked to: {', '.join(linked)}\n"
                    f"- Failed to link to: {_format_failures(failed)}"
                )
            if failed:
                return text_response(f"Error: Rock updated but all team assignments failed: {_format_failures(failed)}")

        message = "Rock updated successfully"
        if team_ids:
            details = [
                f"reassigned to {len(team_ids)} teams" if len(team_ids) > 1 else f"reassigned to team {team_ids[0]}"
            ]
            if reactivated:
                details.append(f"{len(reactivated)} team link(s) reactivated from DELETED")
            message += f" ({', '.join(details)})"

        rock_result: dict[str, Any] = {"id": rock_id}
        if rock is not None:
            rock_result = {
                "id": rock["id"],
                "name": rock.get("name"),
                "desc": rock.get("desc"),
                "status": rock.get("rockStatusId"),
                "dueDate": rock.get("dueDate"),
                "userId": rock.get("userId"),
                "statusUpdatedAt": rock.get("statusUpdatedAt"),
                "stateId": rock.get("stateId"),
            }
        return success_response({"success": True, "message": message, "rock": rock_result})

    @tool("deleteRock", "deleting rock", read_only=False, destructive=True)
    async def delete_rock(self, rock_id: str) -> ToolResponse:
        """Delete a rock by marking it DELETED. Use getRocks with a keyword to find the id.

        Args:
            rock_id: Rock to delete
        """
        if not rock_id:
            raise RequiredFieldError("rockId", "Rock ID is required")
        await self.context.require_user_context()
        rock = await self._soft_delete("updateRock", "rock", rock_id)
        return success_response({"success": True, "message": "Rock deleted successfully", "rock": rock})
