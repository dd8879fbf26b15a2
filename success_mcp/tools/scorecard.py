"""Scorecard tools.

Measurables (data fields) and their weekly/monthly/quarterly/annual values
(data values) are read through GraphQL. Writes go straight to Postgres.
"""

from datetime import date, datetime, timezone
from typing import Any

import psycopg
import structlog
from psycopg import sql

from success_mcp.errors import (
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidDateError,
    NoUpdatesError,
    RequiredFieldError,
    ToolError,
    ToolResponse,
    ValidationError,
    success_response,
)
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import (
    DATA_FIELD_TYPES,
    parse_date,
    parse_id_list,
    period_start_for_data_field,
    scorecard_range_start,
    validate_choice,
    validate_measurable_value,
    validate_state_id,
)
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

UNIT_TYPES = ("number", "currency", "percentage")
UNIT_COMPARISONS = (">=", "<=", "=", ">", "<")
MEASURABLE_STATUSES = ("ACTIVE", "ARCHIVED")
TIMEFRAMES = {"WEEKLY": "weeks", "MONTHLY": "months", "QUARTERLY": "quarters", "ANNUALLY": "years"}
INVALID_TYPE = "Invalid type. Must be one of: weekly, monthly, quarterly, annually"
MAX_VALUES = 1000

TEAM_DATA_FIELDS_QUERY = """
query TeamDataFields($filter: TeamsOnDataFieldFilter) {
  teamsOnDataFields(filter: $filter) {
    nodes { dataFieldId }
  }
}
"""

DATA_FIELDS_QUERY = """
query DataFields($filter: DataFieldFilter, $first: Int, $offset: Int) {
  dataFields(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      name
      desc
      userId
      type
      unitType
      unitComparison
      goalTarget
      goalTargetEnd
      goalCurrency
      showAverage
      showTotal
      autoFormat
      autoRoundDecimals
      dataFieldStatusId
      statusUpdatedAt
      createdAt
      stateId
      formula
      order
    }
    totalCount
  }
}
"""

DATA_VALUES_QUERY = """
query DataValues($filter: DataValueFilter, $first: Int, $offset: Int) {
  dataValues(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      dataFieldId
      startDate
      value
      createdAt
      stateId
      customGoalTarget
      customGoalTargetEnd
      note
    }
    totalCount
  }
}
"""

DATA_FIELD_FOR_ENTRY_SQL = """
SELECT id, type, unit_type, name, company_id
FROM data_fields
WHERE id = %s AND company_id = %s AND state_id = 'ACTIVE'
LIMIT 1
"""

EXISTING_VALUE_SQL = """
SELECT id, value, note
FROM data_values
WHERE data_field_id = %s AND start_date = %s AND state_id = 'ACTIVE'
LIMIT 1
"""

OVERWRITE_VALUE_SQL = """
UPDATE data_values
SET value = %s, note = %s
WHERE id = %s AND company_id = %s AND state_id = 'ACTIVE'
RETURNING id, data_field_id, start_date, value, note, updated_at
"""

INSERT_VALUE_SQL = """
INSERT INTO data_values (data_field_id, start_date, value, company_id, state_id, note)
VALUES (%s, %s, %s, %s, 'ACTIVE', %s)
RETURNING id, data_field_id, start_date, value, note, created_at
"""

ENTRY_WITH_FIELD_SQL = """
SELECT dv.id, dv.data_field_id, dv.start_date, dv.value, dv.note, dv.company_id,
       df.name AS data_field_name, df.type AS data_field_type, df.unit_type
FROM data_values dv
INNER JOIN data_fields df ON df.id = dv.data_field_id
WHERE dv.id = %s AND dv.company_id = %s AND dv.state_id = 'ACTIVE'
LIMIT 1
"""

INSERT_FIELD_SQL = """
INSERT INTO data_fields (
  name, "desc", type, unit_type, unit_comparison, goal_target, goal_target_end, goal_currency,
  show_average, show_total, auto_format, auto_round_decimals, user_id, company_id,
  state_id, data_field_status_id
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, 'ACTIVE', 'ACTIVE')
RETURNING id, name, "desc", type, unit_type, unit_comparison, goal_target, goal_target_end,
          goal_currency, show_average, show_total, auto_format, auto_round_decimals, user_id, created_at
"""

INSERT_TEAM_LINK_SQL = """
INSERT INTO teams_on_data_fields (team_id, data_field_id, company_id, state_id)
VALUES (%s, %s, %s, 'ACTIVE')
"""

EXISTING_FIELD_SQL = """
SELECT id, name, "desc", type, unit_type, unit_comparison, goal_target, goal_target_end,
       goal_currency, show_average, show_total, auto_format, auto_round_decimals, data_field_status_id
FROM data_fields
WHERE id = %s AND company_id = %s AND state_id = 'ACTIVE'
LIMIT 1
"""

FIELD_RETURNING = (
    'id, name, "desc", type, unit_type, unit_comparison, goal_target, goal_target_end, goal_currency, '
    "show_average, show_total, auto_format, auto_round_decimals, data_field_status_id, updated_at"
)

DELETE_FIELD_SQL = """
UPDATE data_fields SET state_id = 'DELETED'
WHERE id = %s AND company_id = %s AND state_id = 'ACTIVE'
RETURNING id, name
"""

DELETE_FIELD_VALUES_SQL = """
UPDATE data_values SET state_id = 'DELETED'
WHERE data_field_id = %s AND company_id = %s AND state_id = 'ACTIVE'
"""

DELETE_FIELD_LINKS_SQL = """
UPDATE teams_on_data_fields SET state_id = 'DELETED'
WHERE data_field_id = %s AND company_id = %s AND state_id = 'ACTIVE'
"""


def data_field_type(value: str) -> str:
    """Stored data field type for a caller-facing type name, e.g. weekly -> WEEKLY."""
    try:
        return DATA_FIELD_TYPES[value.lower()]
    except KeyError:
        raise ValidationError(message=INVALID_TYPE) from None


def update_statement(table: str, updates: dict[str, Any], returning: str) -> sql.Composed:
    """UPDATE of the given columns for one active row, keyed by id and company_id."""
    assignments = sql.SQL(", ").join(
        sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder()) for column in updates
    )
    return sql.SQL(
        "UPDATE {table} SET {assignments} WHERE id = %s AND company_id = %s AND state_id = 'ACTIVE' RETURNING {returning}"
    ).format(table=sql.Identifier(table), assignments=assignments, returning=sql.SQL(returning))


def _measurable_result(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row.get("name"),
        "desc": row.get("desc"),
        "type": row.get("type"),
        "unitType": row.get("unit_type"),
        "unitComparison": row.get("unit_comparison"),
        "goalTarget": row.get("goal_target"),
        "goalTargetEnd": row.get("goal_target_end"),
        "goalCurrency": row.get("goal_currency"),
        "showAverage": row.get("show_average"),
        "showTotal": row.get("show_total"),
        "autoFormat": row.get("auto_format"),
        "autoRoundDecimals": row.get("auto_round_decimals"),
    }


def _entry_result(row: dict[str, Any], field_name: str, field_type: str, unit_type: str) -> dict[str, Any]:
    return {
        "id": row["id"],
        "dataFieldId": row.get("data_field_id"),
        "dataFieldName": field_name,
        "dataFieldType": field_type,
        "unitType": unit_type,
        "startDate": row.get("start_date"),
        "value": row.get("value"),
        "note": row.get("note") or "",
    }


class ScorecardTools(ToolSet):
    """Scorecard measurables and their values."""

    async def _period_start(self, field_type: str, start_date: str | None, company_id: str) -> date:
        """Start of the reporting period containing start_date (or today) for a data field type."""
        day = parse_date(start_date) if start_date else date.today()
        quarter_dates = None
        if field_type == "QUARTERLY":
            self.context.require_database("quarterly data fields")
            quarter_dates = await self.context.get_quarter_dates(company_id)
            if quarter_dates is None:
                raise ToolError(f"Company not found: {company_id}")
        return period_start_for_data_field(field_type, day, quarter_dates)

    @staticmethod
    def _reject_future(period_start: date, verb: str) -> None:
        today = date.today()
        if period_start > today:
            raise InvalidDateError(
                f"Cannot {verb} measurable entry with a future date. "
                f"Calculated start date: {period_start.isoformat()}. Today: {today.isoformat()}"
            )

    @tool("getScorecardMeasurables", "fetching scorecard measurables")
    async def get_scorecard_measurables(
        self,
        first: int = 50,
        offset: int = 0,
        state_id: str = "ACTIVE",
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        type: str = "weekly",
        data_field_id: str | None = None,
        keyword: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        periods: int = 13,
        status: str = "ACTIVE",
    ) -> ToolResponse:
        """Scorecard measurables with their values, newest value first.

        Without a date range the values cover the last ``periods`` weeks,
        months, quarters or years, depending on type.

        Args:
            first: Page size for measurables
            offset: Number of measurables to skip
            state_id: ACTIVE, INACTIVE or DELETED
            team_id: Only measurables linked to this team
            leadership_team: Use the leadership team instead of team_id
            user_id: Only measurables owned by this user
            type: weekly, monthly, quarterly or annually
            data_field_id: Only this measurable
            keyword: Case-insensitive substring of the measurable name
            start_date: Values starting on or after (YYYY-MM-DD)
            end_date: Values starting on or before (YYYY-MM-DD)
            periods: Number of periods to cover when no date range is given
            status: ACTIVE, ARCHIVED or ALL
        """
        validate_state_id(state_id)
        field_type = data_field_type(type) if type else None
        if status and status != "ALL":
            validate_choice(status, MEASURABLE_STATUSES, 'Invalid status - must be "ACTIVE", "ARCHIVED", or "ALL"')
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        team_field_ids: list[str] | None = None
        if team_id and not data_field_id:
            links = await self._query(
                TEAM_DATA_FIELDS_QUERY,
                {"filter": Filter().equal("teamId", team_id).equal("stateId", state_id).build()},
            )
            team_field_ids = [link["dataFieldId"] for link in self._connection(links, "teamsOnDataFields")[0]]
            if not team_field_ids:
                logger.info("No measurables linked to team", team_id=team_id)
                return success_response({"scorecardMeasurables": [], "totalCount": 0})

        field_filter = (
            Filter()
            .equal("stateId", state_id)
            .equal("id", data_field_id)
            .is_in("id", team_field_ids)
            .equal("userId", user_id)
            .contains_insensitive("name", keyword)
            .equal("type", field_type)
        )
        if status and status != "ALL":
            field_filter.equal("dataFieldStatusId", status)
        data = await self._query(DATA_FIELDS_QUERY, page_variables(field_filter, first, offset))
        fields, _ = self._connection(data, "dataFields")
        if not fields:
            return success_response({"scorecardMeasurables": [], "totalCount": 0})

        if not start_date and not end_date:
            today = date.today()
            start_date = scorecard_range_start(type or "weekly", periods, today).isoformat()
            end_date = today.isoformat()
        value_filter = (
            Filter()
            .equal("stateId", state_id)
            .gte("startDate", start_date)
            .lte("startDate", end_date)
            .is_in("dataFieldId", [f["id"] for f in fields])
        )
        values_data = await self._query(DATA_VALUES_QUERY, page_variables(value_filter, MAX_VALUES, 0))
        values, _ = self._connection(values_data, "dataValues")
        logger.debug("Fetched scorecard values", fields=len(fields), values=len(values), start_date=start_date)

        by_field: dict[str, list[dict[str, Any]]] = {}
        for value in values:
            by_field.setdefault(value["dataFieldId"], []).append(value)

        measurables = []
        for data_field in fields:
            shaped = {k: v for k, v in data_field.items() if k != "dataFieldStatusId"}
            shaped["status"] = data_field.get("dataFieldStatusId")
            shaped["values"] = sorted(by_field.get(data_field["id"], []), key=lambda v: v.get("startDate") or "", reverse=True)
            shaped["timeframe"] = TIMEFRAMES.get(data_field.get("type"), "weeks")
            measurables.append(shaped)
        return success_response({"scorecardMeasurables": measurables, "totalCount": len(measurables)})

    @tool("createScorecardMeasurableEntry", "creating measurable entry", read_only=False)
    async def create_scorecard_measurable_entry(
        self,
        data_field_id: str,
        value: str,
        start_date: str | None = None,
        note: str | None = None,
        overwrite: bool = False,
    ) -> ToolResponse:
        """Record a value for a measurable.

        The start date is moved to the start of its period (Monday, first of
        the month, company quarter start or January 1st). Future periods are
        rejected.

        Args:
            data_field_id: Measurable to record a value for
            value: The value, numeric for numeric unit types
            start_date: Any date in the period (YYYY-MM-DD), defaults to today
            note: Optional note
            overwrite: Replace an existing value for the same period
        """
        if not data_field_id:
            raise RequiredFieldError("dataFieldId")
        if value is None or value == "":
            raise RequiredFieldError("value")
        user_context = await self.context.require_user_context()
        db = self.context.require_database("creating measurable entries")

        data_field = await db.fetch_one(DATA_FIELD_FOR_ENTRY_SQL, (data_field_id, user_context.company_id))
        if not data_field:
            raise EntityNotFoundError("Data field", data_field_id)
        validate_measurable_value(value, data_field["unit_type"])

        period_start = await self._period_start(data_field["type"], start_date, user_context.company_id)
        self._reject_future(period_start, "create")
        logger.debug(
            "Creating measurable entry",
            data_field=data_field["name"],
            start_date=period_start.isoformat(),
            type=data_field["type"],
        )

        existing = await db.fetch_one(EXISTING_VALUE_SQL, (data_field_id, period_start))
        if existing:
            if not overwrite:
                raise DuplicateEntityError(
                    f'A measurable entry already exists for data field "{data_field["name"]}" '
                    f"with start date {period_start.isoformat()}. Current value: {existing['value']}. "
                    "Use overwrite=true to update it, or use updateScorecardMeasurableEntry to modify existing values."
                )
            rows = await db.execute(
                OVERWRITE_VALUE_SQL, (str(value), note or "", existing["id"], user_context.company_id)
            )
            entry = _entry_result(rows[0], data_field["name"], data_field["type"], data_field["unit_type"])
            entry["updatedAt"] = rows[0].get("updated_at")
            return success_response(
                {
                    "success": True,
                    "message": f'Successfully updated measurable entry for "{data_field["name"]}" '
                    "(entry already existed for this period)",
                    "entry": entry,
                    "wasUpdated": True,
                    "previousValue": existing["value"],
                }
            )

        rows = await db.execute(
            INSERT_VALUE_SQL, (data_field_id, period_start, str(value), user_context.company_id, note or "")
        )
        entry = _entry_result(rows[0], data_field["name"], data_field["type"], data_field["unit_type"])
        entry["createdAt"] = rows[0].get("created_at")
        logger.info("Measurable entry created", entry_id=entry["id"])
        return success_response(
            {
                "success": True,
                "message": f'Successfully created measurable entry for "{data_field["name"]}"',
                "entry": entry,
                "wasUpdated": False,
            }
        )

    @tool("updateScorecardMeasurableEntry", "updating measurable entry", read_only=False)
    async def update_scorecard_measurable_entry(
        self,
        entry_id: str,
        value: str | None = None,
        note: str | None = None,
        start_date: str | None = None,
    ) -> ToolResponse:
        """Change the value, note or period of a recorded measurable value.

        Args:
            entry_id: Value entry to update
            value: New value
            note: New note
            start_date: Move the entry to the period containing this date (YYYY-MM-DD)
        """
        if not entry_id:
            raise RequiredFieldError("entryId")
        user_context = await self.context.require_user_context()
        db = self.context.require_database("updating measurable entries")

        existing = await db.fetch_one(ENTRY_WITH_FIELD_SQL, (entry_id, user_context.company_id))
        if not existing:
            raise EntityNotFoundError("Measurable entry", entry_id)

        updates: dict[str, Any] = {}
        if value is not None and value != "":
            validate_measurable_value(value, existing["unit_type"])
            updates["value"] = str(value)
        if note is not None:
            updates["note"] = note
        if start_date:
            period_start = await self._period_start(existing["data_field_type"], start_date, user_context.company_id)
            self._reject_future(period_start, "move")
            if period_start != parse_date(existing["start_date"]):
                clash = await db.fetch_one(EXISTING_VALUE_SQL, (existing["data_field_id"], period_start))
                if clash:
                    raise DuplicateEntityError(
                        f'A measurable entry already exists for data field "{existing["data_field_name"]}" '
                        f"with start date {period_start.isoformat()}."
                    )
                updates["start_date"] = period_start
        if not updates:
            raise NoUpdatesError(
                "No updates provided. Please provide at least one field to update (value, note or startDate)."
            )

        rows = await db.execute(
            update_statement("data_values", updates, "id, data_field_id, start_date, value, note, updated_at"),
            (*updates.values(), entry_id, user_context.company_id),
        )
        if not rows:
            raise ToolError(f"Failed to update measurable entry with ID: {entry_id}")

        entry = _entry_result(rows[0], existing["data_field_name"], existing["data_field_type"], existing["unit_type"])
        entry["updatedAt"] = rows[0].get("updated_at")
        changes = {}
        if "value" in updates:
            changes["value"] = {"from": existing["value"], "to": updates["value"]}
        if "note" in updates:
            changes["note"] = {"from": existing["note"] or "", "to": updates["note"]}
        if "start_date" in updates:
            changes["startDate"] = {"from": existing["start_date"], "to": updates["start_date"]}
        return success_response(
            {
                "success": True,
                "message": f'Successfully updated measurable entry for "{existing["data_field_name"]}"',
                "entry": entry,
                "changes": changes,
            }
        )

    @tool("createScorecardMeasurable", "creating scorecard measurable", read_only=False)
    async def create_scorecard_measurable(
        self,
        name: str,
        desc: str = "",
        type: str = "weekly",
        unit_type: str = "number",
        unit_comparison: str = ">=",
        goal_target: str = "100",
        goal_target_end: str = "100",
        goal_currency: str = "$",
        show_average: bool = True,
        show_total: bool = True,
        auto_format: bool = False,
        auto_round_decimals: bool = False,
        user_id: str | None = None,
        team_id: str | None = None,
        leadership_team: bool = False,
    ) -> ToolResponse:
        """Create a scorecard measurable and link it to teams.

        Args:
            name: Measurable name
            desc: Description
            type: weekly, monthly, quarterly or annually
            unit_type: number, currency or percentage
            unit_comparison: How values compare to the goal: >=, <=, =, > or <
            goal_target: Goal value
            goal_target_end: Upper goal value for ranges
            goal_currency: Currency symbol for currency measurables
            show_average: Show the average column
            show_total: Show the total column
            auto_format: Format values automatically
            auto_round_decimals: Round decimals automatically
            user_id: Owner, defaults to the authenticated user
            team_id: Comma-separated ids of teams to link
            leadership_team: Link to the leadership team instead of team_id
        """
        if not name or not name.strip():
            raise RequiredFieldError("name")
        user_context = await self.context.require_user_context()
        db = self.context.require_database("creating measurables")
        field_type = data_field_type(type)
        validate_choice(unit_type, UNIT_TYPES, f"Invalid unitType. Must be one of: {', '.join(UNIT_TYPES)}")
        validate_choice(
            unit_comparison, UNIT_COMPARISONS, f"Invalid unitComparison. Must be one of: {', '.join(UNIT_COMPARISONS)}"
        )
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        rows = await db.execute(
            INSERT_FIELD_SQL,
            (
                name,
                desc,
                field_type,
                unit_type,
                unit_comparison,
                str(goal_target),
                str(goal_target_end),
                goal_currency,
                show_average,
                show_total,
                auto_format,
                auto_round_decimals,
                user_id or user_context.user_id,
                user_context.company_id,
            ),
        )
        created = rows[0]
        logger.info("Measurable created", measurable_id=created["id"])

        linked = []
        for tid in parse_id_list(team_id):
            try:
                await db.execute(INSERT_TEAM_LINK_SQL, (tid, created["id"], user_context.company_id))
            except psycopg.Error as e:
                logger.warning("Failed to link measurable to team", team_id=tid, error=str(e))
                continue
            linked.append(tid)

        measurable = _measurable_result(created)
        measurable["userId"] = created.get("user_id")
        measurable["createdAt"] = created.get("created_at")
        measurable["teamIds"] = linked
        return success_response(
            {"success": True, "message": f'Successfully created scorecard measurable "{name}"', "measurable": measurable}
        )

    @tool("updateScorecardMeasurable", "updating scorecard measurable", read_only=False)
    async def update_scorecard_measurable(
        self,
        measurable_id: str,
        name: str | None = None,
        desc: str | None = None,
        type: str | None = None,
        unit_type: str | None = None,
        unit_comparison: str | None = None,
        goal_target: str | None = None,
        goal_target_end: str | None = None,
        goal_currency: str | None = None,
        show_average: bool | None = None,
        show_total: bool | None = None,
        auto_format: bool | None = None,
        auto_round_decimals: bool | None = None,
        status: str | None = None,
    ) -> ToolResponse:
        """Update a scorecard measurable. Only the given fields change.

        Args:
            measurable_id: Measurable to update
            name: New name
            desc: New description
            type: weekly, monthly, quarterly or annually
            unit_type: number, currency or percentage
            unit_comparison: >=, <=, =, > or <
            goal_target: Goal value
            goal_target_end: Upper goal value
            goal_currency: Currency symbol
            show_average: Show the average column
            show_total: Show the total column
            auto_format: Format values automatically
            auto_round_decimals: Round decimals automatically
            status: ACTIVE or ARCHIVED
        """
        if not measurable_id:
            raise RequiredFieldError("measurableId")
        user_context = await self.context.require_user_context()
        db = self.context.require_database("updating measurables")

        existing = await db.fetch_one(EXISTING_FIELD_SQL, (measurable_id, user_context.company_id))
        if not existing:
            raise EntityNotFoundError("Scorecard measurable", measurable_id)

        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if desc is not None:
            updates["desc"] = desc
        if type is not None:
            updates["type"] = data_field_type(type)
        if unit_type is not None:
            updates["unit_type"] = validate_choice(
                unit_type, UNIT_TYPES, f"Invalid unitType. Must be one of: {', '.join(UNIT_TYPES)}"
            )
        if unit_comparison is not None:
            updates["unit_comparison"] = validate_choice(
                unit_comparison,
                UNIT_COMPARISONS,
                f"Invalid unitComparison. Must be one of: {', '.join(UNIT_COMPARISONS)}",
            )
        if goal_target is not None:
            updates["goal_target"] = str(goal_target)
        if goal_target_end is not None:
            updates["goal_target_end"] = str(goal_target_end)
        if goal_currency is not None:
            updates["goal_currency"] = goal_currency
        for column, flag in (
            ("show_average", show_average),
            ("show_total", show_total),
            ("auto_format", auto_format),
            ("auto_round_decimals", auto_round_decimals),
        ):
            if flag is not None:
                updates[column] = flag
        if status is not None:
            updates["data_field_status_id"] = validate_choice(
                status, MEASURABLE_STATUSES, f"Invalid status. Must be one of: {', '.join(MEASURABLE_STATUSES)}"
            )
            updates["status_updated_at"] = datetime.now(timezone.utc)
        if not updates:
            raise NoUpdatesError("No updates provided. Please provide at least one field to update.")

        rows = await db.execute(
            update_statement("data_fields", updates, FIELD_RETURNING),
            (*updates.values(), measurable_id, user_context.company_id),
        )
        if not rows:
            raise ToolError(f"Failed to update scorecard measurable with ID: {measurable_id}")
        updated = rows[0]

        measurable = _measurable_result(updated)
        measurable["status"] = updated.get("data_field_status_id")
        measurable["updatedAt"] = updated.get("updated_at")
        changes = {
            ("status" if column == "data_field_status_id" else column): {"from": existing.get(column), "to": new}
            for column, new in updates.items()
        }
        return success_response(
            {
                "success": True,
                "message": f'Successfully updated scorecard measurable "{updated["name"]}"',
                "measurable": measurable,
                "changes": changes,
            }
        )

    @tool("deleteScorecardMeasurable", "deleting scorecard measurable", read_only=False, destructive=True)
    async def delete_scorecard_measurable(self, measurable_id: str) -> ToolResponse:
        """Delete a measurable together with its values and team links (all marked DELETED).

        Args:
            measurable_id: Measurable to delete
        """
        if not measurable_id:
            raise RequiredFieldError("measurableId")
        user_context = await self.context.require_user_context()
        db = self.context.require_database("deleting measurables")
        params = (measurable_id, user_context.company_id)

        rows = await db.execute(DELETE_FIELD_SQL, params)
        if not rows:
            raise EntityNotFoundError("Scorecard measurable", measurable_id)
        name = rows[0]["name"]
        await db.execute(DELETE_FIELD_VALUES_SQL, params)
        await db.execute(DELETE_FIELD_LINKS_SQL, params)
        logger.info("Measurable deleted", measurable_id=measurable_id)
        return success_response(
            {
                "success": True,
                "message": f'Successfully deleted scorecard measurable "{name}" and all associated data',
                "measurableId": measurable_id,
                "measurableName": name,
            }
        )
