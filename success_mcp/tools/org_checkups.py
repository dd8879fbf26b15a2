"""Organizational checkups with their answers."""

import asyncio
from typing import Any

import structlog

from success_mcp.errors import ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

CHECKUPS_QUERY = """
query OrgCheckups($filter: OrgCheckupFilter, $first: Int, $offset: Int) {
  orgCheckups(filter: $filter, first: $first, offset: $offset) {
    nodes { id orgCheckupStatusId createdAt updatedAt stateId companyId }
    totalCount
  }
}
"""

ANSWERS_QUERY = """
query OrgCheckupAnswers($filter: OrgCheckupAnswerFilter) {
  orgCheckupAnswers(filter: $filter) {
    nodes { id orgCheckupId questionNumber score createdByUserId isFinal createdAt updatedAt }
  }
}
"""


class OrgCheckupTools(ToolSet):
    async def _with_answers(self, checkup: dict[str, Any]) -> dict[str, Any]:
        result = await self.context.execute(
            ANSWERS_QUERY, {"filter": Filter().equal("orgCheckupId", checkup["id"]).build()}
        )
        if not result.ok:
            logger.warning("Could not load checkup answers", checkup_id=checkup["id"], error=result.error)
            return {**checkup, "answers": []}
        return {**checkup, "answers": self._connection(result.data or {}, "orgCheckupAnswers")[0]}

    @tool("getOrgCheckups", "fetching org checkups")
    async def get_org_checkups(
        self,
        first: int = 50,
        offset: int = 0,
        state_id: str = "ACTIVE",
        checkup_id: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
    ) -> ToolResponse:
        """List organizational checkups with the answer scores per question.

        Args:
            first: Page size
            offset: Number of checkups to skip
            state_id: ACTIVE, INACTIVE or DELETED
            checkup_id: Only this checkup
            created_after: Created on or after this ISO date
            created_before: Created on or before this ISO date
        """
        validate_state_id(state_id)
        filter_ = (
            Filter()
            .equal("stateId", state_id)
            .equal("id", checkup_id)
            .gte("createdAt", created_after)
            .lte("createdAt", created_before)
        )
        data = await self._query(CHECKUPS_QUERY, page_variables(filter_, first, offset))
        checkups, total = self._connection(data, "orgCheckups")
        detailed = await asyncio.gather(*(self._with_answers(checkup) for checkup in checkups))
        return success_response({"totalCount": total, "checkups": list(detailed)})
