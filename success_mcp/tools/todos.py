"""Todo tools."""

from datetime import datetime, timezone

import structlog

from success_mcp.errors import NoUpdatesError, RequiredFieldError, ToolResponse, success_response
from success_mcp.filters import Filter, page_variables
from success_mcp.helpers import map_priority_to_number, validate_choice, validate_state_id
from success_mcp.tools.base import ToolSet, tool

logger = structlog.get_logger()

TODO_STATUSES = ("TODO", "COMPLETE", "OVERDUE", "ALL")
TODO_FIELDS = "id name desc todoStatusId teamId userId dueDate createdAt stateId companyId"

TODOS_QUERY = """
query Todos($filter: TodoFilter, $first: Int, $offset: Int) {
  todos(filter: $filter, first: $first, offset: $offset) {
    nodes {
      id
      todoStatusId
      name
      desc
      teamId
      userId
      statusUpdatedAt
      type
      dueDate
      priorityNo
      createdAt
      stateId
      companyId
      meetingId
    }
    totalCount
  }
}
"""


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_todo_filter(
    state_id: str,
    status: str | None,
    from_meetings: bool = False,
    team_id: str | None = None,
    user_id: str | None = None,
    keyword: str | None = None,
    created_after: str | None = None,
    created_before: str | None = None,
    completed_after: str | None = None,
    completed_before: str | None = None,
) -> Filter:
    """Filter for the todos connection.

    ALL (or no status) adds no status clause. OVERDUE means still TODO with a
    due date before now. Completion-date bounds apply to statusUpdatedAt and,
    without an explicit status, restrict to COMPLETE todos.
    """
    filter_ = Filter().equal("stateId", state_id)
    if from_meetings:
        filter_.is_null("meetingId", False)
    filter_.equal("teamId", team_id).equal("userId", user_id).contains_insensitive("name", keyword)

    if status in ("TODO", "COMPLETE"):
        filter_.equal("todoStatusId", status)
    elif status == "OVERDUE":
        filter_.equal("todoStatusId", "TODO").less_than("dueDate", _utc_now_iso())

    filter_.gte("createdAt", created_after).lte("createdAt", created_before)

    if completed_after or completed_before:
        filter_.gte("statusUpdatedAt", completed_after).lte("statusUpdatedAt", completed_before)
        if not status or status == "ALL":
            filter_.equal("todoStatusId", "COMPLETE")
    return filter_


class TodoTools(ToolSet):
    """To-dos: short action items owned by one user on a team."""

    @tool("getTodos", "fetching todos")
    async def get_todos(
        self,
        first: int | None = None,
        offset: int | None = None,
        state_id: str = "ACTIVE",
        from_meetings: bool = False,
        team_id: str | None = None,
        leadership_team: bool = False,
        user_id: str | None = None,
        status: str = "TODO",
        keyword: str | None = None,
        created_after: str | None = None,
        created_before: str | None = None,
        completed_after: str | None = None,
        completed_before: str | None = None,
    ) -> ToolResponse:
        """List todos.

        Args:
            first: Page size
            offset: Number of todos to skip
            state_id: ACTIVE, INACTIVE or DELETED
            from_meetings: Only todos created in a meeting
            team_id: Only todos of this team
            leadership_team: Use the leadership team instead of team_id
            user_id: Only todos owned by this user
            status: TODO, COMPLETE, OVERDUE or ALL
            keyword: Case-insensitive substring of the todo name
            created_after: Created on or after this ISO date
            created_before: Created on or before this ISO date
            completed_after: Completed on or after this ISO date
            completed_before: Completed on or before this ISO date
        """
        validate_state_id(state_id)
        if status:
            validate_choice(status, TODO_STATUSES, 'Invalid status - must be "TODO", "COMPLETE", "OVERDUE", or "ALL"')
        team_id = await self.context.resolve_team_id(team_id, leadership_team)

        filter_ = build_todo_filter(
            state_id,
            status,
            from_meetings=from_meetings,
            team_id=team_id,
            user_id=user_id,
            keyword=keyword,
            created_after=created_after,
            created_before=created_before,
            completed_after=completed_after,
            completed_before=completed_before,
        )
        logger.info("Fetching todos", status=status, team_id=team_id, user_id=user_id)
        data = await self._query(TODOS_QUERY, page_variables(filter_, first, offset))
        todos, total = self._connection(data, "todos")
        return success_response(
            {
                "totalCount": total,
                "results": [
                    {
                        "id": todo["id"],
                        "name": todo.get("name"),
                        "description": todo.get("desc") or "",
                        "status": todo.get("todoStatusId"),
                        "type": todo.get("type"),
                        "priority": todo.get("priorityNo"),
                        "dueDate": todo.get("dueDate"),
                        "teamId": todo.get("teamId"),
                        "userId": todo.get("userId"),
                        "meetingId": todo.get("meetingId"),
                        "createdAt": todo.get("createdAt"),
                        "statusUpdatedAt": todo.get("statusUpdatedAt"),
                    }
                    for todo in todos
                ],
            }
        )

    @tool("createTodo", "creating todo", read_only=False)
    async def create_todo(
        self,
        name: str,
        team_id: str | None = None,
        leadership_team: bool = False,
        desc: str = "",
        user_id: str | None = None,
        due_date: str | None = None,
        priority: str = "Medium",
    ) -> ToolResponse:
        """Create a todo on a team. The owner defaults to the authenticated user.

        Args:
            name: Todo text
            team_id: Team the todo belongs to
            leadership_team: Use the leadership team instead of team_id
            desc: Longer description
            user_id: Owner of the todo
            due_date: Due date (YYYY-MM-DD)
            priority: High, Medium, Low or No priority
        """
        if not name or not name.strip():
            raise RequiredFieldError("name", "Todo name is required")
        team_id = await self.context.resolve_team_id(team_id, leadership_team, required=True)
        user_context = await self.context.require_user_context()

        todo_input = {
            "name": name,
            "desc": desc,
            "todoStatusId": "TODO",
            "priorityNo": map_priority_to_number(priority),
            "teamId": team_id,
            "userId": user_id or user_context.user_id,
            "companyId": user_context.company_id,
            "stateId": "ACTIVE",
        }
        if due_date:
            todo_input["dueDate"] = due_date

        logger.info("Creating todo", team_id=team_id)
        todo = await self._mutate("createTodo", "todo", TODO_FIELDS, {"todo": todo_input})
        logger.info("Todo created", todo_id=todo.get("id"))
        return success_response({"success": True, "message": "Todo created successfully", "todo": todo})

    @tool("updateTodo", "updating todo", read_only=False)
    async def update_todo(
        self,
        todo_id: str,
        todo_status_id: str | None = None,
        name: str | None = None,
        desc: str | None = None,
        due_date: str | None = None,
    ) -> ToolResponse:
        """Update a todo's status, name, description or due date.

        Args:
            todo_id: Todo to update
            todo_status_id: TODO or COMPLETE
            name: New name
            desc: New description (an empty string clears it)
            due_date: New due date (YYYY-MM-DD)
        """
        if not todo_id:
            raise RequiredFieldError("todoId", "Todo ID is required")
        await self.context.require_user_context()
        if todo_status_id:
            validate_choice(todo_status_id, ("TODO", "COMPLETE"), 'Invalid todoStatusId - must be "TODO" or "COMPLETE"')

        patch: dict[str, str] = {}
        if todo_status_id:
            patch["todoStatusId"] = todo_status_id
        if name:
            patch["name"] = name
        if desc is not None:
            patch["desc"] = desc
        if due_date:
            patch["dueDate"] = due_date
        if not patch:
            raise NoUpdatesError(
                "No updates specified. Provide at least one field to update (todoStatusId, name, desc, or dueDate)"
            )

        todo = await self._mutate(
            "updateTodo",
            "todo",
            "id name desc todoStatusId dueDate statusUpdatedAt stateId",
            {"id": todo_id, "patch": patch},
        )
        return success_response({"success": True, "message": "Todo updated successfully", "todo": todo})

    @tool("deleteTodo", "deleting todo", read_only=False, destructive=True)
    async def delete_todo(self, todo_id: str) -> ToolResponse:
        """Delete a todo by marking it DELETED. Use getTodos with a keyword to find the id.

        Args:
            todo_id: Todo to delete
        """
        if not todo_id:
            raise RequiredFieldError("todoId", "Todo ID is required")
        await self.context.require_user_context()
        todo = await self._soft_delete("updateTodo", "todo", todo_id)
        return success_response({"success": True, "message": "Todo deleted successfully", "todo": todo})
