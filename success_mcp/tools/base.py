"""Base class and registration decorator for tool groups."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from success_mcp.context import ToolContext
from success_mcp.errors import GraphQLError, ToolResponse, handles_errors

logger = structlog.get_logger()

ToolMethod = Callable[..., Awaitable[ToolResponse]]


@dataclass(frozen=True)
class ToolSpec:
    """How a tool method is exposed to callers."""

    name: str
    read_only: bool = True
    destructive: bool = False


def tool(name: str, action: str, read_only: bool = True, destructive: bool = False) -> Callable[[ToolMethod], ToolMethod]:
    """Mark a ToolSet coroutine as a tool and wrap it with error handling.

    Args:
        name: Public tool name, e.g. "getTodos"
        action: Gerund used in unexpected-error messages, e.g. "fetching todos"
        read_only: Whether the tool only reads data
        destructive: Whether the tool deletes data
    """

    def decorator(func: ToolMethod) -> ToolMethod:
        wrapped = handles_errors(action)(func)
        wrapped.tool_spec = ToolSpec(name=name, read_only=read_only, destructive=destructive)  # type: ignore[attr-defined]
        return wrapped

    return decorator


class ToolSet:
    """A group of related tools sharing one ToolContext."""

    def __init__(self, context: ToolContext) -> None:
        self.context = context

    def tools(self) -> list[tuple[ToolSpec, ToolMethod]]:
        """All tool methods of this group with their specs, bound to this instance."""
        found = []
        for attr in sorted(dir(type(self))):
            spec = getattr(getattr(type(self), attr), "tool_spec", None)
            if isinstance(spec, ToolSpec):
                found.append((spec, getattr(self, attr)))
        return found

    async def _query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.context.query(query, variables)

    @staticmethod
    def _connection(data: dict[str, Any], key: str) -> tuple[list[dict[str, Any]], int]:
        """Nodes and totalCount of a connection field, tolerating a missing field."""
        connection = data.get(key) or {}
        nodes = connection.get("nodes") or []
        return nodes, connection.get("totalCount", len(nodes))

    @staticmethod
    def _mutation_payload(data: dict[str, Any], mutation: str, entity: str) -> dict[str, Any]:
        payload = (data.get(mutation) or {}).get(entity)
        if not payload:
            raise GraphQLError(f"{mutation} returned no {entity}")
        return payload

    async def _mutate(self, mutation: str, entity: str, fields: str, input_: dict[str, Any]) -> dict[str, Any]:
        """Run a single-entity mutation with its input passed as a variable.

        Args:
            mutation: Mutation field, e.g. "createTodo"
            entity: Payload field holding the entity, e.g. "todo"
            fields: Selection set for the entity
            input_: Value of the mutation's ``input`` argument
        """
        input_type = f"{mutation[0].upper()}{mutation[1:]}Input"
        document = f"""
        mutation {mutation[0].upper()}{mutation[1:]}($input: {input_type}!) {{
          {mutation}(input: $input) {{
            {entity} {{ {fields} }}
          }}
        }}
        """
        data = await self._query(document, {"input": input_})
        return self._mutation_payload(data, mutation, entity)

    async def _soft_delete(self, mutation: str, entity: str, entity_id: str) -> dict[str, Any]:
        """Set stateId to DELETED through an ``update*`` mutation."""
        return await self._mutate(mutation, entity, "id stateId", {"id": entity_id, "patch": {"stateId": "DELETED"}})
