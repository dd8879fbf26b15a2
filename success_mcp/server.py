"""FastMCP server exposing every tool group over stdio."""

import inspect
import re
from typing import Any

import structlog
from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from success_mcp.context import ToolContext
from success_mcp.errors import response_text
from success_mcp.tools import ALL_TOOLSETS
from success_mcp.tools.base import ToolMethod, ToolSpec

logger = structlog.get_logger()

SERVER_NAME = "Success.co"
INSTRUCTIONS = (
    "Read and update Success.co EOS data: teams, users, todos, rocks, milestones, issues, headlines, "
    "meetings, scorecard measurables, the leadership VTO, the accountability chart and comments. "
    "Pass leadershipTeam=true to scope a request to the leadership team."
)


def camel_case(name: str) -> str:
    """Public argument name for a Python parameter, e.g. team_id -> teamId."""
    head, *rest = name.rstrip("_").split("_")
    return head + "".join(part.capitalize() for part in rest)


def public_signature(method: ToolMethod) -> tuple[inspect.Signature, dict[str, str]]:
    """The method's signature with camelCase parameter names, and the map back to Python names."""
    signature = inspect.signature(method)
    names = {camel_case(name): name for name in signature.parameters}
    parameters = [param.replace(name=camel_case(param.name)) for param in signature.parameters.values()]
    return signature.replace(parameters=parameters, return_annotation=str), names


def _public_doc(doc: str | None, names: dict[str, str]) -> str | None:
    """Rename the Args entries of a docstring to the public argument names."""
    if not doc:
        return doc
    for public, name in names.items():
        doc = re.sub(rf"^([ \t]+){name}:", rf"\g<1>{public}:", doc, flags=re.MULTILINE)
    return doc


def _handler(context: ToolContext, spec: ToolSpec, method: ToolMethod) -> Any:
    """Async function FastMCP can introspect: the method's parameters under their camelCase names, returning plain text."""
    signature, names = public_signature(method)

    async def handler(**kwargs: Any) -> str:
        context.debug_log.tool_start(spec.name, kwargs)
        text = response_text(await method(**{names.get(key, key): value for key, value in kwargs.items()}))
        if text.startswith("Error"):
            context.debug_log.tool_end(spec.name, error=text)
        else:
            context.debug_log.tool_end(spec.name, result=text)
        return text

    handler.__name__ = spec.name
    handler.__doc__ = _public_doc(inspect.getdoc(method), names)
    handler.__signature__ = signature  # type: ignore[attr-defined]
    return handler


def build_server(context: ToolContext) -> FastMCP:
    """Create a FastMCP server with every tool bound to ``context``."""
    mcp = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)
    count = 0
    for toolset_cls in ALL_TOOLSETS:
        for spec, method in toolset_cls(context).tools():
            handler = _handler(context, spec, method)
            mcp.add_tool(
                handler,
                name=spec.name,
                description=handler.__doc__,
                annotations=ToolAnnotations(readOnlyHint=spec.read_only, destructiveHint=spec.destructive),
            )
            count += 1
    logger.info("Registered tools", count=count)
    return mcp


def serve(context: ToolContext) -> None:
    """Run the server on stdio until the client disconnects."""
    mcp = build_server(context)
    logger.info("Starting MCP server", transport="stdio", endpoint=context.settings.graphql_endpoint)
    mcp.run(transport="stdio")
