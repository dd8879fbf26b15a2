"""Tool errors and the text envelope every tool returns."""

import functools
import json
from collections.abc import Awaitable, Callable
from typing import Any, ParamSpec

import structlog

logger = structlog.get_logger()

P = ParamSpec("P")

ToolResponse = dict[str, list[dict[str, str]]]


def text_response(text: str) -> ToolResponse:
    """Wrap text in the tool response envelope."""
    return {"content": [{"type": "text", "text": text}]}


def success_response(data: Any) -> ToolResponse:
    """Serialize data as pretty JSON inside the envelope."""
    return text_response(json.dumps(data, indent=2, default=str))


def error_response(message: str) -> ToolResponse:
    return text_response(f"Error: {message}")


def response_text(response: ToolResponse) -> str:
    """Extract the text payload from an envelope."""
    return response["content"][0]["text"]


class ToolError(Exception):
    """Base class for errors reported back to the caller as text."""

    code = "TOOL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_response(self) -> ToolResponse:
        return error_response(self.message)


class RequiredFieldError(ToolError):
    code = "REQUIRED_FIELD"

    def __init__(self, field: str, message: str | None = None) -> None:
        super().__init__(message or f"{field} is required")
        self.field = field


class ValidationError(ToolError):
    code = "VALIDATION_ERROR"

    def __init__(self, field: str | None = None, reason: str | None = None, message: str | None = None) -> None:
        super().__init__(message or f"Invalid {field}: {reason}")
        self.field = field


class EntityNotFoundError(ToolError):
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found with ID: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class DatabaseError(ToolError):
    code = "DATABASE_ERROR"


class GraphQLError(ToolError):
    code = "GRAPHQL_ERROR"


class ContextError(ToolError):
    code = "CONTEXT_ERROR"

    def __init__(self, message: str = "Authentication required. No valid OAuth token or API key found.") -> None:
        super().__init__(message)


class LeadershipTeamNotFoundError(ToolError):
    code = "LEADERSHIP_TEAM_NOT_FOUND"

    def __init__(self) -> None:
        super().__init__(
            "Could not find leadership team. Please ensure a team is marked as the leadership team."
        )


class DuplicateEntityError(ToolError):
    code = "DUPLICATE_ENTITY"


class NoUpdatesError(ToolError):
    code = "NO_UPDATES"

    def __init__(self, message: str = "No updates specified. Provide at least one field to update.") -> None:
        super().__init__(message)


class InvalidDateError(ToolError):
    code = "INVALID_DATE"


def handles_errors(
    action: str,
) -> Callable[[Callable[P, Awaitable[ToolResponse]]], Callable[P, Awaitable[ToolResponse]]]:
    """Turn exceptions raised by a tool coroutine into error envelopes.

    ToolError subclasses become ``Error: {message}``. Anything else is logged
    and reported as ``Error {action}: {exc}``.

    Args:
        action: Gerund describing the tool, e.g. "creating rock"
    """

    def decorator(func: Callable[P, Awaitable[ToolResponse]]) -> Callable[P, Awaitable[ToolResponse]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> ToolResponse:
            try:
                return await func(*args, **kwargs)
            except ToolError as e:
                logger.info("Tool returned error", tool=func.__name__, code=e.code, message=e.message)
                return e.to_response()
            except Exception as e:
                logger.exception("Tool failed", tool=func.__name__)
                return text_response(f"Error {action}: {e}")

        return wrapper

    return decorator
