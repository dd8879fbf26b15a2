"""Data models for success-mcp."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class UserContext:
    """Company and user identity the tools act on behalf of."""

    company_id: str
    user_id: str
    user_email: str | None = None


@dataclass(frozen=True)
class AuthContext:
    """Per-request authentication handed over by the transport."""

    access_token: str | None = None
    company_id: str | None = None
    user_id: str | None = None
    user_email: str | None = None
    is_api_key_mode: bool = False


@dataclass
class GraphQLResult:
    """Outcome of a GraphQL call.

    ``data`` is the response's ``data`` object. It may be present even when
    ``ok`` is False if the server returned partial data alongside errors.
    """

    ok: bool
    data: dict[str, Any] | None = None
    error: str | None = None


@dataclass
class Seat:
    """Accountability chart seat with its resolved children."""

    id: str
    name: str
    parent_id: str | None = None
    order: int = 0
    holders: list[str] = field(default_factory=list)
    roles: list[dict[str, str]] = field(default_factory=list)
    children: list["Seat"] = field(default_factory=list)
    level: int = 0
