"""GraphQL-over-HTTP client for the Success.co API using httpx."""

import json
from typing import Any

import httpx
import structlog

from success_mcp.debug_log import DebugLog
from success_mcp.models import GraphQLResult

logger = structlog.get_logger()

NO_AUTH_ERROR = (
    "No authentication available. Expected OAuth access token in request context, "
    "or DEVMODE_SUCCESS_API_KEY in dev mode with DEVMODE_SUCCESS_USE_API_KEY=true."
)


def _error_messages(errors: list[dict[str, Any]]) -> str:
    return "; ".join(str(err.get("message", err)) for err in errors)


class GraphQLClient:
    """Posts GraphQL documents to a single endpoint with bearer authentication.

    Failures come back as ``GraphQLResult(ok=False, error=...)`` rather than
    exceptions. There are three classes: a non-2xx or unreadable body, a non-2xx
    with a JSON error body, and a 2xx carrying a GraphQL ``errors`` array. The
    last keeps any partial ``data``.
    """

    def __init__(
        self,
        endpoint: str,
        debug_log: DebugLog | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the client.

        Args:
            endpoint: GraphQL endpoint URL
            debug_log: Optional debug log receiving every call
            http_client: Pre-built httpx client (tests inject a MockTransport here)
            timeout: Request timeout in seconds for the default client
        """
        self.endpoint = endpoint
        self.debug_log = debug_log
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))
        logger.debug("GraphQL client initialized", endpoint=endpoint)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _log_call(self, query: str, variables: dict[str, Any] | None, response: Any, status: int | None) -> None:
        if self.debug_log is not None:
            self.debug_log.graphql_call(self.endpoint, query, variables, response, status)

    async def execute(
        self,
        query: str,
        variables: dict[str, Any] | None = None,
        token: str | None = None,
    ) -> GraphQLResult:
        """Execute a query or mutation.

        Args:
            query: GraphQL document
            variables: Variables for the document
            token: Bearer token; the call is refused without one

        Returns:
            GraphQLResult with the response ``data`` object or an error string
        """
        if not token:
            logger.warning("GraphQL call attempted without authentication")
            return GraphQLResult(ok=False, error=NO_AUTH_ERROR)

        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        logger.debug("Executing GraphQL call", endpoint=self.endpoint, variables=variables)
        response = await self._client.post(
            self.endpoint,
            json=payload,
            headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
        )

        text = response.text
        body: dict[str, Any] | None = None
        if text:
            try:
                body = json.loads(text)
            except ValueError:
                self._log_call(query, variables, {"error": text}, response.status_code)
                logger.error("GraphQL response was not JSON", status=response.status_code)
                return GraphQLResult(
                    ok=False,
                    error=f"HTTP error! status: {response.status_code}, response: {text}",
                )

        self._log_call(query, variables, body, response.status_code)

        if not response.is_success:
            if body is None:
                details = "Unable to parse response"
                return GraphQLResult(
                    ok=False, error=f"HTTP error! status: {response.status_code}, response: {details}"
                )
            if body.get("errors"):
                details = _error_messages(body["errors"])
            else:
                details = body.get("error") or json.dumps(body)
            logger.error("GraphQL HTTP error", status=response.status_code, details=details)
            return GraphQLResult(ok=False, error=f"HTTP error! status: {response.status_code}, details: {details}")

        body = body or {}
        data = body.get("data")
        if body.get("errors"):
            messages = _error_messages(body["errors"])
            logger.warning("GraphQL errors in response", errors=messages)
            return GraphQLResult(ok=False, data=data, error=f"GraphQL error: {messages}")

        return GraphQLResult(ok=True, data=data or {})
