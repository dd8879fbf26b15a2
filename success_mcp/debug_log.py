"""Append-only debug log of GraphQL traffic and tool calls (dev mode only)."""

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger()

RULE = "=" * 80
THIN_RULE = "-" * 80
WHITESPACE = re.compile(r"\s+")


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


class DebugLog:
    """Best-effort debug log file. Write failures are logged and otherwise ignored."""

    def __init__(self, path: str | Path, enabled: bool = False) -> None:
        self.path = Path(path)
        self.enabled = enabled

    def _append(self, text: str) -> None:
        if not self.enabled:
            return
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.warning("Failed to write debug log", path=str(self.path), error=str(e))

    def clear(self) -> None:
        """Truncate the log and write a startup banner."""
        if not self.enabled:
            return
        try:
            self.path.write_text(f"=== Debug log started at {_timestamp()} ===\n", encoding="utf-8")
        except OSError as e:
            logger.warning("Failed to clear debug log", path=str(self.path), error=str(e))

    def graphql_call(
        self,
        url: str,
        query: str,
        variables: dict[str, Any] | None,
        response: Any,
        status: int | None,
    ) -> None:
        ts = _timestamp()
        compact_query = WHITESPACE.sub(" ", query).strip()
        lines = [
            f"\n=== GraphQL Call {ts} ===",
            f"URL: {url}",
            f"Status: {status}",
            f"Query: {compact_query}",
        ]
        if variables:
            lines.append(f"Variables: {_dump(variables)}")
        lines.append(f"Response: {_dump(response) if response is not None else None}")
        lines.append("=== End GraphQL Call ===\n")
        self._append("\n".join(lines))

    def tool_start(self, tool_name: str, arguments: dict[str, Any] | None) -> None:
        args_text = f"Arguments:\n{_dump(arguments)}" if arguments else "Arguments: (none)"
        self._append(f"\n{RULE}\n>>> TOOL CALL START: {tool_name} [{_timestamp()}]\n{RULE}\n{args_text}\n{THIN_RULE}\n")

    def tool_end(self, tool_name: str, result: Any = None, error: str | None = None) -> None:
        body = f"ERROR:\n{error}" if error else f"Result:\n{_dump(result)}"
        self._append(f"{THIN_RULE}\n<<< TOOL CALL END: {tool_name} [{_timestamp()}]\n{body}\n{RULE}\n")
