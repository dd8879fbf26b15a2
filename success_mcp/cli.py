"""CLI for success-mcp."""

import asyncio
import sys
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter
from dotenv import load_dotenv

from success_mcp.config import Settings, get_config
from success_mcp.config_commands import config_app
from success_mcp.context import ToolContext
from success_mcp.database import Database
from success_mcp.server import serve as run_server

logger = structlog.get_logger()

app = App(
    name="success-mcp",
    help="Success.co MCP server - EOS data tools for LLMs",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level, writing to stderr."""
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


def get_settings() -> Settings:
    """Load .env and resolve settings against the configured files."""
    load_dotenv()
    return get_config().settings()


@app.command
def serve() -> None:
    """Run the MCP server on stdio."""
    settings = get_settings()
    if not settings.api_key_mode:
        logger.warning(
            "API key mode is off; tools need an OAuth token in the request context",
            use_api_key=settings.use_api_key,
            dev_mode=settings.dev_mode,
        )
    run_server(ToolContext.from_settings(settings))


@app.command(name="check-db")
def check_db() -> None:
    """Test the database connection used for API key lookups."""
    settings = get_settings()
    database = Database.from_settings(settings)
    if database is None:
        print("Database not configured. Set DATABASE_URL or DB_HOST.")
        sys.exit(1)

    async def run() -> dict:
        try:
            return await database.test_connection()
        finally:
            await database.close()

    result = asyncio.run(run())
    if result["ok"]:
        print(result["message"])
    else:
        print(result["error"])
        sys.exit(1)


@app.command
def whoami() -> None:
    """Show the company and user the configured API key belongs to."""
    settings = get_settings()
    if not settings.api_key:
        print("No API key configured. Set DEVMODE_SUCCESS_API_KEY or `success-mcp config set api_key <key>`.")
        sys.exit(1)
    context = ToolContext.from_settings(settings)

    async def run():
        try:
            return await context.identity.resolve(settings.api_key)
        finally:
            await context.aclose()

    user_context = asyncio.run(run())
    if user_context is None:
        print("Could not resolve the API key. Check the key and the database settings.")
        sys.exit(1)
    print(f"Company: {user_context.company_id}")
    print(f"User: {user_context.user_id}")
    print(f"Endpoint: {settings.graphql_endpoint}")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "warning",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
