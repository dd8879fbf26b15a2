"""Resolve API keys to company and user identity."""

import structlog

from success_mcp.database import Database
from success_mcp.models import UserContext

logger = structlog.get_logger()

API_KEY_PREFIX = "suc_api_"

IDENTITY_SQL = """
SELECT u.company_id, u.id AS user_id
FROM user_api_keys k
JOIN users u ON k.user_id = u.id
WHERE k.key = %s
LIMIT 1
"""


class IdentityResolver:
    """Looks up the company/user owning an API key.

    Results are cached for the life of the resolver, keyed by the key as
    given (prefix included). Misses are not cached.
    """

    def __init__(self, database: Database | None) -> None:
        self.database = database
        self._cache: dict[str, UserContext] = {}

    def clear(self) -> None:
        self._cache.clear()

    async def resolve(self, api_key: str | None) -> UserContext | None:
        """Resolve an API key.

        Args:
            api_key: Raw API key, with or without the ``suc_api_`` prefix

        Returns:
            UserContext, or None if the key is unknown or no database is configured
        """
        if not api_key:
            return None

        cached = self._cache.get(api_key)
        if cached is not None:
            logger.debug("Identity cache hit", company_id=cached.company_id)
            return cached

        if self.database is None:
            logger.warning("Cannot resolve API key without a database connection")
            return None

        key = api_key[len(API_KEY_PREFIX):] if api_key.startswith(API_KEY_PREFIX) else api_key
        row = await self.database.fetch_one(IDENTITY_SQL, (key,))
        if not row:
            logger.warning("No user found for API key")
            return None

        context = UserContext(company_id=str(row["company_id"]), user_id=str(row["user_id"]))
        self._cache[api_key] = context
        logger.info("Resolved API key identity", company_id=context.company_id, user_id=context.user_id)
        return context
