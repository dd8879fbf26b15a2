"""Build GraphQL filter input objects that are sent as query variables."""

from typing import Any


class Filter:
    """Accumulates connection-filter clauses for one field set.

    Each method ignores ``None`` values so optional tool arguments can be
    passed straight through. Clauses on the same field are merged, so
    ``gte`` and ``lte`` on ``createdAt`` produce a single range object.

    Example:
        >>> Filter().equal("stateId", "ACTIVE").contains_insensitive("name", "sales").build()
        {'stateId': {'equalTo': 'ACTIVE'}, 'name': {'includesInsensitive': 'sales'}}
    """

    def __init__(self) -> None:
        self._clauses: dict[str, dict[str, Any]] = {}

    def _add(self, field: str, operator: str, value: Any) -> "Filter":
        if value is None:
            return self
        self._clauses.setdefault(field, {})[operator] = value
        return self

    def equal(self, field: str, value: Any) -> "Filter":
        return self._add(field, "equalTo", value)

    def not_equal(self, field: str, value: Any) -> "Filter":
        return self._add(field, "notEqualTo", value)

    def is_in(self, field: str, values: list[Any] | None) -> "Filter":
        return self._add(field, "in", list(values) if values is not None else None)

    def is_null(self, field: str, value: bool | None = True) -> "Filter":
        return self._add(field, "isNull", value)

    def contains_insensitive(self, field: str, value: str | None) -> "Filter":
        return self._add(field, "includesInsensitive", value or None)

    def gte(self, field: str, value: Any) -> "Filter":
        return self._add(field, "greaterThanOrEqualTo", value)

    def lte(self, field: str, value: Any) -> "Filter":
        return self._add(field, "lessThanOrEqualTo", value)

    def less_than(self, field: str, value: Any) -> "Filter":
        return self._add(field, "lessThan", value)

    def __contains__(self, field: str) -> bool:
        return field in self._clauses

    def build(self) -> dict[str, Any] | None:
        if not self._clauses:
            return None
        return {field: dict(ops) for field, ops in self._clauses.items()}


def page_variables(filter_: Filter | None = None, first: int | None = None, offset: int | None = None) -> dict[str, Any]:
    """Variables for a filtered, paginated connection query, omitting unset values."""
    variables: dict[str, Any] = {}
    built = filter_.build() if filter_ is not None else None
    if built is not None:
        variables["filter"] = built
    if first is not None:
        variables["first"] = first
    if offset is not None:
        variables["offset"] = offset
    return variables
