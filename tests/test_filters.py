"""Tests for the GraphQL filter builder."""

from success_mcp.filters import Filter, page_variables


def test_none_values_are_ignored() -> None:
    """Test that unset optional arguments add no clause."""
    assert Filter().equal("teamId", None).is_in("id", None).contains_insensitive("name", "").build() is None


def test_clauses_on_one_field_merge() -> None:
    """Test that range bounds on the same field form one object."""
    built = Filter().gte("createdAt", "2024-01-01").lte("createdAt", "2024-03-31").build()
    assert built == {"createdAt": {"greaterThanOrEqualTo": "2024-01-01", "lessThanOrEqualTo": "2024-03-31"}}


def test_operators() -> None:
    """Test each operator's GraphQL name."""
    built = (
        Filter()
        .equal("stateId", "ACTIVE")
        .not_equal("todoStatusId", "COMPLETE")
        .is_in("id", ("a", "b"))
        .is_null("meetingId", False)
        .contains_insensitive("name", "Sales")
        .less_than("dueDate", "2024-05-01")
        .build()
    )
    assert built == {
        "stateId": {"equalTo": "ACTIVE"},
        "todoStatusId": {"notEqualTo": "COMPLETE"},
        "id": {"in": ["a", "b"]},
        "meetingId": {"isNull": False},
        "name": {"includesInsensitive": "Sales"},
        "dueDate": {"lessThan": "2024-05-01"},
    }
    assert "stateId" in Filter().equal("stateId", "ACTIVE")


def test_user_text_is_not_interpolated() -> None:
    """Test that quotes in user text stay inside the variable value."""
    keyword = 'x"} ) { secrets'
    assert Filter().contains_insensitive("name", keyword).build() == {"name": {"includesInsensitive": keyword}}


def test_page_variables() -> None:
    """Test that unset paging and empty filters are omitted."""
    assert page_variables() == {}
    assert page_variables(Filter(), first=0) == {"first": 0}
    assert page_variables(Filter().equal("stateId", "ACTIVE"), 10, 20) == {
        "filter": {"stateId": {"equalTo": "ACTIVE"}},
        "first": 10,
        "offset": 20,
    }
