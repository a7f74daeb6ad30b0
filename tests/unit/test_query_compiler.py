from __future__ import annotations

import copy

from sqlalchemy import column, delete, func, literal_column, select, table, update

from d1_adapter.sql.abstract import to_statement
from d1_adapter.sql.query import QueryCriteria, compile_query

USERS = table("users")


def _select_all(query):
    stmt = compile_query(QueryCriteria(), query).apply(select(literal_column("*")).select_from(USERS))
    statement = to_statement(stmt)
    return " ".join(statement.sql.split()), statement.params


def test_empty_query_has_no_where_clause() -> None:
    sql, params = _select_all({})

    assert sql == "SELECT * FROM users"
    assert params == []


def test_none_query_is_treated_as_empty() -> None:
    criteria = compile_query(QueryCriteria(), None)

    assert criteria.where == []
    assert criteria.limit is None
    assert not criteria.paginated


def test_equality_operators_bind_values() -> None:
    sql, params = _select_all({"name": {"==": "Ada"}, "email": {"===": "ada@example.com"}})

    assert sql == "SELECT * FROM users WHERE name = ? AND email = ?"
    assert params == ["Ada", "ada@example.com"]


def test_not_equal_operators() -> None:
    sql, params = _select_all({"status": {"!=": "banned"}, "role": {"!==": "admin"}})

    assert "status != ?" in sql
    assert "role != ?" in sql
    assert params == ["banned", "admin"]


def test_age_range_yields_two_anded_predicates() -> None:
    sql, params = _select_all({"age": {">=": 18, "<": 65}})

    assert sql == "SELECT * FROM users WHERE age >= ? AND age < ?"
    assert params == [18, 65]


def test_all_comparison_operators() -> None:
    sql, params = _select_all({"a": {">": 1}, "b": {">=": 2}, "c": {"<": 3}, "d": {"<=": 4}})

    assert "a > ?" in sql
    assert "b >= ?" in sql
    assert "c < ?" in sql
    assert "d <= ?" in sql
    assert params == [1, 2, 3, 4]


def test_membership_operators_expand_placeholders() -> None:
    sql, params = _select_all({"status": {"in": ["active", "trial"]}, "tag": {"contains": ["x"]}})

    assert "status IN (?, ?)" in sql
    assert "tag IN (?)" in sql
    assert params == ["active", "trial", "x"]


def test_exclusion_operators() -> None:
    sql, params = _select_all({"status": {"notIn": ["banned", "deleted"]}, "tag": {"notContains": ["spam"]}})

    assert "status NOT IN (?, ?)" in sql
    assert "tag NOT IN (?)" in sql
    assert params == ["banned", "deleted", "spam"]


def test_unknown_operator_is_ignored() -> None:
    sql, params = _select_all({"name": {"like": "A%"}})

    assert sql == "SELECT * FROM users"
    assert params == []


def test_unknown_operator_next_to_known_one() -> None:
    sql, params = _select_all({"name": {"like": "A%", "==": "Ada"}})

    assert sql == "SELECT * FROM users WHERE name = ?"
    assert params == ["Ada"]


def test_limit_and_offset_are_bound() -> None:
    sql, params = _select_all({"limit": 10, "offset": 20})

    assert "WHERE" not in sql
    assert sql.endswith("LIMIT ? OFFSET ?")
    assert params == [10, 20]


def test_limit_and_offset_independent_of_key_order() -> None:
    assert _select_all({"offset": 20, "limit": 10}) == _select_all({"limit": 10, "offset": 20})


def test_order_by_direction_is_case_insensitive() -> None:
    sql, _ = _select_all({"orderBy": [["created_at", "DESC"], ["name", "Asc"]]})

    assert sql == "SELECT * FROM users ORDER BY created_at DESC, name ASC"


def test_bare_order_by_entry_is_ascending() -> None:
    sql, _ = _select_all({"orderBy": ["name"]})

    assert sql == "SELECT * FROM users ORDER BY name ASC"


def test_nested_where_is_compiled_into_same_builder() -> None:
    sql, params = _select_all({"where": {"age": {">": 30}, "where": {"name": {"==": "Ada"}}}, "limit": 5})

    assert "age > ?" in sql
    assert "name = ?" in sql
    assert "LIMIT ?" in sql
    assert params[:2] == ["Ada", 30]
    assert params[2] == 5


def test_caller_query_is_not_mutated() -> None:
    query = {"where": {"age": {">=": 18}}, "limit": 3, "orderBy": [["age", "desc"]]}
    snapshot = copy.deepcopy(query)

    compile_query(QueryCriteria(), query)

    assert query == snapshot


def test_count_statement_shape() -> None:
    stmt = compile_query(QueryCriteria(), {"status": {"==": "active"}}).apply(
        select(func.count().label("count")).select_from(USERS)
    )
    statement = to_statement(stmt)

    assert " ".join(statement.sql.split()) == "SELECT count(*) AS count FROM users WHERE status = ?"
    assert statement.params == ["active"]


def test_restrict_without_pagination_uses_plain_where() -> None:
    target = table("users", column("status"))
    criteria = compile_query(QueryCriteria(), {"age": {"<": 18}})
    statement = to_statement(criteria.restrict(update(target).values(status="minor"), target))

    assert " ".join(statement.sql.split()) == "UPDATE users SET status=? WHERE age < ?"
    assert statement.params == ["minor", 18]


def test_restrict_with_limit_selects_rowids() -> None:
    criteria = compile_query(QueryCriteria(), {"status": {"==": "stale"}, "limit": 100})
    statement = to_statement(criteria.restrict(delete(USERS), USERS))
    sql = " ".join(statement.sql.split())

    assert sql.startswith("DELETE FROM users WHERE rowid IN (SELECT rowid FROM users WHERE status = ?")
    assert statement.params[:2] == ["stale", 100]
