"""
Shared SQL contracts for the D1 adapter.

`Statement` is what every compiler produces and what the remote client
consumes: SQL text with ``?`` placeholders plus the positional parameter list.
`SQLExecutor` is the minimal interface the table registry and the adapter need
from the remote client, so tests can substitute a recording fake.
"""

from __future__ import annotations

from typing import Any, List, NamedTuple, Optional, Protocol, Sequence, runtime_checkable

from sqlalchemy.dialects import sqlite
from sqlalchemy.sql import ClauseElement

from d1_adapter.domain.models import QueryResult

# D1 speaks SQLite; qmark placeholders are what the /query endpoint binds.
_DIALECT = sqlite.dialect(paramstyle="qmark")

# Remote catalog: one row per table, name in the ``name`` column.
CATALOG_SQL = "SELECT name FROM sqlite_master WHERE type = 'table'"


class Statement(NamedTuple):
    sql: str
    params: List[Any]


def to_statement(stmt: ClauseElement) -> Statement:
    """
    Render a SQLAlchemy Core statement to SQLite SQL text and ordered bindings.

    IN-lists are expanded at compile time so the placeholder count in the
    text matches the parameter list exactly.
    """
    compiled = stmt.compile(dialect=_DIALECT, compile_kwargs={"render_postcompile": True})
    params = compiled.params
    names = compiled.positiontup or []
    return Statement(sql=str(compiled), params=[params[name] for name in names])


def table_names(result: QueryResult) -> List[str]:
    """Table names from a `CATALOG_SQL` result set, skipping rows without one."""
    return [row["name"] for row in result.results if row.get("name")]


@runtime_checkable
class SQLExecutor(Protocol):
    """
    Anything able to run one SQL statement remotely and return its result set.
    """

    async def execute_sql(
        self, sql: str, params: Optional[Sequence[Any]] = None
    ) -> QueryResult:
        """
        Execute ``sql`` with positional ``params``.

        Raises
        ------
        RemoteSQLError
            When the remote side reports a failure.
        """
        ...


__all__ = ["CATALOG_SQL", "SQLExecutor", "Statement", "table_names", "to_statement"]
