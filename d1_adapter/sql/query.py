"""
Query compiler: abstract, operator-tagged query objects -> SQLAlchemy Core criteria.

The mapper framework describes reads, updates and deletes with plain mappings:

    {
        "where": {"age": {">=": 18, "<": 65}, "status": {"in": ["active", "trial"]}},
        "orderBy": [["created_at", "DESC"]],
        "limit": 10,
        "offset": 20,
    }

`compile_query` folds such a mapping into a `QueryCriteria` (the builder
state), which is then attached to a SELECT (`QueryCriteria.apply`) or to an
UPDATE/DELETE (`QueryCriteria.restrict`). Every value ends up as a bound
parameter; nothing is interpolated into SQL text.
"""

from __future__ import annotations

import copy
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, TypeVar, Union

from sqlalchemy import (
    ColumnElement,
    Delete,
    Select,
    TableClause,
    Update,
    column,
    literal_column,
    select,
)

MutationT = TypeVar("MutationT", bound=Union[Update, Delete])

_COMPARISONS: Dict[str, Callable[[Any, Any], ColumnElement[bool]]] = {
    "==": operator.eq,
    "===": operator.eq,
    "!=": operator.ne,
    "!==": operator.ne,
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
}

# operator -> True for membership, False for exclusion
_MEMBERSHIP: Dict[str, bool] = {
    "in": True,
    "contains": True,
    "notIn": False,
    "notContains": False,
}

_ROWID = "rowid"


@dataclass
class QueryCriteria:
    """
    Builder state accumulated while compiling an abstract query.

    All ``where`` predicates are ANDed; there is no OR support.
    """

    where: List[ColumnElement[bool]] = field(default_factory=list)
    order_by: List[ColumnElement[Any]] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None

    @property
    def paginated(self) -> bool:
        return self.limit is not None or self.offset is not None or bool(self.order_by)

    def apply(self, stmt: Select) -> Select:
        """Attach WHERE / ORDER BY / LIMIT / OFFSET to a SELECT."""
        if self.where:
            stmt = stmt.where(*self.where)
        if self.order_by:
            stmt = stmt.order_by(*self.order_by)
        if self.limit is not None:
            stmt = stmt.limit(self.limit)
        if self.offset is not None:
            stmt = stmt.offset(self.offset)
        return stmt

    def restrict(self, stmt: MutationT, table: TableClause) -> MutationT:
        """
        Attach the criteria to an UPDATE or DELETE.

        SQLite has no portable ``UPDATE ... LIMIT``, so ordering and pagination
        select the affected rows through a rowid subquery.
        """
        if self.paginated:
            # same table on both sides: the subquery must keep its own FROM
            rowids = self.apply(select(literal_column(_ROWID)).select_from(table)).correlate(None)
            return stmt.where(literal_column(_ROWID).in_(rowids))
        if self.where:
            return stmt.where(*self.where)
        return stmt


def _membership(field_name: str, values: Any, include: bool) -> ColumnElement[bool]:
    if isinstance(values, (str, bytes)) or not hasattr(values, "__iter__"):
        values = [values]
    col = column(field_name)
    return col.in_(list(values)) if include else col.not_in(list(values))


def _order_clause(entry: Any) -> ColumnElement[Any]:
    if isinstance(entry, str):
        return column(entry).asc()
    name, direction = entry
    return column(name).desc() if str(direction).lower() == "desc" else column(name).asc()


def compile_query(criteria: QueryCriteria, query: Optional[Mapping[str, Any]]) -> QueryCriteria:
    """
    Fold an abstract query into ``criteria`` and return it.

    Keys are consumed in order: ``limit``, ``offset``, ``orderBy``, ``where``
    (compiled recursively into the same criteria), then every remaining key as
    a field name mapping operator -> value. Unrecognized operators are ignored.
    The caller's mapping is never mutated.
    """
    remaining: Dict[str, Any] = dict(copy.deepcopy(query)) if query else {}

    if "limit" in remaining:
        criteria.limit = remaining.pop("limit")

    if "offset" in remaining:
        criteria.offset = remaining.pop("offset")

    if "orderBy" in remaining:
        for entry in remaining.pop("orderBy") or []:
            criteria.order_by.append(_order_clause(entry))

    if "where" in remaining:
        compile_query(criteria, remaining.pop("where"))

    for field_name, conditions in remaining.items():
        if not isinstance(conditions, Mapping):
            continue
        for op, value in conditions.items():
            if op in _COMPARISONS:
                criteria.where.append(_COMPARISONS[op](column(field_name), value))
            elif op in _MEMBERSHIP:
                criteria.where.append(_membership(field_name, value, _MEMBERSHIP[op]))

    return criteria


__all__ = ["QueryCriteria", "compile_query"]
