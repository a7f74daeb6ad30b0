"""
CRUD orchestrator: the adapter facade the mapper framework talks to.

Each core operation (``_count``, ``_create``, ...) resolves the mapper's table,
makes sure it exists, builds a SQLAlchemy Core statement, runs it remotely and
returns ``(payload, meta)`` where ``meta`` is the untouched D1 execution
metadata. The public wrappers (``count``, ``create``, ...) return only the
payload, or an `AdapterResponse` when raw mode is on.

Usage:
    from d1_adapter import D1Adapter

    async with D1Adapter() as adapter:
        user = await adapter.create({"name": "User"}, {"name": "Ada"})
        adults = await adapter.find_all("User", {"age": {">=": 18}})
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from sqlalchemy import TableClause, column, delete, func, insert, literal_column, select, table, update

from d1_adapter.config import Settings, get_settings
from d1_adapter.domain.models import Mapper, QueryResult
from d1_adapter.errors import AdapterError
from d1_adapter.infrastructure.client import RemoteSQLClient
from d1_adapter.infrastructure.registry import TableRegistry
from d1_adapter.sql.abstract import SQLExecutor, to_statement
from d1_adapter.sql.query import QueryCriteria, compile_query
from d1_adapter.utils.logging import get_logger

log = get_logger(__name__)

MapperLike = Union[Mapper, Mapping[str, Any], str]
Meta = Dict[str, Any]
Record = Dict[str, Any]
Query = Optional[Mapping[str, Any]]
Raw = Optional[bool]


@dataclass
class AdapterResponse:
    """Payload plus D1 metadata, returned by the public operations in raw mode."""

    data: Any
    meta: Meta
    op: str


def _as_mapper(mapper: MapperLike) -> Mapper:
    if isinstance(mapper, Mapper):
        return mapper
    if isinstance(mapper, str):
        return Mapper(name=mapper)
    return Mapper.model_validate(mapper)


def _bind_value(value: Any) -> Any:
    # object/array columns are TEXT; store JSON
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def _bind_record(record: Mapping[str, Any], keys: Sequence[str]) -> Record:
    return {key: _bind_value(record.get(key)) for key in keys}


def _require_changes(mapper: MapperLike, props: Mapping[str, Any]) -> None:
    # an empty SET list renders invalid SQL
    if not props:
        raise AdapterError(f"Empty update for table {_as_mapper(mapper).table_name}")


def _table(name: str, keys: Sequence[str] = ()) -> TableClause:
    return table(name, *(column(key) for key in keys))


class D1Adapter:
    """
    Adapter between the mapper framework and one Cloudflare D1 database.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to `get_settings()`.
    client : SQLExecutor, optional
        Remote executor. When omitted a `RemoteSQLClient` is built from
        ``settings`` and closed by `aclose()`.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[SQLExecutor] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._owns_client = client is None
        self.client: SQLExecutor = client or RemoteSQLClient.from_settings(self.settings)
        self.registry = TableRegistry(self.client, autocreate=self.settings.autocreate_tables)
        self._seed_task: Optional[asyncio.Task] = None

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._start_seed()

    # ---- lifecycle -----------------------------------------------------

    def _start_seed(self) -> None:
        if self._seed_task is not None:
            return
        self._seed_task = asyncio.get_running_loop().create_task(self.registry.seed())
        self._seed_task.add_done_callback(self._seed_done)

    @staticmethod
    def _seed_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.warning("Table cache seeding failed", extra={"error": repr(exc)})

    async def wait_seeded(self) -> None:
        """
        Wait until the table cache holds the remote catalog.

        Unlike the detached seeding, a failure here propagates to the caller.
        """
        self._start_seed()
        await self._seed_task

    async def aclose(self) -> None:
        if self._seed_task is not None and not self._seed_task.done():
            self._seed_task.cancel()
        if self._owns_client and isinstance(self.client, RemoteSQLClient):
            await self.client.aclose()

    async def __aenter__(self) -> "D1Adapter":
        self._start_seed()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ---- helpers -------------------------------------------------------

    def _dbg(self, message: str, **fields: Any) -> None:
        if self.settings.debug:
            log.debug(message, extra=fields)

    async def _prepare(self, mapper: MapperLike) -> Mapper:
        self._start_seed()
        resolved = _as_mapper(mapper)
        await self.registry.ensure_mapper(resolved)
        return resolved

    async def _run(self, stmt: Any) -> QueryResult:
        statement = to_statement(stmt)
        return await self.client.execute_sql(statement.sql, statement.params)

    def _respond(self, data: Any, meta: Meta, op: str, raw: Optional[bool]) -> Any:
        if self.settings.raw if raw is None else raw:
            return AdapterResponse(data=data, meta=meta, op=op)
        return data

    # ---- core operations -----------------------------------------------

    async def _count(self, mapper: MapperLike, query: Query = None) -> Tuple[int, Meta]:
        resolved = await self._prepare(mapper)
        self._dbg("_count", mapper=resolved.name, query=query)
        criteria = compile_query(QueryCriteria(), query)
        stmt = criteria.apply(select(func.count().label("count")).select_from(_table(resolved.table_name)))

        result = await self._run(stmt)
        count = (result.results[0].get("count") if result.results else None) or 0
        self._dbg("_count result", count=count)
        return count, result.meta

    async def _create(self, mapper: MapperLike, props: Mapping[str, Any]) -> Tuple[Record, Meta]:
        resolved = await self._prepare(mapper)
        self._dbg("_create", mapper=resolved.name, props=props)
        record = dict(props)
        keys = list(record)
        stmt = insert(_table(resolved.table_name, keys)).values(_bind_record(record, keys))

        result = await self._run(stmt)
        new_id = result.meta.get("last_row_id")
        if new_id:
            record[resolved.id_attribute] = new_id
        self._dbg("_create result", id=new_id, props=record)
        return record, result.meta

    async def _create_many(
        self, mapper: MapperLike, props: Sequence[Mapping[str, Any]]
    ) -> Tuple[Sequence[Mapping[str, Any]], Meta]:
        """
        Insert all ``props`` in one multi-row INSERT.

        D1 reports only the last inserted id, so the input list is returned
        as given. Rows with differing keys are padded with NULLs.
        """
        resolved = await self._prepare(mapper)
        self._dbg("_create_many", mapper=resolved.name, count=len(props))
        if not props:
            return props, {}

        keys: List[str] = []
        for row in props:
            keys.extend(key for key in row if key not in keys)
        stmt = insert(_table(resolved.table_name, keys)).values(
            [_bind_record(row, keys) for row in props]
        )

        result = await self._run(stmt)
        self._dbg("_create_many result", count=len(props))
        return props, result.meta

    async def _find(self, mapper: MapperLike, id: Any) -> Tuple[Optional[Record], Meta]:
        resolved = await self._prepare(mapper)
        self._dbg("_find", mapper=resolved.name, id=id)
        stmt = (
            select(literal_column("*"))
            .select_from(_table(resolved.table_name))
            .where(column(resolved.id_attribute) == id)
            .limit(1)
        )

        result = await self._run(stmt)
        record = result.results[0] if result.results else None
        self._dbg("_find result", found=record is not None)
        return record, result.meta

    async def _find_all(
        self, mapper: MapperLike, query: Query = None
    ) -> Tuple[List[Record], Meta]:
        resolved = await self._prepare(mapper)
        self._dbg("_find_all", mapper=resolved.name, query=query)
        criteria = compile_query(QueryCriteria(), query)
        stmt = criteria.apply(select(literal_column("*")).select_from(_table(resolved.table_name)))

        result = await self._run(stmt)
        self._dbg("_find_all result", count=len(result.results))
        return result.results, result.meta

    async def _update(
        self, mapper: MapperLike, id: Any, props: Mapping[str, Any]
    ) -> Tuple[Optional[Record], Meta]:
        """
        Update one record by id, then read it back.

        The returned meta belongs to the UPDATE, not to the follow-up read.
        """
        _require_changes(mapper, props)
        resolved = await self._prepare(mapper)
        self._dbg("_update", mapper=resolved.name, id=id, props=props)
        keys = list(props)
        stmt = (
            update(_table(resolved.table_name, keys))
            .where(column(resolved.id_attribute) == id)
            .values(_bind_record(props, keys))
        )

        result = await self._run(stmt)
        record, _ = await self._find(resolved, id)
        self._dbg("_update result", updated=(result.meta.get("changes") or 0) > 0)
        return record, result.meta

    async def _update_all(
        self,
        mapper: MapperLike,
        props: Mapping[str, Any],
        query: Query = None,
    ) -> Tuple[List[Record], Meta]:
        _require_changes(mapper, props)
        resolved = await self._prepare(mapper)
        self._dbg("_update_all", mapper=resolved.name, props=props, query=query)
        keys = list(props)
        target = _table(resolved.table_name, keys)
        criteria = compile_query(QueryCriteria(), query)
        stmt = criteria.restrict(update(target).values(_bind_record(props, keys)), target)

        result = await self._run(stmt)
        # D1 does not return the updated rows
        self._dbg("_update_all result", changes=result.meta.get("changes"))
        return [], result.meta

    async def _update_many(
        self, mapper: MapperLike, records: Sequence[Mapping[str, Any]]
    ) -> Tuple[List[Optional[Record]], Meta]:
        resolved = _as_mapper(mapper)
        self._dbg("_update_many", mapper=resolved.name, count=len(records))
        rows: List[Optional[Record]] = []
        metas: List[Meta] = []
        for record in records:
            row, meta = await self._update(resolved, record.get(resolved.id_attribute), record)
            rows.append(row)
            metas.append(meta)
        self._dbg("_update_many result", count=len(rows))
        return rows, {"updates": metas}

    async def _destroy(self, mapper: MapperLike, id: Any) -> Tuple[None, Meta]:
        resolved = await self._prepare(mapper)
        self._dbg("_destroy", mapper=resolved.name, id=id)
        stmt = delete(_table(resolved.table_name)).where(column(resolved.id_attribute) == id)

        result = await self._run(stmt)
        self._dbg("_destroy result", deleted=(result.meta.get("changes") or 0) > 0)
        return None, result.meta

    async def _destroy_all(
        self, mapper: MapperLike, query: Query = None
    ) -> Tuple[None, Meta]:
        resolved = await self._prepare(mapper)
        self._dbg("_destroy_all", mapper=resolved.name, query=query)
        target = _table(resolved.table_name)
        criteria = compile_query(QueryCriteria(), query)
        stmt = criteria.restrict(delete(target), target)

        result = await self._run(stmt)
        self._dbg("_destroy_all result", changes=result.meta.get("changes"))
        return None, result.meta

    async def _sum(
        self, mapper: MapperLike, field: str, query: Query = None
    ) -> Tuple[Any, Meta]:
        resolved = await self._prepare(mapper)
        self._dbg("_sum", mapper=resolved.name, field=field, query=query)
        criteria = compile_query(QueryCriteria(), query)
        stmt = criteria.apply(
            select(func.sum(column(field)).label("sum")).select_from(_table(resolved.table_name))
        )

        result = await self._run(stmt)
        total = (result.results[0].get("sum") if result.results else None) or 0
        self._dbg("_sum result", sum=total)
        return total, result.meta

    # ---- public operations ---------------------------------------------
    # Same arguments as the core operations; ``raw`` overrides settings.raw.

    async def count(self, mapper: MapperLike, query: Query = None, *, raw: Raw = None) -> Any:
        return self._respond(*await self._count(mapper, query), "count", raw)

    async def create(self, mapper: MapperLike, props: Mapping[str, Any], *, raw: Raw = None) -> Any:
        return self._respond(*await self._create(mapper, props), "create", raw)

    async def create_many(
        self, mapper: MapperLike, props: Sequence[Mapping[str, Any]], *, raw: Raw = None
    ) -> Any:
        return self._respond(*await self._create_many(mapper, props), "createMany", raw)

    async def find(self, mapper: MapperLike, id: Any, *, raw: Raw = None) -> Any:
        return self._respond(*await self._find(mapper, id), "find", raw)

    async def find_all(self, mapper: MapperLike, query: Query = None, *, raw: Raw = None) -> Any:
        return self._respond(*await self._find_all(mapper, query), "findAll", raw)

    async def update(
        self, mapper: MapperLike, id: Any, props: Mapping[str, Any], *, raw: Raw = None
    ) -> Any:
        return self._respond(*await self._update(mapper, id, props), "update", raw)

    async def update_all(
        self, mapper: MapperLike, props: Mapping[str, Any], query: Query = None, *, raw: Raw = None
    ) -> Any:
        return self._respond(*await self._update_all(mapper, props, query), "updateAll", raw)

    async def update_many(
        self, mapper: MapperLike, records: Sequence[Mapping[str, Any]], *, raw: Raw = None
    ) -> Any:
        return self._respond(*await self._update_many(mapper, records), "updateMany", raw)

    async def destroy(self, mapper: MapperLike, id: Any, *, raw: Raw = None) -> Any:
        return self._respond(*await self._destroy(mapper, id), "destroy", raw)

    async def destroy_all(self, mapper: MapperLike, query: Query = None, *, raw: Raw = None) -> Any:
        return self._respond(*await self._destroy_all(mapper, query), "destroyAll", raw)

    async def sum(self, mapper: MapperLike, field: str, query: Query = None, *, raw: Raw = None) -> Any:
        return self._respond(*await self._sum(mapper, field, query), "sum", raw)


__all__ = ["AdapterResponse", "D1Adapter"]
