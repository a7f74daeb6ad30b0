"""
Table registry: the per-adapter cache of tables known to exist remotely.

A table name enters the cache either from the remote catalog (`seed`) or
after its ``CREATE TABLE IF NOT EXISTS`` statement succeeded. Names are never
evicted. There is no locking: two concurrent misses for the same table may
both provision it, which is harmless because the DDL is idempotent.
"""

from __future__ import annotations

from typing import Mapping, Set

from d1_adapter.domain.models import FieldSchema, Mapper
from d1_adapter.errors import TableNotFoundError
from d1_adapter.sql.abstract import CATALOG_SQL, SQLExecutor, table_names
from d1_adapter.sql.schema import create_table_sql
from d1_adapter.utils.logging import get_logger

log = get_logger(__name__)


class TableRegistry:
    def __init__(self, executor: SQLExecutor, autocreate: bool = True) -> None:
        self._executor = executor
        self.autocreate = autocreate
        self._known: Set[str] = set()

    @property
    def known_tables(self) -> frozenset:
        return frozenset(self._known)

    def __contains__(self, table_name: object) -> bool:
        return table_name in self._known

    def add(self, table_name: str) -> None:
        self._known.add(table_name)

    async def seed(self) -> int:
        """
        Load every table name from the remote catalog into the cache.

        Returns the number of names read.
        """
        names = table_names(await self._executor.execute_sql(CATALOG_SQL))
        self._known.update(names)
        log.debug("Table cache seeded", extra={"tables": names})
        return len(names)

    async def ensure_table(
        self,
        id_attribute: str,
        properties: Mapping[str, FieldSchema],
        table_name: str,
    ) -> None:
        """
        Make sure ``table_name`` exists remotely, provisioning it if allowed.

        Raises
        ------
        TableNotFoundError
            The table is unknown and automatic creation is disabled.
        """
        if table_name in self._known:
            return

        if not self.autocreate:
            log.debug("Table does not exist", extra={"table": table_name})
            raise TableNotFoundError(table_name)

        log.debug("Creating table", extra={"table": table_name})
        ddl = create_table_sql(id_attribute, properties, table_name)
        await self._executor.execute_sql(ddl)
        log.debug("Table created", extra={"table": table_name, "sql": ddl})
        self._known.add(table_name)

    async def ensure_mapper(self, mapper: Mapper) -> None:
        await self.ensure_table(mapper.id_attribute, mapper.properties, mapper.table_name)


__all__ = ["TableRegistry"]
