"""
Exception hierarchy for the D1 adapter.

Transport failures (``httpx.HTTPError`` and friends) are not wrapped; they reach
the caller unchanged. Only conditions the adapter itself detects get a type here.
"""

from __future__ import annotations

from typing import Any, List, Optional


class AdapterError(RuntimeError):
    pass


class RemoteSQLError(AdapterError):
    """The D1 API answered with ``success: false``."""

    def __init__(
        self,
        message: str,
        errors: Optional[List[Any]] = None,
        sql: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.sql = sql


class TableNotFoundError(AdapterError):
    """Table is unknown and automatic creation is disabled."""

    def __init__(self, table: str) -> None:
        super().__init__(f"Table {table} not found")
        self.table = table


__all__ = ["AdapterError", "RemoteSQLError", "TableNotFoundError"]
