"""
d1-adapter - mapper-framework adapter for Cloudflare D1.

Translates abstract CRUD requests (mapper metadata plus filter, sort and
pagination descriptors) into parameterized SQLite statements, runs them
against a D1 database over its HTTP API and reshapes the JSON envelope into
``(payload, meta)`` pairs:

- query and schema compilers built on SQLAlchemy Core
- an httpx-based remote execution client
- a table registry that provisions missing tables on first use
- the `D1Adapter` CRUD facade
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from d1_adapter.adapter import AdapterResponse, D1Adapter
from d1_adapter.config import Settings, get_settings
from d1_adapter.domain.models import FieldSchema, Mapper, QueryResult, Schema, underscore
from d1_adapter.errors import AdapterError, RemoteSQLError, TableNotFoundError
from d1_adapter.infrastructure.client import RemoteSQLClient
from d1_adapter.infrastructure.registry import TableRegistry
from d1_adapter.sql.query import QueryCriteria, compile_query
from d1_adapter.sql.schema import create_table_sql
from d1_adapter.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Adapter
    "AdapterResponse",
    "D1Adapter",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "FieldSchema",
    "Mapper",
    "QueryResult",
    "Schema",
    "underscore",
    # Errors
    "AdapterError",
    "RemoteSQLError",
    "TableNotFoundError",
    # Infrastructure
    "RemoteSQLClient",
    "TableRegistry",
    # Compilers
    "QueryCriteria",
    "compile_query",
    "create_table_sql",
    # Logging
    "configure_logging",
    "get_logger",
]
