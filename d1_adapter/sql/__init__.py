"""
SQL package for the D1 adapter.

Pure compilers with no I/O: abstract queries to SQLAlchemy Core criteria,
field schemas to DDL, and Core statements to SQLite text plus bindings.
"""

from d1_adapter.sql.abstract import CATALOG_SQL, SQLExecutor, Statement, table_names, to_statement
from d1_adapter.sql.query import QueryCriteria, compile_query
from d1_adapter.sql.schema import create_table_sql, mapper_table_sql

__all__ = [
    "CATALOG_SQL",
    "QueryCriteria",
    "SQLExecutor",
    "Statement",
    "compile_query",
    "create_table_sql",
    "mapper_table_sql",
    "table_names",
    "to_statement",
]
