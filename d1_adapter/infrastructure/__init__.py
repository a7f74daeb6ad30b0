"""
Infrastructure package for the D1 adapter.

Includes the HTTP client for the D1 query endpoint and the table registry
that decides when tables are provisioned.
"""

from d1_adapter.infrastructure.client import RemoteSQLClient
from d1_adapter.infrastructure.registry import TableRegistry

__all__ = ["RemoteSQLClient", "TableRegistry"]
