"""
Pytest configuration for the D1 adapter.

Provides fixtures for:
- Settings with test credentials (no `.env` lookup)
- A recording in-memory SQL executor for adapter and registry tests
- An `httpx.MockTransport` factory for client and CLI tests
"""

from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx
import pytest

from d1_adapter.config import Settings
from d1_adapter.domain.models import QueryResult
from d1_adapter.sql.abstract import CATALOG_SQL


def normalize(sql: str) -> str:
    """Collapse the newlines SQLAlchemy puts between clauses."""
    return " ".join(sql.split())


class FakeExecutor:
    """
    In-memory stand-in for `RemoteSQLClient`.

    Catalog and DDL statements are answered automatically (DDL only consumes
    the queue when an exception is next in line); every other statement pops
    the next queued result, raising it if it is an exception. Everything is
    recorded in ``calls``.
    """

    def __init__(self, catalog: Sequence[str] = ()) -> None:
        self.catalog = list(catalog)
        self.catalog_error: Optional[Exception] = None
        self.queue: List[Any] = []
        self.calls: List[Tuple[str, List[Any]]] = []

    def respond(
        self,
        results: Optional[List[Dict[str, Any]]] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> "FakeExecutor":
        self.queue.append(QueryResult(results=results or [], meta=meta or {}))
        return self

    def fail(self, exc: Exception) -> "FakeExecutor":
        self.queue.append(exc)
        return self

    async def execute_sql(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        self.calls.append((sql, list(params or [])))
        if sql == CATALOG_SQL:
            if self.catalog_error is not None:
                raise self.catalog_error
            return QueryResult(results=[{"name": name} for name in self.catalog])
        if sql.startswith("CREATE TABLE") and not (self.queue and isinstance(self.queue[0], Exception)):
            return QueryResult(meta={"changes": 0})
        if self.queue:
            item = self.queue.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return QueryResult()

    @property
    def statements(self) -> List[Tuple[str, List[Any]]]:
        """Recorded calls minus catalog reads, SQL whitespace-normalized."""
        return [(normalize(sql), params) for sql, params in self.calls if sql != CATALOG_SQL]

    @property
    def ddl(self) -> List[str]:
        return [sql for sql, _ in self.statements if sql.startswith("CREATE TABLE")]


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.
    """
    return Settings(
        _env_file=None,
        account_id="acc-123",
        database_id="db-456",
        api_token="test-token",
        api_base_url="https://d1.test/client/v4",
        http_timeout_seconds=5.0,
        autocreate_tables=True,
        debug=False,
        raw=False,
        log_level="DEBUG",
    )


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


def envelope(
    results: Optional[List[Dict[str, Any]]] = None,
    meta: Optional[Dict[str, Any]] = None,
    success: bool = True,
    errors: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Build a D1 response body."""
    return {
        "success": success,
        "result": [{"results": results or [], "meta": meta or {}, "success": success}] if success else [],
        "errors": errors or [],
        "messages": [],
    }


@pytest.fixture
def d1_envelope() -> Callable[..., Dict[str, Any]]:
    return envelope


@pytest.fixture
def make_executor() -> Callable[..., FakeExecutor]:
    return FakeExecutor


@pytest.fixture
def d1_transport() -> Callable[..., Tuple[httpx.MockTransport, List[httpx.Request]]]:
    """
    Factory for a mock transport answering D1 ``/query`` calls.

    ``handler(sql, params)`` returns the JSON body to send back. Requests are
    collected in the returned list.
    """

    def factory(
        handler: Callable[[str, List[Any]], Dict[str, Any]],
        status_code: int = 200,
    ) -> Tuple[httpx.MockTransport, List[httpx.Request]]:
        seen: List[httpx.Request] = []

        def _respond(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(status_code, json=handler(body["sql"], body["params"]))

        return httpx.MockTransport(_respond), seen

    return factory


@pytest.fixture(scope="session")
def integration_settings() -> Settings:
    """
    Settings for integration tests, read from the environment.

    Skips when credentials are missing.
    """
    settings = Settings()
    if not (settings.account_id and settings.database_id and settings.api_token.get_secret_value()):
        pytest.skip("D1 credentials not configured (D1_ACCOUNT_ID, D1_DATABASE_ID, D1_API_TOKEN)")
    return settings


def integration_enabled() -> bool:
    return os.getenv("RUN_INTEGRATION_TESTS", "0") == "1"
