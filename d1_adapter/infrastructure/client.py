"""
Remote execution client for the Cloudflare D1 HTTP API.

Every statement travels as one authenticated ``POST <database_url>/query`` with
a JSON body ``{"sql": ..., "params": [...]}``. The response envelope is
validated with pydantic; ``success: false`` becomes a `RemoteSQLError`.
Transport errors from httpx are not wrapped and reach the caller unchanged.

The client owns a single ``httpx.AsyncClient`` and must be closed, either
explicitly with `aclose()` or by using it as an async context manager:

    async with RemoteSQLClient.from_settings(get_settings()) as client:
        result = await client.execute_sql("SELECT 1 AS one")
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import httpx

from d1_adapter.config import Settings
from d1_adapter.domain.models import QueryResult, ResponseEnvelope
from d1_adapter.errors import RemoteSQLError
from d1_adapter.sql.abstract import CATALOG_SQL, table_names
from d1_adapter.utils.logging import get_logger
from d1_adapter.utils.timing import timed_block

log = get_logger(__name__)

class RemoteSQLClient:
    """
    Thin async wrapper over ``httpx.AsyncClient`` bound to one D1 database.

    Parameters
    ----------
    base_url : str
        Database resource URL, ``<api>/accounts/<account>/d1/database/<id>``.
    token : str
        API token sent as a bearer credential. Never logged.
    timeout : float
        Per-request timeout in seconds.
    transport : httpx.AsyncBaseTransport, optional
        Custom transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "RemoteSQLClient":
        return cls(
            base_url=settings.database_url,
            token=settings.api_token.get_secret_value(),
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    async def http(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST ``payload`` as JSON to ``path`` and return the decoded body.

        The HTTP status code is logged but not interpreted; the envelope
        decides success.
        """
        url = f"{self.base_url}{path}"
        log.debug("HTTP request", extra={"url": url, "method": "POST", "has_body": bool(payload)})
        with timed_block("d1-http") as stats:
            try:
                response = await self._client.post(path, json=payload)
                body = response.json()
            except Exception as exc:
                log.debug(
                    "HTTP error",
                    extra={"url": url, "duration_ms": round(stats.elapsed() * 1000.0, 2), "error": str(exc)},
                )
                raise
        log.debug(
            "HTTP response",
            extra={
                "url": url,
                "status": response.status_code,
                "duration_ms": stats.duration_ms,
                "success": body.get("success") if isinstance(body, dict) else None,
            },
        )
        return body

    async def execute_sql(self, sql: str, params: Optional[Sequence[Any]] = None) -> QueryResult:
        """
        Execute one statement and return its first result set.

        Raises
        ------
        RemoteSQLError
            When the envelope reports ``success: false``.
        """
        bindings = list(params or [])
        log.debug("Executing SQL", extra={"sql": sql, "params": bindings})
        envelope = ResponseEnvelope.model_validate(
            await self.http("/query", {"sql": sql, "params": bindings})
        )

        if not envelope.success:
            log.debug(
                "SQL error",
                extra={"sql": sql, "errors": [e.model_dump() for e in envelope.errors]},
            )
            raise RemoteSQLError(envelope.error_message, errors=envelope.errors, sql=sql)

        result = envelope.result[0] if envelope.result else QueryResult()
        log.debug(
            "SQL success",
            extra={
                "rows_read": result.meta.get("rows_read"),
                "rows_written": result.meta.get("rows_written"),
                "duration": result.meta.get("duration"),
            },
        )
        return result

    async def list_tables(self) -> List[str]:
        return table_names(await self.execute_sql(CATALOG_SQL))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "RemoteSQLClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["RemoteSQLClient"]
