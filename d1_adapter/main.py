from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Awaitable, Dict, List, Optional, TypeVar

import typer

from d1_adapter.adapter import D1Adapter
from d1_adapter.config import Settings, get_settings
from d1_adapter.domain.models import FieldSchema, Mapper
from d1_adapter.errors import AdapterError
from d1_adapter.infrastructure.client import RemoteSQLClient
from d1_adapter.reporter import print_meta, print_rows
from d1_adapter.sql.schema import create_table_sql
from d1_adapter.utils.logging import configure_logging

app = typer.Typer(help="Cloudflare D1 adapter CLI.")

T = TypeVar("T")


def _build_client(settings: Settings) -> RemoteSQLClient:
    return RemoteSQLClient.from_settings(settings)


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)
    except AdapterError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _parse_json_option(value: Optional[str], option: str) -> Dict[str, Any]:
    if not value:
        return {}
    try:
        parsed = json.loads(value)
    except ValueError as exc:
        raise typer.BadParameter(f"invalid JSON: {exc}", param_hint=option) from exc
    if not isinstance(parsed, dict):
        raise typer.BadParameter("expected a JSON object", param_hint=option)
    return parsed


def _coerce_param(value: str) -> Any:
    # numbers, booleans and null go through as JSON; anything else stays text
    try:
        return json.loads(value)
    except ValueError:
        return value


def _table_mapper(table: str) -> Mapper:
    return Mapper(name=table, table=table)


async def _with_adapter(settings: Settings, op: str, *args: Any) -> Any:
    # read-only commands never provision tables
    client = _build_client(settings)
    adapter = D1Adapter(settings.model_copy(update={"autocreate_tables": False}), client=client)
    try:
        await adapter.wait_seeded()
        return await getattr(adapter, op)(*args, raw=True)
    finally:
        await adapter.aclose()
        await client.aclose()


@app.callback()
def _setup() -> None:
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    token = settings.api_token.get_secret_value()
    masked = f"{token[:4]}…" if token else "<unset>"
    typer.echo(
        f"URL={settings.database_url} | token={masked} | "
        f"autocreate={settings.autocreate_tables} debug={settings.debug} raw={settings.raw} "
        f"timeout={settings.http_timeout_seconds}s env={settings.app_env}"
    )


@app.command()
def tables() -> None:
    """
    List the tables of the remote database.
    """

    async def _list() -> List[str]:
        async with _build_client(get_settings()) as client:
            return await client.list_tables()

    for name in sorted(_run(_list())):
        typer.echo(name)


@app.command()
def query(
    sql: str = typer.Argument(..., help="SQL statement with ? placeholders."),
    params: Optional[List[str]] = typer.Option(
        None, "--param", "-p", help="Positional parameter (repeatable). JSON literals are decoded."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print rows and meta as JSON."),
) -> None:
    """
    Execute a raw SQL statement and print its result set.
    """

    async def _execute():
        async with _build_client(get_settings()) as client:
            return await client.execute_sql(sql, [_coerce_param(p) for p in params or []])

    result = _run(_execute())
    if as_json:
        typer.echo(json.dumps({"results": result.results, "meta": result.meta}, indent=2, default=str))
        return
    print_rows(result.results, title=sql)
    print_meta(result.meta)


@app.command("find-all")
def find_all(
    table: str = typer.Argument(..., help="Table name."),
    query_json: Optional[str] = typer.Option(
        None, "--query", "-q", help='Abstract query as JSON, e.g. \'{"age": {">=": 18}}\'.'
    ),
    as_json: bool = typer.Option(False, "--json", help="Print rows as JSON."),
) -> None:
    """
    Run find_all against a table.
    """
    abstract_query = _parse_json_option(query_json, "--query")
    response = _run(_with_adapter(get_settings(), "find_all", _table_mapper(table), abstract_query))
    if as_json:
        typer.echo(json.dumps(response.data, indent=2, default=str))
        return
    print_rows(response.data, title=table)
    print_meta(response.meta)


@app.command()
def count(
    table: str = typer.Argument(..., help="Table name."),
    query_json: Optional[str] = typer.Option(None, "--query", "-q", help="Abstract query as JSON."),
) -> None:
    """
    Count the rows of a table matching an optional query.
    """
    abstract_query = _parse_json_option(query_json, "--query")
    response = _run(_with_adapter(get_settings(), "count", _table_mapper(table), abstract_query))
    typer.echo(str(response.data))


@app.command("create-table")
def create_table(
    table: str = typer.Argument(..., help="Table name."),
    schema_file: Path = typer.Option(
        ..., "--schema", exists=True, dir_okay=False, readable=True, help="JSON schema file."
    ),
    id_attribute: str = typer.Option("_id", "--id-attribute", help="Primary key column."),
) -> None:
    """
    Provision a table from a JSON schema file and print the DDL.

    The file holds either ``{"properties": {...}}`` or the properties mapping itself.
    """
    document = _parse_json_option(schema_file.read_text(encoding="utf-8"), "--schema")
    raw_properties = document.get("properties", document)
    properties = {
        name: FieldSchema.model_validate(definition or {})
        for name, definition in raw_properties.items()
    }
    ddl = create_table_sql(id_attribute, properties, table)

    async def _create() -> None:
        async with _build_client(get_settings()) as client:
            await client.execute_sql(ddl)

    _run(_create())
    typer.echo(ddl)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
