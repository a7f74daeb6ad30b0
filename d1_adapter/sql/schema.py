"""
Schema compiler: declarative field schema -> ``CREATE TABLE IF NOT EXISTS`` DDL.

The output is a stable text contract, column order included: the synthesized
id column (when the schema does not declare one) followed by the schema
properties in declaration order.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from d1_adapter.domain.models import FieldSchema, Mapper

# object/array values are stored as JSON text by the adapter
_COLUMN_TYPES = {
    "string": "TEXT",
    "number": "INTEGER",
    "integer": "INTEGER",
    "boolean": "INTEGER",
    "object": "TEXT",
    "array": "TEXT",
}


def _id_column(id_attribute: str) -> str:
    return f"{id_attribute} INTEGER PRIMARY KEY AUTOINCREMENT"


def _default_literal(value: Any) -> str:
    # Defaults come from trusted schema definitions, not user input: no escaping.
    if isinstance(value, str):
        return f"'{value}'"
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "NULL"
    if isinstance(value, (dict, list)):
        return f"'{json.dumps(value)}'"
    return str(value)


def column_definition(name: str, field_schema: FieldSchema, id_attribute: str) -> str:
    definition = f"{name} {_COLUMN_TYPES.get(field_schema.type_name or '', 'TEXT')}"
    if name == id_attribute:
        definition += " PRIMARY KEY AUTOINCREMENT"
    if field_schema.required or field_schema.not_null:
        definition += " NOT NULL"
    if field_schema.unique:
        definition += " UNIQUE"
    if field_schema.has_default:
        definition += f" DEFAULT {_default_literal(field_schema.default)}"
    return definition


def create_table_sql(
    id_attribute: str,
    properties: Mapping[str, FieldSchema],
    table_name: str,
) -> str:
    """
    Build the DDL for ``table_name``.

    The ``IF NOT EXISTS`` guard makes the statement safe to run repeatedly.
    """
    id_attribute = id_attribute or "_id"
    columns = []
    if id_attribute not in properties:
        columns.append(_id_column(id_attribute))

    for name, field_schema in properties.items():
        if name == id_attribute and columns:
            continue
        if not isinstance(field_schema, FieldSchema):
            field_schema = FieldSchema.model_validate(field_schema or {})
        columns.append(column_definition(name, field_schema, id_attribute))

    if not columns:
        columns.append(_id_column(id_attribute))

    return f"CREATE TABLE IF NOT EXISTS {table_name} ({', '.join(columns)})"


def mapper_table_sql(mapper: Mapper) -> str:
    return create_table_sql(mapper.id_attribute, mapper.properties, mapper.table_name)


__all__ = ["column_definition", "create_table_sql", "mapper_table_sql"]
