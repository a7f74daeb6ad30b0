"""
Domain models for the D1 adapter.

Two families of models live here:

- the inbound mapper metadata handed over by the calling mapper framework
  (`Mapper`, its optional `Schema` and per-field `FieldSchema`);
- the outbound D1 HTTP API envelope (`ResponseEnvelope`, `QueryResult`,
  `ResponseInfo`).

Both accept the camelCase keys used by the mapper framework and the D1 API
as well as snake_case attribute names.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

_UPPER = re.compile(r"([A-Z])")


def underscore(name: str) -> str:
    """
    Convert a camelCase / PascalCase entity name to snake_case.

    ``underscore("UserProfile") == "user_profile"``
    """
    snake = _UPPER.sub(r"_\1", name).lower()
    return snake[1:] if snake.startswith("_") else snake


class FieldSchema(BaseModel):
    """
    Declarative description of a single column.
    """

    type: Union[str, List[str], None] = Field(None, description="JSON-schema style type name.")
    required: bool = Field(False, description="Column is NOT NULL.")
    not_null: bool = Field(False, alias="notNull", description="Column is NOT NULL.")
    unique: bool = Field(False, description="Column carries a UNIQUE constraint.")
    default: Any = Field(None, description="Column default; only used when explicitly set.")

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    @property
    def has_default(self) -> bool:
        # An explicit ``default: None`` still counts, mirroring "key is present".
        return "default" in self.model_fields_set

    @property
    def type_name(self) -> Optional[str]:
        # a list of types maps to no known type, so the column becomes TEXT
        return self.type if isinstance(self.type, str) else None


class Schema(BaseModel):
    properties: Dict[str, FieldSchema] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow", frozen=True)


class Mapper(BaseModel):
    """
    Metadata for one logical entity type, as supplied by the mapper framework.
    """

    name: str = Field(..., description="Logical entity name, e.g. 'UserProfile'.")
    id_attribute: str = Field("_id", alias="idAttribute", description="Primary key field.")
    table: Optional[str] = Field(None, description="Explicit table name override.")
    schema_: Optional[Schema] = Field(None, alias="schema")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def table_name(self) -> str:
        return self.table or underscore(self.name)

    @property
    def properties(self) -> Dict[str, FieldSchema]:
        return self.schema_.properties if self.schema_ is not None else {}


class ResponseInfo(BaseModel):
    code: Optional[int] = None
    message: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class QueryResult(BaseModel):
    """
    Result set of a single statement: rows plus D1 execution metadata.

    ``meta`` is passed through untouched (changes, last_row_id, rows_read,
    rows_written, duration, served_by_*, timings, ...).
    """

    results: List[Dict[str, Any]] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)
    success: Optional[bool] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("results", "meta", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any, info: Any) -> Any:
        if value is None:
            return [] if info.field_name == "results" else {}
        return value


class ResponseEnvelope(BaseModel):
    """
    Top-level body returned by every Cloudflare API call.
    """

    success: bool = False
    result: List[QueryResult] = Field(default_factory=list)
    errors: List[ResponseInfo] = Field(default_factory=list)
    messages: List[ResponseInfo] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")

    @field_validator("result", "errors", "messages", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def error_message(self) -> str:
        if self.errors and self.errors[0].message:
            return self.errors[0].message
        return "Unknown error"


__all__ = [
    "FieldSchema",
    "Mapper",
    "QueryResult",
    "ResponseEnvelope",
    "ResponseInfo",
    "Schema",
    "underscore",
]
