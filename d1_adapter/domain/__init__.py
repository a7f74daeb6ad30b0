"""
Domain package for the D1 adapter.

Exports the mapper metadata models and the D1 API envelope models.
"""

from d1_adapter.domain.models import (
    FieldSchema,
    Mapper,
    QueryResult,
    ResponseEnvelope,
    ResponseInfo,
    Schema,
    underscore,
)

__all__ = [
    "FieldSchema",
    "Mapper",
    "QueryResult",
    "ResponseEnvelope",
    "ResponseInfo",
    "Schema",
    "underscore",
]
