"""Typed interface for CookieDB schemas, options and results.

Usage:
    from cookiedb.core.typed import FieldKind, FieldType, Order, parse_schema

    schema = {
        "name": FieldType(FieldKind.string, unique=True),
        "description": "nullable string",
        "age": FieldType(FieldKind.number),
    }
    db.create_table("users", schema)
    db.select("users", order=Order("age", descending=True))
"""

from cookiedb.core.typed.types import FieldKind, Modifier, Scalar, Value, Document, Alias
from cookiedb.core.typed.schema import FieldType, Schema, SchemaError, parse_schema, schema_to_json, validate_schema
from cookiedb.core.typed.results import Order, TableMeta, DatabaseMeta, UserCredential

__all__ = [
    "FieldKind",
    "Modifier",
    "Scalar",
    "Value",
    "Document",
    "Alias",
    "FieldType",
    "Schema",
    "SchemaError",
    "parse_schema",
    "schema_to_json",
    "validate_schema",
    "Order",
    "TableMeta",
    "DatabaseMeta",
    "UserCredential",
]
