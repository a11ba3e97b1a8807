"""Typed request options and result structures for CookieDB operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from cookiedb.core.typed.schema import Schema, SchemaError, parse_schema


def _parse_schema_or_raw(schema: Any) -> Any:
    # Schemaless tables report no schema, or one the typed model cannot express.
    if not isinstance(schema, Mapping):
        return schema
    try:
        return parse_schema(schema)
    except SchemaError:
        return dict(schema)


@dataclass(frozen=True)
class Order:
    """Sort order for `select`.

    Attributes:
        by: Name of the field to sort on.
        descending: Sort from largest to smallest when true.
    """

    by: str
    descending: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"by": self.by, "descending": self.descending}

    @classmethod
    def coerce(cls, order: Union[Order, Tuple[str, bool], str, Mapping[str, Any]]) -> Order:
        """Build an Order from an Order, a field name, a ``(by, descending)`` tuple or a dict.

        Raises:
            ValueError: If order has none of these forms.
        """
        if isinstance(order, Order):
            return order
        if isinstance(order, str):
            return cls(order)
        if isinstance(order, Mapping):
            if "by" not in order:
                raise ValueError("Invalid order %r: missing 'by' field" % (order,))
            return cls(order["by"], bool(order.get("descending", False)))
        if not isinstance(order, (tuple, list)) or len(order) != 2:
            raise ValueError("Invalid order %r: expected a field name, a (by, descending) pair or a mapping"
                             % (order,))
        by, descending = order
        return cls(by, bool(descending))


@dataclass
class TableMeta:
    """Server-reported description of one table.

    Attributes:
        schema: The table schema parsed into `FieldType` values, or the raw
            value reported for a schemaless table.
        size: Number of documents stored in the table.
    """

    schema: Optional[Schema] = None
    size: int = 0

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> TableMeta:
        return cls(schema=_parse_schema_or_raw(d.get("schema")), size=d.get("size", 0))


@dataclass
class DatabaseMeta:
    """Server-reported description of every table of the tenant.

    Attributes:
        tables: Table name mapped to its `TableMeta`. The server reports only
            the schema per table here, so each `size` is left at 0.
        size: Aggregate size reported by the server.
    """

    tables: Dict[str, TableMeta] = field(default_factory=dict)
    size: int = 0

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> DatabaseMeta:
        tables = {
            name: TableMeta(schema=_parse_schema_or_raw((meta or {}).get("schema")))
            for name, meta in (d.get("tables") or {}).items()
        }
        return cls(tables=tables, size=d.get("size", 0))


@dataclass
class UserCredential:
    """Username and bearer token returned by user administration operations."""

    username: str
    token: str

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> UserCredential:
        return cls(username=d["username"], token=d["token"])

    def to_dict(self) -> Dict[str, str]:
        return {"username": self.username, "token": self.token}
