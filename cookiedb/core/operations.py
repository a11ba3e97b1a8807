"""Request shapes of the CookieDB HTTP API.

Each function maps the arguments of one client operation onto the single
POST request the server expects: path, optional JSON body, the response mode
and a conversion of the decoded response into the returned value. The sync
and asyncio clients share these definitions and only differ in how they send
the request.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Sequence

from cookiedb.core.cookiedb_binding import CookieDBBinding, ResponseMode, TransportError
from cookiedb.core.typed import DatabaseMeta, Order, TableMeta, UserCredential, schema_to_json


class Operation (NamedTuple):
    path: str
    body: Optional[Any]
    mode: ResponseMode
    result: Callable[[Any], Any]


def _none(value: Any) -> None:
    return None


def _expect(kind: type, operation: str) -> Callable[[Any], Any]:
    def convert(value: Any) -> Any:
        if not isinstance(value, kind):
            raise TransportError("Unexpected result for '%s': expected %s, got %s" %
                                 (operation, kind.__name__, type(value).__name__))
        return value
    return convert


def _keys(operation: str, count: Optional[int] = None) -> Callable[[Any], List[str]]:
    def convert(value: Any) -> List[str]:
        if not isinstance(value, list) or not all(isinstance(k, str) for k in value):
            raise TransportError("Unexpected result for '%s': expected a list of keys" % operation)
        if count is not None and len(value) != count:
            raise TransportError("Unexpected result for '%s': %d keys returned for %d documents" %
                                 (operation, len(value), count))
        return value
    return convert


def _user_credential(operation: str) -> Callable[[Any], UserCredential]:
    expect = _expect(dict, operation)

    def convert(value: Any) -> UserCredential:
        try:
            return UserCredential.from_dict(expect(value))
        except KeyError as e:
            raise TransportError("Unexpected result for '%s': missing field %s" % (operation, e))
    return convert


def _path(operation: str, *segments: str) -> str:
    return CookieDBBinding.build_path(operation, *segments)


def _pruned(**kwargs: Any) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


def create_table(table: str, schema: Optional[Mapping[str, Any]] = None) -> Operation:
    body = schema_to_json(schema) if schema is not None else None
    return Operation(_path("create", table), body, ResponseMode.TEXT, _none)


def edit_table(table: str,
               name: Optional[str] = None,
               schema: Optional[Mapping[str, Any]] = None,
               alias: Optional[Mapping[str, Any]] = None) -> Operation:
    body = _pruned(name=name,
                   schema=schema_to_json(schema) if schema is not None else None,
                   alias=alias)
    return Operation(_path("edit", table), body, ResponseMode.TEXT, _none)


def drop_table(table: str) -> Operation:
    return Operation(_path("drop", table), None, ResponseMode.TEXT, _none)


def meta_table(table: str) -> Operation:
    expect = _expect(dict, "meta")
    return Operation(_path("meta", table), None, ResponseMode.JSON,
                     lambda value: TableMeta.from_dict(expect(value)))


def meta() -> Operation:
    expect = _expect(dict, "meta")
    return Operation("/meta", None, ResponseMode.JSON,
                     lambda value: DatabaseMeta.from_dict(expect(value)))


def insert_one(table: str, document: Mapping[str, Any]) -> Operation:
    return Operation(_path("insert", table), dict(document), ResponseMode.JSON, _expect(str, "insert"))


def insert_many(table: str, documents: Sequence[Mapping[str, Any]]) -> Operation:
    documents = [dict(document) for document in documents]
    return Operation(_path("insert", table), documents, ResponseMode.JSON, _keys("insert", len(documents)))


def get(table: str, key: str, expand_keys: bool = False) -> Operation:
    return Operation(_path("get", table, key), {"expand_keys": bool(expand_keys)}, ResponseMode.JSON,
                     _expect(dict, "get"))


def update(table: str, key: str, document: Mapping[str, Any]) -> Operation:
    return Operation(_path("update", table, key), dict(document), ResponseMode.TEXT, _none)


def delete(table: str, key: str) -> Operation:
    return Operation(_path("delete", table, key), None, ResponseMode.TEXT, _none)


def delete_by_query(table: str, where: str) -> Operation:
    return Operation(_path("delete", table), {"where": where}, ResponseMode.JSON, _keys("delete"))


def select(table: str,
           where: Optional[str] = None,
           max_results: Optional[int] = None,
           order: Optional[Any] = None,
           expand_keys: bool = False,
           alias: Optional[Mapping[str, Any]] = None) -> Operation:
    body = _pruned(where=where,
                   max_results=max_results,
                   order=Order.coerce(order).to_dict() if order is not None else None,
                   alias=alias)
    body["expand_keys"] = bool(expand_keys)
    return Operation(_path("select", table), body, ResponseMode.JSON, _expect(list, "select"))


def create_user(username: Optional[str] = None,
                token: Optional[str] = None,
                admin: Optional[bool] = None) -> Operation:
    return Operation("/create_user", _pruned(username=username, token=token, admin=admin), ResponseMode.JSON,
                     _user_credential("create_user"))


def delete_user(username: str) -> Operation:
    return Operation(_path("delete_user", username), None, ResponseMode.TEXT, _none)


def regenerate_token(username: str) -> Operation:
    return Operation(_path("regenerate_token", username), None, ResponseMode.JSON,
                     _user_credential("regenerate_token"))
