"""Async CookieDB client implementation.

This module provides an async version of the CookieDB client for use with
asyncio. Every method sends the same request as its synchronous counterpart.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, List, Optional, Sequence, TypeVar, Union

from cookiedb.core import CookieDB, operations
from cookiedb.core.asyncio.async_binding import AsyncCookieDBBinding
from cookiedb.core.typed import DatabaseMeta, Document, TableMeta, UserCredential

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AsyncCookieDB(AsyncCookieDBBinding):
    """Async client for a CookieDB server.

    Calls issued concurrently from one instance are independent; the client
    imposes no ordering between them. Cancelling an awaiting call aborts only
    its in-flight request.

    Example:
        async with AsyncCookieDB("http://localhost:8777", token) as db:
            key = await db.insert("users", {"name": "cookie_fan", "age": 20})
            users = await db.select("users", 'starts_with($name, "cookie")', max_results=5)
    """

    def __init__(self, url: str, token: str, session_config: dict | None = None):
        super().__init__(url, token, session_config)

        # Lazy-initialized sync client for bridge operations
        self._sync_client: CookieDB | None = None

    @property
    def sync_client(self) -> CookieDB:
        """Get a synchronous client bound to the same server and token.

        Created on first access, for use with run_sync().
        """
        if self._sync_client is None:
            self._sync_client = CookieDB(self.url, self._token, self._session_config)
        return self._sync_client

    async def run_sync_client(self, fn: Callable[[CookieDB], T]) -> T:
        """Run fn(sync_client) in the thread pool and return its result."""
        return await self.run_sync(fn, self.sync_client)

    async def _perform(self, operation: operations.Operation) -> Any:
        return operation.result(await self.request_async(operation.path, operation.body, operation.mode))

    async def create_table(self, table: str, schema: Optional[Mapping[str, Any]] = None) -> None:
        """Create a table, optionally with a schema."""
        return await self._perform(operations.create_table(table, schema))

    async def edit_table(
        self,
        table: str,
        name: Optional[str] = None,
        schema: Optional[Mapping[str, Any]] = None,
        alias: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Rename a table and/or migrate its schema and documents."""
        return await self._perform(operations.edit_table(table, name, schema, alias))

    async def drop_table(self, table: str) -> None:
        return await self._perform(operations.drop_table(table))

    async def meta_table(self, table: str) -> TableMeta:
        return await self._perform(operations.meta_table(table))

    async def meta(self) -> DatabaseMeta:
        return await self._perform(operations.meta())

    async def insert(
        self, table: str, document: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]
    ) -> Union[str, List[str]]:
        """Insert one document (returns its key) or a list of documents (returns keys in input order)."""
        if isinstance(document, Mapping):
            return await self.insert_one(table, document)
        return await self.insert_many(table, document)

    async def insert_one(self, table: str, document: Mapping[str, Any]) -> str:
        return await self._perform(operations.insert_one(table, document))

    async def insert_many(self, table: str, documents: Sequence[Mapping[str, Any]]) -> List[str]:
        return await self._perform(operations.insert_many(table, documents))

    async def get(self, table: str, key: str, expand_keys: bool = False) -> Document:
        return await self._perform(operations.get(table, key, expand_keys))

    async def update(self, table: str, key: str, document: Mapping[str, Any]) -> None:
        return await self._perform(operations.update(table, key, document))

    async def delete(self, table: str, key: str) -> None:
        return await self._perform(operations.delete(table, key))

    async def delete_by_query(self, table: str, where: str) -> List[str]:
        return await self._perform(operations.delete_by_query(table, where))

    async def select(
        self,
        table: str,
        where: Optional[str] = None,
        max_results: Optional[int] = None,
        order: Optional[Any] = None,
        expand_keys: bool = False,
        alias: Optional[Mapping[str, Any]] = None,
    ) -> List[Document]:
        """Select documents from a table. See CookieDB.select for the arguments."""
        return await self._perform(operations.select(table, where, max_results, order, expand_keys, alias))

    async def create_user(
        self, username: Optional[str] = None, token: Optional[str] = None, admin: Optional[bool] = None
    ) -> UserCredential:
        return await self._perform(operations.create_user(username, token, admin))

    async def delete_user(self, username: str) -> None:
        return await self._perform(operations.delete_user(username))

    async def regenerate_token(self, username: str) -> UserCredential:
        return await self._perform(operations.regenerate_token(username))

    async def close(self) -> None:
        """Close the async HTTP client and the bridged sync client, if any."""
        await super().close()
        if self._sync_client is not None:
            self._sync_client.close()
            self._sync_client = None
