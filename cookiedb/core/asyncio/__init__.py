"""Async support for CookieDB using asyncio.

This module provides async versions of the CookieDB client classes,
following patterns similar to SQLAlchemy's asyncio extension.

The implementation uses httpx.AsyncClient for async HTTP requests, so
independent operations can be awaited concurrently.

Usage:
    from cookiedb.core.asyncio import AsyncCookieDB

    async def main():
        async with AsyncCookieDB("http://localhost:8777", token) as db:
            keys = await asyncio.gather(
                db.insert("users", {"name": "a"}),
                db.insert("users", {"name": "b"}),
            )

            # Or use the sync-in-async bridge
            meta = await db.run_sync_client(lambda client: client.meta())
"""

from cookiedb.core.asyncio.async_binding import AsyncCookieDBBinding
from cookiedb.core.asyncio.async_client import AsyncCookieDB

__all__ = [
    "AsyncCookieDBBinding",
    "AsyncCookieDB",
]
