"""Async HTTP binding for CookieDB servers.

This module provides async HTTP methods using httpx.AsyncClient,
following the same patterns as the synchronous CookieDBBinding class.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, TypeVar

import httpx

from cookiedb.core import (
    DEFAULT_HEADERS,
    DEFAULT_REQUESTS_TIMEOUT,
    merge_session_config,
    normalize_url,
    format_exception,
)
from cookiedb.core.cookiedb_binding import CookieDBBinding, ResponseMode, TransportError, parse_response

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _httpx_timeout(timeout: Any) -> httpx.Timeout:
    """Map a requests-style timeout (seconds or a (connect, read) pair) onto httpx.Timeout."""
    if isinstance(timeout, (tuple, list)):
        connect, read = timeout
        return httpx.Timeout(connect=connect, read=read, write=read, pool=connect)
    return httpx.Timeout(timeout)


class AsyncCookieDBBinding:
    """Async HTTP binding for CookieDB servers.

    Provides an async version of the POST request helper using
    httpx.AsyncClient. Also provides run_sync() for executing sync code
    in a thread pool, following SQLAlchemy's pattern.

    Attributes:
        url: Base URL of the server, as given
        auth: Authorization header value, "Bearer <token>"
    """

    # Thread pool for run_sync operations
    _sync_executor: ThreadPoolExecutor | None = None

    def __init__(
        self,
        url: str,
        token: str,
        session_config: dict | None = None,
    ):
        """Initialize async binding.

        No request is made and neither argument is validated here.

        Args:
            url: Base URL of the server, e.g. "http://localhost:8777"
            token: Bearer token of the tenant or user
            session_config: Session configuration overrides
        """
        self.url = url
        self.auth = f"Bearer {token}"
        self._token = token
        self._base_url = normalize_url(url)

        # Merge session config with defaults
        self._session_config = merge_session_config(session_config)
        self._timeout = _httpx_timeout(self._session_config.get("timeout", DEFAULT_REQUESTS_TIMEOUT))

        # Async HTTP client (created lazily)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": self.auth},
                timeout=self._timeout,
                follow_redirects=True,
                limits=httpx.Limits(
                    max_connections=100,
                    max_keepalive_connections=20,
                    keepalive_expiry=30.0,
                ),
            )
        return self._client

    def _build_headers(self, headers: dict | None = None) -> dict:
        """Build request headers."""
        return dict(DEFAULT_HEADERS) if headers is None else dict(headers)

    async def post_async(
        self,
        path: str,
        json_data: Any | None = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Perform async POST request.

        Args:
            path: Request path, rooted with "/"
            json_data: JSON-serializable data, no body when None
            headers: Optional headers dict

        Returns:
            httpx.Response object

        Raises:
            TransportError: If no response is received.
        """
        CookieDBBinding.check_path(path)
        client = await self._get_client()
        request_headers = self._build_headers(headers)

        logger.debug("POST %s%s", self._base_url, path)
        try:
            if json_data is not None:
                return await client.post(path, json=json_data, headers=request_headers)
            return await client.post(path, headers=request_headers)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to [{self._base_url}{path}] failed: {format_exception(e)}", cause=e)

    async def request_async(
        self,
        path: str,
        json_data: Any | None = None,
        mode: ResponseMode = ResponseMode.JSON,
        headers: dict | None = None,
    ) -> Any:
        """Perform one POST request and interpret its response according to mode."""
        response = await self.post_async(path, json_data=json_data, headers=headers)
        return parse_response(response, mode)

    async def run_sync(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run a synchronous function in a thread pool.

        This follows SQLAlchemy's pattern for running sync code within
        an async context. The function runs in a thread pool executor
        to avoid blocking the event loop.

        Args:
            fn: Synchronous function to execute
            *args: Positional arguments for fn
            **kwargs: Keyword arguments for fn

        Returns:
            Result of fn(*args, **kwargs)
        """
        # Use class-level executor for thread reuse
        if AsyncCookieDBBinding._sync_executor is None:
            AsyncCookieDBBinding._sync_executor = ThreadPoolExecutor(
                max_workers=10,
                thread_name_prefix="cookiedb-sync",
            )

        loop = asyncio.get_running_loop()
        func = functools.partial(fn, *args, **kwargs)
        return await loop.run_in_executor(AsyncCookieDBBinding._sync_executor, func)

    async def close(self) -> None:
        """Close the async HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AsyncCookieDBBinding":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
