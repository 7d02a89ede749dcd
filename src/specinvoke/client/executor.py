"""Request executors -- send a :class:`~specinvoke.models.PreparedRequest`.

A request executor is any coroutine function
``executor(request: PreparedRequest) -> response``.  The invocation engine
hands it the finished request and returns whatever it returns, unmodified.

This module provides:

* :class:`RequestExecutor` -- sends requests with :class:`httpx.AsyncClient`,
  optionally retrying connection failures with exponential backoff.  Use it
  as an async context manager to share one connection pool across calls.
* :func:`send_request` -- the default executor of a built API; opens a
  short-lived :class:`RequestExecutor` per request.
* :class:`DryRunExecutor` -- prints the request to stderr and returns a
  synthetic ``200`` response without touching the network.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any, Optional

import httpx

from specinvoke.exceptions import ConnectionError_
from specinvoke.models import PreparedRequest
from specinvoke.output import debug, get_output


class RequestExecutor:
    """Send prepared requests with :class:`httpx.AsyncClient`.

    Args:
        timeout: Request timeout in seconds.
        verify: Verify TLS certificates.
        max_retries: Extra attempts after a connection or timeout error.
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`.

    Example::

        async with RequestExecutor(timeout=10) as executor:
            response = await api.getUser({"id": "foxfriends"})(
                Environment(request_executor=executor)
            )
    """

    def __init__(
        self,
        timeout: float = 30.0,
        verify: bool = True,
        max_retries: int = 0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._verify = verify
        self._max_retries = max_retries
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> RequestExecutor:
        self._client = self._new_client()
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Executor protocol
    # ------------------------------------------------------------------ #

    async def __call__(self, request: PreparedRequest) -> httpx.Response:
        """Send *request* and return the :class:`httpx.Response`.

        Raises:
            ConnectionError_: On network or timeout errors after all retries.
        """
        if self._client is not None:
            return await self._send_with_retry(self._client, request)
        async with self._new_client() as client:
            return await self._send_with_retry(client, request)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            verify=self._verify,
            follow_redirects=True,
            transport=self._transport,
        )

    async def _send_with_retry(
        self,
        client: httpx.AsyncClient,
        request: PreparedRequest,
    ) -> httpx.Response:
        """Send with exponential backoff on connection errors: 1 s, 2 s, 4 s, ..."""
        kwargs: dict[str, Any] = {
            "method": request.method,
            "url": request.url,
            "headers": request.headers,
        }
        if isinstance(request.body, Mapping):
            kwargs["data"] = request.body
        elif request.body is not None:
            kwargs["content"] = request.body

        for attempt in range(self._max_retries + 1):
            try:
                return await client.request(**kwargs)
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < self._max_retries:
                    delay = 2 ** attempt
                    debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{self._max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {self._max_retries + 1} attempts: {exc}"
                ) from exc
        raise AssertionError("unreachable")  # pragma: no cover


async def send_request(request: PreparedRequest) -> httpx.Response:
    """Default request executor: send *request* on a fresh client."""
    return await RequestExecutor()(request)


class DryRunExecutor:
    """Print requests to stderr instead of sending them.

    Returns a synthetic ``200`` JSON response so callers can proceed as if
    the request had been sent.  Every request is also kept in
    :attr:`requests`.
    """

    def __init__(self) -> None:
        self.requests: list[PreparedRequest] = []

    async def __call__(self, request: PreparedRequest) -> httpx.Response:
        self.requests.append(request)
        output = get_output()
        output.info(f"[dry-run] {request.method} {request.url}")
        for key, value in request.headers.items():
            output.info(f"  Header: {key}: {value}")
        if request.body is not None:
            output.info(f"  Body: {request.body}")

        return httpx.Response(
            status_code=200,
            headers={"content-type": "application/json"},
            json={"dry_run": True, "message": "Request was not sent"},
            request=httpx.Request(method=request.method, url=request.url),
        )
