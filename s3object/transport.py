# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""HTTP transport used by the object client.

The client only needs "send a request, get status, headers and body".
``HttpxTransport`` provides that over ``httpx``; tests substitute a
recording fake.  Connection errors and timeouts are raised by httpx and
propagate unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import httpx


logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class Response:
    """Status, headers and body of a completed request."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        """Body decoded as UTF-8 (undecodable bytes replaced)."""
        return self.body.decode("utf-8", errors="replace")


class Transport(Protocol):
    """Anything that can issue a single HTTP request."""

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> Response: ...


class HttpxTransport:
    """Transport backed by a shared ``httpx.Client``.

    ``httpx.Client`` is safe to share across threads, so one transport
    can serve the blocking and future-returning client calls alike.

    Args:
        client: Client to use.  When omitted one is created and owned
            (closed by ``close()``).
        timeout: Timeout in seconds for an owned client.
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        *,
        timeout: float = _DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self._owns_client = client is None
        if client is None:
            client = httpx.Client(timeout=timeout)
        self._client = client

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> Response:
        """Issue one request.

        Raises:
            httpx.TransportError: On connection failure or timeout.
        """
        response = self._client.request(
            method, url, headers=headers, content=body
        )
        logger.debug("%s %s -> %d", method, url, response.status_code)
        return Response(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.content,
        )

    def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> HttpxTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
