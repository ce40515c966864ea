# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Authenticated object operations against one bucket.

``ObjectClient`` holds configuration and a transport, never per-request
state.  Each operation captures one timestamp, builds and signs its
headers inline, then hands the request to the transport.

Every operation has two entry points that share the same preparation:

* ``get(key)`` blocks and returns an ``OperationResult``.
* ``get_async(key, callback=None)`` signs immediately, submits the
  network call to the caller's executor and returns a ``Future`` that
  resolves to the same ``OperationResult``.

Non-success statuses are results, not exceptions: the result is falsy
and still carries the response.  Transport errors propagate unchanged,
except from the delete step of a move whose copy already succeeded: that
error is kept on the ``MoveResult``.  Nothing is retried.
"""

from __future__ import annotations

import logging
import mimetypes
from collections.abc import Callable
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, TypeVar

import httpx

from s3object.config import S3Config
from s3object.dates import Clock, RequestTimestamp, utc_now
from s3object.policy import BrowserPolicy, build_browser_policy
from s3object.signing import (
    UNSIGNED_PAYLOAD_HASH,
    hash_payload,
    sign_headers,
)
from s3object.transport import HttpxTransport, Response, Transport


logger = logging.getLogger(__name__)

_R = TypeVar("_R")


class RemoteError(Exception):
    """The store answered with an unexpected status.

    Attributes:
        result: The failed operation result, response included.
    """

    def __init__(self, result: OperationResult) -> None:
        self.result = result
        super().__init__(
            f"{result.operation} {result.key} failed with HTTP "
            f"{result.status_code} (expected {result.expected_status})"
        )

    @property
    def status_code(self) -> int:
        return self.result.status_code

    @property
    def body(self) -> bytes:
        return self.result.response.body


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a single operation.

    Truthy only when the store answered with the operation's success
    status (200, or 204 for DELETE).
    """

    operation: str
    key: str
    response: Response
    expected_status: int

    @property
    def ok(self) -> bool:
        return self.response.status_code == self.expected_status

    def __bool__(self) -> bool:
        return self.ok

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def body(self) -> bytes | None:
        """Response body on success, None otherwise."""
        return self.response.body if self.ok else None

    def raise_for_status(self) -> OperationResult:
        """Return self on success, raise ``RemoteError`` otherwise."""
        if not self.ok:
            raise RemoteError(self)
        return self


@dataclass(frozen=True)
class MoveResult:
    """Outcome of copy-then-delete.

    Success is decided by the copy alone.  ``delete`` is None when the
    delete was never answered: either the copy failed and the source was
    left in place, or the delete raised ``delete_error``.
    """

    copy: OperationResult
    delete: OperationResult | None
    delete_error: httpx.TransportError | None = None

    @property
    def ok(self) -> bool:
        return self.copy.ok

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True)
class _PreparedRequest:
    """A signed request ready to hand to the transport."""

    operation: str
    key: str
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None
    expected_status: int


class ObjectClient:
    """Signed GET/PUT/DELETE/COPY and browser policies for one bucket.

    Args:
        config: Bucket and credential configuration.
        transport: HTTP transport.  Defaults to an ``HttpxTransport`` owned
            by the client and closed by ``close()``.
        clock: Source of the per-request timestamp.
        executor: Caller-owned executor for the ``*_async`` methods.
    """

    def __init__(
        self,
        config: S3Config,
        transport: Transport | None = None,
        *,
        clock: Clock = utc_now,
        executor: Executor | None = None,
    ) -> None:
        self._config = config
        self._credentials = config.credentials
        self._owned_transport: HttpxTransport | None = None
        if transport is None:
            transport = self._owned_transport = HttpxTransport()
        self._transport = transport
        self._clock = clock
        self._executor = executor

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owned_transport is not None:
            self._owned_transport.close()

    def __enter__(self) -> ObjectClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def config(self) -> S3Config:
        return self._config

    @property
    def bucket_host(self) -> str:
        return self._config.bucket_host

    @property
    def bucket_url(self) -> str:
        return self._config.bucket_url

    def object_url(self, key: str) -> str:
        """Virtual-hosted URL of an object."""
        return f"{self._config.bucket_url}/{key}"

    # ------------------------------------------------------------------
    # Request preparation (signing happens here, before any I/O)
    # ------------------------------------------------------------------

    def _prepare(
        self,
        operation: str,
        method: str,
        key: str,
        *,
        expected_status: int,
        payload_hash: str = UNSIGNED_PAYLOAD_HASH,
        extra_headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> _PreparedRequest:
        timestamp = RequestTimestamp.capture(self._clock)
        headers = {
            "host": self._config.bucket_host,
            "x-amz-date": timestamp.amz_date,
            "x-amz-content-sha256": payload_hash,
        }
        if extra_headers:
            headers.update(extra_headers)

        signed = sign_headers(
            method,
            key,
            headers,
            timestamp,
            self._credentials,
            self._config.region,
            self._config.service,
        )
        return _PreparedRequest(
            operation=operation,
            key=key,
            method=method,
            url=self.object_url(key),
            headers=signed,
            body=body,
            expected_status=expected_status,
        )

    def _prepare_get(self, key: str) -> _PreparedRequest:
        return self._prepare("GET", "GET", key, expected_status=200)

    def _prepare_put(
        self,
        key: str,
        content: bytes,
        content_type: str | None,
        content_length: int | None,
    ) -> _PreparedRequest:
        if content_length is None:
            content_length = len(content)
        elif content_length != len(content):
            raise ValueError(
                f"content_length {content_length} does not match "
                f"{len(content)} bytes of content"
            )

        extra = {"content-length": str(content_length)}
        if content_type:
            extra["content-type"] = content_type

        return self._prepare(
            "PUT",
            "PUT",
            key,
            expected_status=200,
            payload_hash=hash_payload(content),
            extra_headers=extra,
            body=content,
        )

    def _prepare_delete(self, key: str) -> _PreparedRequest:
        return self._prepare("DELETE", "DELETE", key, expected_status=204)

    def _prepare_copy(self, source_key: str, key: str) -> _PreparedRequest:
        return self._prepare(
            "COPY",
            "PUT",
            key,
            expected_status=200,
            extra_headers={
                "x-amz-copy-source": f"{self._config.bucket}/{source_key}"
            },
        )

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute(self, request: _PreparedRequest) -> OperationResult:
        response = self._transport.send(
            request.method, request.url, request.headers, request.body
        )
        result = OperationResult(
            operation=request.operation,
            key=request.key,
            response=response,
            expected_status=request.expected_status,
        )
        if result.ok:
            logger.debug(
                "%s %s: HTTP %d",
                request.operation,
                request.key,
                response.status_code,
            )
        else:
            logger.info(
                "%s %s rejected: HTTP %d (expected %d)",
                request.operation,
                request.key,
                response.status_code,
                request.expected_status,
            )
        return result

    def _move(
        self, copy_request: _PreparedRequest, source_key: str
    ) -> MoveResult:
        copied = self._execute(copy_request)
        if not copied.ok:
            return MoveResult(copy=copied, delete=None)

        # Signed only now: the delete gets its own timestamp.
        try:
            deleted = self._execute(self._prepare_delete(source_key))
        except httpx.TransportError as e:
            # The copy is committed; report it rather than the delete
            logger.warning(
                "Moved %s to %s but could not delete the source: %s",
                source_key,
                copied.key,
                e,
            )
            return MoveResult(copy=copied, delete=None, delete_error=e)
        if not deleted.ok:
            logger.warning(
                "Moved %s to %s but could not delete the source: HTTP %d",
                source_key,
                copied.key,
                deleted.status_code,
            )
        return MoveResult(copy=copied, delete=deleted)

    def _submit(
        self,
        fn: Callable[[], _R],
        callback: Callable[[_R], None] | None,
    ) -> Future[_R]:
        if self._executor is None:
            raise RuntimeError(
                "Asynchronous operations need an executor; pass "
                "executor= to ObjectClient"
            )

        def run() -> _R:
            result = fn()
            if callback is not None:
                callback(result)
            return result

        return self._executor.submit(run)

    # ------------------------------------------------------------------
    # Blocking operations
    # ------------------------------------------------------------------

    def get(self, key: str) -> OperationResult:
        """Fetch an object.  ``result.body`` holds its content on 200."""
        return self._execute(self._prepare_get(key))

    def put(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
        content_length: int | None = None,
    ) -> OperationResult:
        """Store ``content`` under ``key``; the body hash is signed.

        Raises:
            ValueError: If ``content_length`` disagrees with ``content``.
        """
        return self._execute(
            self._prepare_put(key, content, content_type, content_length)
        )

    def delete(self, key: str) -> OperationResult:
        """Delete an object.  Succeeds on HTTP 204."""
        return self._execute(self._prepare_delete(key))

    def copy(self, source_key: str, key: str) -> OperationResult:
        """Server-side copy of ``source_key`` to ``key`` in this bucket."""
        return self._execute(self._prepare_copy(source_key, key))

    def move(self, source_key: str, key: str) -> MoveResult:
        """Copy, then delete the source only if the copy succeeded."""
        return self._move(self._prepare_copy(source_key, key), source_key)

    def upload(
        self,
        key: str,
        file: str | Path | BinaryIO,
        content_type: str | None = None,
    ) -> OperationResult:
        """Store a file from disk or an open binary stream.

        The content type is guessed from the file name when not given.
        """
        content, name = _read_file(file)
        if content_type is None and name:
            content_type = mimetypes.guess_type(name)[0]
        return self.put(key, content, content_type)

    def browser_policy(
        self, key: str, content_type: str, max_size: int
    ) -> BrowserPolicy:
        """Sign a policy letting a browser POST ``key`` directly.

        The policy expires 900 seconds after this call.
        """
        return build_browser_policy(
            credentials=self._credentials,
            bucket=self._config.bucket,
            region=self._config.region,
            key=key,
            content_type=content_type,
            max_size=max_size,
            timestamp=RequestTimestamp.capture(self._clock),
            service=self._config.service,
        )

    # ------------------------------------------------------------------
    # Future-returning operations
    # ------------------------------------------------------------------

    def get_async(
        self,
        key: str,
        callback: Callable[[OperationResult], None] | None = None,
    ) -> Future[OperationResult]:
        request = self._prepare_get(key)
        return self._submit(lambda: self._execute(request), callback)

    def put_async(
        self,
        key: str,
        content: bytes,
        content_type: str | None = None,
        content_length: int | None = None,
        callback: Callable[[OperationResult], None] | None = None,
    ) -> Future[OperationResult]:
        request = self._prepare_put(key, content, content_type, content_length)
        return self._submit(lambda: self._execute(request), callback)

    def delete_async(
        self,
        key: str,
        callback: Callable[[OperationResult], None] | None = None,
    ) -> Future[OperationResult]:
        request = self._prepare_delete(key)
        return self._submit(lambda: self._execute(request), callback)

    def copy_async(
        self,
        source_key: str,
        key: str,
        callback: Callable[[OperationResult], None] | None = None,
    ) -> Future[OperationResult]:
        request = self._prepare_copy(source_key, key)
        return self._submit(lambda: self._execute(request), callback)

    def move_async(
        self,
        source_key: str,
        key: str,
        callback: Callable[[MoveResult], None] | None = None,
    ) -> Future[MoveResult]:
        request = self._prepare_copy(source_key, key)
        return self._submit(lambda: self._move(request, source_key), callback)


def _read_file(file: str | Path | BinaryIO) -> tuple[bytes, str]:
    """Read a path or binary stream, returning content and a file name."""
    if isinstance(file, (str, Path)):
        path = Path(file)
        return path.read_bytes(), path.name
    name = getattr(file, "name", "")
    return file.read(), name if isinstance(name, str) else ""
