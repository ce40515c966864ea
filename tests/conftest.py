# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Shared fixtures for s3object tests."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime

import pytest

from s3object.client import ObjectClient
from s3object.config import S3Config, reset_dotenv_state
from s3object.logging import SecretFilter
from s3object.transport import Response
from tests.vectors import (
    ACCESS_KEY_ID,
    BUCKET,
    INSTANT,
    SECRET_ACCESS_KEY,
)


@dataclass
class SentRequest:
    """One request captured by ``FakeTransport``."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None


@dataclass
class FakeTransport:
    """Records requests and answers with queued responses.

    Responses are consumed in order; when the queue is empty the
    ``default`` response is returned.
    """

    responses: list[Response] = field(default_factory=list)
    default: Response = field(default_factory=lambda: Response(200))
    sent: list[SentRequest] = field(default_factory=list)

    def send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> Response:
        self.sent.append(SentRequest(method, url, dict(headers), body))
        if self.responses:
            return self.responses.pop(0)
        return self.default


class FixedClock:
    """Clock returning a fixed instant and counting calls."""

    def __init__(self, instant: datetime) -> None:
        self.instant = instant
        self.calls = 0

    def __call__(self) -> datetime:
        self.calls += 1
        return self.instant


@pytest.fixture
def config() -> S3Config:
    return S3Config(
        access_key_id=ACCESS_KEY_ID,
        access_key=SECRET_ACCESS_KEY,
        bucket=BUCKET,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(INSTANT)


@pytest.fixture
def client(
    config: S3Config, transport: FakeTransport, clock: FixedClock
) -> ObjectClient:
    return ObjectClient(config, transport, clock=clock)


@pytest.fixture(autouse=True)
def _clean_global_state() -> Iterator[None]:
    """Reset redaction and dotenv state between tests."""
    yield
    SecretFilter.clear_secrets()
    reset_dotenv_state()
