# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""UTC timestamp formatting for request signing.

Every signed request captures exactly one instant.  The scope date, the
credential string and the ``x-amz-date`` header are all rendered from
that instant by the pure functions below, so they can never disagree.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime


#: A callable returning the current instant.  Injected for testing.
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def _as_utc(instant: datetime) -> datetime:
    """Normalize an instant to aware UTC (naive values are taken as UTC)."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant.astimezone(UTC)


def format_date(instant: datetime) -> str:
    """Render the scope date (``YYYYMMDD``)."""
    return _as_utc(instant).strftime("%Y%m%d")


def format_amz_date(instant: datetime) -> str:
    """Render the full SigV4 timestamp (``YYYYMMDDTHHMMSSZ``)."""
    return _as_utc(instant).strftime("%Y%m%dT%H%M%SZ")


def format_iso8601(instant: datetime) -> str:
    """Render an extended ISO 8601 timestamp (``YYYY-MM-DDTHH:MM:SSZ``)."""
    return _as_utc(instant).strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True)
class RequestTimestamp:
    """One captured instant and its two SigV4 renderings.

    Attributes:
        instant: The captured UTC instant.
    """

    instant: datetime

    @classmethod
    def capture(cls, clock: Clock = utc_now) -> RequestTimestamp:
        """Sample the clock once."""
        return cls(_as_utc(clock()))

    @property
    def date(self) -> str:
        """Scope date (``YYYYMMDD``)."""
        return format_date(self.instant)

    @property
    def amz_date(self) -> str:
        """Full timestamp (``YYYYMMDDTHHMMSSZ``)."""
        return format_amz_date(self.instant)
