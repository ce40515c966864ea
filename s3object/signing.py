# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS Signature Version 4 request signing for S3-style object stores.

Builds canonical requests, derives the per-day scoped signing key and
assembles the ``Authorization`` header value.  Everything here is a pure
function of its arguments: no clock reads, no I/O, no cached keys.

The payload hash is never computed here.  Callers put it in the
``x-amz-content-sha256`` header before signing, either as the hash of the
real body (PUT) or as ``UNSIGNED_PAYLOAD_HASH``.
"""

from __future__ import annotations

import hashlib
import hmac
import re
from dataclasses import dataclass, field

from s3object.dates import RequestTimestamp


ALGORITHM = "AWS4-HMAC-SHA256"
TERMINATOR = "aws4_request"

#: SHA-256 of the literal string ``UNSIGNED-PAYLOAD``.
UNSIGNED_PAYLOAD_HASH = hashlib.sha256(b"UNSIGNED-PAYLOAD").hexdigest()

_CONTENT_SHA256 = "x-amz-content-sha256"

# Authorization header regex
_AUTH_HEADER_RE = re.compile(
    r"(?P<algorithm>AWS4-HMAC-SHA256)\s+"
    r"Credential=(?P<key_id>[^/]+)/(?P<scope>[^,]+),\s*"
    r"SignedHeaders=(?P<signed_headers>[^,]+),\s*"
    r"Signature=(?P<signature>[0-9a-f]+)"
)


class SigningError(Exception):
    """A request was handed to the signer without its required headers."""


@dataclass(frozen=True)
class Credentials:
    """Access key pair.  The secret never appears in ``repr``."""

    access_key_id: str
    secret_key: str = field(repr=False)


@dataclass(frozen=True)
class SigningScope:
    """Credential scope: the day, region and service a key is valid for."""

    date: str
    region: str
    service: str = "s3"
    terminator: str = TERMINATOR

    def __str__(self) -> str:
        return "/".join([self.date, self.region, self.service, self.terminator])


def hash_payload(payload: bytes) -> str:
    """Hex SHA-256 of a request body."""
    return hashlib.sha256(payload).hexdigest()


def object_path(*parts: str) -> str:
    """Join key segments with ``/``."""
    return "/".join(parts)


# ---------------------------------------------------------------------------
# Canonical request construction
# ---------------------------------------------------------------------------


def canonical_headers(headers: dict[str, str]) -> dict[str, str]:
    """Normalize headers for signing.

    Names are lower-cased and stripped, values are trimmed with inner
    whitespace runs collapsed to a single space.  The result is ordered
    by name.

    Args:
        headers: Request headers (name -> value), any case.

    Returns:
        Sorted mapping of lowercase name to normalized value.

    Raises:
        SigningError: If two names collide once lower-cased.
    """
    normalized: dict[str, str] = {}
    for name, value in headers.items():
        key = name.strip().lower()
        if key in normalized:
            raise SigningError(f"Duplicate header after normalization: {key}")
        normalized[key] = " ".join(str(value).split())
    return dict(sorted(normalized.items()))


def _check_required(headers: dict[str, str]) -> None:
    """Fail fast on headers the signer refuses to default."""
    missing = [n for n in ("host", _CONTENT_SHA256) if n not in headers]
    if "date" not in headers and "x-amz-date" not in headers:
        missing.append("date")
    if missing:
        raise SigningError(
            f"Missing required header(s) for signing: {', '.join(missing)}"
        )


def signed_header_names(headers: dict[str, str]) -> str:
    """Semicolon-joined, sorted, lowercase header names."""
    return ";".join(canonical_headers(headers))


def canonicalize(method: str, path: str, headers: dict[str, str]) -> str:
    """Build the canonical request string.

    The query string line is always empty and ``path`` is used as given
    (object names are expected to be escaped already).

    Args:
        method: HTTP method.
        path: Object path without the leading ``/``.
        headers: Every header to be signed.

    Returns:
        Canonical request string.

    Raises:
        SigningError: If ``host``, ``x-amz-content-sha256`` or a date
            header is missing.
    """
    normalized = canonical_headers(headers)
    _check_required(normalized)

    return "\n".join(
        [
            method,
            "/" + path,
            "",
            "".join(f"{name}:{value}\n" for name, value in normalized.items()),
            ";".join(normalized),
            normalized[_CONTENT_SHA256],
        ]
    )


# ---------------------------------------------------------------------------
# SigV4 signing
# ---------------------------------------------------------------------------


def _hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    """HMAC-SHA256 helper."""
    if isinstance(msg, str):
        msg = msg.encode("utf-8")
    return hmac.new(key, msg, hashlib.sha256).digest()


def derive_signing_key(
    date: str, region: str, service: str, secret_key: str
) -> bytes:
    """Derive the SigV4 signing key.

    Args:
        date: Scope date (YYYYMMDD) of the request being signed.
        region: Region name.
        service: Service name.
        secret_key: Secret access key.

    Returns:
        32-byte signing key.
    """
    k_date = _hmac_sha256(("AWS4" + secret_key).encode("utf-8"), date)
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    return _hmac_sha256(k_service, TERMINATOR)


def string_to_sign(
    canonical_request: str, amz_date: str, scope: SigningScope | str
) -> str:
    """Build the SigV4 string to sign.

    Args:
        canonical_request: The canonical request string.
        amz_date: Full timestamp (YYYYMMDDTHHMMSSZ).
        scope: Credential scope.

    Returns:
        String to sign.
    """
    return "\n".join(
        [
            ALGORITHM,
            amz_date,
            str(scope),
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ]
    )


def sign(string_to_sign: str, key: bytes) -> str:
    """Hex HMAC-SHA256 of ``string_to_sign`` under ``key``."""
    return hmac.new(
        key, string_to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def authorization_header(
    method: str,
    path: str,
    headers: dict[str, str],
    amz_date: str,
    credentials: Credentials,
    scope: SigningScope,
) -> str:
    """Sign a request and format its ``Authorization`` value.

    Args:
        method: HTTP method.
        path: Object path without the leading ``/``.
        headers: Headers to sign (must include host, payload hash, date).
        amz_date: Full timestamp the request carries.
        credentials: Access key pair.
        scope: Credential scope; its date must be the date of ``amz_date``.

    Returns:
        ``AWS4-HMAC-SHA256 Credential=...,SignedHeaders=...,Signature=...``

    Raises:
        SigningError: On missing headers or a scope/timestamp date mismatch.
    """
    if not amz_date.startswith(scope.date):
        raise SigningError(
            f"Scope date {scope.date} does not match request time {amz_date}"
        )

    creq = canonicalize(method, path, headers)
    key = derive_signing_key(
        scope.date, scope.region, scope.service, credentials.secret_key
    )
    signature = sign(string_to_sign(creq, amz_date, scope), key)

    return (
        f"{ALGORITHM} "
        f"Credential={credentials.access_key_id}/{scope},"
        f"SignedHeaders={signed_header_names(headers)},"
        f"Signature={signature}"
    )


def sign_headers(
    method: str,
    path: str,
    headers: dict[str, str],
    timestamp: RequestTimestamp,
    credentials: Credentials,
    region: str,
    service: str = "s3",
) -> dict[str, str]:
    """Return a copy of ``headers`` with ``authorization`` added.

    The scope date is taken from ``timestamp``, the same instant the
    caller rendered into ``x-amz-date``.
    """
    scope = SigningScope(timestamp.date, region, service)
    signed = dict(headers)
    signed["authorization"] = authorization_header(
        method, path, headers, timestamp.amz_date, credentials, scope
    )
    return signed


# ---------------------------------------------------------------------------
# Parsed authorization header
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParsedAuth:
    """Parsed SigV4 Authorization header."""

    algorithm: str
    key_id: str
    scope: str
    signed_headers: str
    signature: str

    @property
    def scope_parts(self) -> list[str]:
        """Split scope into date/region/service/aws4_request."""
        return self.scope.split("/")

    @property
    def date(self) -> str:
        """Date from credential scope (YYYYMMDD)."""
        return self.scope_parts[0]


def parse_auth_header(auth_value: str) -> ParsedAuth | None:
    """Parse an Authorization header.

    Args:
        auth_value: Full Authorization header value.

    Returns:
        ParsedAuth if valid SigV4 auth, None otherwise.
    """
    m = _AUTH_HEADER_RE.match(auth_value)
    if not m:
        return None
    return ParsedAuth(
        algorithm=m.group("algorithm"),
        key_id=m.group("key_id"),
        scope=m.group("scope"),
        signed_headers=m.group("signed_headers"),
        signature=m.group("signature"),
    )
