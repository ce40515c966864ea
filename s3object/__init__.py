# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""SigV4-signed object operations for S3-compatible stores.

The signer is pure and transport-independent; the object client wraps it
around GET, PUT, DELETE, COPY/move and browser upload policies.
"""

from s3object.client import (
    MoveResult,
    ObjectClient,
    OperationResult,
    RemoteError,
)
from s3object.config import ConfigError, S3Config
from s3object.dates import RequestTimestamp, utc_now
from s3object.policy import BrowserPolicy, build_browser_policy
from s3object.signing import (
    UNSIGNED_PAYLOAD_HASH,
    Credentials,
    SigningError,
    SigningScope,
    authorization_header,
    canonicalize,
    derive_signing_key,
    object_path,
    parse_auth_header,
    sign,
    string_to_sign,
)
from s3object.transport import HttpxTransport, Response, Transport


__all__ = [
    # client
    "MoveResult",
    "ObjectClient",
    "OperationResult",
    "RemoteError",
    # config
    "ConfigError",
    "S3Config",
    # dates
    "RequestTimestamp",
    "utc_now",
    # policy
    "BrowserPolicy",
    "build_browser_policy",
    # signing
    "UNSIGNED_PAYLOAD_HASH",
    "Credentials",
    "SigningError",
    "SigningScope",
    "authorization_header",
    "canonicalize",
    "derive_signing_key",
    "object_path",
    "parse_auth_header",
    "sign",
    "string_to_sign",
    # transport
    "HttpxTransport",
    "Response",
    "Transport",
]
