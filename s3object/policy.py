# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Signed POST policies for direct browser uploads.

A policy is a JSON document of upload conditions.  It is base64-encoded
and the encoded bytes are signed with the same scoped key used for
header signing.  The resulting form fields are embedded in an HTML form
that posts straight to the bucket.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from s3object.dates import RequestTimestamp, format_iso8601
from s3object.signing import (
    ALGORITHM,
    Credentials,
    SigningScope,
    derive_signing_key,
    sign,
)


#: Lifetime of a browser policy, counted from the captured request time.
POLICY_TTL = timedelta(seconds=900)

POLICY_ACL = "public-read"
SUCCESS_STATUS = "200"


@dataclass(frozen=True)
class BrowserPolicy:
    """A signed upload policy.

    Attributes:
        document: The policy document before encoding.
        expiration: Instant after which the store rejects the upload.
        fields: Form fields to submit with the file, in form order.
    """

    document: dict[str, Any]
    expiration: datetime
    fields: dict[str, str]

    @property
    def encoded(self) -> str:
        """The base64 policy exactly as signed."""
        return self.fields["policy"]


def build_browser_policy(
    *,
    credentials: Credentials,
    bucket: str,
    region: str,
    key: str,
    content_type: str,
    max_size: int,
    timestamp: RequestTimestamp,
    service: str = "s3",
) -> BrowserPolicy:
    """Build and sign a browser upload policy.

    Args:
        credentials: Access key pair.
        bucket: Target bucket.
        region: Bucket region.
        key: Object key the browser may write.
        content_type: Required ``Content-Type`` of the upload.
        max_size: Largest accepted upload, in bytes.
        timestamp: Issuance instant; also fixes the expiration.
        service: Service name for the signing scope.

    Returns:
        BrowserPolicy with the encoded policy and its signature.

    Raises:
        ValueError: If ``max_size`` is negative.
    """
    if max_size < 0:
        raise ValueError(f"max_size must be non-negative, got {max_size}")

    scope = SigningScope(timestamp.date, region, service)
    credential = f"{credentials.access_key_id}/{scope}"
    expiration = timestamp.instant + POLICY_TTL

    document: dict[str, Any] = {
        "expiration": format_iso8601(expiration),
        "conditions": [
            {"bucket": bucket},
            {"x-amz-algorithm": ALGORITHM},
            {"x-amz-credential": credential},
            {"x-amz-date": timestamp.amz_date},
            {"acl": POLICY_ACL},
            {"key": key},
            {"content-type": content_type},
            ["content-length-range", 0, max_size],
            {"success_action_status": SUCCESS_STATUS},
        ],
    }
    encoded = base64.b64encode(
        json.dumps(document, separators=(",", ":")).encode("utf-8")
    ).decode("ascii")

    signing_key = derive_signing_key(
        scope.date, scope.region, scope.service, credentials.secret_key
    )

    fields = {
        "x-amz-algorithm": ALGORITHM,
        "x-amz-credential": credential,
        "x-amz-date": timestamp.amz_date,
        "acl": POLICY_ACL,
        "key": key,
        "content-type": content_type,
        "success_action_status": SUCCESS_STATUS,
        "policy": encoded,
        "x-amz-signature": sign(encoded, signing_key),
    }
    return BrowserPolicy(
        document=document, expiration=expiration, fields=fields
    )
