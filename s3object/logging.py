# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Log redaction for credentials and request signatures.

Library modules log through ``logging.getLogger(__name__)`` and never
format secret keys into messages.  Entry points install ``SecretFilter``
through ``configure_logging`` so that a registered secret, or the
signature part of an ``Authorization`` value, is masked if it reaches a
handler anyway.

Usage:
    from s3object.logging import configure_logging
    configure_logging(level=logging.DEBUG)
"""

import logging
import re
from typing import ClassVar


REDACTED = "[REDACTED]"

_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Signature=<64 hex> inside a logged Authorization header value
_SIGNATURE_RE = re.compile(r"(Signature=)[0-9a-f]{64}")


class SecretFilter(logging.Filter):
    """Mask registered secrets and SigV4 signatures in log records.

    Secrets are registered process-wide (``S3Config`` registers its
    secret key on load), so every filter instance sees the same set.

    Example:
        SecretFilter.register_secret("wJalrXUtnFEMI")
        logger.info("key=%s", "wJalrXUtnFEMI")
        # Output: "key=[REDACTED]"
    """

    _secrets: ClassVar[set[str]] = set()
    _pattern: ClassVar[re.Pattern[str] | None] = None

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self.redact(arg) if isinstance(arg, str) else arg
                for arg in record.args
            )
        return True

    @classmethod
    def redact(cls, text: str) -> str:
        """Return ``text`` with secrets and signatures masked."""
        if cls._pattern is not None:
            text = cls._pattern.sub(REDACTED, text)
        return _SIGNATURE_RE.sub(rf"\g<1>{REDACTED}", text)

    @classmethod
    def register_secret(cls, secret: str) -> None:
        """Add a secret to mask.  Empty strings are ignored."""
        if not secret:
            return
        cls._secrets.add(secret)
        # Longest first, so a secret containing another is masked whole
        ordered = sorted(cls._secrets, key=len, reverse=True)
        cls._pattern = re.compile("|".join(map(re.escape, ordered)))

    @classmethod
    def clear_secrets(cls) -> None:
        """Forget all registered secrets.  For tests."""
        cls._secrets.clear()
        cls._pattern = None


def configure_logging(
    level: int = logging.INFO,
    format_string: str | None = None,
    add_secret_filter: bool = True,
) -> None:
    """Replace the root logger's handlers with one stderr handler.

    Args:
        level: Root logger level.
        format_string: Record format.  Defaults to timestamp, level,
            logger name and message.
        add_secret_filter: Whether to attach ``SecretFilter``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format_string or _DEFAULT_FORMAT))
    if add_secret_filter:
        handler.addFilter(SecretFilter())

    logging.basicConfig(level=level, handlers=[handler], force=True)

    # httpx logs every request at INFO
    if level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
