"""
HTTP Basic credential decoding.
"""

import base64
import binascii
from typing import Optional, Tuple

BASIC_PREFIX = "basic "


def strip_basic_prefix(value: Optional[str]) -> Optional[str]:
    """Return the encoded part of a ``Basic`` Authorization value, or None."""
    if value is None:
        return None
    value = value.strip()
    if value[:len(BASIC_PREFIX)].lower() == BASIC_PREFIX:
        return value[len(BASIC_PREFIX):].strip()
    return value


def decode_basic_credentials(value: str) -> Tuple[str, str]:
    """Decode ``base64(identifier:secret)`` into its two parts.

    The value may carry a leading ``Basic`` scheme. The pair is split at the
    first colon so secrets may themselves contain colons. Raises
    ``ValueError`` when the value is empty, not base64, not UTF-8 or has
    no colon.
    """
    encoded = strip_basic_prefix(value)
    if not encoded:
        raise ValueError("Empty credentials")
    try:
        raw = base64.b64decode(encoded.encode("ascii"), validate=True)
        decoded = raw.decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise ValueError("Credentials are not valid base64 UTF-8") from e
    identifier, separator, secret = decoded.partition(":")
    if not separator:
        raise ValueError("Credentials are missing the ':' separator")
    return identifier, secret


def encode_basic_credentials(identifier: str, secret: str) -> str:
    """Build a ``Basic`` Authorization header value."""
    token = base64.b64encode(f"{identifier}:{secret}".encode("utf-8")).decode("ascii")
    return f"Basic {token}"
