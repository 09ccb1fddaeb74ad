"""
Bearer token codec and key provider.
"""

from .codec import IssuedToken, TokenCodec
from .keys import KeyHandle, KeyProvider, StaticKeyProvider, resolve_key

__all__ = [
    "IssuedToken",
    "TokenCodec",
    "KeyHandle",
    "KeyProvider",
    "StaticKeyProvider",
    "resolve_key",
]
