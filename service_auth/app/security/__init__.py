"""
Secret hashing, constant-time comparison and Basic credential decoding.
"""

from .credentials import decode_basic_credentials, encode_basic_credentials
from .hashing import SecretHasher, constant_time_equals

__all__ = [
    "SecretHasher",
    "constant_time_equals",
    "decode_basic_credentials",
    "encode_basic_credentials",
]
