"""
Secret hashing and verification for client secrets and user passwords.

Two stored formats are understood:

- ``pbkdf2_sha256$<iterations>$<b64 salt>$<b64 hash>`` produced by
  :meth:`SecretHasher.hash` (PBKDF2-HMAC-SHA256 via ``cryptography``).
- ``$argon2id$v=19$m=<kib>,t=<n>,p=<n>$<b64 salt>$<b64 hash>`` PHC strings
  as written by the credential provisioning tooling.

Digest comparison never uses ``==``; see :func:`constant_time_equals`.
"""

import asyncio
import base64
import os
from typing import Dict, Optional, Tuple

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

PBKDF2_PREFIX = "pbkdf2_sha256"
ARGON2ID_PREFIX = "$argon2id$"
DEFAULT_ITERATIONS = 210_000
SALT_BYTES = 16
DIGEST_BYTES = 32


def constant_time_equals(left: bytes, right: bytes) -> bool:
    """Compare two byte strings in time independent of where they differ.

    Every byte of the longer input is visited; a length mismatch is folded
    into the accumulator instead of returning early.
    """
    length = max(len(left), len(right))
    result = len(left) ^ len(right)
    for index in range(length):
        a = left[index] if index < len(left) else 0
        b = right[index] if index < len(right) else 0
        result |= a ^ b
    return result == 0


def _b64decode(value: str) -> bytes:
    # PHC strings drop the padding
    padded = value + "=" * (-len(value) % 4)
    return base64.b64decode(padded.encode("ascii"), validate=True)


def _b64encode(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _work_factor_prefix(stored_hash: str) -> str:
    # Everything before the salt and digest segments: scheme and cost parameters
    head, _, _ = stored_hash.rpartition("$")
    prefix, _, _ = head.rpartition("$")
    return prefix


def _parse_argon2_params(segment: str) -> Dict[str, int]:
    params = {}
    for item in segment.split(","):
        name, _, raw = item.partition("=")
        params[name] = int(raw)
    return params


class SecretHasher:
    """Hashes and verifies secrets.

    ``dummy_verify`` burns the work of a real verification against the cost
    parameters of the most recently verified stored hash, so "unknown" and
    "wrong secret" take the same time whichever format the store holds.
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS):
        if iterations <= 0:
            raise ValueError("iterations must be positive")
        self.iterations = iterations
        self._reference_prefix: Optional[str] = None
        self._dummy_hashes: Dict[str, str] = {}

    def hash(self, secret: str, salt: Optional[bytes] = None) -> str:
        """Hash a secret into the pbkdf2_sha256 storage format."""
        salt = salt if salt is not None else os.urandom(SALT_BYTES)
        digest = self._pbkdf2(secret.encode("utf-8"), salt, self.iterations)
        return f"{PBKDF2_PREFIX}${self.iterations}${_b64encode(salt)}${_b64encode(digest)}"

    def verify(self, secret: str, stored_hash: str) -> bool:
        """Check ``secret`` against a stored hash; unparsable hashes never match."""
        matched = self._verify(secret, stored_hash)
        if matched is None:
            return False
        self._reference_prefix = _work_factor_prefix(stored_hash)
        return matched

    def dummy_verify(self) -> None:
        """Spend the same work as a real verification against a throwaway hash."""
        self._verify("not-the-dummy-secret", self._dummy_hash())

    async def verify_async(self, secret: str, stored_hash: str) -> bool:
        """:meth:`verify` on a worker thread, leaving the event loop free."""
        return await asyncio.to_thread(self.verify, secret, stored_hash)

    async def dummy_verify_async(self) -> None:
        """:meth:`dummy_verify` on a worker thread."""
        await asyncio.to_thread(self.dummy_verify)

    def _verify(self, secret: str, stored_hash: str) -> Optional[bool]:
        # None when the stored hash cannot be used at all
        if not secret or not stored_hash:
            return None
        try:
            expected, actual = self._digests(secret.encode("utf-8"), stored_hash)
        except (ValueError, TypeError, KeyError, HashingError):
            return None
        return constant_time_equals(expected, actual)

    def _dummy_hash(self) -> str:
        prefix = self._reference_prefix or f"{PBKDF2_PREFIX}${self.iterations}"
        dummy = self._dummy_hashes.get(prefix)
        if dummy is None:
            salt = _b64encode(b"dummy-salt-value")
            dummy = f"{prefix}${salt}${_b64encode(bytes(DIGEST_BYTES))}"
            self._dummy_hashes[prefix] = dummy
        return dummy

    def _digests(self, secret: bytes, stored_hash: str) -> Tuple[bytes, bytes]:
        if stored_hash.startswith(ARGON2ID_PREFIX):
            return self._argon2_digests(secret, stored_hash)
        if stored_hash.startswith(PBKDF2_PREFIX + "$"):
            return self._pbkdf2_digests(secret, stored_hash)
        raise ValueError("Unsupported hash format")

    def _pbkdf2_digests(self, secret: bytes, stored_hash: str) -> Tuple[bytes, bytes]:
        parts = stored_hash.split("$")
        if len(parts) != 4:
            raise ValueError("Malformed pbkdf2 hash")
        iterations = int(parts[1])
        if iterations <= 0:
            raise ValueError("Malformed pbkdf2 hash")
        salt = _b64decode(parts[2])
        expected = _b64decode(parts[3])
        return expected, self._pbkdf2(secret, salt, iterations, len(expected) or DIGEST_BYTES)

    def _argon2_digests(self, secret: bytes, stored_hash: str) -> Tuple[bytes, bytes]:
        # "", "argon2id", "v=19", "m=65536,t=3,p=1", salt, hash
        parts = stored_hash.split("$")
        if len(parts) != 6 or not parts[2].startswith("v="):
            raise ValueError("Malformed argon2id hash")
        version = int(parts[2][2:])
        params = _parse_argon2_params(parts[3])
        salt = _b64decode(parts[4])
        expected = _b64decode(parts[5])
        if not expected:
            raise ValueError("Malformed argon2id hash")
        actual = hash_secret_raw(
            secret=secret,
            salt=salt,
            time_cost=params["t"],
            memory_cost=params["m"],
            parallelism=params["p"],
            hash_len=len(expected),
            type=Type.ID,
            version=version,
        )
        return expected, actual

    @staticmethod
    def _pbkdf2(secret: bytes, salt: bytes, iterations: int, length: int = DIGEST_BYTES) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=length,
            salt=salt,
            iterations=iterations,
        )
        return kdf.derive(secret)
