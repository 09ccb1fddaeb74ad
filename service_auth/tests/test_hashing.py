"""
Unit tests for secret hashing and Basic credential decoding.
"""

import base64
from unittest.mock import patch

import pytest

from shared.test_helpers import argon2id_hash
from service_auth.app.security import (
    SecretHasher,
    constant_time_equals,
    decode_basic_credentials,
    encode_basic_credentials,
)


class TestConstantTimeEquals:
    """Test cases for constant_time_equals."""

    @pytest.mark.parametrize("left,right,expected", [
        (b"", b"", True),
        (b"secret", b"secret", True),
        (b"secret", b"secreT", False),
        (b"Secret", b"secret", False),
        (b"secret", b"secret1", False),
        (b"secret1", b"secret", False),
        (b"", b"x", False),
    ])
    def test_comparison(self, left, right, expected):
        """Test equality semantics."""
        assert constant_time_equals(left, right) is expected


class TestSecretHasher:
    """Test cases for SecretHasher."""

    def test_hash_format(self, hasher):
        """Test the pbkdf2 storage format."""
        stored = hasher.hash("s3cr3t")

        prefix, iterations, salt, digest = stored.split("$")
        assert prefix == "pbkdf2_sha256"
        assert int(iterations) == hasher.iterations
        assert len(base64.b64decode(salt)) == 16
        assert len(base64.b64decode(digest)) == 32

    def test_hash_is_salted(self, hasher):
        """Test that equal secrets hash differently."""
        assert hasher.hash("s3cr3t") != hasher.hash("s3cr3t")

    def test_verify_pbkdf2(self, hasher):
        """Test round trip with pbkdf2."""
        stored = hasher.hash("s3cr3t")

        assert hasher.verify("s3cr3t", stored) is True
        assert hasher.verify("wrong", stored) is False

    def test_verify_uses_stored_iterations(self, hasher):
        """Test that the work factor is read from the stored hash."""
        stored = SecretHasher(iterations=1500).hash("s3cr3t")

        assert hasher.verify("s3cr3t", stored) is True

    def test_verify_argon2id(self, hasher):
        """Test verification of PHC argon2id hashes."""
        stored = argon2id_hash("password123")

        assert stored.startswith("$argon2id$v=19$m=1024,t=1,p=1$")
        assert hasher.verify("password123", stored) is True
        assert hasher.verify("password124", stored) is False

    @pytest.mark.parametrize("stored", [
        "",
        "plaintext",
        "pbkdf2_sha256$abc$c2FsdA==$ZGlnZXN0",
        "pbkdf2_sha256$0$c2FsdA==$ZGlnZXN0",
        "pbkdf2_sha256$1000$!!!$ZGlnZXN0",
        "pbkdf2_sha256$1000$c2FsdA==",
        "$argon2id$v=19$m=1024,t=1$c2FsdHNhbHRzYWx0$ZGlnZXN0",
        "$argon2id$v=19$garbage$c2FsdHNhbHRzYWx0$ZGlnZXN0",
        "$argon2id$v=19$m=1024,t=1,p=1$c2FsdHNhbHRzYWx0$",
        "$2b$12$bcryptisnotsupported",
    ])
    def test_unparsable_hash_never_matches(self, hasher, stored):
        """Test that malformed hashes fail closed."""
        assert hasher.verify("s3cr3t", stored) is False

    def test_empty_secret_never_matches(self, hasher):
        """Test that an empty secret is rejected."""
        assert hasher.verify("", hasher.hash("")) is False

    def test_dummy_verify(self, hasher):
        """Test that dummy verification runs without raising."""
        hasher.dummy_verify()
        hasher.dummy_verify()

    def test_dummy_verify_defaults_to_pbkdf2(self):
        """Test the dummy work before any stored hash has been seen."""
        hasher = SecretHasher(iterations=1_000)

        with patch.object(hasher, "_pbkdf2", wraps=hasher._pbkdf2) as pbkdf2:
            hasher.dummy_verify()

        pbkdf2.assert_called_once()
        assert pbkdf2.call_args.args[2] == 1_000

    def test_dummy_verify_follows_argon2id_records(self):
        """Test that dummy work matches argon2id records once they are seen."""
        hasher = SecretHasher(iterations=1_000)
        stored = argon2id_hash("s3cr3t", memory_cost=2048, time_cost=2)
        assert hasher.verify("wrong", stored) is False

        with patch.object(hasher, "_argon2_digests", wraps=hasher._argon2_digests) as argon2, \
                patch.object(hasher, "_pbkdf2", wraps=hasher._pbkdf2) as pbkdf2:
            hasher.dummy_verify()

        argon2.assert_called_once()
        assert argon2.call_args.args[1].startswith("$argon2id$v=19$m=2048,t=2,p=1$")
        pbkdf2.assert_not_called()

    def test_dummy_verify_follows_stored_iterations(self):
        """Test that dummy work uses the iteration count of stored records."""
        hasher = SecretHasher(iterations=1_000)
        stored = SecretHasher(iterations=1_500).hash("s3cr3t")
        assert hasher.verify("s3cr3t", stored) is True

        with patch.object(hasher, "_pbkdf2", wraps=hasher._pbkdf2) as pbkdf2:
            hasher.dummy_verify()

        assert pbkdf2.call_args.args[2] == 1_500

    def test_unparsable_hash_does_not_change_dummy_work(self):
        """Test that garbage records do not steer the dummy verification."""
        hasher = SecretHasher(iterations=1_000)
        hasher.verify("s3cr3t", "$argon2id$garbage")

        with patch.object(hasher, "_argon2_digests") as argon2:
            hasher.dummy_verify()

        argon2.assert_not_called()

    @pytest.mark.asyncio
    async def test_verify_async(self, hasher):
        """Test verification on a worker thread."""
        stored = hasher.hash("s3cr3t")

        assert await hasher.verify_async("s3cr3t", stored) is True
        assert await hasher.verify_async("wrong", stored) is False
        await hasher.dummy_verify_async()

    def test_rejects_non_positive_iterations(self):
        """Test constructor validation."""
        with pytest.raises(ValueError):
            SecretHasher(iterations=0)


class TestBasicCredentials:
    """Test cases for Basic credential decoding."""

    def test_decode_with_prefix(self):
        """Test decoding a full header value."""
        assert decode_basic_credentials(encode_basic_credentials("acme", "s3cr3t")) == ("acme", "s3cr3t")

    def test_decode_without_prefix(self):
        """Test decoding the bare base64 pair."""
        encoded = base64.b64encode(b"alice:password123").decode()

        assert decode_basic_credentials(encoded) == ("alice", "password123")

    def test_prefix_is_case_insensitive(self):
        """Test a lower-case scheme."""
        encoded = base64.b64encode(b"alice:pw").decode()

        assert decode_basic_credentials(f"basic {encoded}") == ("alice", "pw")

    def test_split_at_first_colon(self):
        """Test secrets containing colons."""
        value = encode_basic_credentials("acme", "a:b:c")

        assert decode_basic_credentials(value) == ("acme", "a:b:c")

    def test_utf8_credentials(self):
        """Test non-ASCII credentials."""
        value = encode_basic_credentials("zoë", "pässwörd")

        assert decode_basic_credentials(value) == ("zoë", "pässwörd")

    @pytest.mark.parametrize("value", [
        "",
        "Basic ",
        "Basic !!!notbase64",
        "Basic " + base64.b64encode(b"no-colon").decode(),
        "Basic " + base64.b64encode(b"\xff\xfe:x").decode(),
    ])
    def test_malformed_values(self, value):
        """Test that malformed values raise ValueError."""
        with pytest.raises(ValueError):
            decode_basic_credentials(value)
