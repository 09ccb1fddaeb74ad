"""
Unit tests for credential records and OAuth values.
"""

import pytest
from pydantic import ValidationError

from shared.test_helpers import client_record, user_record
from service_auth.app.models import (
    Client,
    ClientStatus,
    OAuthError,
    TokenRequest,
    User,
    UserStatus,
)


class TestClientRecord:
    """Test cases for Client parsing."""

    def test_from_camel_case_record(self):
        """Test the secret store's field names."""
        client = Client.from_record("acme", client_record("acme", scopes=("read", "read", "write"), lifetime=900))

        assert client.client_id == "acme"
        assert client.allowed_scopes == ("read", "write")
        assert client.token_lifetime_seconds == 900
        assert client.allows_grant_type("client_credentials")
        assert not client.allows_grant_type("password")

    def test_client_id_defaults_to_key(self):
        """Test records without an embedded id."""
        record = client_record("acme")
        del record["clientId"]

        assert Client.from_record("acme", record).client_id == "acme"

    def test_space_delimited_scopes(self):
        """Test scopes stored as a single string."""
        record = client_record("acme")
        record["allowedScopes"] = "read  write"

        assert Client.from_record("acme", record).allowed_scopes == ("read", "write")

    @pytest.mark.parametrize("status,expected", [
        ("active", ClientStatus.ACTIVE),
        ("SUSPENDED", ClientStatus.SUSPENDED),
        ("archived", ClientStatus.DISABLED),
    ])
    def test_status_parsing(self, status, expected):
        """Test case-insensitive status with a disabled fallback."""
        record = client_record("acme", status=status)

        assert Client.from_record("acme", record).status == expected

    def test_missing_status_is_disabled(self):
        """Test that a record without status is never active."""
        record = client_record("acme")
        del record["status"]

        assert not Client.from_record("acme", record).is_active()

    def test_secret_hash_required(self):
        """Test that a record without a hash is rejected."""
        record = client_record("acme")
        del record["clientSecretHash"]

        with pytest.raises(ValidationError):
            Client.from_record("acme", record)


class TestUserRecord:
    """Test cases for User parsing."""

    def test_from_record(self):
        """Test the user record format."""
        user = User.from_record("admin", user_record("admin", roles=("admin", "user")))

        assert user.username == "admin"
        assert user.roles == ("admin", "user")
        assert user.is_active()

    def test_missing_status_is_active(self):
        """Test the user status default."""
        record = user_record("alice")
        del record["status"]

        assert User.from_record("alice", record).status == UserStatus.ACTIVE


class TestOAuthValues:
    """Test cases for OAuth error and request values."""

    @pytest.mark.parametrize("error,status", [
        (OAuthError.invalid_client(), 401),
        (OAuthError.server_error(), 500),
        (OAuthError.invalid_request("Missing grant_type parameter"), 400),
        (OAuthError.invalid_scope("bad"), 400),
        (OAuthError.unsupported_grant_type("password"), 400),
        (OAuthError.unauthorized_client("no"), 400),
    ])
    def test_http_status(self, error, status):
        """Test the HTTP status for each error code."""
        assert error.http_status == status

    def test_unsupported_grant_type_description(self):
        """Test the description names the grant."""
        assert OAuthError.unsupported_grant_type("password").error_description == "Unsupported grant type: password"

    def test_token_request_repr_hides_secret(self):
        """Test that the client secret never appears in repr."""
        request = TokenRequest(grant_type="client_credentials", client_id="acme", client_secret="s3cr3t")

        assert "s3cr3t" not in repr(request)
        assert request.is_client_credentials_grant()
