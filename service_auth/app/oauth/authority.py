"""
Client-credentials authority: authenticates OAuth clients and issues tokens.
"""

from typing import Dict, Optional, Union

from shared.errors import DirectoryUnavailable, KeyProviderUnavailable
from shared.logging import get_logger, mask_identifier, set_subject_context
from shared.metrics import MetricsCollector

from ..directory import CredentialDirectory
from ..models import (
    CLIENT_CREDENTIALS_GRANT,
    Client,
    IntrospectionResult,
    OAuthError,
    TokenRequest,
    TokenResponse,
)
from ..security import SecretHasher
from ..tokens import KeyProvider, TokenCodec, resolve_key
from .scopes import ScopeResolver

TOKEN_FLOW = "client_credentials"
INTROSPECT_FLOW = "introspection"


class ClientCredentialsAuthority:
    """Runs the client-credentials grant against the client directory.

    Unknown, inactive and wrong-secret clients all receive the same
    ``invalid_client`` error; the log records which one it was.
    """

    def __init__(self,
                 directory: "CredentialDirectory[Client]",
                 codec: TokenCodec,
                 key_provider: KeyProvider,
                 hasher: Optional[SecretHasher] = None,
                 scopes: Optional[ScopeResolver] = None,
                 key_timeout: float = 1.0,
                 metrics: Optional[MetricsCollector] = None):
        self.directory = directory
        self.codec = codec
        self.key_provider = key_provider
        self.hasher = hasher or SecretHasher()
        self.scopes = scopes or ScopeResolver()
        self.key_timeout = key_timeout
        self.metrics = metrics
        self.logger = get_logger("auth.oauth")

    async def authenticate(self, request: TokenRequest) -> Union[TokenResponse, OAuthError]:
        """Authenticate a token request; expected failures come back as OAuthError."""
        try:
            result = await self._authenticate(request)
        except Exception:
            self.logger.error(
                "Unexpected error during client authentication",
                client_id=mask_identifier(request.client_id),
                exc_info=True
            )
            result = OAuthError.server_error()

        self._record(TOKEN_FLOW, result)
        return result

    async def _authenticate(self, request: TokenRequest) -> Union[TokenResponse, OAuthError]:
        if not request.is_client_credentials_grant():
            self.logger.info("Unsupported grant type", grant_type=request.grant_type[:50])
            return OAuthError.unsupported_grant_type(request.grant_type)

        client_id = (request.client_id or "").strip()
        if not client_id or not (request.client_secret or "").strip():
            self._log_denial("missing_credentials", client_id)
            return OAuthError.invalid_request("Missing client credentials")

        set_subject_context(client_id)

        client = await self._lookup(client_id)
        if client is None:
            return OAuthError.invalid_client()

        if not await self.hasher.verify_async(request.client_secret, client.secret_hash):
            self._log_denial("secret_mismatch", client_id)
            return OAuthError.invalid_client()

        if not client.allows_grant_type(CLIENT_CREDENTIALS_GRANT):
            self.logger.warning("Grant type not allowed for client", client_id=mask_identifier(client_id))
            return OAuthError.unauthorized_client("Client is not authorized to use this grant type")

        scope = self.scopes.resolve(client, request.scope)
        if isinstance(scope, OAuthError):
            self.logger.info(
                "Scope rejected",
                client_id=mask_identifier(client_id),
                description=scope.error_description
            )
            return scope

        try:
            signing_key = await resolve_key(self.key_provider.signing_key, self.key_timeout)
        except KeyProviderUnavailable:
            return OAuthError.server_error()

        lifetime = client.token_lifetime_seconds
        issued = self.codec.mint(
            {"client_id": client.client_id, "scope": scope},
            lifetime,
            signing_key,
        )

        self.logger.info(
            "Access token issued",
            client_id=mask_identifier(client_id),
            scope=scope,
            expires_in=lifetime
        )
        return TokenResponse(
            access_token=issued.token,
            expires_in=lifetime,
            scope=scope or None,
            issued_at=issued.claims.iat,
        )

    async def _lookup(self, client_id: str) -> Optional[Client]:
        """Active client with exactly this id, or None after a dummy verification."""
        try:
            client = await self.directory.find(client_id)
        except DirectoryUnavailable:
            self._log_denial("directory_unavailable", client_id)
            return None

        if client is None:
            self._log_denial("client_not_found", client_id)
        elif client.client_id != client_id:
            # Directory keys are case-insensitive, client ids are not
            self._log_denial("client_id_mismatch", client_id)
            client = None
        elif not client.is_active():
            self._log_denial("client_inactive", client_id, status=client.status.value)
            client = None

        if client is None:
            await self.hasher.dummy_verify_async()
        return client

    async def introspect(self, token: Optional[str]) -> Union[IntrospectionResult, OAuthError]:
        """Introspect a bearer token."""
        if not token or not token.strip():
            result = OAuthError.invalid_request("Missing token parameter")
            self._record(INTROSPECT_FLOW, result)
            return result

        try:
            key = await resolve_key(self.key_provider.verification_key, self.key_timeout)
            result = self.codec.introspect(token.strip(), key)
        except KeyProviderUnavailable:
            result = OAuthError.server_error()
        except Exception:
            self.logger.error("Unexpected error during token introspection", exc_info=True)
            result = OAuthError.server_error()

        self._record(INTROSPECT_FLOW, result)
        return result

    async def clients_with_scope(self, scope: str) -> Dict[str, Client]:
        """Clients whose allowed scopes include ``scope``, keyed by directory key."""
        if not scope or not scope.strip():
            raise ValueError("scope must not be blank")
        clients = await self.directory.all()
        return {key: client for key, client in clients.items() if client.allows_scope(scope.strip())}

    async def active_client_count(self) -> int:
        clients = await self.directory.all()
        return sum(1 for client in clients.values() if client.is_active())

    def _log_denial(self, cause: str, client_id: str, **extra) -> None:
        self.logger.warning(
            "Client authentication failed",
            cause=cause,
            client_id=mask_identifier(client_id),
            **extra
        )

    def _record(self, flow: str, result) -> None:
        if self.metrics is None:
            return
        if isinstance(result, OAuthError):
            outcome = result.error.value
        elif isinstance(result, IntrospectionResult):
            outcome = "active" if result.active else "inactive"
        else:
            outcome = "success"
        self.metrics.record_auth_outcome(flow, outcome)
