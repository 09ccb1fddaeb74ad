"""
Auth service: HTTP boundary for token issuance, introspection and Basic
credential validation.
"""

from typing import Any, Dict, Literal, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from shared.base_service import BaseService
from shared.config import AuthSettings, get_settings
from shared.errors import OAuthException, ValidationError

from .basic import BasicAuthenticator
from .directory import SecretStore, build_client_directory, build_user_directory
from .models import OAuthError
from .oauth import ClientCredentialsAuthority, ScopeResolver, parse_token_request
from .security import SecretHasher, constant_time_equals
from .tokens import KeyProvider, StaticKeyProvider, TokenCodec

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}
ADMIN_TOKEN_HEADER = "X-Admin-Token"


class CacheInvalidationRequest(BaseModel):
    """Administrative cache invalidation command."""
    directory: Literal["clients", "users"]
    key: Optional[str] = None


class AuthService(BaseService):
    """Auth service implementation."""

    def __init__(self,
                 settings: Optional[AuthSettings] = None,
                 client_store: Optional[SecretStore] = None,
                 user_store: Optional[SecretStore] = None,
                 key_provider: Optional[KeyProvider] = None,
                 hasher: Optional[SecretHasher] = None):
        super().__init__(settings or get_settings())
        settings = self.settings

        self.hasher = hasher or SecretHasher()
        self.clients = build_client_directory(settings, self.metrics, store=client_store)
        self.users = build_user_directory(settings, self.metrics, store=user_store)
        self.codec = TokenCodec(
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            clock_skew_seconds=settings.clock_skew_seconds,
        )
        self.key_provider = key_provider or StaticKeyProvider.from_settings(settings)
        self.authority = ClientCredentialsAuthority(
            directory=self.clients,
            codec=self.codec,
            key_provider=self.key_provider,
            hasher=self.hasher,
            scopes=ScopeResolver(settings.default_scopes),
            key_timeout=settings.key_provider_timeout_seconds,
            metrics=self.metrics,
        )
        self.basic = BasicAuthenticator(self.users, hasher=self.hasher, metrics=self.metrics)

        self.logger.info(
            "Auth service configured",
            directory_backend=settings.directory_backend,
            issuer=settings.jwt_issuer,
            algorithm=settings.jwt_algorithm
        )

        self._setup_auth_routes()

    def _setup_auth_routes(self):
        """Set up auth-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Authorization core - client credentials and Basic auth",
                "version": "1.0.0"
            }

        @self.app.post("/oauth/token")
        async def issue_token(request: Request):
            """OAuth 2.0 token endpoint (client_credentials grant)."""
            form = await request.form()
            try:
                token_request = parse_token_request(form, request.headers.get("Authorization"))
            except OAuthException as e:
                return self._oauth_error_response(e.oauth_error)

            result = await self.authority.authenticate(token_request)
            if isinstance(result, OAuthError):
                return self._oauth_error_response(result)
            return JSONResponse(content=result.to_response(), headers=NO_STORE_HEADERS)

        @self.app.post("/oauth/introspect")
        async def introspect_token(request: Request):
            """Token introspection endpoint."""
            token = await self._read_token_parameter(request)
            result = await self.authority.introspect(token)
            if isinstance(result, OAuthError):
                return self._oauth_error_response(result)
            return JSONResponse(content=result.to_response(), headers=NO_STORE_HEADERS)

        @self.app.post("/auth/validate")
        async def validate_basic(request: Request):
            """Validate HTTP Basic credentials."""
            result = await self.basic.authenticate_header(request.headers.get("Authorization"))
            if result.allowed:
                return JSONResponse(content=result.to_response())
            return JSONResponse(
                status_code=401,
                content=result.to_response(),
                headers={"WWW-Authenticate": 'Basic realm="auth"'}
            )

        @self.app.post("/admin/cache/invalidate")
        async def invalidate_cache(request: Request):
            """Drop one key, or a whole directory, from the credential cache."""
            if not self._is_admin(request.headers.get(ADMIN_TOKEN_HEADER)):
                self.logger.warning("Rejected cache invalidation", path=request.url.path)
                return JSONResponse(status_code=403, content={"error": "forbidden"})

            command = await self._read_invalidation(request)
            directory = self.clients if command.directory == "clients" else self.users
            if command.key is not None and command.key.strip():
                removed = directory.invalidate(command.key)
                return {"directory": command.directory, "key": command.key, "invalidated": int(removed)}

            count = directory.invalidate_all()
            return {"directory": command.directory, "invalidated": count}

    def _oauth_error_response(self, error: OAuthError) -> JSONResponse:
        headers = dict(NO_STORE_HEADERS)
        if error.http_status == 401:
            headers["WWW-Authenticate"] = 'Basic realm="oauth"'
        return JSONResponse(status_code=error.http_status, content=error.to_response(), headers=headers)

    async def _read_token_parameter(self, request: Request) -> Optional[str]:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                body = await request.json()
            except ValueError:
                return None
            token = body.get("token") if isinstance(body, dict) else None
        else:
            form = await request.form()
            token = form.get("token")
        return token if isinstance(token, str) else None

    async def _read_invalidation(self, request: Request) -> CacheInvalidationRequest:
        try:
            return CacheInvalidationRequest.model_validate(await request.json())
        except (ValueError, PydanticValidationError) as e:
            raise ValidationError(
                "Invalid cache invalidation request",
                details={"expected": {"directory": "clients|users", "key": "optional"}}
            ) from e

    def _is_admin(self, presented: Optional[str]) -> bool:
        configured = self.settings.admin_token
        if configured is None or not presented:
            return False
        return constant_time_equals(
            presented.encode("utf-8"),
            configured.get_secret_value().encode("utf-8"),
        )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check secret store reachability for both directories."""
        return {
            "clients": "ok" if await self.clients.is_healthy() else "error",
            "users": "ok" if await self.users.is_healthy() else "error",
        }

    def _health_details(self) -> Dict[str, Any]:
        return {
            "directory_backend": self.settings.directory_backend,
            "cache": {
                "clients": self.clients.stats(),
                "users": self.users.stats(),
            },
        }


def create_app(settings: Optional[AuthSettings] = None, **overrides):
    """Create FastAPI application."""
    service = AuthService(settings, **overrides)
    return service.app


if __name__ == "__main__":
    service = AuthService()
    service.run()
