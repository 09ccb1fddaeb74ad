"""
HTTP Basic username/password authentication against the user directory.
"""

from typing import Dict, Optional

from shared.errors import DirectoryUnavailable
from shared.logging import get_logger, mask_identifier, set_subject_context
from shared.metrics import MetricsCollector

from ..directory import CredentialDirectory
from ..directory.stores import normalize_key
from ..models import AuthenticationResult, User
from ..security import SecretHasher, decode_basic_credentials

BASIC_FLOW = "basic"


class BasicAuthenticator:
    """Validates username/password pairs.

    Every failure (blank input, unknown user, disabled user, wrong password,
    directory unavailable) produces the same denial.
    """

    def __init__(self,
                 directory: "CredentialDirectory[User]",
                 hasher: Optional[SecretHasher] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.directory = directory
        self.hasher = hasher or SecretHasher()
        self.metrics = metrics
        self.logger = get_logger("auth.basic")

    async def authenticate(self, username: Optional[str], password: Optional[str]) -> AuthenticationResult:
        """Authenticate a user by username and password."""
        try:
            result = await self._authenticate(username, password)
        except Exception:
            self.logger.error(
                "Unexpected error during basic authentication",
                username=mask_identifier(normalize_key(username)),
                exc_info=True
            )
            result = AuthenticationResult.denied()

        if self.metrics is not None:
            self.metrics.record_auth_outcome(BASIC_FLOW, "allowed" if result.allowed else "denied")
        return result

    async def authenticate_header(self, authorization: Optional[str]) -> AuthenticationResult:
        """Authenticate a base64 ``username:password`` value, ``Basic`` prefix optional."""
        try:
            username, password = decode_basic_credentials(authorization or "")
        except ValueError:
            self.logger.info("Undecodable basic credentials")
            result = AuthenticationResult.denied()
            if self.metrics is not None:
                self.metrics.record_auth_outcome(BASIC_FLOW, "denied")
            return result
        return await self.authenticate(username, password)

    async def users_with_role(self, role: str) -> Dict[str, User]:
        """Users holding ``role``, keyed by directory key."""
        if not role or not role.strip():
            raise ValueError("role must not be blank")
        users = await self.directory.all()
        return {key: user for key, user in users.items() if role.strip() in user.roles}

    async def _authenticate(self, username: Optional[str], password: Optional[str]) -> AuthenticationResult:
        normalized = normalize_key(username)
        if not normalized or not password:
            self._log_denial("missing_credentials", normalized)
            return AuthenticationResult.denied()

        set_subject_context(normalized)

        try:
            user = await self.directory.find(normalized)
        except DirectoryUnavailable:
            self._log_denial("directory_unavailable", normalized)
            return AuthenticationResult.denied()

        if user is None or not user.is_active():
            self._log_denial("user_not_found" if user is None else "user_inactive", normalized)
            await self.hasher.dummy_verify_async()
            return AuthenticationResult.denied()

        if not await self.hasher.verify_async(password, user.password_hash):
            self._log_denial("password_mismatch", normalized)
            return AuthenticationResult.denied()

        self.logger.info("User authenticated", username=mask_identifier(normalized))
        return AuthenticationResult.granted(user)

    def _log_denial(self, cause: str, username: str) -> None:
        self.logger.warning(
            "Basic authentication failed",
            cause=cause,
            username=mask_identifier(username)
        )
