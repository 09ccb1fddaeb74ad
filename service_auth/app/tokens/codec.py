"""
Stateless minting and verification of signed bearer tokens.
"""

import time
import uuid
from typing import Any, Callable, Dict, NamedTuple

from jose import jwt
from jose.exceptions import JOSEError, JWTClaimsError, JWTError
from pydantic import ValidationError as PydanticValidationError

from shared.errors import TokenInvalid, TokenInvalidReason
from shared.logging import get_logger, mask_identifier

from ..models import BEARER, IntrospectionResult, TokenClaims
from .keys import KeyHandle


class IssuedToken(NamedTuple):
    """A minted token and the claims it carries."""
    token: str
    claims: TokenClaims


class TokenCodec:
    """Mints, verifies and introspects JWS compact tokens."""

    def __init__(self,
                 issuer: str,
                 audience: str,
                 clock_skew_seconds: int = 0,
                 clock: Callable[[], float] = time.time):
        if clock_skew_seconds < 0:
            raise ValueError("clock_skew_seconds must not be negative")
        self.issuer = issuer
        self.audience = audience
        self.clock_skew_seconds = clock_skew_seconds
        self._clock = clock
        self.logger = get_logger("auth.tokens")

    def mint(self, claims: Dict[str, Any], lifetime_seconds: int, signing_key: KeyHandle) -> IssuedToken:
        """Sign ``claims`` into a token valid for ``lifetime_seconds``.

        ``claims`` must carry ``client_id`` (or ``sub``); ``scope`` defaults
        to empty. Registered claims are always set by the codec.
        """
        if lifetime_seconds <= 0:
            raise ValueError("lifetime_seconds must be positive")
        client_id = claims.get("client_id") or claims.get("sub")
        if not client_id:
            raise ValueError("claims must include client_id")

        issued_at = int(self._clock())
        payload = dict(claims)
        payload.update({
            "iss": self.issuer,
            "aud": self.audience,
            "sub": claims.get("sub") or client_id,
            "iat": issued_at,
            "exp": issued_at + lifetime_seconds,
            "jti": claims.get("jti") or str(uuid.uuid4()),
            "client_id": client_id,
            "token_type": BEARER,
            "scope": claims.get("scope") or "",
        })

        token = jwt.encode(
            payload,
            signing_key.key,
            algorithm=signing_key.algorithm,
            headers={"kid": signing_key.key_id},
        )
        return IssuedToken(token=token, claims=TokenClaims.model_validate(payload))

    def verify(self, token: str, verification_key: KeyHandle) -> TokenClaims:
        """Verify signature, issuer, audience and expiry; raise TokenInvalid otherwise."""
        if not token or token.count(".") != 2:
            raise TokenInvalid(TokenInvalidReason.MALFORMED, "Token is not a compact JWS")

        try:
            jwt.get_unverified_header(token)
        except JWTError as e:
            raise TokenInvalid(TokenInvalidReason.MALFORMED, "Token header is unreadable") from e

        try:
            # Expiry is checked below against the injectable clock
            payload = jwt.decode(
                token,
                verification_key.key,
                algorithms=[verification_key.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                options={"verify_exp": False},
            )
        except JWTClaimsError as e:
            raise TokenInvalid(TokenInvalidReason.MALFORMED, "Token claims are invalid") from e
        except JOSEError as e:
            raise TokenInvalid(TokenInvalidReason.BAD_SIGNATURE, "Token signature is invalid") from e

        try:
            claims = TokenClaims.model_validate(payload)
        except PydanticValidationError as e:
            raise TokenInvalid(TokenInvalidReason.MALFORMED, "Token claims are incomplete") from e

        if not claims.exp > self._clock() - self.clock_skew_seconds:
            raise TokenInvalid(TokenInvalidReason.EXPIRED, "Token has expired")
        return claims

    def introspect(self, token: str, verification_key: KeyHandle) -> IntrospectionResult:
        """Active result with claims, or inactive without saying why."""
        try:
            claims = self.verify(token, verification_key)
        except TokenInvalid as e:
            self.logger.info("Token inactive", reason=e.reason.value)
            return IntrospectionResult.inactive()

        self.logger.debug("Token active", client_id=mask_identifier(claims.client_id))
        return IntrospectionResult.from_claims(claims)
