"""
Token endpoint request parsing.
"""

from typing import Any, Mapping, Optional

from shared.errors import OAuthException

from ..models import OAuthError, TokenRequest
from ..security.credentials import decode_basic_credentials


def _field(form: Mapping[str, Any], name: str) -> str:
    value = form.get(name)
    if value is None:
        return ""
    return str(value)


def _is_basic(authorization: Optional[str]) -> bool:
    return bool(authorization) and authorization.strip().lower().startswith("basic ")


def parse_token_request(form: Mapping[str, Any], authorization: Optional[str] = None) -> TokenRequest:
    """Build a TokenRequest from form fields and an optional Authorization header.

    Credentials from a ``Basic`` header win over ``client_id`` and
    ``client_secret`` body fields. Missing credentials are left empty for the
    authority to reject.

    Raises:
        OAuthException: ``invalid_request`` without ``grant_type``,
            ``invalid_client`` for an undecodable Basic header.
    """
    grant_type = _field(form, "grant_type").strip()
    if not grant_type:
        raise OAuthException(OAuthError.invalid_request("Missing grant_type parameter"))

    client_id = _field(form, "client_id").strip()
    client_secret = _field(form, "client_secret")

    if _is_basic(authorization):
        try:
            client_id, client_secret = decode_basic_credentials(authorization)
        except ValueError as e:
            raise OAuthException(OAuthError.invalid_client()) from e
        client_id = client_id.strip()

    scope = form.get("scope")
    return TokenRequest(
        grant_type=grant_type,
        client_id=client_id,
        client_secret=client_secret,
        scope=str(scope) if scope is not None else None,
    )
