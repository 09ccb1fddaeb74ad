"""
Scope parsing and resolution for the client-credentials grant.
"""

import re
from typing import Iterable, List, Optional, Union

from ..models import Client, OAuthError

SCOPE_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,50}$")


def parse_scopes(scope: Optional[str]) -> List[str]:
    """Split a space-delimited scope string, dropping duplicates in order."""
    tokens: List[str] = []
    for token in (scope or "").split():
        if token not in tokens:
            tokens.append(token)
    return tokens


def is_valid_scope_token(token: str) -> bool:
    return bool(SCOPE_TOKEN_PATTERN.match(token))


class ScopeResolver:
    """Decides the scope granted to a client for a token request.

    With no scope requested the client receives every allowed scope, or only
    those also listed in ``default_scopes`` when that is configured, sorted.
    A requested scope is granted as asked (de-duplicated, request order) if
    every token is well-formed and allowed.
    """

    def __init__(self, default_scopes: Optional[Iterable[str]] = None):
        self.default_scopes = frozenset(default_scopes) if default_scopes is not None else None

    def default_for(self, client: Client) -> str:
        allowed = set(client.allowed_scopes)
        if self.default_scopes is not None:
            allowed &= self.default_scopes
        return " ".join(sorted(allowed))

    def resolve(self, client: Client, requested: Optional[str]) -> Union[str, OAuthError]:
        tokens = parse_scopes(requested)
        if not tokens:
            return self.default_for(client)

        malformed = [token for token in tokens if not is_valid_scope_token(token)]
        if malformed:
            return OAuthError.invalid_scope("Invalid scope format")

        denied = [token for token in tokens if not client.allows_scope(token)]
        if denied:
            return OAuthError.invalid_scope(f"Requested scope is not allowed: {' '.join(denied)}")

        return " ".join(tokens)
