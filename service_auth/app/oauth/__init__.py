"""
OAuth 2.0 client-credentials grant: request parsing, scope resolution and
the authority that issues tokens.
"""

from .authority import ClientCredentialsAuthority
from .request_parser import parse_token_request
from .scopes import ScopeResolver, is_valid_scope_token, parse_scopes

__all__ = [
    "ClientCredentialsAuthority",
    "ScopeResolver",
    "is_valid_scope_token",
    "parse_scopes",
    "parse_token_request",
]
