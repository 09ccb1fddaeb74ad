"""
HTTP Basic authentication.
"""

from .authenticator import BasicAuthenticator

__all__ = ["BasicAuthenticator"]
