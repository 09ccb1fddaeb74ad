#!/usr/bin/env python3
"""
Hash a client secret or user password for provisioning into the secret store.

Prints the stored record as JSON keyed by its directory key, ready to be
written under the ``oauth-clients`` or ``basic-auth-users`` namespace. The
secret is prompted for when not passed, so it stays out of shell history.
"""

import argparse
import getpass
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

from service_auth.app.directory.stores import normalize_key
from service_auth.app.security import SecretHasher
from service_auth.app.security.hashing import DEFAULT_ITERATIONS


def build_record(kind: str,
                 identifier: str,
                 secret: str,
                 *,
                 scopes: Sequence[str] = (),
                 roles: Sequence[str] = (),
                 lifetime: int = 3600,
                 status: str = "ACTIVE",
                 hasher: Optional[SecretHasher] = None) -> Dict[str, Dict[str, Any]]:
    """Record in the secret store's wire format, keyed by its directory key."""
    key = normalize_key(identifier)
    if not key:
        raise ValueError("identifier must not be blank")
    if not secret:
        raise ValueError("secret must not be empty")
    hasher = hasher or SecretHasher()

    if kind == "client":
        record = {
            "clientId": key,
            "clientSecretHash": hasher.hash(secret),
            "status": status,
            "allowedScopes": list(scopes),
            "allowedGrantTypes": ["client_credentials"],
            "tokenExpirationSeconds": lifetime,
        }
    elif kind == "user":
        record = {
            "username": key,
            "passwordHash": hasher.hash(secret),
            "status": status,
            "roles": list(roles),
        }
    else:
        raise ValueError(f"Unknown record kind: {kind}")

    return {key: record}


def _split(value: str) -> List[str]:
    return [item for item in value.replace(",", " ").split() if item]


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Hash a secret into a secret-store record.")
    parser.add_argument("kind", choices=["client", "user"], help="Record type to produce")
    parser.add_argument("identifier", help="Client id or username")
    parser.add_argument("--secret", default=None, help="Secret to hash (prompted for when omitted)")
    parser.add_argument("--scopes", type=_split, default=[], help="Allowed scopes for a client, comma or space separated")
    parser.add_argument("--roles", type=_split, default=[], help="Roles for a user, comma or space separated")
    parser.add_argument("--lifetime", type=int, default=3600, help="Token lifetime in seconds for a client")
    parser.add_argument("--status", default="ACTIVE", choices=["ACTIVE", "DISABLED", "SUSPENDED"], help="Initial status")
    parser.add_argument("--iterations", type=int, default=DEFAULT_ITERATIONS, help="PBKDF2 iteration count")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    try:
        secret = args.secret if args.secret is not None else getpass.getpass("Secret: ")
        record = build_record(
            args.kind,
            args.identifier,
            secret,
            scopes=args.scopes,
            roles=args.roles,
            lifetime=args.lifetime,
            status=args.status,
            hasher=SecretHasher(iterations=args.iterations),
        )
    except KeyboardInterrupt:
        return 130
    except ValueError as exc:
        print(f"[hash-secret] failed: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(record, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
