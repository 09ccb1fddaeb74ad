"""
Auth service package.

The authorization core lives here, with a thin FastAPI boundary on top:

- app.models: Clients, users, token requests/responses and OAuth errors.
- app.directory: Cached credential directories over a secret store.
- app.tokens: Bearer token codec and key provider.
- app.oauth: Client-credentials authority and request parsing.
- app.basic: HTTP Basic authenticator.
- app.main: Application entrypoint that wires routes and lifecycle.

Module import must not perform IO; stores are only read from request
handlers and health checks.
"""
