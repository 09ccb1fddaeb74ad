"""
Shared utilities for the authorization core.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- circuit_breaker: Resilient secret-store call protection
- base_service: FastAPI service skeleton (middleware, health, metrics)

Only test_helpers may import from service packages; everything else here
must stay importable on its own.
"""
