"""
Shared utilities for the storefront services.

This package aggregates common building blocks consumed by the service packages:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorators for one-time setup work
- base_service: FastAPI application scaffolding
- test_helpers: Factories and fixtures shared by the test suites

Any cross-service logic should live here to avoid import cycles across
service packages. Do not import from service_* packages into shared/.
"""
