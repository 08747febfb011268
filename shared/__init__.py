"""
Shared utilities for the Storefront Catalog service.

This package aggregates common building blocks consumed by services:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- base_service: FastAPI app factory with CORS and request timing

Do not import from service_* packages into shared/.
"""
