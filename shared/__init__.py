"""
Shared utilities for the Tekton Hub proxy.

This package aggregates common building blocks consumed by the service:

- config: Proxy configuration via pydantic-settings and YAML files
- logging: Structured logging with request/trace correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Retry decorator with configurable backoff
- base_service: FastAPI service shell (middleware, health, metrics)

Cross-cutting logic should live here to avoid import cycles. Do not import
from service_* packages into shared/.
"""
