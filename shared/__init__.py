"""
Shared utilities for the ISIL Tagger.

This package aggregates common building blocks consumed by the tagger:

- config: Tagger configuration via pydantic-settings
- logging: Structured logging to the diagnostic stream
- metrics: Prometheus counters for attachment cases and downloads
- errors: Canonical error types and responses
- retry: Retry decorators with backoff

Any cross-cutting logic should live here to avoid import cycles. Do not
import from service_* packages into shared/.
"""
