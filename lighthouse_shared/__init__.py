"""
Shared utilities for the Lighthouse client.

This package aggregates common building blocks consumed by the client:

- config: Client configuration via pydantic-settings
- logging: Structured logging with correlation context
- metrics: Prometheus counters for requests and token refreshes
- errors: Canonical error types and responses

Any cross-package logic should live here to avoid import cycles. Do not
import from lighthouse_client into lighthouse_shared.
"""
