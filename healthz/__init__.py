"""
Health aggregation module for the healthz server.

This module merges the pass/fail results of registered dependency checks
into one JSON verdict and HTTP status, and provides an unconditional
liveness handler.
"""

from healthz.service import (
    Checkable,
    HealthAggregator,
    HealthError,
    HealthLogger,
    HealthResponse,
    NoopLogger,
    Provider,
    ServiceStatus,
)

__all__ = [
    "Checkable",
    "HealthAggregator",
    "HealthError",
    "HealthLogger",
    "HealthResponse",
    "NoopLogger",
    "Provider",
    "ServiceStatus",
]
