"""
Telemetry module for structured logging.

This module provides:
- JSONFormatter for structured JSON log output
- TelemetryService for configuring process-wide logging
"""

from telemetry.service import (
    JSONFormatter,
    TelemetryService,
    get_telemetry_service,
    initialize_telemetry,
)

__all__ = [
    "JSONFormatter",
    "TelemetryService",
    "get_telemetry_service",
    "initialize_telemetry",
]
