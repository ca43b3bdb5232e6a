"""
Error codes raised by the healthz server.

Failing dependency checks are not errors in this sense; they are reported
inside the /healthz body. These codes cover the server's own failures.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Machine-readable identifier for a server failure."""

    # Startup
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    BIND_FAILED = "BIND_FAILED"

    # Lifecycle
    ALREADY_STARTED = "ALREADY_STARTED"
    SHUTDOWN_FAILED = "SHUTDOWN_FAILED"

    # Request handling
    SERIALIZATION_FAILED = "SERIALIZATION_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


# Status used when an error of this code is rendered as an HTTP response.
# Lifecycle failures only reach HTTP through the exception handlers.
ERROR_CODE_STATUS_MAP: dict[ErrorCode, int] = {
    ErrorCode.CONFIGURATION_ERROR: 500,
    ErrorCode.BIND_FAILED: 503,
    ErrorCode.SHUTDOWN_FAILED: 503,
    ErrorCode.ALREADY_STARTED: 409,
    ErrorCode.SERIALIZATION_FAILED: 500,
    ErrorCode.INTERNAL_ERROR: 500,
}


def get_default_status_code(error_code: ErrorCode) -> int:
    """HTTP status for an error code, 500 when it has none."""
    return ERROR_CODE_STATUS_MAP.get(error_code, 500)
