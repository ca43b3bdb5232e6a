"""
Error handling module for the healthz server.

This module provides structured error handling with:
- ErrorCode enum for standardized error codes
- AppException and its subclasses for structural failures
- Error response model for consistent JSON error bodies
- Exception handlers for FastAPI integration
"""

from errors.codes import ErrorCode
from errors.exceptions import (
    AlreadyStartedError,
    AppException,
    BindError,
    ConfigurationError,
    SerializationError,
    ShutdownError,
)
from errors.handlers import (
    ErrorResponse,
    handle_app_exception,
    handle_unexpected_exception,
    register_exception_handlers,
)

__all__ = [
    "ErrorCode",
    "AlreadyStartedError",
    "AppException",
    "BindError",
    "ConfigurationError",
    "SerializationError",
    "ShutdownError",
    "ErrorResponse",
    "handle_app_exception",
    "handle_unexpected_exception",
    "register_exception_handlers",
]
