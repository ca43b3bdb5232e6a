"""
Exceptions for the healthz server's structural failures.

A failing dependency check is never raised past the aggregator; only
problems with the server itself (configuration, listening, draining,
encoding) surface as exceptions.
"""

from typing import Any, Optional

from errors.codes import ErrorCode, get_default_status_code


class AppException(Exception):
    """
    Base class for healthz server failures.

    Carries an ErrorCode, a message safe to log, the HTTP status used if the
    error is rendered by an exception handler, and optional structured
    details.

    Example:
        raise AppException(
            ErrorCode.CONFIGURATION_ERROR,
            "No healthz configuration passed to the server",
        )
    """

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None
    ):
        super().__init__(message)
        self.error_code = error_code
        self.message = message
        self.status_code = status_code or get_default_status_code(error_code)
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error_code": self.error_code.value, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.error_code.value}, {self.message!r}, "
            f"status_code={self.status_code}, details={self.details!r})"
        )


class ConfigurationError(AppException):
    """
    The server cannot be configured.

    Raised when a server is built without a health configuration, and when
    settings fail validation. In the latter case ``str(exc)`` lists every
    offending field so startup failures are readable on a terminal.
    """

    def __init__(
        self,
        message: str,
        missing_fields: Optional[list[str]] = None,
        invalid_fields: Optional[dict[str, str]] = None
    ):
        self.missing_fields = list(missing_fields or [])
        self.invalid_fields = dict(invalid_fields or {})
        details = None
        if self.missing_fields or self.invalid_fields:
            details = {
                "missing_fields": self.missing_fields,
                "invalid_fields": self.invalid_fields,
            }
        super().__init__(ErrorCode.CONFIGURATION_ERROR, message, details=details)
        self.args = (self.format_error_message(),)

    def format_error_message(self) -> str:
        lines = [self.message]
        if self.missing_fields:
            lines.append(f"Missing required fields: {', '.join(self.missing_fields)}")
        if self.invalid_fields:
            lines.append("Invalid field values:")
            lines.extend(f"  - {name}: {reason}" for name, reason in self.invalid_fields.items())
        return "\n".join(lines)


class BindError(AppException):
    """The listener could not be bound."""

    def __init__(self, address: str, reason: str):
        self.address = address
        super().__init__(
            ErrorCode.BIND_FAILED,
            f"Could not listen on {address}: {reason}",
            details={"address": address},
        )


class AlreadyStartedError(AppException):
    """start() was called on a server that has already been started."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(
            ErrorCode.ALREADY_STARTED,
            f"Server cannot be started from state {state}",
            details={"state": state},
        )


class ShutdownError(AppException):
    """In-flight requests were still running when the drain deadline passed."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            ErrorCode.SHUTDOWN_FAILED,
            f"Could not gracefully shutdown the server within {timeout} seconds",
            details={"timeout_seconds": timeout},
        )


class SerializationError(AppException):
    def __init__(self, reason: str):
        super().__init__(
            ErrorCode.SERIALIZATION_FAILED,
            f"Unable to serialize healthz response: {reason}",
        )
