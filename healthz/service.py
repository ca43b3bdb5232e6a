"""
Health aggregation service for the healthz server.

This module provides the HealthAggregator, which polls every registered
dependency check on each request and merges the results into a single JSON
verdict and HTTP status code, plus a liveness handler that never touches the
checks at all.
"""

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, Optional, Protocol, Sequence, runtime_checkable

from fastapi import Request, Response
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from errors.exceptions import SerializationError

LIVENESS_BODY = "OK"


@runtime_checkable
class Checkable(Protocol):
    """
    A dependency that can report its own health.

    ``healthz()`` returns normally when the dependency is healthy and raises
    when it is not. The exception's message is reported as the failure reason.
    """

    def healthz(self) -> None:
        ...


class HealthLogger(Protocol):
    """Logging sink used by the server. ``logging.Logger`` satisfies it."""

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        ...

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        ...

    def fatal(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        ...


class NoopLogger:
    """Logging sink that discards everything."""

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        pass

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        pass

    def fatal(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        pass


@dataclass(frozen=True)
class Provider:
    """
    A named dependency check.

    Attributes:
        name: Name reported in errors and service records (not required to be unique)
        handle: The check to poll
    """
    name: str
    handle: Checkable


class HealthError(BaseModel):
    """A failed check and the reason it gave."""
    name: str
    message: str


class ServiceStatus(BaseModel):
    """Status of a single check, reported in detailed mode."""
    name: str
    healthy: bool


class HealthResponse(BaseModel):
    """
    Aggregate health verdict returned by ``/healthz``.

    ``errors`` is None when no check failed and ``services`` is None outside
    detailed mode, so both are dropped by ``exclude_none`` serialization.
    """
    healthy: bool
    errors: Optional[list[HealthError]] = None
    services: Optional[list[ServiceStatus]] = None


def _failure_reason(exc: Exception) -> str:
    # A check's exception must never break the response, even its __str__
    try:
        reason = str(exc)
    except Exception:
        reason = ""
    return reason or type(exc).__name__


class HealthAggregator:
    """
    Merges the results of all registered checks into one response.

    The provider registry and policy are set at construction and only read
    afterwards, so one aggregator can serve concurrent requests.

    Attributes:
        providers: Ordered registry of checks to poll
        logger: Logging sink (no-op when not supplied)
        detailed: Include per-check service records in responses
        fail_code: Status to return when a check fails (0 uses 503)
    """

    def __init__(
        self,
        providers: Optional[Sequence[Provider]] = None,
        logger: Optional[HealthLogger] = None,
        detailed: bool = False,
        fail_code: int = 0,
    ):
        self.providers = tuple(providers) if providers is not None else ()
        self.logger = logger if logger is not None else NoopLogger()
        self.detailed = detailed
        self.fail_code = fail_code

    def check(self) -> HealthResponse:
        """
        Poll every provider in registry order and build the aggregate result.

        Checks run sequentially; a slow check delays the whole response.
        A check that raises is recorded as failed, never propagated.

        Returns:
            HealthResponse: The verdict for this poll
        """
        errors: list[HealthError] = []
        services: list[ServiceStatus] = []

        for provider in self.providers:
            healthy = True
            try:
                provider.handle.healthz()
            except Exception as exc:
                errors.append(HealthError(name=provider.name, message=_failure_reason(exc)))
                healthy = False
            services.append(ServiceStatus(name=provider.name, healthy=healthy))

        return HealthResponse(
            healthy=not errors,
            errors=errors or None,
            services=services if self.detailed else None,
        )

    def status_code(self, result: HealthResponse) -> int:
        """
        Derive the HTTP status for a result.

        Any failure maps to ``fail_code`` when set, otherwise 503. A fully
        healthy result is always 200.
        """
        if result.errors:
            return self.fail_code or HTTPStatus.SERVICE_UNAVAILABLE
        return HTTPStatus.OK

    def render(self, result: HealthResponse) -> bytes:
        """
        Encode a result as the JSON response body.

        Raises:
            SerializationError: If the result cannot be encoded
        """
        try:
            return result.model_dump_json(exclude_none=True).encode("utf-8")
        except (PydanticSerializationError, ValueError, TypeError) as exc:
            raise SerializationError(str(exc)) from exc

    def healthz_handler(self) -> Callable[[Request], Response]:
        """
        Build the request handler for ``/healthz``.

        Returns:
            A handler polling all checks on every call
        """
        self.logger.info("[Healthz] health service started")

        def healthz(request: Request) -> Response:
            result = self.check()
            status = self.status_code(result)

            body = b""
            try:
                body = self.render(result)
            except SerializationError as exc:
                self.logger.error(exc.message)

            return Response(content=body, status_code=status, media_type="application/json")

        return healthz

    def liveness_handler(self) -> Callable[[Request], Response]:
        """
        Build the request handler for ``/liveness``.

        The handler answers 200 ``OK`` without polling any check.
        """
        self.logger.info("[Healthz] Liveness service started")

        def liveness(request: Request) -> Response:
            return PlainTextResponse(LIVENESS_BODY, status_code=HTTPStatus.OK)

        return liveness
