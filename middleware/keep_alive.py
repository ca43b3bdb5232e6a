"""
Keep-alive control middleware for graceful shutdown.

While the server is draining, every response is sent with
``Connection: close`` so clients cannot hold a persistent connection open
past the shutdown deadline.
"""

from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

CONNECTION_HEADER = "Connection"


class KeepAliveMiddleware(BaseHTTPMiddleware):
    """
    Middleware that disables keep-alives once shutdown has started.

    The ``keep_alives_enabled`` callable is evaluated per response, so the
    switch takes effect for requests that are already in flight.
    """

    def __init__(self, app: ASGIApp, keep_alives_enabled: Callable[[], bool]):
        """
        Initialize the middleware.

        Args:
            app: The ASGI application to wrap
            keep_alives_enabled: Returns False once connections should be closed
        """
        super().__init__(app)
        self.keep_alives_enabled = keep_alives_enabled

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Response]
    ) -> Response:
        response = await call_next(request)

        if not self.keep_alives_enabled():
            response.headers[CONNECTION_HEADER] = "close"

        return response
