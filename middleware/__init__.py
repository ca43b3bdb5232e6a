"""
Middleware components for the healthz server.
"""

from middleware.keep_alive import KeepAliveMiddleware, CONNECTION_HEADER

__all__ = [
    "KeepAliveMiddleware",
    "CONNECTION_HEADER",
]
