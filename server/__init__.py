"""
HTTP server lifecycle for the healthz service.

This module serves a HealthAggregator on the /healthz and /liveness routes
and manages the start, graceful-drain and stop sequence.
"""

from server.lifecycle import (
    HEALTHZ_PATH,
    LIVENESS_PATH,
    SHUTDOWN_TIMEOUT,
    HealthServer,
    ServerDescriptor,
    ServerState,
    ServerTimeouts,
)

__all__ = [
    "HEALTHZ_PATH",
    "LIVENESS_PATH",
    "SHUTDOWN_TIMEOUT",
    "HealthServer",
    "ServerDescriptor",
    "ServerState",
    "ServerTimeouts",
]
