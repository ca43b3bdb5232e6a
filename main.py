"""
Entry point for the healthz server.

Embedding processes call ``create_server`` with their own providers; the
``healthz-server`` console script runs a bare server with no checks, which
still answers /liveness and reports healthy on /healthz.
"""

import logging
import sys
from typing import Optional, Sequence

from config.settings import Settings, get_settings
from errors.exceptions import AppException
from healthz.service import HealthAggregator, Provider
from server.lifecycle import HealthServer
from telemetry.service import initialize_telemetry

logger = logging.getLogger(__name__)


def create_server(
    providers: Optional[Sequence[Provider]] = None,
    settings: Optional[Settings] = None,
) -> HealthServer:
    """
    Build a HealthServer from settings.

    Args:
        providers: Checks to aggregate, in reporting order
        settings: Settings to use (loaded from the environment if omitted)

    Returns:
        HealthServer: A server in the IDLE state
    """
    settings = settings or get_settings()

    aggregator = HealthAggregator(
        providers=providers,
        logger=logging.getLogger("healthz"),
        detailed=settings.detailed,
        fail_code=settings.fail_code,
    )

    return HealthServer(
        listen_addr=settings.listen_addr,
        aggregator=aggregator,
        server_logger=logging.getLogger("healthz.server"),
        shutdown_timeout=settings.shutdown_timeout,
    )


def main() -> int:
    """Run the server until it is told to stop."""
    try:
        settings = get_settings()
    except AppException as e:
        # Logging is not configured yet
        print(f"❌ {e}", file=sys.stderr)
        return 1

    initialize_telemetry(settings)

    server = create_server(settings=settings)
    try:
        done = server.start()
    except AppException as e:
        logger.error("Health server failed to start", extra={
            "extra_data": e.to_dict()
        })
        return 1

    done.wait()
    return 0


if __name__ == "__main__":
    sys.exit(main())
