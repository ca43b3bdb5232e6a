"""
Lifecycle management for the healthz HTTP server.

This module wires a HealthAggregator into a FastAPI app with two fixed
routes, serves it with uvicorn and runs the shutdown state machine:

    IDLE -> SERVING -> SHUTTING_DOWN -> STOPPED

A termination signal moves a serving instance into SHUTTING_DOWN, where
keep-alives are disabled and in-flight requests are drained within a
deadline. The completion event is set exactly once, whether the drain
finished, timed out or the server never started.
"""

import logging
import socket
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, Optional, Tuple

import uvicorn
from fastapi import FastAPI

from config.settings import DEFAULT_LISTEN_ADDR, parse_listen_addr
from errors.exceptions import (
    AlreadyStartedError,
    BindError,
    ConfigurationError,
    ShutdownError,
)
from errors.handlers import register_exception_handlers
from healthz.service import HealthAggregator, HealthLogger, NoopLogger
from middleware.keep_alive import KeepAliveMiddleware

HEALTHZ_PATH = "/healthz"
LIVENESS_PATH = "/liveness"

READ_TIMEOUT = 5.0
WRITE_TIMEOUT = 10.0
IDLE_TIMEOUT = 15.0
SHUTDOWN_TIMEOUT = 30.0

UVICORN_ERROR_LOGGER = "uvicorn.error"


class ServerState(str, Enum):
    """Lifecycle states of a HealthServer."""

    IDLE = "idle"
    SERVING = "serving"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


@dataclass(frozen=True)
class ServerTimeouts:
    """Connection timeouts in seconds."""

    read: float = READ_TIMEOUT
    write: float = WRITE_TIMEOUT
    idle: float = IDLE_TIMEOUT


@dataclass
class ServerDescriptor:
    """
    Everything needed to serve the health routes.

    Attributes:
        listen_addr: Address to listen on, e.g. ":3000"
        app: FastAPI app exposing /healthz and /liveness
        error_log: Logger receiving the transport's error records
        timeouts: Connection timeouts
    """

    listen_addr: str
    app: FastAPI
    error_log: logging.Logger
    timeouts: ServerTimeouts = field(default_factory=ServerTimeouts)

    @property
    def host(self) -> str:
        return parse_listen_addr(self.listen_addr)[0]

    @property
    def port(self) -> int:
        return parse_listen_addr(self.listen_addr)[1]

    @property
    def all_interfaces(self) -> bool:
        """True for a bare ``:port`` address, which listens on IPv4 and IPv6."""
        return not self.listen_addr.strip().rpartition(":")[0]

    def config(self) -> uvicorn.Config:
        """Build the uvicorn configuration for this descriptor."""
        # uvicorn only exposes the idle timeout
        return uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_config=None,
            access_log=False,
            lifespan="off",
            timeout_keep_alive=int(self.timeouts.idle),
        )


class _SignalAwareServer(uvicorn.Server):
    """uvicorn server that reports termination signals instead of exiting."""

    def __init__(self, config: uvicorn.Config, on_signal: Callable[[int], None]):
        super().__init__(config)
        self._on_signal = on_signal

    def handle_exit(self, sig: int, frame) -> None:
        self._on_signal(sig)


class _ErrorLogRouter(logging.Filter):
    """
    Diverts uvicorn error records emitted by one serving thread.

    Installed as a filter on the shared ``uvicorn.error`` logger. Records
    from the owning thread are handed to the target and dropped from the
    shared logger; records from any other thread pass through untouched.
    """

    def __init__(self, target: logging.Logger, thread_id: int):
        super().__init__()
        self.target = target
        self.thread_id = thread_id

    def filter(self, record: logging.LogRecord) -> bool:
        if record.thread != self.thread_id:
            return True
        self.target.handle(record)
        return False


@contextmanager
def _forward_error_log(error_log: logging.Logger) -> Iterator[None]:
    source = logging.getLogger(UVICORN_ERROR_LOGGER)
    if error_log is source:
        yield
        return

    router = _ErrorLogRouter(error_log, threading.get_ident())
    source.addFilter(router)
    try:
        yield
    finally:
        source.removeFilter(router)


class HealthServer:
    """
    Serves a HealthAggregator over HTTP and manages its shutdown.

    Each instance owns its own quit and completion events, so several servers
    can run in one process without signalling each other.

    Example:
        aggregator = HealthAggregator(providers=[Provider("db", db)])
        server = HealthServer(listen_addr=":3000", aggregator=aggregator)
        done = server.start()  # blocks until the server stops
        done.wait()

    Attributes:
        listen_addr: Address to listen on
        aggregator: The aggregator whose handlers are served
        server_logger: Logger receiving uvicorn's error records (optional)
        shutdown_timeout: Seconds allowed for draining in-flight requests
        state: Current lifecycle state
        done: Set once the server has fully stopped
        bound_address: Actual (host, port) once the listener is bound
    """

    def __init__(
        self,
        listen_addr: str = DEFAULT_LISTEN_ADDR,
        aggregator: Optional[HealthAggregator] = None,
        server_logger: Optional[logging.Logger] = None,
        shutdown_timeout: float = SHUTDOWN_TIMEOUT,
    ):
        self.listen_addr = listen_addr
        self.aggregator = aggregator
        self.server_logger = server_logger
        self.shutdown_timeout = shutdown_timeout

        self.state = ServerState.IDLE
        self.done = threading.Event()
        self.bound_address: Optional[Tuple[str, int]] = None
        self.received_signal: Optional[int] = None

        self._quit = threading.Event()
        self._serving_stopped = threading.Event()
        self._lock = threading.Lock()
        self._claimed = False
        self._keep_alives = True
        self._drain_error: Optional[BaseException] = None
        self._server: Optional[_SignalAwareServer] = None

    @property
    def logger(self) -> HealthLogger:
        if self.aggregator is None:
            return NoopLogger()
        return self.aggregator.logger

    @property
    def is_serving(self) -> bool:
        """True once the listener is accepting requests."""
        return (
            self.state is ServerState.SERVING
            and self._server is not None
            and self._server.started
        )

    def keep_alives_enabled(self) -> bool:
        return self._keep_alives

    def set_keep_alives_enabled(self, enabled: bool) -> None:
        self._keep_alives = enabled

    def handle(self) -> ServerDescriptor:
        """
        Build the app and server descriptor without opening any socket.

        Returns:
            ServerDescriptor: The app with /healthz and /liveness routes

        Raises:
            ConfigurationError: If no aggregator was supplied
        """
        if self.aggregator is None:
            raise ConfigurationError("No healthz configuration passed to the server")

        app = FastAPI(title="Healthz", docs_url=None, redoc_url=None, openapi_url=None)
        register_exception_handlers(app)
        app.add_middleware(KeepAliveMiddleware, keep_alives_enabled=self.keep_alives_enabled)

        app.add_api_route(HEALTHZ_PATH, self.aggregator.healthz_handler(), methods=["GET"])
        app.add_api_route(LIVENESS_PATH, self.aggregator.liveness_handler(), methods=["GET"])

        return ServerDescriptor(
            listen_addr=self.listen_addr,
            app=app,
            error_log=self.server_logger or logging.getLogger(UVICORN_ERROR_LOGGER),
        )

    def start(self) -> threading.Event:
        """
        Serve until a termination signal has been handled.

        Blocks the calling thread for the lifetime of the server. When called
        from the main thread, SIGINT and SIGTERM trigger the graceful shutdown;
        ``request_shutdown()`` does the same from any thread.

        Returns:
            threading.Event: Completion event, set once the server has stopped

        Raises:
            AlreadyStartedError: If start() was already called on this server
            ConfigurationError: If no aggregator was supplied
            BindError: If the listener could not be bound
        """
        with self._lock:
            if self._claimed:
                raise AlreadyStartedError(self.state.value)
            self._claimed = True

        try:
            descriptor = self.handle()
        except ConfigurationError:
            self._finish()
            raise

        try:
            sock = self._bind(descriptor)
        except OSError as exc:
            error = BindError(self.listen_addr, str(exc))
            self.logger.fatal(f"[Healthz-Server]: {error.message}")
            self._finish()
            raise error from exc

        server = _SignalAwareServer(descriptor.config(), on_signal=self._on_signal)
        self._server = server
        with self._lock:
            self.state = ServerState.SERVING

        watcher = threading.Thread(
            target=self._graceful_shutdown,
            args=(server,),
            name="healthz-shutdown",
            daemon=True,
        )
        watcher.start()
        self.logger.info(f"[Healthz-Server]: listening on {self.listen_addr}")

        try:
            with _forward_error_log(descriptor.error_log):
                server.run(sockets=[sock])
        except Exception as exc:
            if self._quit.is_set():
                self._drain_error = exc
            else:
                self.logger.fatal(f"[Healthz-Server]: Could not listen on {self.listen_addr}: {exc}")
        finally:
            sock.close()
            self._serving_stopped.set()
            if not self._quit.is_set():
                # Stopped without a shutdown request; release the watcher
                self._finish()
                self._quit.set()

        return self.done

    def request_shutdown(self) -> None:
        """Start the graceful shutdown, as a termination signal would."""
        self._quit.set()

    def _on_signal(self, sig: int) -> None:
        self.received_signal = sig
        self._quit.set()

    def _bind(self, descriptor: ServerDescriptor) -> socket.socket:
        host, port = descriptor.host, descriptor.port
        if descriptor.all_interfaces and socket.has_dualstack_ipv6():
            sock = socket.create_server(("", port), family=socket.AF_INET6, dualstack_ipv6=True)
        else:
            family = socket.AF_INET6 if ":" in host else socket.AF_INET
            sock = socket.create_server((host, port), family=family)
        self.bound_address = sock.getsockname()[:2]
        return sock

    def _graceful_shutdown(self, server: _SignalAwareServer) -> None:
        self._quit.wait()
        with self._lock:
            if self.state is not ServerState.SERVING:
                return
            self.state = ServerState.SHUTTING_DOWN

        self.logger.info("[Healthz-Server]: shutting down...")
        self.set_keep_alives_enabled(False)
        server.should_exit = True

        if not self._serving_stopped.wait(self.shutdown_timeout):
            error = ShutdownError(self.shutdown_timeout)
            self.logger.fatal(f"[Healthz-Server]: {error.message}")
            server.force_exit = True
            self._finish()
            return

        self._finish()
        if self._drain_error is not None:
            self.logger.fatal(
                f"[Healthz-Server]: Could not gracefully shutdown the server: {self._drain_error}"
            )
        else:
            self.logger.info("[Healthz-Server]: Shut down")

    def _finish(self) -> None:
        with self._lock:
            if self.done.is_set():
                return
            self.state = ServerState.STOPPED
            self.done.set()
