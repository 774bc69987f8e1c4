"""
=============================================================================
CONNECTION LOOP
=============================================================================

Ties a Listener, the Transports it produces and one Handler together.

=============================================================================
PER-CONNECTION LIFECYCLE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ACCEPTED ──► RECEIVED ──► handler.handle() ──► SENT ──► CLOSED     │
    │       │            │               │                         ▲       │
    │       │            │               └── parse failure is a    │       │
    │       │            │                   normal Response       │       │
    │       │            │                   (400 / false)         │       │
    │       │            └── b"" → nothing sent ───────────────────┤       │
    │       └── handshake failure → never reaches us               │       │
    │                                                              │       │
    │   every path ends in transport.close() ──────────────────────┘       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One request per connection, no keep-alive. The loop itself only stops
when shutdown() is called (or a signal arrives); a misbehaving client can
cost one connection, never the accept loop.

=============================================================================
CONCURRENCY
=============================================================================

By default connections are served strictly one after another, on the
thread that called run(). Handlers keep no per-connection state, so
serve_connection() can be pushed onto workers instead:

    with ThreadPoolExecutor(max_workers=8) as pool:
        ConnectionLoop(listener, handler, config, spawn=pool.submit).run()

=============================================================================
"""

import signal
import logging
import threading
from typing import Any, Callable, Optional

from .config import ServerConfig
from .core.listener import Listener, SecureListener, AcceptError
from .core.transport import Transport
from .handlers.base import Handler
from .handlers.static import StaticFileHandler
from .handlers.credentials import CredentialHandler
from .store import CredentialStore
from .tls import build_tls_context


logger = logging.getLogger(__name__)


Spawn = Callable[..., Any]
"""spawn(fn, *args): run fn(*args) somewhere else (thread pool, thread...)."""


class ConnectionLoop:
    """
    Accept → receive → handle → send → close, forever.

    Usage:
        loop = ConnectionLoop(Listener(config), StaticFileHandler("www"), config)
        loop.run()   # Blocks until shutdown()
    """

    def __init__(
        self,
        listener: Listener,
        handler: Handler,
        config: Optional[ServerConfig] = None,
        spawn: Optional[Spawn] = None,
    ):
        """
        Args:
            listener: Plain or TLS listener, not yet bound.
            handler: The service to run on every connection.
            config: Buffer size, logging level, banner name.
            spawn: Optional executor for serve_connection. None serves
                each connection inline before accepting the next one.
        """
        self.listener = listener
        self.handler = handler
        self.config = config or listener.config
        self.spawn = spawn

        self._running = False
        self._stopped = threading.Event()
        self._original_handlers: dict = {}

        self.connections_served = 0

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self) -> None:
        """
        Bind and serve until shutdown().

        Raises:
            BindError: The port could not be bound. Nothing is served.
        """
        self.listener.bind()

        self._running = True
        self._stopped.clear()
        self._setup_signals()

        host, port = self.listener.address
        logger.info(f"Serving '{self.handler.name}' on {host}:{port}")

        try:
            self._accept_loop()
        finally:
            self._restore_signals()
            self.listener.close()
            self._running = False
            self._stopped.set()
            logger.info(f"Stopped after {self.connections_served} connection(s)")

    def shutdown(self) -> None:
        """Stop accepting. Takes effect within one poll interval. Idempotent."""
        if self._running:
            logger.info("Shutting down...")
        self._running = False

    def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Block until run() has returned. True if it did within timeout."""
        return self._stopped.wait(timeout)

    def _setup_signals(self) -> None:
        """Turn SIGINT/SIGTERM into shutdown(). Main thread only."""
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self) -> None:
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _accept_loop(self) -> None:
        while self._running:
            try:
                transport = self.listener.accept()
            except TimeoutError:
                # Poll expiry: nobody connected, check _running again
                continue
            except AcceptError as e:
                logger.warning(str(e))
                continue

            if self.spawn is None:
                self.serve_connection(transport)
            else:
                try:
                    self.spawn(self.serve_connection, transport)
                except Exception:
                    logger.exception("Could not hand off connection")
                    transport.close()

    def serve_connection(self, transport: Transport) -> None:
        """
        Run one full request/response exchange and close the transport.

        Never raises: whatever goes wrong stays with this connection.
        """
        with transport:
            try:
                # ─────────────────────────────────────────────────────────
                # RECEIVE
                # ─────────────────────────────────────────────────────────
                data = transport.receive(self.config.buffer_size)
                if not data:
                    logger.info(f"{self._tag(transport)}No request received, closing")
                    return

                # ─────────────────────────────────────────────────────────
                # HANDLE (parse failures come back as ordinary responses)
                # ─────────────────────────────────────────────────────────
                response = self.handler.handle(data)

                # ─────────────────────────────────────────────────────────
                # SEND
                # ─────────────────────────────────────────────────────────
                sent = transport.send(response.to_bytes())
                logger.info(
                    f"{self._tag(transport)}{response.status.name} ({sent} bytes)"
                )
            except Exception:
                logger.exception(f"{self._tag(transport)}Connection failed")
            finally:
                self.connections_served += 1

    @staticmethod
    def _tag(transport: Transport) -> str:
        conn_id = getattr(transport, "id", None)
        return f"[{conn_id}] " if conn_id else ""


# =============================================================================
# FACTORIES
# =============================================================================

def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_handler(config: ServerConfig) -> Handler:
    """
    The handler for config.service, with its collaborators attached.

    Raises:
        CredentialStoreError: Auth service and the database is missing or
            has no users table. It is never created here.
    """
    if config.service == "auth":
        return CredentialHandler(CredentialStore(config.database, create=False))
    return StaticFileHandler(config.content_root, config.index_file)


def create_listener(config: ServerConfig) -> Listener:
    """
    Plain or TLS listener for config.mode.

    Raises:
        TLSContextError: HTTPS mode and the certificate/key can't be loaded.
    """
    if config.is_secure:
        context = build_tls_context(config.certfile, config.keyfile)
        return SecureListener(config, context)
    return Listener(config)


def create_server(config: ServerConfig, spawn: Optional[Spawn] = None) -> ConnectionLoop:
    """
    Build a ready-to-run loop from configuration.

    Raises:
        ValueError: Invalid configuration.
        TLSContextError: HTTPS mode and the certificate/key can't be loaded.
        CredentialStoreError: Auth service and the database can't be opened.
    """
    config.validate()
    return ConnectionLoop(create_listener(config), create_handler(config), config, spawn)
