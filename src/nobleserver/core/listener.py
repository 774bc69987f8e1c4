"""
=============================================================================
LISTENERS
=============================================================================

A Listener owns the listening socket and turns each incoming connection
into a Transport. Two variants share one bind/accept skeleton:

    Listener         accept() → PlainTransport
    SecureListener   accept() → TLS handshake → SecureTransport

=============================================================================
LIFECYCLE
=============================================================================

    1. bind()      socket() + SO_REUSEADDR + bind() + listen(backlog)
                   └─ Any failure here is FATAL: BindError, exit at startup

    2. accept()    Wait for a client (polls every POLL_INTERVAL seconds)
                   └─ Poll expiry      → TimeoutError (caller loops)
                   └─ accept() failure → AcceptError  (caller loops)
                   └─ TLS handshake    → AcceptError  (caller loops)

    3. close()     Release the listening socket

Connections are accepted serially: the only queue is the OS backlog.

=============================================================================
"""

import socket
import ssl
import logging
from typing import Optional, Tuple

from ..config import ServerConfig
from .transport import Transport, PlainTransport, SecureTransport


logger = logging.getLogger(__name__)


POLL_INTERVAL = 1.0
"""How long accept() waits before giving the caller a chance to stop."""


class BindError(Exception):
    """The listening socket could not be created, bound or put in listen mode."""


class AcceptError(Exception):
    """A single incoming connection could not be accepted (or handshaken)."""


class Listener:
    """
    Plain TCP listener.

    Usage:
        listener = Listener(config)
        listener.bind()
        transport = listener.accept()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port).

        After binding to port 0 this reports the port the OS picked.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def bind(self) -> None:
        """
        Create, bind and listen.

        Raises:
            BindError: Port in use, permission denied, bad address...
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            # Avoids "Address already in use" while old sockets sit in TIME_WAIT
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            raise BindError(
                f"Failed to bind to {self.config.host}:{self.config.port}: {e}"
            ) from e

        # accept() wakes up periodically so shutdown() is noticed
        sock.settimeout(POLL_INTERVAL)
        self._socket = sock
        logger.info(f"Listening on {self.address[0]}:{self.address[1]}")

    def accept(self) -> Transport:
        """
        Wait for the next connection.

        Returns:
            A Transport ready for receive().

        Raises:
            TimeoutError: Nobody connected within POLL_INTERVAL.
            AcceptError: The connection could not be established.
        """
        if self._socket is None:
            raise AcceptError("Listener is not bound")

        try:
            client_socket, client_address = self._socket.accept()
        except socket.timeout:
            raise
        except OSError as e:
            raise AcceptError(f"Accept failed: {e}") from e

        logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
        return self._wrap(client_socket, client_address)

    def _wrap(self, client_socket: socket.socket, client_address: tuple) -> Transport:
        """Turn an accepted socket into a Transport."""
        return PlainTransport(
            sock=client_socket,
            address=client_address,
            timeout=self.config.timeout,
        )

    def close(self) -> None:
        """Close the listening socket. Safe to call more than once."""
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None
            logger.info("Listener closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class SecureListener(Listener):
    """
    TLS listener.

    Takes a fully built ssl.SSLContext (certificate and key already loaded
    and checked, see nobleserver.tls) and completes the server-side
    handshake as part of accept().
    """

    def __init__(self, config: ServerConfig, context: ssl.SSLContext):
        super().__init__(config)
        self.context = context

    def _wrap(self, client_socket: socket.socket, client_address: tuple) -> Transport:
        # ─────────────────────────────────────────────────────────────────
        # TLS HANDSHAKE
        # ─────────────────────────────────────────────────────────────────
        # Done explicitly (not on first recv) so a failed handshake is an
        # accept failure, and the loop never sees a half-open session.
        client_socket.settimeout(self.config.timeout)
        peer = f"{client_address[0]}:{client_address[1]}"
        try:
            tls_socket = self.context.wrap_socket(
                client_socket,
                server_side=True,
                do_handshake_on_connect=False,
            )
        except OSError as e:
            client_socket.close()
            raise AcceptError(f"TLS setup for {peer} failed: {e}") from e

        # wrap_socket() detached client_socket; tls_socket owns the fd now
        try:
            tls_socket.do_handshake()
        except OSError as e:
            tls_socket.close()
            raise AcceptError(f"TLS handshake with {peer} failed: {e}") from e

        transport = SecureTransport(
            sock=tls_socket,
            address=client_address,
            timeout=self.config.timeout,
        )
        logger.debug(f"[{transport.id}] TLS established: {transport.cipher}")
        return transport
