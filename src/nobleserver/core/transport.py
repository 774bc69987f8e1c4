"""
=============================================================================
TRANSPORTS
=============================================================================

A Transport is one accepted client connection, reduced to the three things
the rest of the server needs:

    receive(max_bytes) → bytes      (b"" means "nothing usable")
    send(data)         → int        (bytes written, 0 on failure)
    close()                         (safe to call any number of times)

=============================================================================
ONE INTERFACE, TWO WIRES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                         Transport (ABC)                              │
    │                              │                                       │
    │                       SocketTransport                                │
    │                    (receive / send / close)                          │
    │                      │                 │                             │
    │              PlainTransport      SecureTransport                     │
    │              raw TCP socket      ssl.SSLSocket, handshake            │
    │                                  already done by the listener        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Python's ssl.SSLSocket has the same recv/sendall surface as a plain socket,
so the two variants only differ in how they say goodbye:

    PlainTransport   shutdown(SHUT_WR) → drain → close()
    SecureTransport  unwrap() (close_notify) → close()

Everything above this module (the connection loop, the handlers) is written
once against Transport and never asks which variant it holds.

=============================================================================
FAILURE SEMANTICS
=============================================================================

    receive()  Reset, TLS error or timeout → logged, returns b"".
               The loop treats b"" as "no usable request" and sends nothing.

    send()     Client hung up mid-response → logged, returns 0.
               A disconnecting client must never take the server down.

    close()    Every OS error during teardown is ignored; the socket is
               released either way.

=============================================================================
"""

import socket
import ssl
import time
import uuid
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


DRAIN_TIMEOUT = 0.5
"""Longest a plain close waits for the client to stop sending."""


class ConnectionState(Enum):
    """Lifecycle of a single accepted connection."""
    NEW = "new"            # Accepted (and handshaken), nothing read yet
    READING = "reading"    # Waiting on the client's request
    WRITING = "writing"    # Sending the response
    CLOSED = "closed"      # Socket released


class Transport(ABC):
    """
    Duplex byte stream for exactly one request/response exchange.

    Usable as a context manager so the connection is closed on every exit
    path:

        with transport:
            data = transport.receive(2048)
            transport.send(response)
    """

    @abstractmethod
    def receive(self, max_bytes: int) -> bytes:
        """Read at most max_bytes. Returns b"" on close or error."""

    @abstractmethod
    def send(self, data: bytes) -> int:
        """Write all of data. Returns the number of bytes sent (0 on failure)."""

    @abstractmethod
    def close(self) -> None:
        """Release the connection. Idempotent."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions


@dataclass
class SocketTransport(Transport):
    """
    Transport over a connected socket object.

    Attributes:
        sock: The connected client socket (plain or TLS).
        address: Client's (ip, port) tuple.
        timeout: Socket timeout in seconds, None to block indefinitely.
        id: Short connection identifier for log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
    """

    sock: socket.socket
    address: tuple
    timeout: Optional[float] = None

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        # settimeout(None) puts the socket in blocking mode
        self.sock.settimeout(self.timeout)

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    @property
    def is_closed(self) -> bool:
        return self.state == ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def receive(self, max_bytes: int) -> bytes:
        """
        Read a single chunk of at most max_bytes.

        Deliberately ONE recv() call: both protocols are one short line and
        the server never waits for more than the client's first write.

        Returns:
            The bytes received, or b"" if the peer closed the connection or
            the read failed.
        """
        if self.is_closed:
            return b""

        self.state = ConnectionState.READING
        try:
            return self.sock.recv(max_bytes)
        except socket.timeout:
            logger.warning(f"[{self.id}] Receive timed out after {self.timeout}s")
        except OSError as e:
            # ssl.SSLError is an OSError too
            logger.warning(f"[{self.id}] Receive failed: {e}")
        return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> int:
        """
        Send data to the client.

        Uses sendall() so a partial write is never mistaken for success.

        Returns:
            len(data) on success, 0 if the connection was lost.
        """
        if self.is_closed:
            logger.warning(f"[{self.id}] Send on closed connection ignored")
            return 0

        self.state = ConnectionState.WRITING
        try:
            self.sock.sendall(data)
            return len(data)
        except OSError as e:
            # Client disconnected mid-response
            logger.warning(f"[{self.id}] Send failed: {e}")
            return 0

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection.

        The first call tears the socket down; later calls are no-ops.
        """
        if self.is_closed:
            return

        try:
            self._shutdown()
        finally:
            try:
                self.sock.close()
            except OSError:
                pass
            self.state = ConnectionState.CLOSED
            logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    @abstractmethod
    def _shutdown(self) -> None:
        """Transport-specific goodbye before the socket is released."""


class PlainTransport(SocketTransport):
    """Transport over a raw TCP socket."""

    def _shutdown(self) -> None:
        # ─────────────────────────────────────────────────────────────────
        # STEP 1: Stop sending (sends FIN)
        # ─────────────────────────────────────────────────────────────────
        try:
            self.sock.shutdown(socket.SHUT_WR)
        except OSError:
            return  # Already disconnected

        # ─────────────────────────────────────────────────────────────────
        # STEP 2: Drain what the client sent past our single read
        # ─────────────────────────────────────────────────────────────────
        # Closing with unread data makes the kernel answer with RST, which
        # can destroy the response before the client has read it.
        # The deadline covers the whole drain, not each recv().
        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.debug(f"[{self.id}] Drain deadline reached, closing")
                    break
                self.sock.settimeout(remaining)
                if not self.sock.recv(1024):
                    break
        except OSError:
            pass


class SecureTransport(SocketTransport):
    """
    Transport over an established TLS session.

    The TLS handshake is the listener's job; by the time one of these
    exists the session is ready for application data.
    """

    @property
    def cipher(self) -> Optional[tuple]:
        """Negotiated (name, protocol, bits), or None before the handshake."""
        try:
            return self.sock.cipher()
        except (OSError, ValueError):
            return None

    def _shutdown(self) -> None:
        # unwrap() sends close_notify and waits for the peer's; bound the
        # wait so a silent client can't hold the server.
        try:
            self.sock.settimeout(0.5)
            self.sock.unwrap()
        except (ssl.SSLError, OSError, ValueError):
            pass
