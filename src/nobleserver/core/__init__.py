"""
=============================================================================
CORE NETWORKING
=============================================================================

The transport layer shared by both services:

    Listener / SecureListener   bind a port, accept one client at a time
    PlainTransport              raw TCP connection
    SecureTransport             TLS session over TCP

Nothing in here knows about request lines, files or credentials.

=============================================================================
"""

from .listener import Listener, SecureListener, BindError, AcceptError
from .transport import (
    Transport,
    SocketTransport,
    PlainTransport,
    SecureTransport,
    ConnectionState,
)

__all__ = [
    "Listener",         # Plain TCP listener
    "SecureListener",   # TLS listener (handshake inside accept)
    "BindError",        # Fatal: could not listen
    "AcceptError",      # Per-connection: could not accept/handshake
    "Transport",        # Interface the loop and handlers are written against
    "SocketTransport",
    "PlainTransport",
    "SecureTransport",
    "ConnectionState",
]
