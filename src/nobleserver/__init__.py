"""
=============================================================================
NOBLESERVER
=============================================================================

A small dual-transport connection server carrying two one-line protocols:

    static   "GET /page.html"   → pseudo-HTTP response with the file
    auth     "alice <hash>"     → "true\\n" / "false\\n"

Either one runs over plain TCP (HTTP mode) or TLS (HTTPS mode):

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Listener / SecureListener      core.listener                       │
    │            │  accept()                                               │
    │            ▼                                                         │
    │   PlainTransport / SecureTransport   core.transport                  │
    │            │  receive()                                              │
    │            ▼                                                         │
    │   ConnectionLoop ──► Handler.handle(bytes) ──► Response              │
    │   server              handlers.static          http.response         │
    │                       handlers.credentials                           │
    │            │  send() + close()                                       │
    │            ▼                                                         │
    │          client                                                      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServerConfig
from .server import ConnectionLoop, create_server

__all__ = ["ConnectionLoop", "ServerConfig", "create_server", "__version__"]
