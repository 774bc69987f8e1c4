"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for both services (static files and credential
checks) and both transports (plain TCP and TLS).

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── nobleserver 8443 HTTPS --service auth                     │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── NOBLE_DATABASE=/srv/users.db nobleserver 8443 HTTPS       │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation happens once at startup. A bad value is a startup error, never
something we discover while a client is connected.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


MODES = ("HTTP", "HTTPS")
SERVICES = ("static", "auth")

BACKLOG = 10
"""Accept queue depth. Connections are served one at a time."""


@dataclass
class ServerConfig:
    """
    Configuration for a nobleserver process.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    TRANSPORT / SERVICE
    - mode (HTTP or HTTPS), service (static or auth)

    STATIC FILES
    - content_root, index_file

    CREDENTIALS
    - database

    TLS
    - certfile, keyfile

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """The IP address to bind to. Defaults to every interface."""

    port: int = 8080
    """
    The port number to listen on.
    0 asks the OS for a free port (used by the test suite).
    """

    backlog: int = BACKLOG
    """
    Depth of the OS accept queue.
    Connections are served one at a time, so this stays small.
    """

    buffer_size: int = 2048
    """
    Maximum bytes read from a client. One read per connection: anything
    past this is never looked at.
    """

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds (handshake, receive, send).
    None = block indefinitely, which is the historical behaviour.
    """

    # ─────────────────────────────────────────────────────────────────────
    # TRANSPORT / SERVICE
    # ─────────────────────────────────────────────────────────────────────

    mode: str = "HTTP"
    """Transport mode: "HTTP" (plain TCP) or "HTTPS" (TLS)."""

    service: str = "static"
    """Protocol to speak: "static" (file responder) or "auth" (credentials)."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    content_root: str = "www"
    """Directory that static files are served from."""

    index_file: str = "index.html"
    """Resource served for "/" and the empty path."""

    # ─────────────────────────────────────────────────────────────────────
    # CREDENTIALS
    # ─────────────────────────────────────────────────────────────────────

    database: str = "users.db"
    """SQLite file holding the users table."""

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    certfile: str = "cert.pem"
    """PEM certificate chain for HTTPS mode."""

    keyfile: str = "key.pem"
    """PEM private key matching certfile."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR)."""

    server_name: str = "NOBLE SERVER"
    """Name printed in the startup banner."""

    @property
    def is_secure(self) -> bool:
        """True when connections must be wrapped in TLS."""
        return self.mode == "HTTPS"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        NOBLE_HOST          Bind address (default: 0.0.0.0)
        NOBLE_PORT          Port (default: 8080)
        NOBLE_MODE          HTTP or HTTPS (default: HTTP)
        NOBLE_SERVICE       static or auth (default: static)
        NOBLE_CONTENT_ROOT  Static files directory (default: www)
        NOBLE_DATABASE      Credential database (default: users.db)
        NOBLE_CERTFILE      TLS certificate (default: cert.pem)
        NOBLE_KEYFILE       TLS private key (default: key.pem)
        NOBLE_TIMEOUT       Socket timeout in seconds (default: none)
        NOBLE_LOG_LEVEL     Logging level (default: INFO)

        =====================================================================
        """
        timeout = os.getenv("NOBLE_TIMEOUT")
        return cls(
            host=os.getenv("NOBLE_HOST", "0.0.0.0"),
            port=int(os.getenv("NOBLE_PORT", "8080")),
            mode=os.getenv("NOBLE_MODE", "HTTP").upper(),
            service=os.getenv("NOBLE_SERVICE", "static"),
            content_root=os.getenv("NOBLE_CONTENT_ROOT", "www"),
            database=os.getenv("NOBLE_DATABASE", "users.db"),
            certfile=os.getenv("NOBLE_CERTFILE", "cert.pem"),
            keyfile=os.getenv("NOBLE_KEYFILE", "key.pem"),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("NOBLE_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: On the first invalid setting.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.mode not in MODES:
            raise ValueError(f"Invalid mode: {self.mode!r}. Must be HTTP or HTTPS.")

        if self.service not in SERVICES:
            raise ValueError(f"Invalid service: {self.service!r}. Must be static or auth.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if not self.index_file or "/" in self.index_file:
            raise ValueError(f"index_file must be a single path segment: {self.index_file!r}")
