"""
=============================================================================
NOBLESERVER CLI ENTRY POINT
=============================================================================

    nobleserver <PORT> <HTTP|HTTPS> [options]

=============================================================================
USAGE
=============================================================================

    # Static files from ./www over plain TCP
    nobleserver 8080 HTTP

    # Same over TLS
    nobleserver 8443 HTTPS --cert cert.pem --key key.pem

    # Credential checks against users.db
    nobleserver 9000 HTTPS --service auth --db users.db

    # Also runnable as a module
    python -m nobleserver 8080 HTTP

Environment variables (NOBLE_*, see ServerConfig.from_env) supply the
defaults; command-line options win.

=============================================================================
EXIT STATUS
=============================================================================

    0   Stopped by SIGINT / SIGTERM
    1   Startup failure: bad config, TLS files, database, bind
    2   Bad command line (argparse prints usage)

=============================================================================
"""

import argparse
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig, MODES, SERVICES
from .core.listener import BindError
from .server import create_server, setup_logging
from .store import CredentialStoreError
from .tls import TLSContextError


def _port(value: str) -> int:
    try:
        port = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a port number: {value!r}")
    if not 0 <= port < 65536:
        raise argparse.ArgumentTypeError(f"port out of range: {port}")
    return port


def _mode(value: str) -> str:
    mode = value.upper()
    if mode not in MODES:
        raise argparse.ArgumentTypeError(f"mode must be HTTP or HTTPS, not {value!r}")
    return mode


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    """Argument parser whose defaults come from the environment."""
    parser = argparse.ArgumentParser(
        prog="nobleserver",
        description="Static-file and credential-check server over TCP or TLS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  nobleserver 8080 HTTP                           # Serve ./www
  nobleserver 8443 HTTPS --cert c.pem --key k.pem # Serve ./www over TLS
  nobleserver 9000 HTTP --service auth --db users.db
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUIRED
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("port", type=_port, help="Port to listen on")
    parser.add_argument("mode", type=_mode, metavar="{HTTP,HTTPS}",
                        help="Plain TCP or TLS")

    # ─────────────────────────────────────────────────────────────────────
    # SERVICE
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--service", "-s",
        choices=SERVICES,
        default=defaults.service,
        help=f"Protocol to serve (default: {defaults.service})",
    )
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Address to bind (default: {defaults.host})",
    )
    parser.add_argument(
        "--root", "-r",
        default=defaults.content_root,
        help=f"Static content directory (default: {defaults.content_root})",
    )
    parser.add_argument(
        "--index",
        default=defaults.index_file,
        help=f"File served for / (default: {defaults.index_file})",
    )
    parser.add_argument(
        "--db", "-d",
        default=defaults.database,
        help=f"Credential database for the auth service (default: {defaults.database})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # TLS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--cert", default=defaults.certfile,
                        help=f"TLS certificate (default: {defaults.certfile})")
    parser.add_argument("--key", default=defaults.keyfile,
                        help=f"TLS private key (default: {defaults.keyfile})")

    # ─────────────────────────────────────────────────────────────────────
    # TUNING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=defaults.timeout,
        help="Per-connection socket timeout in seconds (default: block forever)",
    )
    parser.add_argument(
        "--buffer-size",
        type=int,
        default=defaults.buffer_size,
        help=f"Bytes read per request (default: {defaults.buffer_size})",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=defaults.log_level.upper(),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"nobleserver {__version__}",
    )
    return parser


def parse_config(argv: Optional[Sequence[str]] = None) -> ServerConfig:
    """Command line + environment → ServerConfig (not yet validated)."""
    defaults = ServerConfig.from_env()
    args = build_parser(defaults).parse_args(argv)

    return ServerConfig(
        host=args.host,
        port=args.port,
        mode=args.mode,
        service=args.service,
        content_root=args.root,
        index_file=args.index,
        database=args.db,
        certfile=args.cert,
        keyfile=args.key,
        timeout=args.timeout,
        buffer_size=args.buffer_size,
        backlog=defaults.backlog,
        log_level=args.log_level,
    )


def print_banner(config: ServerConfig) -> None:
    print(f"{config.server_name} {__version__}")
    print(f"  service : {config.service}")
    print(f"  mode    : {config.mode}")
    if config.service == "static":
        print(f"  root    : {config.content_root}")
    else:
        print(f"  db      : {config.database}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Process exit status.
    """
    config = parse_config(argv)
    setup_logging(config.log_level)
    print_banner(config)

    try:
        server = create_server(config)
        server.run()
    except (ValueError, TLSContextError, CredentialStoreError, BindError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
