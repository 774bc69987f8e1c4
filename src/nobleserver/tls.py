"""
TLS context bootstrap.

Built once at startup and handed to SecureListener. Loading the chain
also checks that the private key matches the certificate, so a mismatched
pair fails here, before the server binds, instead of on the first client.
"""

import ssl
import logging


logger = logging.getLogger(__name__)


class TLSContextError(Exception):
    """Certificate or key could not be loaded."""


def build_tls_context(certfile: str, keyfile: str) -> ssl.SSLContext:
    """
    Create a server-side TLS context.

    Args:
        certfile: PEM certificate (chain).
        keyfile: PEM private key for that certificate.

    Returns:
        Context ready for wrap_socket(server_side=True).

    Raises:
        TLSContextError: Missing files, unreadable PEM, or a key that does
            not belong to the certificate.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.options |= ssl.OP_NO_COMPRESSION

    try:
        context.load_cert_chain(certfile=certfile, keyfile=keyfile)
    except FileNotFoundError as e:
        raise TLSContextError(f"TLS file not found: {e.filename}") from e
    except (ssl.SSLError, OSError) as e:
        raise TLSContextError(f"Cannot load {certfile} / {keyfile}: {e}") from e

    logger.info(f"Loaded TLS certificate {certfile}")
    return context
