"""
=============================================================================
REQUEST HANDLERS
=============================================================================

One handler per service:

    StaticFileHandler    "GET /page.html"     → file or error status
    CredentialHandler    "alice <hash>"       → true / false

Both implement Handler.handle(bytes) → Response, which is all the
connection loop ever calls.

=============================================================================
"""

from .base import Handler
from .static import StaticFileHandler, dispatch_static, normalize_path, read_file
from .credentials import CredentialHandler, CredentialLookup, verify_credentials

__all__ = [
    "Handler",
    "StaticFileHandler",
    "dispatch_static",
    "normalize_path",
    "read_file",
    "CredentialHandler",
    "CredentialLookup",
    "verify_credentials",
]
