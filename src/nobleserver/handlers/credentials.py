"""
=============================================================================
CREDENTIAL VERIFICATION
=============================================================================

One line in, one word out:

    client ──► "alice 5f4dcc3b5aa765d61d8327deb882cf99" ──► server
    client ◄── "true\n"  or  "false\n"                 ◄── server

The client hashes the password itself; the server only compares the hash
it was sent with the one on record.

=============================================================================
ONE NEGATIVE ANSWER
=============================================================================

    malformed line     → false
    unknown user       → false
    wrong hash         → false

A client can never tell these apart. That is the whole point: the answer
must not leak which usernames exist.

=============================================================================
SECURITY NOTES
=============================================================================

- The comparison is plain ==, not constant time.
- The hashing scheme is whatever the client and the store agree on; the
  server never sees a raw password and never hashes anything.
- Without HTTPS mode the hash crosses the network in clear.

=============================================================================
"""

import logging
from typing import Optional, Protocol

from .base import Handler
from ..http.response import Response, auth_result


logger = logging.getLogger(__name__)


class CredentialLookup(Protocol):
    """
    Read-only username → stored hash mapping.

    Anything with a dict-style get() works, including a plain dict.
    """

    def get(self, username: str) -> Optional[str]:
        ...


def verify_credentials(line: bytes, lookup: CredentialLookup) -> Response:
    """
    Check a "<username> <candidateHash>" line against the store.

    Args:
        line: Raw bytes from the client.
        lookup: Where stored hashes come from.

    Returns:
        AUTH_TRUE if the user exists and the hashes are identical,
        AUTH_FALSE for everything else.
    """
    tokens = line.split()
    if len(tokens) != 2:
        logger.info(f"Malformed credential line ({len(tokens)} token(s))")
        return auth_result(False)

    try:
        username, candidate = (token.decode("utf-8") for token in tokens)
    except UnicodeDecodeError:
        logger.info("Credential line is not valid UTF-8")
        return auth_result(False)

    stored = lookup.get(username)
    if stored is None:
        logger.info(f"Unknown user {username!r}")
        return auth_result(False)

    matched = candidate == stored
    logger.info(f"Credential check for {username!r}: {'match' if matched else 'mismatch'}")
    return auth_result(matched)


class CredentialHandler(Handler):
    """
    Handler for the auth service.

    The lookup is injected here and nowhere else, so tests can hand in a
    dict and production hands in a CredentialStore.
    """

    name = "auth"

    def __init__(self, lookup: CredentialLookup):
        self.lookup = lookup

    def handle(self, data: bytes) -> Response:
        return verify_credentials(data, self.lookup)
