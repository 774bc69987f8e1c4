"""
=============================================================================
REQUEST-LINE PARSING
=============================================================================

The static service only ever looks at the first two whitespace-separated
tokens of whatever the client sent:

    b"GET /index.html HTTP/1.1\r\nHost: localhost\r\n\r\n"
      ───  ───────────
      method   path          (everything after is ignored)

=============================================================================
BOUNDED TOKENS
=============================================================================

Both tokens have a fixed maximum length. Oversized tokens are TRUNCATED,
not rejected:

    MAX_METHOD_LENGTH = 7       b"DELETEXYZ /a"  → method "DELETEX"
    MAX_PATH_LENGTH   = 255     b"GET /" + 300 * b"a" → path of 255 chars

Truncation happens on the raw bytes, before decoding. Bytes that are not
UTF-8 survive decoding (surrogateescape), so a path still names the exact
file the client asked for.

=============================================================================
WHAT THE PARSER DOES NOT DO
=============================================================================

- It does not check that the method is one we support.
- It does not check that the path is safe.

Both are the static handler's job. The parser only answers "are there two
tokens?" and raises RequestParseError when there aren't.

=============================================================================
"""

from dataclasses import dataclass


MAX_METHOD_LENGTH = 7
MAX_PATH_LENGTH = 255


class RequestParseError(Exception):
    """The buffer does not contain a method and a path."""


@dataclass(frozen=True)
class ParsedRequest:
    """
    Method and path from a request line.

    Immutable: built once per connection, then only read.

    Attributes:
        method: Request method, at most MAX_METHOD_LENGTH characters.
        path: Request target as sent, at most MAX_PATH_LENGTH characters.
    """
    method: str
    path: str


def _decode(token: bytes) -> str:
    # Undecodable bytes become lone surrogates, which os.fsencode() turns
    # back into the original bytes when the path reaches the filesystem.
    return token.decode("utf-8", errors="surrogateescape")


def parse_request_line(buffer: bytes) -> ParsedRequest:
    """
    Parse the method and path out of a raw request buffer.

    Args:
        buffer: Bytes received from the client.

    Returns:
        The parsed request.

    Raises:
        RequestParseError: Fewer than two tokens (empty buffer, only
            whitespace, or a lone method).

    Example:
        >>> parse_request_line(b"GET / HTTP/1.1\\r\\n\\r\\n")
        ParsedRequest(method='GET', path='/')
    """
    tokens = buffer.split(maxsplit=2)
    if len(tokens) < 2:
        raise RequestParseError(f"Expected '<METHOD> <PATH>', got {len(tokens)} token(s)")

    method, path = tokens[0], tokens[1]
    return ParsedRequest(
        method=_decode(method[:MAX_METHOD_LENGTH]),
        path=_decode(path[:MAX_PATH_LENGTH]),
    )
