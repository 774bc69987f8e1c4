"""
=============================================================================
RESPONSES
=============================================================================

Every connection gets (at most) one Response: a Status plus an optional
payload. Serialization is fixed per status; nothing else goes on the wire.

=============================================================================
WIRE FORMAT
=============================================================================

Static service (pseudo-HTTP):

    ┌─────────────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 200 OK\r\n                                                 │
    │ Content-Type: text/html\r\n         ← always text/html              │
    │ Content-Length: 11\r\n              ← byte length of the payload    │
    │ \r\n                                                                │
    │ <h1>hi</h1>                                                         │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ HTTP/1.1 404 Not Found\r\n                                          │
    │ \r\n                                                                │
    │ File not found.                     ← plain-text explanation        │
    └─────────────────────────────────────────────────────────────────────┘

Credential service:

    true\n      or      false\n

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Status(Enum):
    """
    Outcome of a request.

    Each member is (code, reason, explanation). The auth outcomes have no
    HTTP code: their whole wire form is the explanation.
    """
    OK = (200, "OK", "")
    BAD_REQUEST = (400, "Bad Request", "Malformed HTTP request.")
    FORBIDDEN = (403, "Forbidden", "Access to subdirectories is not allowed.")
    NOT_FOUND = (404, "Not Found", "File not found.")
    METHOD_NOT_ALLOWED = (405, "Method Not Allowed", "Only GET is allowed.")
    AUTH_TRUE = (None, None, "true\n")
    AUTH_FALSE = (None, None, "false\n")

    def __init__(self, code: Optional[int], reason: Optional[str], explanation: str):
        self.code = code
        self.reason = reason
        self.explanation = explanation

    @property
    def is_http(self) -> bool:
        return self.code is not None

    @property
    def status_line(self) -> str:
        """HTTP status line, e.g. "HTTP/1.1 404 Not Found"."""
        if not self.is_http:
            raise ValueError(f"{self.name} is not an HTTP status")
        return f"HTTP/1.1 {self.code} {self.reason}"


@dataclass(frozen=True)
class Response:
    """
    One response, ready to serialize.

    Attributes:
        status: What happened.
        body: File contents for Status.OK, None otherwise.
    """
    status: Status
    body: Optional[bytes] = None

    @property
    def content_length(self) -> int:
        return len(self.body) if self.body is not None else 0

    def to_bytes(self) -> bytes:
        """
        Serialize to the exact bytes sent to the client.

        Returns:
            Complete response (headers and body).
        """
        if not self.status.is_http:
            return self.status.explanation.encode("ascii")

        if self.status is Status.OK:
            head = (
                f"{self.status.status_line}\r\n"
                f"Content-Type: text/html\r\n"
                f"Content-Length: {self.content_length}\r\n"
                f"\r\n"
            )
            return head.encode("ascii") + (self.body or b"")

        return f"{self.status.status_line}\r\n\r\n{self.status.explanation}".encode("ascii")


# =============================================================================
# CONVENIENCE CONSTRUCTORS
# =============================================================================

def ok(body: bytes) -> Response:
    """200 OK carrying file contents."""
    return Response(Status.OK, body)


def bad_request() -> Response:
    return Response(Status.BAD_REQUEST)


def forbidden() -> Response:
    return Response(Status.FORBIDDEN)


def not_found() -> Response:
    return Response(Status.NOT_FOUND)


def method_not_allowed() -> Response:
    return Response(Status.METHOD_NOT_ALLOWED)


def auth_result(matched: bool) -> Response:
    """true\\n or false\\n."""
    return Response(Status.AUTH_TRUE if matched else Status.AUTH_FALSE)
