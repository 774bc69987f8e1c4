"""
Handler contract shared by both services.

The connection loop knows exactly one thing about a service: give it the
bytes the client sent, get a Response back.

    raw bytes ──► Handler.handle() ──► Response ──► to_bytes() ──► wire

A handler owns its own decoding, so a parse failure turns into that
protocol's negative answer (400 for static files, false for credentials)
without the loop having to know which protocol it is running.
"""

from abc import ABC, abstractmethod

from ..http.response import Response


class Handler(ABC):
    """Turns one request buffer into one Response."""

    name: str = "handler"

    @abstractmethod
    def handle(self, data: bytes) -> Response:
        """
        Produce the response for one request.

        Must not touch the transport and must not keep state between
        calls: the same handler serves every connection, possibly from
        several threads.
        """

    def __call__(self, data: bytes) -> Response:
        return self.handle(data)
