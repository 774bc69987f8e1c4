"""
=============================================================================
STATIC FILE SERVING
=============================================================================

Serves single files out of one flat content directory.

=============================================================================
DISPATCH ORDER
=============================================================================

Each step is terminal on failure:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. METHOD        anything but GET        → 405 Method Not Allowed │
    │                                                                      │
    │   2. NORMALIZE     "/about.html" → "about.html"                      │
    │                    "/" or ""     → "index.html"                      │
    │                                                                      │
    │   3. GUARD         any "/" left in the path → 403 Forbidden          │
    │                                                                      │
    │   4. READ          <content_root>/<segment>                          │
    │                    unreadable, NUL in name  → 404 Not Found          │
    │                                                                      │
    │   5. RESPOND       200 OK, Content-Type: text/html, full contents    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PATH TRAVERSAL
=============================================================================

The guard is blunt on purpose: the path must be ONE segment. There is no
canonicalisation, no special handling of "..", no symlink resolution.

    GET /index.html          → www/index.html
    GET /../etc/passwd       → 403  ("../etc/passwd" contains "/")
    GET /css/site.css        → 403  (subdirectories are not served)
    GET /..                  → 404  (www/.. is a directory, not a file)

Because nothing with a separator ever reaches the filesystem, there is
nothing to escape from.

=============================================================================
KNOWN SIMPLIFICATIONS
=============================================================================

- Content-Type is always text/html, whatever the file is.
- Not found, permission denied, I/O errors and impossible names (an
  embedded NUL) all look like 404.
- Files are read whole; no ranges, no caching.

=============================================================================
"""

import os
import logging
from pathlib import Path
from typing import Callable, Union

from .base import Handler
from ..http.request import ParsedRequest, RequestParseError, parse_request_line
from ..http.response import (
    Response, ok, bad_request, forbidden, not_found, method_not_allowed,
)


logger = logging.getLogger(__name__)


DEFAULT_INDEX = "index.html"

FileReader = Callable[[Path], bytes]
"""Reads a whole file. Raises OSError (or ValueError for a NUL in the name)."""


def read_file(path: Path) -> bytes:
    """Default FileReader: the whole file from local disk."""
    return path.read_bytes()


def normalize_path(path: str, index_file: str = DEFAULT_INDEX) -> str:
    """
    Strip one leading "/" and substitute the index file for an empty path.

        >>> normalize_path("/")
        'index.html'
        >>> normalize_path("/a.html")
        'a.html'
        >>> normalize_path("//a.html")
        '/a.html'
    """
    if path.startswith("/"):
        path = path[1:]
    return path or index_file


def dispatch_static(
    request: ParsedRequest,
    content_root: Union[str, os.PathLike],
    index_file: str = DEFAULT_INDEX,
    reader: FileReader = read_file,
) -> Response:
    """
    Map a parsed request onto a file under content_root.

    Args:
        request: Method and path from the request line.
        content_root: Directory files are served from.
        index_file: Served for "/" and the empty path.
        reader: Filesystem collaborator, Path.read_bytes by default.

    Returns:
        OK with the file contents, or METHOD_NOT_ALLOWED / FORBIDDEN /
        NOT_FOUND.
    """
    # ─────────────────────────────────────────────────────────────────────
    # STEP 1: Only GET is served
    # ─────────────────────────────────────────────────────────────────────
    if request.method != "GET":
        logger.info(f"Rejected method {request.method!r}")
        return method_not_allowed()

    # ─────────────────────────────────────────────────────────────────────
    # STEP 2 + 3: One path segment, nothing else
    # ─────────────────────────────────────────────────────────────────────
    segment = normalize_path(request.path, index_file)
    if "/" in segment:
        logger.warning(f"Refused multi-segment path: {request.path!r}")
        return forbidden()

    # ─────────────────────────────────────────────────────────────────────
    # STEP 4: Read the whole file
    # ─────────────────────────────────────────────────────────────────────
    full_path = Path(content_root) / segment
    try:
        content = reader(full_path)
    except (OSError, ValueError) as e:
        # ValueError: the path holds a NUL byte, which no filename can
        logger.info(f"Cannot serve {str(full_path)!r}: {e}")
        return not_found()

    # ─────────────────────────────────────────────────────────────────────
    # STEP 5: 200 OK
    # ─────────────────────────────────────────────────────────────────────
    logger.debug(f"Serving {str(full_path)!r} ({len(content)} bytes)")
    return ok(content)


class StaticFileHandler(Handler):
    """
    Handler for the static service.

    Usage:
        handler = StaticFileHandler("www")
        response = handler.handle(b"GET / HTTP/1.1\\r\\n\\r\\n")
    """

    name = "static"

    def __init__(
        self,
        content_root: Union[str, os.PathLike],
        index_file: str = DEFAULT_INDEX,
        reader: FileReader = read_file,
    ):
        """
        Args:
            content_root: Directory files are served from. It is not
                required to exist: a missing root just means every
                request is a 404.
            index_file: Served for "/" and the empty path.
            reader: Filesystem collaborator.
        """
        self.content_root = Path(content_root)
        self.index_file = index_file
        self.reader = reader

        if not self.content_root.is_dir():
            logger.warning(f"Content root {self.content_root} is not a directory")

    def handle(self, data: bytes) -> Response:
        try:
            request = parse_request_line(data)
        except RequestParseError as e:
            logger.info(f"Bad request line: {e}")
            return bad_request()

        logger.info(f"{request.method} {request.path!r}")
        return dispatch_static(request, self.content_root, self.index_file, self.reader)
