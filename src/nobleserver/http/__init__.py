"""
=============================================================================
PROTOCOL MESSAGES
=============================================================================

    request.py    bytes → ParsedRequest (method, path)
    response.py   Response (Status + payload) → bytes

=============================================================================
"""

from .request import (
    ParsedRequest,
    RequestParseError,
    parse_request_line,
    MAX_METHOD_LENGTH,
    MAX_PATH_LENGTH,
)
from .response import Response, Status

__all__ = [
    "ParsedRequest",
    "RequestParseError",
    "parse_request_line",
    "MAX_METHOD_LENGTH",
    "MAX_PATH_LENGTH",
    "Response",
    "Status",
]
