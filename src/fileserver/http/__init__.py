"""
HTTP protocol components: parsing, status codes, MIME types, responses.

    from fileserver.http import RequestParser, ResponseWriter, HTTPStatus
"""

from .errors import HTTPError, ProtocolError, NotFoundError
from .status_codes import HTTPStatus, STATUS_PHRASES
from .mime_types import get_mime_type, MIME_TYPES, DEFAULT_MIME_TYPE
from .request import HTTPRequest, RequestParser, parse_request
from .response import (
    HTTPResponse,
    ResponseWriter,
    file_response,
    html_response,
    redirect,
    error_response,
)

__all__ = [
    "HTTPError",
    "ProtocolError",
    "NotFoundError",
    "HTTPStatus",
    "STATUS_PHRASES",
    "get_mime_type",
    "MIME_TYPES",
    "DEFAULT_MIME_TYPE",
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "HTTPResponse",
    "ResponseWriter",
    "file_response",
    "html_response",
    "redirect",
    "error_response",
]
