"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The fixed set of status codes this server can emit, with their reason
phrases.

=============================================================================
WHICH CODES, AND WHEN
=============================================================================

A static-file server needs far fewer codes than a general framework:

    ┌────────┬────────────────────────────────────────────────────────────┐
    │  2xx   │ 200 OK                 - File or directory listing sent    │
    ├────────┼────────────────────────────────────────────────────────────┤
    │  3xx   │ 301 Moved Permanently  - Directory requested without "/"   │
    │        │ 302 Found              ┐                                   │
    │        │ 303 See Other          │ Supported by the redirect         │
    │        │ 305 Use Proxy          │ factory, not produced by the      │
    │        │ 307 Temporary Redirect ┘ resolver today                    │
    ├────────┼────────────────────────────────────────────────────────────┤
    │  4xx   │ 404 Not Found          - Missing, or outside served root   │
    │        │ 405 Method Not Allowed - Anything but GET                  │
    ├────────┼────────────────────────────────────────────────────────────┤
    │  5xx   │ 500 Internal Error     - Malformed request or I/O failure  │
    │        │ 505 Version Not Supp.  - Anything but HTTP/1.1             │
    └────────┴────────────────────────────────────────────────────────────┘

Note that a path escaping the served root is a 404, not a 403. Answering
403 would confirm to an attacker that the target exists.

=============================================================================
"""

from enum import IntEnum
from types import MappingProxyType


class HTTPStatus(IntEnum):
    """
    HTTP status codes understood by the server.

    IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200

    MOVED_PERMANENTLY = 301
    FOUND = 302
    SEE_OTHER = 303
    USE_PROXY = 305
    TEMPORARY_REDIRECT = 307

    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405

    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Reason phrase for the status line.

            HTTP/1.1 404 Not Found
                     ─── ─────────
                      │      └── phrase
                      └───────── code
        """
        return STATUS_PHRASES[self]

    @property
    def is_redirect(self) -> bool:
        return 300 <= self < 400

    @property
    def is_error(self) -> bool:
        return self >= 400


# =============================================================================
# REASON PHRASES
# =============================================================================
#
# Read-only view: built once at import time and never mutated afterwards.
#
# =============================================================================

STATUS_PHRASES = MappingProxyType({
    HTTPStatus.OK: "OK",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.SEE_OTHER: "See Other",
    HTTPStatus.USE_PROXY: "Use Proxy",
    HTTPStatus.TEMPORARY_REDIRECT: "Temporary Redirect",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
})
