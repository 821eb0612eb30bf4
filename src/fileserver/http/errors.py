"""
Error taxonomy for request handling.

Every failure a connection can hit ends up as one of:

    HTTPError            carries the status code to answer with
    ├── ProtocolError    malformed request line, bad version or method
    └── NotFoundError    path missing, or canonicalizes outside the root
    OSError              any failed read/write (file, directory, socket)

The connection coordinator turns HTTPError into its status code and
OSError into 500. Nothing else catches these.
"""

from .status_codes import HTTPStatus


class HTTPError(Exception):
    """
    Base class for failures that map directly to an HTTP status.

    Custom exceptions with a status attached keep the coordinator's
    error handling to a single ``except`` clause.
    """

    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status: HTTPStatus | None = None):
        super().__init__(message)
        if status is not None:
            self.status = status


class ProtocolError(HTTPError):
    """
    The request could not be understood or is not supported.

    Defaults to 500 (there is no 400 in this server's vocabulary); the
    validator raises it with 405 or 505 for method and version problems.
    """


class NotFoundError(HTTPError):
    """The path does not exist, or resolves outside the served root."""

    status = HTTPStatus.NOT_FOUND
