"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns the head of a connection's byte stream into an HTTPRequest.

=============================================================================
WHAT WE READ, AND WHAT WE IGNORE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   GET /docs/a%20b.txt?x=1 HTTP/1.1\r\n   ← REQUEST LINE (parsed)    │
    │   Host: localhost:8080\r\n               ┐                           │
    │   User-Agent: curl/8.0\r\n               │ HEADERS (read, dropped)   │
    │   Accept: */*\r\n                        ┘                           │
    │   \r\n                                   ← END OF HEAD               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Only the request line matters to a GET-only static server. Headers are
consumed so the client sees its request fully read before we answer, but
they are never stored or acted upon. No body is read.

=============================================================================
REQUEST LINE
=============================================================================

    GET /docs/a%20b.txt?x=1 HTTP/1.1
    ─┬─ ──────────┬──────── ───┬────
     │            │            │
   method        URI        version

The line is split on the FIRST TWO spaces, so anything after the second
space belongs to the version token ("HTTP/1.1 junk" is a 505, not a 500).

The URI is percent-decoded BEFORE splitting off the query string:

    /a%20b.txt?x=1   ──unquote──►   /a b.txt?x=1   ──split "?"──►
                                    path="/a b.txt"  query="x=1"

Invalid UTF-8 after decoding is replaced with U+FFFD rather than rejected;
the replaced path simply will not exist on disk and becomes a 404.

=============================================================================
VALIDATION ORDER
=============================================================================

    1. Version must be HTTP/1.1        else 505
    2. Method must be GET              else 405
    3. Anything else malformed         500

Version is checked first: "POST / HTTP/1.0" is a 505.

=============================================================================
"""

from dataclasses import dataclass
from typing import BinaryIO
from urllib.parse import unquote_to_bytes

from .errors import ProtocolError
from .status_codes import HTTPStatus


SUPPORTED_VERSION = "HTTP/1.1"
SUPPORTED_METHOD = "GET"

# Default upper bound on a single request or header line
MAX_LINE_LENGTH = 8192


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request line.

    Immutable once built; lives only as long as its connection.

    Attributes:
        method:  Request method as sent ("GET").
        path:    Percent-decoded path, always starting with "/".
        query:   Raw query string after the first "?", or "".
        version: Protocol version token ("HTTP/1.1").
    """

    method: str
    path: str
    query: str = ""
    version: str = SUPPORTED_VERSION

    @property
    def target(self) -> str:
        """Path plus query, for log lines."""
        return f"{self.path}?{self.query}" if self.query else self.path


class RequestParser:
    """
    Reads and validates the head of an HTTP request.

    The steps are exposed separately because the connection coordinator
    runs them in a fixed order (read line, validate, consume headers);
    read_request() chains them for callers that do not care.

    Usage:
        parser = RequestParser()
        request = parser.read_request(conn.reader)
    """

    def __init__(self, max_line_length: int = MAX_LINE_LENGTH):
        self.max_line_length = max_line_length

    def read_request(self, reader: BinaryIO) -> HTTPRequest:
        """
        Read one full request head from the stream.

        Raises:
            ProtocolError: Malformed line, unsupported version or method,
                           or the stream ended before the blank line.
            OSError: The underlying read failed.
        """
        request = self.parse_request_line(self.read_line(reader))
        self.validate(request)
        self.consume_headers(reader)
        return request

    def read_line(self, reader: BinaryIO) -> bytes:
        """
        Read a single line, bounded by max_line_length.

        Returns the line including its terminator. An empty result means
        the peer closed the stream.
        """
        # One extra byte distinguishes "exactly at the limit" from "over it"
        line = reader.readline(self.max_line_length + 1)
        if len(line) > self.max_line_length:
            raise ProtocolError(f"Line exceeds {self.max_line_length} bytes")
        return line

    def parse_request_line(self, line: bytes) -> HTTPRequest:
        """
        Parse "METHOD SP URI SP VERSION" into an HTTPRequest.

        Args:
            line: Raw request line, with or without its CRLF.

        Raises:
            ProtocolError: Not exactly three tokens, or the decoded path
                           does not start with "/".
        """
        if not line:
            raise ProtocolError("Connection closed before request line")

        if line.endswith(b"\r\n"):
            line = line[:-2]
        elif line.endswith(b"\n"):
            line = line[:-1]

        parts = line.split(b" ", 2)
        if len(parts) != 3:
            raise ProtocolError(f"Invalid request line: {line!r}")

        method, uri, version = parts

        # Percent-decode to bytes, then interpret as UTF-8 leniently
        decoded = unquote_to_bytes(uri).decode("utf-8", errors="replace")
        path, _, query = decoded.partition("?")

        if not path.startswith("/"):
            raise ProtocolError(f"Request path must start with '/': {path!r}")

        return HTTPRequest(
            method=method.decode("latin-1"),
            path=path,
            query=query,
            version=version.decode("latin-1"),
        )

    def validate(self, request: HTTPRequest) -> None:
        """
        Check version, then method.

        Raises:
            ProtocolError: 505 for a version other than HTTP/1.1,
                           405 for a method other than GET.
        """
        if request.version != SUPPORTED_VERSION:
            raise ProtocolError(
                f"Unsupported HTTP version: {request.version!r}",
                status=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        if request.method != SUPPORTED_METHOD:
            raise ProtocolError(
                f"Method not allowed: {request.method!r}",
                status=HTTPStatus.METHOD_NOT_ALLOWED,
            )

    def consume_headers(self, reader: BinaryIO) -> int:
        """
        Read and discard header lines up to the blank line.

        Returns:
            Number of header lines skipped.

        Raises:
            ProtocolError: The stream ended before the blank line.
        """
        skipped = 0
        while True:
            line = self.read_line(reader)
            if not line:
                raise ProtocolError("Connection closed before end of headers")
            if line in (b"\r\n", b"\n"):
                return skipped
            skipped += 1


def parse_request(reader: BinaryIO, max_line_length: int = MAX_LINE_LENGTH) -> HTTPRequest:
    """Convenience wrapper around RequestParser.read_request()."""
    return RequestParser(max_line_length=max_line_length).read_request(reader)
