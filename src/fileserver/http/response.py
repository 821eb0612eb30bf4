"""
=============================================================================
HTTP RESPONSE WRITING
=============================================================================

Builds responses and writes them to a connection.

=============================================================================
RESPONSE STRUCTURE
=============================================================================

    HTTP/1.1 200 OK\r\n                 ← Status line
    Content-Type: text/plain\r\n        ← Headers (ordered name/value pairs)
    \r\n                                ← Blank line
    hi                                  ← Body

Headers are an ordered list, not a dict. Order is preserved on the wire
and duplicate names are allowed (though nothing here produces them).

No Content-Length is sent: every connection carries exactly one response
and is closed afterwards, so end-of-stream marks the end of the body.

=============================================================================
THREE BODY STRATEGIES
=============================================================================

    ┌─────────────────┬──────────────────────────────────────────────────┐
    │ FILE STREAM     │ Read the file in fixed-size chunks, write each   │
    │                 │ chunk as it arrives. Memory stays flat no matter │
    │                 │ how large the file is.                           │
    ├─────────────────┼──────────────────────────────────────────────────┤
    │ GENERATED INDEX │ An HTML string built in memory (listing.py).     │
    ├─────────────────┼──────────────────────────────────────────────────┤
    │ STATIC / ERROR  │ "<code>.html" from the error-pages directory if  │
    │                 │ present, otherwise the reason phrase as text.    │
    └─────────────────┴──────────────────────────────────────────────────┘

Redirects are the degenerate case: a Location header and no body at all.

=============================================================================
BUFFERING AND FLUSHING
=============================================================================

The writer sits on top of a buffered binary stream (socket.makefile("wb")).
Small writes collect in the buffer; write() flushes once at the very end
of every response path, so the complete response has left the process
before the coordinator closes the socket.

For a streamed file the file is OPENED before the status line is written.
If the open fails, nothing has been sent yet and the coordinator can still
answer 500 cleanly instead of appending an error to a half-written 200.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Optional

from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


HTTP_VERSION = "HTTP/1.1"

# 32 KiB per read/write when streaming files
DEFAULT_CHUNK_SIZE = 32 * 1024


@dataclass
class HTTPResponse:
    """
    A response waiting to be written.

    Exactly one of ``body`` and ``body_file`` carries the payload:
    ``body_file`` set means "stream this file", otherwise ``body`` is sent
    as-is (possibly empty).

    Attributes:
        status:    Status code.
        headers:   Ordered (name, value) pairs.
        body:      In-memory body bytes.
        body_file: Path of a file to stream instead of ``body``.
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: list[tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    body_file: Optional[Path] = None

    @property
    def reason(self) -> str:
        return self.status.phrase

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 Not Found"."""
        return f"{HTTP_VERSION} {int(self.status)} {self.reason}"

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """Append a header. Returns self for chaining."""
        self.headers.append((name, value))
        return self

    def get_header(self, name: str) -> Optional[str]:
        """First value for a header name (case-insensitive), or None."""
        wanted = name.lower()
        for header_name, value in self.headers:
            if header_name.lower() == wanted:
                return value
        return None

    def head_bytes(self) -> bytes:
        """
        Serialize the status line, headers and blank line.

        Headers are encoded as latin-1, the historical HTTP header charset;
        values built here are ASCII (Location is percent-encoded).
        """
        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in self.headers)
        return ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1")


class ResponseWriter:
    """
    Writes HTTPResponse objects to a buffered binary stream.

    One writer per connection. ``status`` and ``headers_sent`` let the
    coordinator log what was sent and decide whether an error response
    is still possible after a failure.

    Usage:
        writer = ResponseWriter(conn.writer)
        writer.write(file_response(path, "text/plain"))
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.stream = stream
        self.chunk_size = chunk_size

        self.status: Optional[HTTPStatus] = None
        self.headers_sent = False
        self.bytes_written = 0

    def write(self, response: HTTPResponse) -> None:
        """
        Write a complete response and flush it.

        Raises:
            OSError: Opening/reading the body file or writing the stream
                     failed. Check ``headers_sent`` to know whether the
                     failure happened before anything went out.
        """
        if response.body_file is not None:
            # Open first: a failure here leaves the stream untouched
            with open(response.body_file, "rb") as source:
                self._write_head(response)
                self._copy(source)
        else:
            self._write_head(response)
            if response.body:
                self._write(response.body)

        self.stream.flush()

    def _write_head(self, response: HTTPResponse) -> None:
        self.status = response.status
        self.headers_sent = True
        self._write(response.head_bytes())

    def _copy(self, source: BinaryIO) -> None:
        """Copy the source to the stream one chunk at a time."""
        while True:
            chunk = source.read(self.chunk_size)
            if not chunk:
                break
            self._write(chunk)

    def _write(self, data: bytes) -> None:
        self.stream.write(data)
        self.bytes_written += len(data)


# =============================================================================
# RESPONSE FACTORIES
# =============================================================================
#
# One-liners for every response the server produces:
#
#     writer.write(file_response(path, "image/png"))
#     writer.write(html_response(listing_html))
#     writer.write(redirect("/docs/"))
#     writer.write(error_response(HTTPStatus.NOT_FOUND, error_pages_dir))
#
# =============================================================================

def file_response(path: Path, content_type: str) -> HTTPResponse:
    """A 200 response streaming ``path``."""
    return HTTPResponse(
        status=HTTPStatus.OK,
        headers=[("Content-Type", content_type)],
        body_file=path,
    )


def html_response(html: str, status: HTTPStatus = HTTPStatus.OK) -> HTTPResponse:
    """An in-memory HTML response, UTF-8 encoded."""
    return HTTPResponse(
        status=status,
        headers=[("Content-Type", "text/html; charset=utf-8")],
        body=html.encode("utf-8"),
    )


def redirect(location: str, status: HTTPStatus = HTTPStatus.MOVED_PERMANENTLY) -> HTTPResponse:
    """
    A redirect: Location header, empty body.

    Args:
        location: Target URL, already percent-encoded.
        status:   Any 3xx code from the status table; 301 by default.

    Raises:
        ValueError: ``status`` is not a redirect code.
    """
    if not status.is_redirect:
        raise ValueError(f"Not a redirect status: {status}")

    return HTTPResponse(status=status, headers=[("Location", location)])


def error_response(status: HTTPStatus, error_pages_dir: Optional[Path] = None) -> HTTPResponse:
    """
    An error page for ``status``.

    If ``<error_pages_dir>/<code>.html`` exists its contents are served
    verbatim as HTML. Otherwise the body is the reason phrase as plain
    text. A page that exists but cannot be read falls back to the phrase:
    an error response must never itself fail to build.
    """
    if error_pages_dir is not None:
        page = Path(error_pages_dir) / f"{int(status)}.html"
        try:
            body = page.read_bytes()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not read error page {page}: {e}")
        else:
            return HTTPResponse(
                status=status,
                headers=[("Content-Type", "text/html")],
                body=body,
            )

    return HTTPResponse(
        status=status,
        headers=[("Content-Type", "text/plain")],
        body=status.phrase.encode("ascii"),
    )
