"""
=============================================================================
FILE SERVER
=============================================================================

Wires the listener, the worker pool and the per-connection pipeline.

=============================================================================
REQUEST FLOW
=============================================================================

    acceptor thread                      worker thread
    ───────────────                      ─────────────

    accept() ─► Connection ─► submit ──► serve_connection(conn)
                                            │
                                            ├─ ReadRequestLine
                                            ├─ ValidateVersionAndMethod
                                            ├─ ConsumeHeaders
                                            ├─ ResolvePath
                                            │    ├─ NotFound       → 404
                                            │    ├─ NeedsRedirect  → 301
                                            │    ├─ NeedsIndex     → listing
                                            │    └─ ServeFile      → stream
                                            ├─ WriteResponse
                                            └─ CloseConnection

Every step runs in order on one worker. Nothing is shared between
connections except the read-only served tree.

=============================================================================
ERROR MAPPING
=============================================================================

All failures stop at serve_connection:

    ┌──────────────────────────────┬──────────────────────────────────────┐
    │ ProtocolError                │ its status (405, 505, or 500)        │
    │ NotFoundError                │ 404                                  │
    │ OSError (file, dir, socket)  │ 500                                  │
    │ anything else                │ 500, logged with traceback           │
    └──────────────────────────────┴──────────────────────────────────────┘

The error response itself is best effort. If the client is gone, sending
it fails too, and that failure is logged at DEBUG and dropped: there is
nobody left to tell. If the status line of a successful response already
went out, no error response is attempted; the connection just closes.

=============================================================================
"""

import logging
import time
from pathlib import Path
from typing import Optional

from .config import ServerConfig
from .core import Connection, SocketServer, WorkerPool
from .handlers import StaticFileHandler
from .http import (
    HTTPError,
    HTTPRequest,
    HTTPStatus,
    RequestParser,
    ResponseWriter,
    error_response,
)


logger = logging.getLogger(__name__)
access_logger = logging.getLogger("fileserver.access")


# Not configurable; when every worker is busy, new connections queue
DEFAULT_POOL_SIZE = 4


class FileServer:
    """
    Static-file HTTP/1.1 server.

    Usage:
        server = FileServer(ServerConfig(root_dir="./public"))
        server.run()        # blocks until SIGINT/SIGTERM or stop()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_line_length=self.config.max_line_length)
        self._handler = StaticFileHandler(self.config.root_dir)
        self._error_pages_dir = Path(self.config.error_pages_dir)

        # Created in run()
        self._pool: Optional[WorkerPool] = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def port(self) -> Optional[int]:
        """Port actually bound, once listening."""
        return self._socket_server.bound_port

    @property
    def ready(self):
        """threading.Event set when the server is accepting connections."""
        return self._socket_server.ready

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """
        Serve until stopped (blocking).

        Raises:
            OSError: The listening socket could not be bound.
        """
        self._setup_logging()

        self._pool = WorkerPool(DEFAULT_POOL_SIZE)
        self._running = True

        logger.info(
            f"{self.config.server_name} serving {self._handler.root_dir} "
            f"on {self.config.host}:{self.config.port} with {DEFAULT_POOL_SIZE} workers"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def stop(self):
        """Stop accepting; run() returns after in-flight jobs finish."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = self.config.log_level_value

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("fileserver").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False

        if self._pool is not None:
            self._pool.shutdown()
            self._pool = None

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Acceptor callback: one connection becomes one job."""
        self._pool.submit(lambda: self.serve_connection(conn))

    def serve_connection(self, conn: Connection):
        """
        Run the full request pipeline for one connection (worker thread).

        Never raises: every failure becomes a best-effort error response.
        """
        start_time = time.monotonic()
        request: Optional[HTTPRequest] = None

        with conn:
            writer = ResponseWriter(conn.writer, chunk_size=self.config.chunk_size)

            try:
                request = self._parser.read_request(conn.reader)
                response = self._handler.handle(request)
                writer.write(response)

            except HTTPError as e:
                logger.debug(f"[{conn.id}] {e.status} {e}")
                self._abort(conn, writer, e.status)

            except OSError as e:
                logger.warning(f"[{conn.id}] I/O error: {e}")
                self._abort(conn, writer, HTTPStatus.INTERNAL_SERVER_ERROR)

            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error: {e}")
                self._abort(conn, writer, HTTPStatus.INTERNAL_SERVER_ERROR)

        self._log_access(conn, request, writer, time.monotonic() - start_time)

    def _abort(self, conn: Connection, writer: ResponseWriter, status: HTTPStatus):
        """Send an error response unless something was already sent."""
        if writer.headers_sent:
            logger.debug(f"[{conn.id}] Response already started, closing without {status}")
            return

        try:
            writer.write(error_response(status, self._error_pages_dir))
        except OSError as e:
            # Client is gone; there is no channel left to report this on
            logger.debug(f"[{conn.id}] Could not send {int(status)} response: {e}")

    def _log_access(
        self,
        conn: Connection,
        request: Optional[HTTPRequest],
        writer: ResponseWriter,
        duration: float,
    ):
        """One line per connection: client, request line, status, timing."""
        if request is not None:
            line = f"{request.method} {request.target}"
        else:
            line = "-"

        status = int(writer.status) if writer.status is not None else "-"
        access_logger.info(
            f'{conn.client_ip} "{line}" {status} {writer.bytes_written} {duration * 1000:.2f}ms'
        )


def create_server(config: Optional[ServerConfig] = None) -> FileServer:
    """Factory for a configured FileServer."""
    return FileServer(config)
