"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket for the lifetime of a single request.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever bytes happen to have arrived, not lines:

    Client sends:   "GET / HTTP/1.1\r\n\r\n"

    Server may see: recv() → "GET / HT"
                    recv() → "TP/1.1\r\n\r"
                    recv() → "\n"

The request parser wants whole lines. Rather than buffering by hand we
ask the socket for file objects:

    reader = sock.makefile("rb")    readline() buffers across recv() calls
    writer = sock.makefile("wb")    write() buffers, flush() sends

=============================================================================
ONE REQUEST, THEN CLOSE
=============================================================================

    ┌──────┐  read_request  ┌─────────┐  write  ┌─────────┐  close  ┌────────┐
    │ NEW  │ ─────────────► │ READING │ ──────► │ WRITING │ ──────► │ CLOSED │
    └──────┘                └─────────┘         └─────────┘         └────────┘

There is no keep-alive loop. After the response the writer is flushed,
our side is shut down (FIN), anything the client still sends is drained
briefly, and the socket is closed.

No read timeout is set: a client that connects and never sends occupies
its worker until it disconnects.

=============================================================================
"""

import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import BinaryIO, Optional


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, for logging."""
    NEW = "new"
    READING = "reading"
    WRITING = "writing"
    CLOSED = "closed"


# Total time close() spends reading what the client still sends
DRAIN_TIMEOUT = 0.5

# Write buffer for the response stream; responses are flushed explicitly
WRITE_BUFFER_SIZE = 64 * 1024


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket:     The accepted client socket.
        address:    Client address tuple (ip, port[, flowinfo, scope]).
        id:         Short random identifier for log correlation.
        state:      Current lifecycle state.
        created_at: Time the connection was accepted.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    _reader: Optional[BinaryIO] = field(default=None, repr=False)
    _writer: Optional[BinaryIO] = field(default=None, repr=False)

    def __post_init__(self):
        # Accepted sockets inherit the listener's accept-poll timeout on some
        # platforms; connection I/O is plain blocking I/O
        self.socket.settimeout(None)

    @property
    def client_ip(self) -> str:
        return str(self.address[0]) if self.address else "-"

    @property
    def age(self) -> float:
        return time.time() - self.created_at

    @property
    def reader(self) -> BinaryIO:
        """Buffered binary reader over the socket (readline-capable)."""
        if self._reader is None:
            self._reader = self.socket.makefile("rb")
        self.state = ConnectionState.READING
        return self._reader

    @property
    def writer(self) -> BinaryIO:
        """Buffered binary writer over the socket. Callers flush."""
        if self._writer is None:
            self._writer = self.socket.makefile("wb", buffering=WRITE_BUFFER_SIZE)
        self.state = ConnectionState.WRITING
        return self._writer

    def close(self):
        """
        Close the connection.

            1. flush the writer         any buffered response bytes
            2. shutdown(SHUT_WR)        send FIN: "no more data from us"
            3. drain briefly            read what the client still sends,
                                        so close() does not answer with RST
            4. close file objects and the socket

        Every step tolerates a peer that has already gone away.
        """
        if self.state == ConnectionState.CLOSED:
            return

        if self._writer is not None:
            try:
                self._writer.close()  # flushes first
            except OSError:
                pass

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        # DRAIN_TIMEOUT bounds the whole drain, not each recv()
        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                if not self.socket.recv(4096):
                    break
        except OSError:
            pass  # socket.timeout is an OSError

        if self._reader is not None:
            try:
                self._reader.close()
            except OSError:
                pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
