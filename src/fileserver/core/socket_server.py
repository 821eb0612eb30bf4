"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop.

=============================================================================
SOCKET LIFECYCLE
=============================================================================

    socket()   create the TCP socket
    bind()     claim HOST:PORT ("0.0.0.0" / "::" = every interface)
    listen()   let the kernel queue incoming handshakes (backlog)
    accept()   take one queued connection → NEW socket for that client
    close()    release the port

The listening socket never carries request data. Each accept() returns a
fresh socket, wrapped in a Connection and handed to a callback; the server's
callback submits it to the worker pool and returns immediately, so the
acceptor is back in accept() within microseconds.

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() with no timeout blocks forever, and a signal handler or another
thread setting "_running = False" would never be noticed. So the listener
polls:

    while running:
        try:
            accept()            ← returns, or times out after 1 second
        except timeout:
            continue            ← re-check running

Any other accept() error (out of file descriptors, a client that reset
before we got to it) is logged and the loop carries on after a short
pause. Only shutdown() ends it.

=============================================================================
"""

import socket
import signal
import logging
import threading
import time
from typing import Callable, Optional

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0

# Pause after a failed accept() so a persistent error (EMFILE) cannot spin
ACCEPT_ERROR_BACKOFF = 0.1


class SocketServer:
    """
    Listening socket plus accept loop.

    Usage:
        def on_connection(conn: Connection):
            pool.submit(lambda: handle(conn))

        server = SocketServer(config)
        server.start(on_connection)     # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening (tests wait on it)
        self.ready = threading.Event()
        self._stopped = threading.Event()

        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def bound_port(self) -> Optional[int]:
        """Actual listening port (differs from config when port=0)."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    def _create_socket(self) -> socket.socket:
        """
        Create the listening socket.

        A host containing ":" is IPv6; "::" is made dual-stack where the
        platform allows so IPv4 clients are accepted too.
        """
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        # Restarting the server must not fail with "Address already in use"
        # while old connections sit in TIME_WAIT
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        if family == socket.AF_INET6:
            try:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
            except (AttributeError, OSError):
                pass  # Platform without dual-stack sockets

        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """
        Stop on SIGINT / SIGTERM.

        signal.signal() only works on the main thread; when the server runs
        on any other thread (tests, embedding) signals are left alone.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
            self.shutdown()

        for sig in (signal.SIGINT, signal.SIGTERM):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen, and accept until shutdown() is called.

        Args:
            connection_handler: Called on the acceptor thread with each new
                                Connection. Must not block.

        Raises:
            OSError: Binding failed (port in use, permission denied).
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._stopped.clear()
        self._setup_signals()

        logger.info(f"Listening on {self.config.host}:{self.bound_port}")
        self.ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._running:
                    break
                # Usually transient (EMFILE, ECONNABORTED)
                logger.error(f"Accept error: {e}")
                time.sleep(ACCEPT_ERROR_BACKOFF)
                continue

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(socket=client_socket, address=client_address)
            connection_handler(conn)

    def shutdown(self):
        """Ask the accept loop to stop. Idempotent, callable from any thread."""
        self._running = False

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listener has closed its socket."""
        return self._stopped.wait(timeout)

    def _cleanup(self):
        self._restore_signals()

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self.ready.clear()
        self._stopped.set()
        logger.info("Listener stopped")
